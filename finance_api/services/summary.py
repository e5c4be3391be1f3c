"""
Summary Aggregator

Read-only rollups over a user's transactions. Nothing is cached; every call
recomputes from the stored rows. Functions that depend on "now" take an
optional ``today`` so callers (and tests) can pin the clock.
"""

from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy import case, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from finance_api.errors import ValidationError
from finance_api.models import EXPENSE, INCOME, BudgetGoalModel, TransactionModel
from finance_api.schemas import (
    BudgetStatus,
    CategoryBreakdownItem,
    CategorySummary,
    Dashboard,
    DashboardTotals,
    MonthlyTrendRow,
    ReportItem,
)

TREND_MONTHS = 6

_SQLITE_FORMATS = {"daily": "%Y-%m-%d", "monthly": "%Y-%m", "yearly": "%Y"}
_POSTGRES_FORMATS = {"daily": "YYYY-MM-DD", "monthly": "YYYY-MM", "yearly": "YYYY"}


# ----------------------------------------------------------------------------
# Calendar helpers
# ----------------------------------------------------------------------------
def _shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last day of a calendar month."""
    next_year, next_month = _shift_month(year, month, 1)
    return date(year, month, 1), date(next_year, next_month, 1) - timedelta(days=1)


def parse_month(value: str) -> Tuple[int, int]:
    """Parse ``YYYY-MM``."""
    try:
        year_str, month_str = value.split("-")
        year, month = int(year_str), int(month_str)
    except ValueError:
        raise ValidationError(f"Invalid month '{value}', expected YYYY-MM") from None
    if len(year_str) != 4 or not 1 <= month <= 12:
        raise ValidationError(f"Invalid month '{value}', expected YYYY-MM")
    return year, month


def trailing_months(today: date, count: int = TREND_MONTHS) -> List[str]:
    labels = []
    for delta in range(-(count - 1), 1):
        year, month = _shift_month(today.year, today.month, delta)
        labels.append(f"{year:04d}-{month:02d}")
    return labels


def _period_label(session: AsyncSession, period: str):
    column = TransactionModel.date
    if session.bind.dialect.name == "sqlite":
        return func.strftime(_SQLITE_FORMATS[period], column)
    unit = {"daily": "day", "monthly": "month", "yearly": "year"}[period]
    return func.to_char(func.date_trunc(unit, column), _POSTGRES_FORMATS[period])


def _income_sum():
    return func.sum(case((TransactionModel.type == INCOME, TransactionModel.amount), else_=0.0))


def _expense_sum():
    return func.sum(case((TransactionModel.type == EXPENSE, TransactionModel.amount), else_=0.0))


# ----------------------------------------------------------------------------
# Aggregations
# ----------------------------------------------------------------------------
async def category_totals(
    session: AsyncSession,
    user_id: int,
    ttype: str = EXPENSE,
    month: Optional[str] = None,
) -> List[CategorySummary]:
    """Sum and count per category for one type, optionally within one month."""
    total = func.sum(TransactionModel.amount).label("total")
    query = (
        select(
            TransactionModel.category,
            total,
            func.count(TransactionModel.id).label("tx_count"),
        )
        .where(TransactionModel.user_id == user_id, TransactionModel.type == ttype)
        .group_by(TransactionModel.category)
        .order_by(total.desc(), TransactionModel.category)
    )
    if month:
        start, end = month_bounds(*parse_month(month))
        query = query.where(TransactionModel.date >= start, TransactionModel.date <= end)

    rows = (await session.execute(query)).all()
    return [CategorySummary(category=r.category, total=round(float(r.total or 0), 2), count=r.tx_count) for r in rows]


async def monthly_trend(
    session: AsyncSession, user_id: int, today: Optional[date] = None
) -> List[MonthlyTrendRow]:
    """Income and expense per month for the trailing six months, zero-filled."""
    today = today or date.today()
    labels = trailing_months(today)
    start, _ = month_bounds(*parse_month(labels[0]))
    _, end = month_bounds(today.year, today.month)

    label = _period_label(session, "monthly").label("month")
    query = (
        select(label, _income_sum().label("income"), _expense_sum().label("expense"))
        .where(
            TransactionModel.user_id == user_id,
            TransactionModel.date >= start,
            TransactionModel.date <= end,
        )
        .group_by(label)
    )
    found: Dict[str, Tuple[float, float]] = {
        r.month: (round(float(r.income or 0), 2), round(float(r.expense or 0), 2))
        for r in (await session.execute(query)).all()
    }
    rows = []
    for month in labels:
        income, expense = found.get(month, (0.0, 0.0))
        rows.append(MonthlyTrendRow(month=month, income=income, expense=expense))
    return rows


async def dashboard(session: AsyncSession, user_id: int, today: Optional[date] = None) -> Dashboard:
    total = func.sum(TransactionModel.amount).label("total")
    query = (
        select(TransactionModel.category, TransactionModel.type, total)
        .where(TransactionModel.user_id == user_id)
        .group_by(TransactionModel.category, TransactionModel.type)
        .order_by(total.desc(), TransactionModel.category)
    )
    breakdown = []
    sums = defaultdict(float)
    for r in (await session.execute(query)).all():
        amount = float(r.total or 0)
        sums[r.type] += amount
        breakdown.append(CategoryBreakdownItem(category=r.category, type=r.type, total=round(amount, 2)))

    income, expense = round(sums[INCOME], 2), round(sums[EXPENSE], 2)
    return Dashboard(
        totals=DashboardTotals(
            total_income=income,
            total_expenses=expense,
            net_balance=round(income - expense, 2),
        ),
        category_breakdown=breakdown,
        monthly_trend=await monthly_trend(session, user_id, today=today),
    )


async def period_report(
    session: AsyncSession,
    user_id: int,
    period: str = "monthly",
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
) -> List[ReportItem]:
    if period not in _SQLITE_FORMATS:
        raise ValidationError(f"Invalid period '{period}'")
    label = _period_label(session, period).label("label")
    query = select(label, _income_sum().label("income"), _expense_sum().label("expense")).where(
        TransactionModel.user_id == user_id
    )
    if from_date:
        query = query.where(TransactionModel.date >= from_date)
    if to_date:
        query = query.where(TransactionModel.date <= to_date)
    query = query.group_by(label).order_by(label)

    data = []
    for r in (await session.execute(query)).all():
        income = round(float(r.income or 0), 2)
        expense = round(float(r.expense or 0), 2)
        data.append(ReportItem(label=r.label, income=income, expense=expense, balance=round(income - expense, 2)))
    return data


async def budget_check(session: AsyncSession, user_id: int, today: Optional[date] = None) -> BudgetStatus:
    """Compare this month's expenses with the user's monthly limit."""
    today = today or date.today()
    start, end = month_bounds(today.year, today.month)

    spent = await session.execute(
        select(func.coalesce(func.sum(TransactionModel.amount), 0.0)).where(
            TransactionModel.user_id == user_id,
            TransactionModel.type == EXPENSE,
            TransactionModel.date >= start,
            TransactionModel.date <= end,
        )
    )
    total_expenses = float(spent.scalar_one())

    goal = await session.execute(
        select(BudgetGoalModel.monthly_limit).where(BudgetGoalModel.user_id == user_id)
    )
    monthly_limit = goal.scalar_one_or_none()
    over_limit = monthly_limit is not None and total_expenses > monthly_limit
    return BudgetStatus(monthly_limit=monthly_limit, total_expenses=total_expenses, over_limit=over_limit)
