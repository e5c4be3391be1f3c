from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finance_api.db import get_db
from finance_api.schemas import (
    BudgetStatus,
    CategorySummary,
    Dashboard,
    MonthlyTrendRow,
    Period,
    ReportItem,
    TransactionType,
)
from finance_api.security import get_current_user_id
from finance_api.services import summary

router = APIRouter(tags=["summary"])


@router.get("/summary", response_model=BudgetStatus)
async def budget_status(db: AsyncSession = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    return await summary.budget_check(db, user_id)


@router.get("/summary/categories", response_model=List[CategorySummary])
async def category_summary(
    type: TransactionType = "expense",
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return await summary.category_totals(db, user_id, ttype=type)


@router.get("/summary/category-monthly", response_model=List[CategorySummary])
async def category_monthly_summary(
    month: Optional[str] = None,
    type: TransactionType = "expense",
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    # defaults to the current month
    month = month or date.today().strftime("%Y-%m")
    return await summary.category_totals(db, user_id, ttype=type, month=month)


@router.get("/summary/monthly", response_model=List[MonthlyTrendRow])
async def monthly_summary(db: AsyncSession = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    return await summary.monthly_trend(db, user_id)


@router.get("/summary/dashboard", response_model=Dashboard)
async def dashboard_summary(db: AsyncSession = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    return await summary.dashboard(db, user_id)


@router.get("/reports/summary", response_model=List[ReportItem])
async def reports_summary(
    period: Period = "monthly",
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return await summary.period_report(db, user_id, period=period, from_date=from_date, to_date=to_date)
