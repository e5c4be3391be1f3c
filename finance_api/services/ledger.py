"""
Ledger Service

Every change to a user's transactions goes through here so that the
account aggregate always satisfies::

    balance == total_income - total_expenses, all three >= 0

Each operation runs in a single database transaction: the account row is
loaded with ``FOR UPDATE`` (a no-op on SQLite, which serialises writers
anyway), adjusted in memory, and committed together with the transaction
row. Any failure rolls both back.
"""

from datetime import date
from typing import List, Optional, Tuple

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from finance_api.errors import (
    FinanceError,
    InsufficientBalanceError,
    NotFoundError,
    PersistenceError,
)
from finance_api.models import INCOME, AccountModel, TransactionModel
from finance_api.schemas import TransactionIn

logger = structlog.get_logger(__name__)


# ----------------------------------------------------------------------------
# Account arithmetic
# ----------------------------------------------------------------------------
def _money(value: float) -> float:
    return round(value, 2)


def _effect(type_: str, amount: float) -> Tuple[float, float]:
    """(income, expense) contribution of one transaction."""
    if type_ == INCOME:
        return amount, 0.0
    return 0.0, amount


def _adjust(account: AccountModel, income_delta: float, expense_delta: float) -> None:
    balance = _money(account.balance + income_delta - expense_delta)
    if balance < 0:
        raise InsufficientBalanceError(
            balance=account.balance, required=_money(expense_delta - income_delta)
        )
    account.balance = balance
    account.total_income = _money(max(account.total_income + income_delta, 0.0))
    account.total_expenses = _money(max(account.total_expenses + expense_delta, 0.0))


async def _load_account(session: AsyncSession, user_id: int, for_update: bool = False) -> AccountModel:
    query = select(AccountModel).where(AccountModel.user_id == user_id)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    account = result.scalar_one_or_none()
    if account is None:
        account = AccountModel(user_id=user_id, balance=0.0, total_income=0.0, total_expenses=0.0)
        session.add(account)
    return account


async def _load_transaction(
    session: AsyncSession, user_id: int, transaction_id: int, for_update: bool = False
) -> TransactionModel:
    query = select(TransactionModel).where(
        TransactionModel.id == transaction_id,
        TransactionModel.user_id == user_id,
    )
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    tx = result.scalar_one_or_none()
    if tx is None:
        raise NotFoundError("Transaction not found")
    return tx


async def _commit(session: AsyncSession, event: str, **context) -> None:
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error(f"{event}_commit_failed", exc_info=True, **context)
        raise PersistenceError("Failed to save changes") from exc


# ----------------------------------------------------------------------------
# Operations
# ----------------------------------------------------------------------------
async def get_account(session: AsyncSession, user_id: int) -> AccountModel:
    """Return the user's account, creating a zeroed one on first access."""
    try:
        account = await _load_account(session, user_id)
    except SQLAlchemyError as exc:
        await session.rollback()
        raise PersistenceError("Failed to load account") from exc
    if account.id is None:
        await _commit(session, "account_create", user_id=user_id)
        logger.info("account_created", user_id=user_id)
    return account


async def record_transaction(
    session: AsyncSession, user_id: int, payload: TransactionIn
) -> Tuple[TransactionModel, AccountModel]:
    try:
        account = await _load_account(session, user_id, for_update=True)
        _adjust(account, *_effect(payload.type, payload.amount))
        tx = TransactionModel(
            user_id=user_id,
            type=payload.type,
            category=payload.category,
            amount=payload.amount,
            sender=payload.sender,
            receiver=payload.receiver,
            date=payload.date,
            note=payload.note,
        )
        session.add(tx)
        await session.flush()
    except FinanceError:
        await session.rollback()
        logger.info("transaction_rejected", user_id=user_id, type=payload.type, amount=payload.amount)
        raise
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("transaction_record_failed", user_id=user_id, exc_info=True)
        raise PersistenceError("Failed to record transaction") from exc

    await _commit(session, "transaction_record", user_id=user_id)
    logger.info(
        "transaction_recorded",
        user_id=user_id,
        transaction_id=tx.id,
        type=tx.type,
        amount=tx.amount,
        balance=account.balance,
    )
    return tx, account


async def update_transaction(
    session: AsyncSession, user_id: int, transaction_id: int, payload: TransactionIn
) -> Tuple[TransactionModel, AccountModel]:
    """Replace a transaction, moving its ledger effect from old values to new."""
    try:
        # lock order: account, then transaction
        account = await _load_account(session, user_id, for_update=True)
        tx = await _load_transaction(session, user_id, transaction_id, for_update=True)
        old_income, old_expense = _effect(tx.type, tx.amount)
        new_income, new_expense = _effect(payload.type, payload.amount)
        _adjust(account, new_income - old_income, new_expense - old_expense)

        tx.type = payload.type
        tx.category = payload.category
        tx.amount = payload.amount
        tx.sender = payload.sender
        tx.receiver = payload.receiver
        tx.date = payload.date
        tx.note = payload.note
        await session.flush()
    except FinanceError:
        await session.rollback()
        raise
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("transaction_update_failed", user_id=user_id, transaction_id=transaction_id, exc_info=True)
        raise PersistenceError("Failed to update transaction") from exc

    await _commit(session, "transaction_update", user_id=user_id, transaction_id=transaction_id)
    await session.refresh(tx)
    logger.info("transaction_updated", user_id=user_id, transaction_id=transaction_id, balance=account.balance)
    return tx, account


async def delete_transaction(session: AsyncSession, user_id: int, transaction_id: int) -> AccountModel:
    """Delete a transaction and take its amount back out of the account."""
    try:
        account = await _load_account(session, user_id, for_update=True)
        tx = await _load_transaction(session, user_id, transaction_id, for_update=True)
        income, expense = _effect(tx.type, tx.amount)
        _adjust(account, -income, -expense)
        await session.delete(tx)
        await session.flush()
    except FinanceError:
        await session.rollback()
        raise
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("transaction_delete_failed", user_id=user_id, transaction_id=transaction_id, exc_info=True)
        raise PersistenceError("Failed to delete transaction") from exc

    await _commit(session, "transaction_delete", user_id=user_id, transaction_id=transaction_id)
    logger.info("transaction_deleted", user_id=user_id, transaction_id=transaction_id, balance=account.balance)
    return account


async def get_transaction(session: AsyncSession, user_id: int, transaction_id: int) -> TransactionModel:
    return await _load_transaction(session, user_id, transaction_id)


async def list_transactions(
    session: AsyncSession,
    user_id: int,
    category: Optional[str] = None,
    ttype: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[TransactionModel]:
    query = select(TransactionModel).where(TransactionModel.user_id == user_id)
    if category:
        query = query.where(TransactionModel.category == category)
    if ttype:
        query = query.where(TransactionModel.type == ttype)
    if start_date:
        query = query.where(TransactionModel.date >= start_date)
    if end_date:
        query = query.where(TransactionModel.date <= end_date)
    query = query.order_by(TransactionModel.date.desc(), TransactionModel.id.desc())

    result = await session.execute(query)
    return list(result.scalars().all())
