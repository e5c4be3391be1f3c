from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finance_api.db import get_db
from finance_api.schemas import (
    AccountOut,
    LedgerResult,
    TransactionIn,
    TransactionOut,
    TransactionType,
)
from finance_api.security import get_current_user_id
from finance_api.services import ledger

router = APIRouter(prefix="/transactions", tags=["transactions"])


def _ledger_result(tx, account) -> LedgerResult:
    return LedgerResult(
        transaction=TransactionOut.model_validate(tx),
        account=AccountOut.model_validate(account),
    )


@router.post("", response_model=LedgerResult, status_code=201)
async def create_transaction(
    payload: TransactionIn,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    tx, account = await ledger.record_transaction(db, user_id, payload)
    return _ledger_result(tx, account)


@router.get("", response_model=List[TransactionOut])
async def list_transactions(
    category: Optional[str] = None,
    ttype: Optional[TransactionType] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return await ledger.list_transactions(
        db, user_id, category=category, ttype=ttype, start_date=start_date, end_date=end_date
    )


@router.get("/{transaction_id}", response_model=TransactionOut)
async def read_transaction(
    transaction_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return await ledger.get_transaction(db, user_id, transaction_id)


@router.put("/{transaction_id}", response_model=LedgerResult)
async def update_transaction(
    transaction_id: int,
    payload: TransactionIn,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    tx, account = await ledger.update_transaction(db, user_id, transaction_id, payload)
    return _ledger_result(tx, account)


@router.delete("/{transaction_id}", response_model=AccountOut)
async def delete_transaction(
    transaction_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return await ledger.delete_transaction(db, user_id, transaction_id)
