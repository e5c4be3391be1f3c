from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finance_api.db import get_db
from finance_api.schemas import AccountOut
from finance_api.security import get_current_user_id
from finance_api.services import ledger

router = APIRouter(prefix="/account", tags=["account"])


@router.get("", response_model=AccountOut)
async def read_account(db: AsyncSession = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    return await ledger.get_account(db, user_id)


@router.post("/init", response_model=AccountOut)
async def init_account(db: AsyncSession = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    return await ledger.get_account(db, user_id)
