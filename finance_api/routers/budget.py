from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finance_api.db import get_db
from finance_api.schemas import BudgetLimitIn, BudgetLimitOut
from finance_api.security import get_current_user_id
from finance_api.services import budget

router = APIRouter(prefix="/limit", tags=["budget"])


@router.get("", response_model=BudgetLimitOut)
async def read_limit(db: AsyncSession = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    return {"monthly_limit": await budget.get_limit(db, user_id)}


@router.post("", response_model=BudgetLimitOut)
async def set_limit(
    payload: BudgetLimitIn,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return {"monthly_limit": await budget.set_limit(db, user_id, payload.monthly_limit)}
