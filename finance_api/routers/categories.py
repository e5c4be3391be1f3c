from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finance_api.db import get_db
from finance_api.schemas import (
    BootstrapResult,
    CategoryIn,
    CategoryOut,
    CategoryUpdate,
    Message,
    TransactionType,
)
from finance_api.security import get_current_user_id
from finance_api.services import categories

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=List[CategoryOut])
async def list_categories(
    type: Optional[TransactionType] = None,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return await categories.list_categories(db, user_id, ctype=type)


@router.post("", response_model=CategoryOut, status_code=201)
async def create_category(
    payload: CategoryIn,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return await categories.create_category(db, user_id, payload)


@router.post("/init", response_model=BootstrapResult)
async def init_categories(db: AsyncSession = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    created, items = await categories.bootstrap_defaults(db, user_id)
    return BootstrapResult(created=created, categories=[CategoryOut.model_validate(c) for c in items])


@router.patch("/{category_id}", response_model=CategoryOut)
async def update_category(
    category_id: int,
    payload: CategoryUpdate,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return await categories.update_category(db, user_id, category_id, payload)


@router.delete("/{category_id}", response_model=Message)
async def delete_category(
    category_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    await categories.delete_category(db, user_id, category_id)
    return {"message": "Category deleted successfully"}
