import math
from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from finance_api.errors import PersistenceError, ValidationError
from finance_api.models import BudgetGoalModel

logger = structlog.get_logger(__name__)


async def get_limit(session: AsyncSession, user_id: int) -> Optional[float]:
    result = await session.execute(
        select(BudgetGoalModel.monthly_limit).where(BudgetGoalModel.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def set_limit(session: AsyncSession, user_id: int, monthly_limit: float) -> float:
    """Create or replace the user's monthly spending limit."""
    if not math.isfinite(monthly_limit) or monthly_limit <= 0:
        raise ValidationError("Invalid limit")

    result = await session.execute(select(BudgetGoalModel).where(BudgetGoalModel.user_id == user_id))
    goal = result.scalar_one_or_none()
    if goal is None:
        goal = BudgetGoalModel(user_id=user_id, monthly_limit=monthly_limit)
        session.add(goal)
    else:
        goal.monthly_limit = monthly_limit

    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("budget_limit_save_failed", user_id=user_id, exc_info=True)
        raise PersistenceError("Failed to set limit") from exc
    logger.info("budget_limit_set", user_id=user_id, monthly_limit=monthly_limit)
    return goal.monthly_limit
