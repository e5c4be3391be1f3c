"""
Category Registry

Per-user category CRUD. Names are unique per user (checked up front and
backed by a unique constraint). Transactions store the category *name*,
so renaming a category leaves historical transactions under the old label.
"""

import random
from typing import List, Optional, Tuple

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from finance_api.errors import ConflictError, NotFoundError, PersistenceError
from finance_api.models import CategoryModel, TransactionModel
from finance_api.schemas import CategoryIn, CategoryUpdate

logger = structlog.get_logger(__name__)

DEFAULT_COLOR = "#3B82F6"
DEFAULT_ICON = "tag"

PALETTE = [
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#96CEB4", "#FFEEAD",
    "#D4A5A5", "#9B59B6", "#3498DB", "#E67E22", "#E74C3C",
    "#2ECC71", "#F1C40F", "#1ABC9C", "#95A5A6",
]

# (name, icon, emoji, color, type)
DEFAULT_CATEGORIES = [
    ("Food & Dining", "utensils", "🍔", "#FF6B6B", "expense"),
    ("Shopping", "shopping-bag", "🛍️", "#4ECDC4", "expense"),
    ("Transportation", "car", "🚗", "#45B7D1", "expense"),
    ("Housing", "home", "🏠", "#96CEB4", "expense"),
    ("Utilities", "bolt", "💡", "#FFEEAD", "expense"),
    ("Entertainment", "film", "🎬", "#D4A5A5", "expense"),
    ("Healthcare", "heart-pulse", "⚕️", "#9B59B6", "expense"),
    ("Education", "graduation-cap", "📚", "#3498DB", "expense"),
    ("Travel", "plane", "✈️", "#E67E22", "expense"),
    ("Gifts Given", "gift", "🎁", "#E74C3C", "expense"),
    ("Salary", "briefcase", "💰", "#2ECC71", "income"),
    ("Freelance", "laptop", "💻", "#F1C40F", "income"),
    ("Investments", "chart-line", "📈", "#1ABC9C", "income"),
    ("Gifts Received", "gift", "🎁", "#E74C3C", "income"),
    ("Other Income", "plus-circle", "➕", "#95A5A6", "income"),
]


async def _get_owned(session: AsyncSession, user_id: int, category_id: int) -> CategoryModel:
    result = await session.execute(
        select(CategoryModel).where(
            CategoryModel.id == category_id,
            CategoryModel.user_id == user_id,
        )
    )
    category = result.scalar_one_or_none()
    if category is None:
        raise NotFoundError("Category not found")
    return category


async def _name_taken(
    session: AsyncSession, user_id: int, name: str, exclude_id: Optional[int] = None
) -> bool:
    query = select(CategoryModel.id).where(
        CategoryModel.user_id == user_id,
        CategoryModel.name == name,
    )
    if exclude_id is not None:
        query = query.where(CategoryModel.id != exclude_id)
    result = await session.execute(query)
    return result.first() is not None


async def _commit_category(session: AsyncSession, name: str) -> None:
    try:
        await session.commit()
    except IntegrityError as exc:
        # lost a race with a concurrent insert of the same name
        await session.rollback()
        raise ConflictError(f"Category '{name}' already exists") from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("category_commit_failed", name=name, exc_info=True)
        raise PersistenceError("Failed to save category") from exc


async def create_category(session: AsyncSession, user_id: int, payload: CategoryIn) -> CategoryModel:
    if await _name_taken(session, user_id, payload.name):
        raise ConflictError(f"Category '{payload.name}' already exists")

    category = CategoryModel(
        user_id=user_id,
        name=payload.name,
        icon=payload.icon,
        emoji=payload.emoji,
        color=payload.color or random.choice(PALETTE),
        type=payload.type,
        monthly_budget=payload.monthly_budget,
        is_default=False,
    )
    session.add(category)
    await _commit_category(session, payload.name)
    logger.info("category_created", user_id=user_id, category_id=category.id, name=category.name)
    return category


async def list_categories(session: AsyncSession, user_id: int, ctype: Optional[str] = None) -> List[CategoryModel]:
    query = select(CategoryModel).where(CategoryModel.user_id == user_id)
    if ctype:
        query = query.where(CategoryModel.type == ctype)
    result = await session.execute(query.order_by(CategoryModel.name))
    return list(result.scalars().all())


async def update_category(
    session: AsyncSession, user_id: int, category_id: int, payload: CategoryUpdate
) -> CategoryModel:
    category = await _get_owned(session, user_id, category_id)
    if await _name_taken(session, user_id, payload.name, exclude_id=category_id):
        raise ConflictError(f"Category '{payload.name}' already exists")

    category.name = payload.name
    category.icon = payload.icon or DEFAULT_ICON
    category.color = payload.color or DEFAULT_COLOR
    category.monthly_budget = payload.monthly_budget
    if payload.emoji:
        category.emoji = payload.emoji
    await _commit_category(session, payload.name)
    await session.refresh(category)
    logger.info("category_updated", user_id=user_id, category_id=category_id)
    return category


async def delete_category(session: AsyncSession, user_id: int, category_id: int) -> None:
    category = await _get_owned(session, user_id, category_id)
    if category.is_default:
        raise ConflictError("Cannot delete default category")

    usage = await session.execute(
        select(func.count(TransactionModel.id)).where(
            TransactionModel.user_id == user_id,
            TransactionModel.category == category.name,
        )
    )
    if usage.scalar_one() > 0:
        raise ConflictError("Cannot delete category that is in use by transactions")

    await session.delete(category)
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        raise PersistenceError("Failed to delete category") from exc
    logger.info("category_deleted", user_id=user_id, category_id=category_id)


async def bootstrap_defaults(session: AsyncSession, user_id: int) -> Tuple[bool, List[CategoryModel]]:
    """
    Seed the default categories for a user.

    Returns ``(created, categories)``. Calling it again once the defaults
    exist, or losing a race with a concurrent call, is not an error: nothing
    is inserted and ``created`` is False.
    """
    existing = await session.execute(
        select(func.count(CategoryModel.id)).where(
            CategoryModel.user_id == user_id,
            CategoryModel.is_default.is_(True),
        )
    )
    if existing.scalar_one() > 0:
        return False, await list_categories(session, user_id)

    taken = set(
        (
            await session.execute(select(CategoryModel.name).where(CategoryModel.user_id == user_id))
        ).scalars().all()
    )
    added = 0
    for name, icon, emoji, color, ctype in DEFAULT_CATEGORIES:
        if name in taken:
            continue
        added += 1
        session.add(
            CategoryModel(
                user_id=user_id,
                name=name,
                icon=icon,
                emoji=emoji,
                color=color,
                type=ctype,
                is_default=True,
            )
        )

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.info("categories_bootstrap_race", user_id=user_id)
        return False, await list_categories(session, user_id)
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("categories_bootstrap_failed", user_id=user_id, exc_info=True)
        raise PersistenceError("Failed to initialize categories") from exc

    logger.info("categories_bootstrapped", user_id=user_id, count=added)
    return True, await list_categories(session, user_id)
