"""Tests for the category registry."""

import pytest
from sqlalchemy import func, select

from finance_api.errors import ConflictError, NotFoundError
from finance_api.models import CategoryModel
from finance_api.schemas import CategoryIn, CategoryUpdate
from finance_api.services import categories, ledger


def category_in(name="Groceries", **overrides):
    data = {"name": name, "emoji": "🛒"}
    data.update(overrides)
    return CategoryIn(**data)


class TestCreateAndList:

    async def test_create_applies_defaults(self, session, users):
        alice, _ = users
        category = await categories.create_category(session, alice, category_in("  Groceries  "))

        assert category.name == "Groceries"
        assert category.icon == "tag"
        assert category.type == "expense"
        assert category.color in categories.PALETTE
        assert category.is_default is False

    async def test_duplicate_name_for_same_user_conflicts(self, session, users):
        alice, _ = users
        await categories.create_category(session, alice, category_in())
        with pytest.raises(ConflictError):
            await categories.create_category(session, alice, category_in())

    async def test_same_name_for_different_user_succeeds(self, session, users):
        alice, bob = users
        await categories.create_category(session, alice, category_in())
        other = await categories.create_category(session, bob, category_in())
        assert other.user_id == bob

    async def test_list_filters_by_type_and_sorts_by_name(self, session, users):
        alice, bob = users
        await categories.create_category(session, alice, category_in("Rent"))
        await categories.create_category(session, alice, category_in("Bonus", type="income"))
        await categories.create_category(session, alice, category_in("Coffee"))
        await categories.create_category(session, bob, category_in("Books"))

        names = [c.name for c in await categories.list_categories(session, alice)]
        assert names == ["Bonus", "Coffee", "Rent"]

        expense = [c.name for c in await categories.list_categories(session, alice, ctype="expense")]
        assert expense == ["Coffee", "Rent"]


class TestUpdate:

    async def test_update_fields(self, session, users):
        alice, _ = users
        category = await categories.create_category(session, alice, category_in())

        updated = await categories.update_category(
            session,
            alice,
            category.id,
            CategoryUpdate(name="Food", icon="utensils", color="#123456", monthly_budget=300),
        )

        assert updated.name == "Food"
        assert updated.icon == "utensils"
        assert updated.color == "#123456"
        assert updated.monthly_budget == 300

    async def test_update_falls_back_to_default_icon_and_color(self, session, users):
        alice, _ = users
        category = await categories.create_category(session, alice, category_in(icon="cart", color="#FFFFFF"))
        updated = await categories.update_category(session, alice, category.id, CategoryUpdate(name="Groceries"))
        assert updated.icon == categories.DEFAULT_ICON
        assert updated.color == categories.DEFAULT_COLOR

    async def test_rename_to_existing_name_conflicts(self, session, users):
        alice, _ = users
        await categories.create_category(session, alice, category_in("Rent"))
        other = await categories.create_category(session, alice, category_in("Coffee"))
        with pytest.raises(ConflictError):
            await categories.update_category(session, alice, other.id, CategoryUpdate(name="Rent"))

    async def test_update_other_users_category_is_not_found(self, session, users):
        alice, bob = users
        category = await categories.create_category(session, alice, category_in())
        with pytest.raises(NotFoundError):
            await categories.update_category(session, bob, category.id, CategoryUpdate(name="Mine"))


class TestDelete:

    async def test_delete_unused_category(self, session, users):
        alice, _ = users
        category = await categories.create_category(session, alice, category_in())
        await categories.delete_category(session, alice, category.id)
        assert await categories.list_categories(session, alice) == []

    async def test_delete_category_in_use_conflicts(self, session, users, make_tx):
        alice, _ = users
        category = await categories.create_category(session, alice, category_in("Salary", type="income"))
        category_id = category.id
        await ledger.record_transaction(session, alice, make_tx(category="Salary"))

        with pytest.raises(ConflictError):
            await categories.delete_category(session, alice, category_id)
        assert [c.name for c in await categories.list_categories(session, alice)] == ["Salary"]

    async def test_usage_by_another_user_does_not_block_delete(self, session, users, make_tx):
        alice, bob = users
        category = await categories.create_category(session, alice, category_in("Salary", type="income"))
        await ledger.record_transaction(session, bob, make_tx(category="Salary"))
        await categories.delete_category(session, alice, category.id)

    async def test_delete_default_category_conflicts(self, session, users):
        alice, _ = users
        _, seeded = await categories.bootstrap_defaults(session, alice)
        with pytest.raises(ConflictError):
            await categories.delete_category(session, alice, seeded[0].id)

    async def test_delete_missing_category(self, session, users):
        alice, _ = users
        with pytest.raises(NotFoundError):
            await categories.delete_category(session, alice, 9999)


class TestBootstrap:

    async def test_seeds_fifteen_defaults(self, session, users):
        alice, _ = users
        created, seeded = await categories.bootstrap_defaults(session, alice)

        assert created is True
        assert len(seeded) == 15
        assert sum(1 for c in seeded if c.type == "expense") == 10
        assert sum(1 for c in seeded if c.type == "income") == 5
        assert all(c.is_default for c in seeded)

    async def test_second_call_is_a_no_op(self, session, users):
        alice, _ = users
        await categories.bootstrap_defaults(session, alice)
        created, again = await categories.bootstrap_defaults(session, alice)

        assert created is False
        assert len(again) == 15
        count = await session.execute(
            select(func.count(CategoryModel.id)).where(CategoryModel.user_id == alice)
        )
        assert count.scalar_one() == 15

    async def test_existing_custom_name_is_kept(self, session, users):
        alice, _ = users
        await categories.create_category(session, alice, category_in("Salary", type="income"))
        created, seeded = await categories.bootstrap_defaults(session, alice)

        assert created is True
        assert len(seeded) == 15
        salary = [c for c in seeded if c.name == "Salary"]
        assert len(salary) == 1
        assert salary[0].is_default is False
