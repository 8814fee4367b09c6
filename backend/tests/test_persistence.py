# Overview: Pytest coverage for the tenant context value and the unit of work.

"""
Persistence Gateway Tests

Verifies:
- TenantContext exposes the caller's identity and role facts
- commit() maps constraint failures to PersistenceError(conflict=True) and rolls back
- atomic() rolls back every change made in the block on error
- reserve_stock never lets stock drop below zero
"""

import pytest

from seller_inventory.errors import PersistenceError
from seller_inventory.models import Category, Product, Store, UserRole
from seller_inventory.tenant_context import TenantContext


class TestTenantContext:

    def test_for_user_copies_identity(self, db_session, manager_a, store_a):
        ctx = TenantContext.for_user(manager_a)

        assert ctx.current_user_id == manager_a.id
        assert ctx.current_store_id == store_a.id
        assert ctx.current_user_role == UserRole.MANAGER
        assert ctx.is_authenticated
        assert ctx.is_manager
        assert not ctx.is_system_admin
        assert ctx.has_store_access

    def test_staff_is_not_manager(self, db_session, staff_a):
        ctx = TenantContext.for_user(staff_a)
        assert not ctx.is_manager
        assert ctx.has_store_access

    def test_system_admin_has_access_without_store(self, db_session, admin_user):
        ctx = TenantContext.for_user(admin_user)
        assert ctx.current_store_id is None
        assert ctx.is_system_admin
        assert ctx.is_manager
        assert ctx.has_store_access

    def test_anonymous(self):
        ctx = TenantContext.anonymous()
        assert not ctx.is_authenticated
        assert not ctx.has_store_access

    def test_context_is_immutable(self):
        ctx = TenantContext(user_id=1, store_id=1, role=UserRole.STAFF)
        with pytest.raises(AttributeError):
            ctx.store_id = 2


class TestUnitOfWork:

    def test_commit_persists(self, uow, store_a):
        uow.categories.add(Category(store_id=store_a.id, name="Drinks"))
        uow.commit()

        assert uow.categories.count(Category.store_id == store_a.id) == 1

    def test_unique_violation_is_conflict(self, uow, store_a):
        uow.stores.add(Store(name="Duplicate", slug=store_a.slug))

        with pytest.raises(PersistenceError) as exc_info:
            uow.commit()

        assert exc_info.value.conflict is True
        assert exc_info.value.status_code == 409
        # Rolled back: the session is usable and nothing was written
        assert uow.stores.count(Store.slug == store_a.slug) == 1

    def test_non_conflict_persistence_error_is_500(self):
        assert PersistenceError("boom").status_code == 500

    def test_atomic_rolls_back_on_error(self, uow, store_a):
        with pytest.raises(RuntimeError):
            with uow.atomic():
                uow.categories.add(Category(store_id=store_a.id, name="Temp"))
                uow.flush()
                raise RuntimeError("abort")

        assert uow.categories.count() == 0

    def test_atomic_commits_on_success(self, uow, store_a):
        with uow.atomic():
            uow.categories.add(Category(store_id=store_a.id, name="Kept"))

        uow.rollback()
        assert uow.categories.exists(Category.name == "Kept")

    def test_find_first_and_count(self, uow, store_a, store_b):
        uow.categories.add(Category(store_id=store_a.id, name="B-cat"))
        uow.categories.add(Category(store_id=store_a.id, name="A-cat"))
        uow.categories.add(Category(store_id=store_b.id, name="Other"))
        uow.commit()

        names = [c.name for c in uow.categories.find(Category.store_id == store_a.id, order_by=(Category.name,))]
        assert names == ["A-cat", "B-cat"]
        assert uow.categories.first(Category.store_id == store_b.id).name == "Other"
        assert uow.categories.count(Category.store_id == store_a.id) == 2
        assert uow.categories.get_by_id(None) is None


class TestStockReservation:

    def test_reserve_within_stock(self, uow, product_a):
        assert uow.products.reserve_stock(product_a, 4) is True
        uow.commit()

        assert uow.products.get_by_id(product_a.id).stock_quantity == 6

    def test_reserve_beyond_stock_fails_without_change(self, uow, product_a):
        assert uow.products.reserve_stock(product_a, 11) is False
        uow.commit()

        assert uow.products.get_by_id(product_a.id).stock_quantity == 10

    def test_reserve_exact_stock_reaches_zero(self, uow, product_a):
        assert uow.products.reserve_stock(product_a, 10) is True
        assert uow.products.reserve_stock(product_a, 1) is False
        uow.commit()

        assert product_a.stock_quantity == 0

    def test_reserve_bumps_version(self, uow, product_a):
        before = product_a.version_id
        uow.products.reserve_stock(product_a, 1)
        uow.commit()

        assert product_a.version_id == before + 1

    def test_release_restores_stock(self, uow, product_a):
        uow.products.reserve_stock(product_a, 3)
        uow.products.release_stock(product_a, 3)
        uow.commit()

        assert uow.session.get(Product, product_a.id).stock_quantity == 10
