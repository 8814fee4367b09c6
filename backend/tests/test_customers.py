# Overview: Pytest coverage for customers and the per-store default customer.

import pytest
from sqlalchemy.exc import OperationalError

from seller_inventory.errors import ForbiddenError, InvalidOperationError, PersistenceError, ValidationError
from seller_inventory.models import Customer, Gender
from seller_inventory.services import customer_service, order_service


class TestCustomerCrud:

    def test_create_assigns_account_number(self, uow, manager_a_ctx, store_a):
        customer = customer_service.create_customer(manager_a_ctx, uow, {
            "name": "Jane Buyer", "gender": "female", "mobile": "555-0100",
        })

        assert customer.store_id == store_a.id
        assert customer.gender == Gender.FEMALE
        assert customer.account_number.startswith("CUST-")
        assert not customer.is_default

    def test_invalid_gender_rejected(self, uow, manager_a_ctx):
        with pytest.raises(ValidationError):
            customer_service.create_customer(manager_a_ctx, uow, {"name": "X", "gender": "robot"})

    def test_staff_cannot_create(self, uow, staff_a_ctx):
        with pytest.raises(ForbiddenError):
            customer_service.create_customer(staff_a_ctx, uow, {"name": "X"})

    def test_update(self, uow, manager_a_ctx):
        customer = customer_service.create_customer(manager_a_ctx, uow, {"name": "Old"})
        updated = customer_service.update_customer(manager_a_ctx, uow, customer.id, {"name": "New"})
        assert updated.name == "New"

    def test_delete_refused_with_orders(self, uow, manager_a_ctx, staff_a_ctx, product_a):
        customer = customer_service.create_customer(manager_a_ctx, uow, {"name": "Regular"})
        order_service.create_order(
            staff_a_ctx, uow, [{"product_id": product_a.id, "quantity": 1}], customer_id=customer.id
        )

        with pytest.raises(InvalidOperationError):
            customer_service.delete_customer(manager_a_ctx, uow, customer.id)

    def test_list_is_store_scoped(self, uow, manager_a_ctx, manager_b_ctx):
        customer_service.create_customer(manager_a_ctx, uow, {"name": "Alpha"})
        customer_service.create_customer(manager_b_ctx, uow, {"name": "Beta"})

        assert [c.name for c in customer_service.list_customers(manager_a_ctx, uow)] == ["Alpha"]


class TestDefaultCustomer:

    def test_created_on_first_use(self, uow, staff_a_ctx, store_a):
        customer = customer_service.get_or_create_default(staff_a_ctx, uow)

        assert customer.is_default
        assert customer.name == customer_service.DEFAULT_CUSTOMER_NAME
        assert customer.store_id == store_a.id

    def test_idempotent(self, uow, staff_a_ctx, store_a):
        first = customer_service.get_or_create_default(staff_a_ctx, uow)
        second = customer_service.get_or_create_default(staff_a_ctx, uow)

        assert first.id == second.id
        assert uow.customers.count(Customer.store_id == store_a.id, Customer.is_default.is_(True)) == 1

    def test_one_default_per_store(self, uow, staff_a_ctx, manager_b_ctx):
        a = customer_service.get_or_create_default(staff_a_ctx, uow)
        b = customer_service.get_or_create_default(manager_b_ctx, uow)
        assert a.id != b.id

    def test_concurrent_first_use_returns_winner(self, uow, staff_a_ctx, store_a, monkeypatch):
        """A caller that misses the lookup loses on the unique index and reads the winner back."""
        winner = customer_service.get_or_create_default(staff_a_ctx, uow)
        winner_id = winner.id

        real_lookup = customer_service.find_default_customer
        calls = []

        def stale_lookup(uow_, store_id):
            calls.append(store_id)
            if len(calls) == 1:
                return None
            return real_lookup(uow_, store_id)

        monkeypatch.setattr(customer_service, "find_default_customer", stale_lookup)

        result = customer_service.get_or_create_default(staff_a_ctx, uow)

        assert result.id == winner_id
        assert len(calls) == 2
        assert uow.customers.count(Customer.store_id == store_a.id, Customer.is_default.is_(True)) == 1

    def test_database_failure_on_first_use_is_persistence_error(self, uow, staff_a_ctx, store_a, monkeypatch):
        """A locked database while provisioning surfaces as PersistenceError, not a raw driver error."""

        class LockedSession:
            def __init__(self, session):
                self._session = session

            def flush(self):
                raise OperationalError("INSERT INTO customers", {}, Exception("database is locked"))

            def __getattr__(self, name):
                return getattr(self._session, name)

        monkeypatch.setattr(uow, "session", LockedSession(uow.session))

        with pytest.raises(PersistenceError) as exc_info:
            customer_service.get_or_create_default(staff_a_ctx, uow)

        assert exc_info.value.conflict is False
        assert exc_info.value.status_code == 500
        assert uow.customers.count(Customer.store_id == store_a.id) == 0

    def test_default_cannot_be_edited_or_deleted(self, uow, manager_a_ctx):
        default = customer_service.get_or_create_default(manager_a_ctx, uow)

        with pytest.raises(InvalidOperationError):
            customer_service.update_customer(manager_a_ctx, uow, default.id, {"name": "Renamed"})
        with pytest.raises(InvalidOperationError):
            customer_service.delete_customer(manager_a_ctx, uow, default.id)

    def test_admin_without_store_cannot_provision(self, uow, admin_ctx):
        with pytest.raises(InvalidOperationError):
            customer_service.get_or_create_default(admin_ctx, uow)
