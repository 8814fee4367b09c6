# Overview: Tenant-scoped customer records and the per-store default ("Anonymous") customer.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import InvalidOperationError, PersistenceError
from ..models import Customer, Order
from ..persistence import UnitOfWork
from ..tenant_context import TenantContext
from ..validation import ModelValidationPolicy, apply_patch, validate_payload
from .document_service import next_account_number
from .tenant_service import (
    ensure_mutable,
    ensure_readable,
    require_manager,
    require_store_access,
    require_store_id,
    store_scope,
    target_store_id,
)

DEFAULT_CUSTOMER_NAME = "Anonymous"

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "gender", "mobile", "address", "is_active"}),
    required_on_create=frozenset({"name"}),
)


def list_customers(tenant: TenantContext, uow: UnitOfWork, *, active_only: bool = False) -> list[Customer]:
    criteria = store_scope(tenant, Customer)
    if active_only:
        criteria.append(Customer.is_active.is_(True))
    return uow.customers.find(*criteria, order_by=(Customer.name, Customer.id))


def get_customer(tenant: TenantContext, uow: UnitOfWork, customer_id: int) -> Customer:
    return ensure_readable(tenant, uow.customers.get_by_id(customer_id), "Customer", customer_id)


def create_customer(
    tenant: TenantContext,
    uow: UnitOfWork,
    payload: dict,
    *,
    store_id: int | None = None,
) -> Customer:
    require_manager(tenant, "create customers")
    store_id = target_store_id(tenant, store_id)
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)

    customer = Customer(store_id=store_id, account_number=next_account_number(), is_default=False)
    apply_patch(customer, patch)
    uow.customers.add(customer)
    uow.commit()
    return customer


def update_customer(tenant: TenantContext, uow: UnitOfWork, customer_id: int, payload: dict) -> Customer:
    require_manager(tenant, "update customers")
    customer = ensure_mutable(tenant, uow.customers.get_by_id(customer_id), "Customer", customer_id)
    if customer.is_default:
        raise InvalidOperationError("The default customer cannot be edited", details={"customer_id": customer.id})
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)

    apply_patch(customer, patch)
    uow.customers.update(customer)
    uow.commit()
    return customer


def delete_customer(tenant: TenantContext, uow: UnitOfWork, customer_id: int) -> None:
    require_manager(tenant, "delete customers")
    customer = ensure_mutable(tenant, uow.customers.get_by_id(customer_id), "Customer", customer_id)
    if customer.is_default:
        raise InvalidOperationError("The default customer cannot be deleted", details={"customer_id": customer.id})
    if uow.orders.exists(Order.customer_id == customer.id):
        raise InvalidOperationError(
            "Cannot delete a customer with orders; deactivate it instead",
            details={"customer_id": customer.id},
        )
    uow.customers.delete(customer)
    uow.commit()


def find_default_customer(uow: UnitOfWork, store_id: int) -> Customer | None:
    return uow.customers.first(Customer.store_id == store_id, Customer.is_default.is_(True))


def get_or_create_default(tenant: TenantContext, uow: UnitOfWork, *, commit: bool = True) -> Customer:
    """
    Return the store's default customer, creating it on first use.

    CONCURRENCY: two first-use callers may both miss the lookup. The partial
    unique index uq_customers_store_default lets only one insert through; the
    loser's flush fails, its transaction is rolled back and the winner's row
    is read back. Callers composing this into a larger unit of work must call
    it before making any other change, since the losing path rolls back.

    commit=False leaves the new row flushed but uncommitted so the caller's
    commit lands it together with its own changes.
    """
    require_store_access(tenant)
    store_id = require_store_id(tenant)

    existing = find_default_customer(uow, store_id)
    if existing is not None:
        return existing

    customer = Customer(
        store_id=store_id,
        name=DEFAULT_CUSTOMER_NAME,
        account_number=next_account_number(),
        is_default=True,
    )
    uow.customers.add(customer)
    try:
        uow.session.flush()
    except IntegrityError:
        uow.rollback()
        winner = find_default_customer(uow, store_id)
        if winner is None:
            raise PersistenceError("Default customer could not be provisioned", conflict=True)
        return winner
    except SQLAlchemyError as exc:
        uow.rollback()
        raise PersistenceError(
            "Default customer could not be provisioned",
            details={"reason": str(exc)},
        ) from exc

    if commit:
        uow.commit()
    return customer
