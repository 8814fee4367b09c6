# Overview: Invoice engine; issuing invoices from orders and recording payments.

"""
Invoice Service

PAYMENT STATE: payment_status is derived from (amount_paid_cents,
total_cents) only, via Invoice.update_payment_status(). There is no other
way to move between NotPaid, PartialPaid and Paid.

Payments are recorded, not processed. amount_paid_cents is the running
total reported by the operator and stays within 0..total. Once non-zero it
may only go down through an authorized (manager) correction.

MULTI-TENANT: foreign invoices look "not found" on reads and are Forbidden
on mutations. SystemAdmin reaches every store.
"""

from __future__ import annotations

from ..errors import InvalidOperationError, NotFoundError
from ..models import Invoice, Order, OrderStatus, PaymentStatus
from ..persistence import UnitOfWork
from ..tenant_context import TenantContext
from ..time_utils import utcnow
from ..validation import coerce_datetime, coerce_int
from .document_service import next_invoice_number
from .tenant_service import (
    ensure_mutable,
    ensure_readable,
    require_manager,
    require_store_access,
    store_scope,
)

INVOICEABLE_STATUSES = frozenset({OrderStatus.CONFIRMED, OrderStatus.COMPLETED})


def get_invoice(tenant: TenantContext, uow: UnitOfWork, invoice_id: int) -> Invoice:
    return ensure_readable(tenant, uow.invoices.get_by_id(invoice_id), "Invoice", invoice_id)


def get_invoice_by_order(tenant: TenantContext, uow: UnitOfWork, order_id: int) -> Invoice:
    ensure_readable(tenant, uow.orders.get_by_id(order_id), "Order", order_id)
    invoice = uow.invoices.first(Invoice.order_id == order_id)
    if invoice is None:
        raise NotFoundError("Invoice not found for order", details={"order_id": order_id})
    return invoice


def list_invoices(tenant: TenantContext, uow: UnitOfWork, *, payment_status=None) -> list[Invoice]:
    criteria = store_scope(tenant, Invoice)
    if payment_status is not None:
        criteria.append(Invoice.payment_status == PaymentStatus.parse(payment_status))
    return uow.invoices.find(*criteria, order_by=(Invoice.invoice_date.desc(), Invoice.id.desc()))


def order_numbers(uow: UnitOfWork, invoices: list[Invoice]) -> dict[int, str]:
    ids = {inv.order_id for inv in invoices}
    if not ids:
        return {}
    return {o.id: o.order_number for o in uow.orders.find(Order.id.in_(ids))}


def create_invoice(
    tenant: TenantContext,
    uow: UnitOfWork,
    order_id: int,
    *,
    due_date=None,
    notes: str | None = None,
) -> Invoice:
    """
    Issue the invoice for a Confirmed or Completed order.

    Amounts are copied from the order now; later order edits do not
    change an issued invoice. At most one invoice exists per order.
    """
    require_manager(tenant, "create invoices")
    order = ensure_mutable(tenant, uow.orders.get_by_id(order_id), "Order", order_id)

    if order.status not in INVOICEABLE_STATUSES:
        raise InvalidOperationError(
            "Invoice can only be created for confirmed or completed orders",
            details={"order_id": order.id, "status": order.status.value},
        )
    if uow.invoices.exists(Invoice.order_id == order.id):
        raise InvalidOperationError("An invoice already exists for this order", details={"order_id": order.id})

    now = utcnow()
    invoice = Invoice(
        store_id=order.store_id,
        order_id=order.id,
        invoice_number=next_invoice_number(now),
        invoice_date=now,
        due_date=coerce_datetime(due_date, "due_date"),
        sub_total_cents=order.sub_total_cents,
        tax_cents=order.tax_cents,
        discount_cents=order.discount_cents,
        total_cents=order.total_cents,
        amount_paid_cents=0,
        notes=notes,
    )
    invoice.update_payment_status()
    uow.invoices.add(invoice)
    uow.commit()
    return invoice


def update_payment(tenant: TenantContext, uow: UnitOfWork, invoice_id: int, amount_paid_cents) -> Invoice:
    """
    Record the running amount paid and re-derive payment_status.

    Rejects negative amounts and amounts above the invoice total. Lowering
    an already non-zero amount is a correction and needs manager access;
    any store user may record an increase.
    """
    require_store_access(tenant)
    invoice = ensure_mutable(tenant, uow.invoices.get_by_id(invoice_id), "Invoice", invoice_id)
    amount = coerce_int(amount_paid_cents, "amount_paid_cents")

    if amount < 0:
        raise InvalidOperationError("Amount paid cannot be negative", details={"amount_paid_cents": amount})
    if amount > invoice.total_cents:
        raise InvalidOperationError(
            "Amount paid cannot exceed the total amount",
            details={"amount_paid_cents": amount, "total_cents": invoice.total_cents},
        )
    if 0 < invoice.amount_paid_cents and amount < invoice.amount_paid_cents and not tenant.is_manager:
        raise InvalidOperationError(
            "Reducing a recorded payment requires an authorized correction",
            details={"amount_paid_cents": invoice.amount_paid_cents},
        )

    invoice.amount_paid_cents = amount
    invoice.update_payment_status()
    invoice.updated_at = utcnow()
    uow.invoices.update(invoice)
    uow.commit()
    return invoice


def mark_as_paid(tenant: TenantContext, uow: UnitOfWork, invoice_id: int) -> Invoice:
    require_manager(tenant, "record payments")
    invoice = ensure_mutable(tenant, uow.invoices.get_by_id(invoice_id), "Invoice", invoice_id)

    invoice.amount_paid_cents = invoice.total_cents
    invoice.update_payment_status()
    invoice.updated_at = utcnow()
    uow.invoices.update(invoice)
    uow.commit()
    return invoice


def delete_invoice(tenant: TenantContext, uow: UnitOfWork, invoice_id: int) -> None:
    """Only an invoice with no recorded payment can be deleted."""
    require_manager(tenant, "delete invoices")
    invoice = ensure_mutable(tenant, uow.invoices.get_by_id(invoice_id), "Invoice", invoice_id)
    if invoice.amount_paid_cents != 0:
        raise InvalidOperationError(
            "Cannot delete an invoice that has received payments",
            details={"amount_paid_cents": invoice.amount_paid_cents},
        )
    uow.invoices.delete(invoice)
    uow.commit()
