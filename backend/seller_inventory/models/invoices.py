from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .enums import PaymentStatus, enum_column_type


def derive_payment_status(amount_paid_cents: int, total_cents: int) -> PaymentStatus:
    """
    Payment state is a pure function of (amount paid, total).

    PAID when the total is covered, PARTIAL_PAID for any positive amount
    below the total, NOT_PAID otherwise.
    """
    if amount_paid_cents >= total_cents:
        return PaymentStatus.PAID
    if amount_paid_cents > 0:
        return PaymentStatus.PARTIAL_PAID
    return PaymentStatus.NOT_PAID


class Invoice(db.Model):
    """
    Invoice issued from a Confirmed/Completed order.

    One invoice per order (unique order_id). Amounts are copied from the
    order at creation and do not follow later order edits. amount_due is
    derived and never stored.

    Payments are recorded, not processed: amount_paid_cents is the running
    total reported by the operator.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.CheckConstraint(
            "amount_paid_cents >= 0",
            name="ck_invoices_amount_paid_non_negative",
        ),
        db.Index("ix_invoices_store_status", "store_id", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    # Invoice references but does not own its order
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="RESTRICT"), nullable=False, unique=True)

    invoice_number = db.Column(db.String(50), nullable=False, unique=True)
    invoice_date = db.Column(db.DateTime(timezone=True), nullable=False)
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)

    payment_status = db.Column(
        enum_column_type(PaymentStatus), nullable=False, default=PaymentStatus.NOT_PAID, index=True
    )

    sub_total_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)

    notes = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def amount_due_cents(self) -> int:
        return self.total_cents - self.amount_paid_cents

    def update_payment_status(self) -> None:
        self.payment_status = derive_payment_status(self.amount_paid_cents, self.total_cents)

    def to_dict(self, order_number: str | None = None) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "order_id": self.order_id,
            "order_number": order_number,
            "invoice_number": self.invoice_number,
            "invoice_date": to_utc_z(self.invoice_date),
            "due_date": to_utc_z(self.due_date),
            "payment_status": self.payment_status.value,
            "sub_total_cents": self.sub_total_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "amount_due_cents": self.amount_due_cents,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
