from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .enums import OrderStatus, enum_column_type


class Order(db.Model):
    """
    Sales order document.

    TOTALS: sub_total_cents is always recomputed from the order's current
    OrderItem rows (see calculate_total); it is never patched by hand.
    total_cents = sub_total_cents + tax_cents - discount_cents.

    MULTI-TENANT: store_id equals the customer's store and every item's
    product store. Items are loaded explicitly through the unit of work;
    there is no lazy relationship.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_store_status_date", "store_id", "status", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True)

    # Human-readable number, e.g. "ORD-20260105-7QK2M9XA"
    order_number = db.Column(db.String(50), nullable=False, unique=True)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False)
    status = db.Column(enum_column_type(OrderStatus), nullable=False, default=OrderStatus.PENDING, index=True)

    # All amounts in cents
    sub_total_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    notes = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def calculate_total(self, items: list["OrderItem"]) -> None:
        """Recompute sub_total_cents and total_cents from the full item set."""
        self.sub_total_cents = sum(item.line_total_cents for item in items)
        self.total_cents = self.sub_total_cents + self.tax_cents - self.discount_cents

    def to_dict(self, items: list["OrderItem"] | None = None) -> dict:
        data = {
            "id": self.id,
            "store_id": self.store_id,
            "user_id": self.user_id,
            "customer_id": self.customer_id,
            "order_number": self.order_number,
            "order_date": to_utc_z(self.order_date),
            "status": self.status.value,
            "sub_total_cents": self.sub_total_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if items is not None:
            data["items"] = [item.to_dict() for item in items]
        return data


class OrderItem(db.Model):
    """
    Order line. product_name and unit_price_cents are snapshots taken when
    the line was added, so later catalog edits never rewrite history.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)

    product_name = db.Column(db.String(200), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit_price_cents": self.unit_price_cents,
            "quantity": self.quantity,
            "line_total_cents": self.line_total_cents,
        }
