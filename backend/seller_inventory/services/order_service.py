# Overview: Order engine; order creation, item add/remove and status transitions with the stock invariant.

"""
Order Service

STOCK INVARIANT: a product's stock_quantity is reduced exactly once per
ordered unit and never drops below zero. Decrements use the conditional
UPDATE in ProductRepository.reserve_stock; removing an item restores its
quantity with release_stock. Status changes never touch stock, and
cancelling an order does not restock.

TOTALS: after any item change the order's full item set is re-read and
Order.calculate_total() is re-applied; totals are never patched by hand.

ATOMICITY: every mutating operation runs inside uow.atomic(). A failure at
any step rolls back every stock decrement and the order rows together.

MULTI-TENANT: reads hide foreign orders (NotFound); mutations on a foreign
order or product are Forbidden.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import ForbiddenError, InvalidOperationError, NotFoundError, ValidationError
from ..models import Order, OrderItem, OrderStatus, Product
from ..persistence import UnitOfWork
from ..tenant_context import TenantContext
from ..time_utils import utcnow
from ..validation import coerce_int, enforce_non_negative_amount
from .customer_service import get_or_create_default
from .document_service import next_order_number
from .tenant_service import (
    can_access,
    ensure_mutable,
    ensure_readable,
    require_manager,
    require_store_access,
    store_scope,
)

# Closed transition graph. Setting the current status again is a no-op.
ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset({OrderStatus.FINISHED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.FINISHED: frozenset(),
}

# Item add/remove (and therefore restock) is only possible while the order is open
EDITABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})


@dataclass(frozen=True)
class OrderLineRequest:
    product_id: int
    quantity: int


def parse_order_lines(items) -> list[OrderLineRequest]:
    """Validate the raw item list: [{"product_id": int, "quantity": int > 0}, ...]."""
    if items is None:
        items = []
    if not isinstance(items, list):
        raise ValidationError("items must be a list")

    lines = []
    for index, raw in enumerate(items):
        if isinstance(raw, OrderLineRequest):
            line = raw
        elif isinstance(raw, dict):
            if raw.get("product_id") is None:
                raise ValidationError("product_id is required", details={"item": index})
            line = OrderLineRequest(
                product_id=coerce_int(raw["product_id"], "product_id"),
                quantity=coerce_int(raw.get("quantity"), "quantity"),
            )
        else:
            raise ValidationError("Each item must be an object", details={"item": index})
        if line.quantity <= 0:
            raise ValidationError("quantity must be > 0", details={"item": index})
        lines.append(line)
    return lines


# =============================================================================
# READS
# =============================================================================

def get_order(tenant: TenantContext, uow: UnitOfWork, order_id: int) -> Order:
    return ensure_readable(tenant, uow.orders.get_by_id(order_id), "Order", order_id)


def get_order_items(uow: UnitOfWork, order: Order) -> list[OrderItem]:
    return uow.order_items.find(OrderItem.order_id == order.id)


def get_order_with_items(tenant: TenantContext, uow: UnitOfWork, order_id: int) -> tuple[Order, list[OrderItem]]:
    order = get_order(tenant, uow, order_id)
    return order, get_order_items(uow, order)


def list_orders(
    tenant: TenantContext,
    uow: UnitOfWork,
    *,
    status: OrderStatus | str | None = None,
    user_id: int | None = None,
) -> list[Order]:
    criteria = store_scope(tenant, Order)
    if status is not None:
        criteria.append(Order.status == OrderStatus.parse(status))
    if user_id is not None:
        criteria.append(Order.user_id == user_id)
    return uow.orders.find(*criteria, order_by=(Order.order_date.desc(), Order.id.desc()))


def list_my_orders(tenant: TenantContext, uow: UnitOfWork) -> list[Order]:
    return list_orders(tenant, uow, user_id=tenant.user_id)


# =============================================================================
# HELPERS
# =============================================================================

def _load_product_for_order(tenant: TenantContext, uow: UnitOfWork, product_id: int, store_id: int) -> Product:
    product = uow.products.get_by_id(product_id)
    if product is None:
        raise NotFoundError("Product not found", details={"id": product_id})
    if not can_access(tenant, product.store_id) or product.store_id != store_id:
        raise ForbiddenError(
            f"Product {product_id} does not belong to this store",
            details={"product_id": product_id},
        )
    if not product.is_active:
        raise InvalidOperationError(f"Product {product.name} is not available", details={"product_id": product.id})
    return product


def _reserve(uow: UnitOfWork, product: Product, quantity: int) -> None:
    if not uow.products.reserve_stock(product, quantity):
        raise InvalidOperationError(
            f"Insufficient stock for product {product.name}",
            details={"product_id": product.id, "requested": quantity},
        )


def _recalculate(uow: UnitOfWork, order: Order) -> list[OrderItem]:
    uow.flush()
    items = get_order_items(uow, order)
    order.calculate_total(items)
    if order.total_cents < 0:
        raise InvalidOperationError(
            "Discount exceeds order value",
            details={"sub_total_cents": order.sub_total_cents, "discount_cents": order.discount_cents},
        )
    order.updated_at = utcnow()
    return items


def _require_editable(order: Order) -> None:
    if order.status not in EDITABLE_STATUSES:
        raise InvalidOperationError(
            f"Items cannot be changed on a {order.status.value} order",
            details={"order_id": order.id, "status": order.status.value},
        )


# =============================================================================
# MUTATIONS
# =============================================================================

def create_order(
    tenant: TenantContext,
    uow: UnitOfWork,
    items,
    *,
    tax_cents=0,
    discount_cents=0,
    notes: str | None = None,
    customer_id: int | None = None,
) -> tuple[Order, list[OrderItem]]:
    """
    Place an order for the acting store user.

    Steps:
    1. Reject an empty item list
    2. Resolve the acting user; they must belong to a store
    3. Resolve the customer (explicit, same store) or the store's default customer
    4. Per item: load the product, check store and stock, snapshot name and
       price, decrement stock
    5. Compute totals
    6. Commit order, items and stock changes together

    Returns (order, items).
    """
    lines = parse_order_lines(items)
    if not lines:
        raise InvalidOperationError("Order must contain at least one item")

    require_store_access(tenant)
    user = uow.users.get_by_id(tenant.user_id)
    if user is None:
        raise NotFoundError("User not found", details={"id": tenant.user_id})
    if user.store_id is None:
        raise InvalidOperationError("User must belong to a store")
    store_id = user.store_id

    tax_cents = coerce_int(tax_cents, "tax_cents")
    discount_cents = coerce_int(discount_cents, "discount_cents")
    enforce_non_negative_amount(tax_cents, "tax_cents")
    enforce_non_negative_amount(discount_cents, "discount_cents")

    with uow.atomic():
        if customer_id is not None:
            customer = uow.customers.get_by_id(customer_id)
            if customer is None:
                raise NotFoundError("Customer not found", details={"id": customer_id})
            if customer.store_id != store_id:
                raise InvalidOperationError(
                    "Customer does not belong to this store",
                    details={"customer_id": customer_id},
                )
        else:
            # Must run before any other change: its conflict path rolls back
            customer = get_or_create_default(tenant, uow, commit=False)

        # Validate every line before the first decrement
        requested: dict[int, int] = {}
        products: dict[int, Product] = {}
        for line in lines:
            product = products.get(line.product_id) or _load_product_for_order(
                tenant, uow, line.product_id, store_id
            )
            products[product.id] = product
            requested[product.id] = requested.get(product.id, 0) + line.quantity
            if product.stock_quantity < requested[product.id]:
                raise InvalidOperationError(
                    f"Insufficient stock for product {product.name}",
                    details={"product_id": product.id, "available": product.stock_quantity},
                )

        sub_total = sum(products[line.product_id].sell_price_cents * line.quantity for line in lines)
        if sub_total + tax_cents - discount_cents < 0:
            raise InvalidOperationError(
                "Discount exceeds order value",
                details={"sub_total_cents": sub_total, "discount_cents": discount_cents},
            )

        now = utcnow()
        order = Order(
            store_id=store_id,
            user_id=user.id,
            customer_id=customer.id,
            order_number=next_order_number(now),
            order_date=now,
            status=OrderStatus.PENDING,
            tax_cents=tax_cents,
            discount_cents=discount_cents,
            notes=notes,
        )
        uow.orders.add(order)
        uow.flush()

        for line in lines:
            product = products[line.product_id]
            # Snapshot before reserve_stock expires the product's stock columns
            uow.order_items.add(OrderItem(
                order_id=order.id,
                product_id=product.id,
                product_name=product.name,
                unit_price_cents=product.sell_price_cents,
                quantity=line.quantity,
            ))
            _reserve(uow, product, line.quantity)

        order_items = _recalculate(uow, order)

    return order, order_items


def add_item(
    tenant: TenantContext,
    uow: UnitOfWork,
    order_id: int,
    product_id,
    quantity,
) -> tuple[Order, list[OrderItem]]:
    """Append a line to an open order, decrement stock and recompute totals."""
    line = parse_order_lines([{"product_id": product_id, "quantity": quantity}])[0]
    order = ensure_mutable(tenant, uow.orders.get_by_id(order_id), "Order", order_id)
    _require_editable(order)

    with uow.atomic():
        product = _load_product_for_order(tenant, uow, line.product_id, order.store_id)
        uow.order_items.add(OrderItem(
            order_id=order.id,
            product_id=product.id,
            product_name=product.name,
            unit_price_cents=product.sell_price_cents,
            quantity=line.quantity,
        ))
        _reserve(uow, product, line.quantity)
        order_items = _recalculate(uow, order)

    return order, order_items


def remove_item(
    tenant: TenantContext,
    uow: UnitOfWork,
    order_id: int,
    item_id: int,
) -> tuple[Order, list[OrderItem]]:
    """Remove a line from an open order, restore its stock and recompute totals."""
    order = ensure_mutable(tenant, uow.orders.get_by_id(order_id), "Order", order_id)
    _require_editable(order)

    item = uow.order_items.get_by_id(item_id)
    if item is None or item.order_id != order.id:
        raise NotFoundError("Order item not found", details={"order_id": order.id, "item_id": item_id})

    with uow.atomic():
        product = uow.products.get_by_id(item.product_id)
        if product is not None:
            uow.products.release_stock(product, item.quantity)
        uow.order_items.delete(item)
        order_items = _recalculate(uow, order)

    return order, order_items


def update_status(tenant: TenantContext, uow: UnitOfWork, order_id: int, new_status) -> Order:
    """
    Move an order along the status graph. No stock side effects.

    Requires Manager-level access.
    """
    require_manager(tenant, "change order status")
    new_status = OrderStatus.parse(new_status)
    order = ensure_mutable(tenant, uow.orders.get_by_id(order_id), "Order", order_id)

    if order.status == new_status:
        return order
    if new_status not in ALLOWED_TRANSITIONS[order.status]:
        raise InvalidOperationError(
            f"Cannot change order status from {order.status.value} to {new_status.value}",
            details={"from": order.status.value, "to": new_status.value},
        )

    order.status = new_status
    order.updated_at = utcnow()
    uow.orders.update(order)
    uow.commit()
    return order
