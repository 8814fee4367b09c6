# Overview: Tenant-scoped sales reports over completed orders.

from __future__ import annotations

from datetime import date, datetime, time, timedelta

from sqlalchemy import func, select

from ..errors import ValidationError
from ..models import Order, OrderItem, OrderStatus
from ..persistence import UnitOfWork
from ..tenant_context import TenantContext
from ..time_utils import parse_iso_date, to_utc_z, utcnow
from .tenant_service import store_scope

# Orders that count as revenue. Finished follows Completed and stays revenue.
REVENUE_STATUSES = (OrderStatus.COMPLETED, OrderStatus.FINISHED)

TOP_PRODUCTS_LIMIT = 10


def _as_date(value, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        parsed = parse_iso_date(value) if isinstance(value, str) else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{field} must be an ISO-8601 date (YYYY-MM-DD)")
    return parsed


def _revenue_criteria(tenant: TenantContext, start: datetime, end: datetime) -> list:
    criteria = store_scope(tenant, Order)
    criteria.extend([
        Order.order_date >= start,
        Order.order_date < end,
        Order.status.in_(REVENUE_STATUSES),
    ])
    return criteria


def _totals(uow: UnitOfWork, criteria: list) -> tuple[int, int]:
    stmt = select(
        func.count(Order.id),
        func.coalesce(func.sum(Order.total_cents), 0),
    ).where(*criteria)
    count, revenue = uow.session.execute(stmt).one()
    return int(count), int(revenue)


def daily_sales(tenant: TenantContext, uow: UnitOfWork, day=None) -> dict:
    """
    Completed orders placed on one UTC day: count, revenue, average order
    value and the ten best-selling products by quantity.
    """
    day = _as_date(day, "date") if day is not None else utcnow().date()
    start = datetime.combine(day, time.min)
    criteria = _revenue_criteria(tenant, start, start + timedelta(days=1))

    total_orders, revenue = _totals(uow, criteria)

    top_stmt = (
        select(
            OrderItem.product_id,
            OrderItem.product_name,
            func.sum(OrderItem.quantity).label("quantity_sold"),
            func.sum(OrderItem.unit_price_cents * OrderItem.quantity).label("revenue_cents"),
        )
        .join(Order, Order.id == OrderItem.order_id)
        .where(*criteria)
        .group_by(OrderItem.product_id, OrderItem.product_name)
        .order_by(func.sum(OrderItem.quantity).desc(), OrderItem.product_id)
        .limit(TOP_PRODUCTS_LIMIT)
    )
    top_products = [
        {
            "product_id": row.product_id,
            "product_name": row.product_name,
            "quantity_sold": int(row.quantity_sold),
            "revenue_cents": int(row.revenue_cents),
        }
        for row in uow.session.execute(top_stmt)
    ]

    return {
        "date": day.isoformat(),
        "total_orders": total_orders,
        "total_revenue_cents": revenue,
        "average_order_value_cents": revenue // total_orders if total_orders else 0,
        "top_selling_products": top_products,
    }


def sales_summary(tenant: TenantContext, uow: UnitOfWork, start_date, end_date) -> dict:
    """Completed orders between two UTC dates, both days inclusive."""
    start_day = _as_date(start_date, "start_date")
    end_day = _as_date(end_date, "end_date")
    if end_day < start_day:
        raise ValidationError("end_date must not be before start_date")

    start = datetime.combine(start_day, time.min)
    end = datetime.combine(end_day + timedelta(days=1), time.min)
    criteria = _revenue_criteria(tenant, start, end)

    total_orders, revenue = _totals(uow, criteria)
    units_stmt = (
        select(func.coalesce(func.sum(OrderItem.quantity), 0))
        .join(Order, Order.id == OrderItem.order_id)
        .where(*criteria)
    )
    units = int(uow.session.execute(units_stmt).scalar_one())

    return {
        "start_date": to_utc_z(start),
        "end_date": to_utc_z(end - timedelta(seconds=1)),
        "total_orders": total_orders,
        "total_revenue_cents": revenue,
        "average_order_value_cents": revenue // total_orders if total_orders else 0,
        "total_products_sold": units,
    }
