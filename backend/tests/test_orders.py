# Overview: Pytest coverage for the order engine; stock invariant, totals and status graph.

"""
Order Engine Tests

STOCK INVARIANT: every ordered unit decrements stock exactly once, a
failing order leaves stock untouched, and removing an item restores it.
"""

import pytest

from conftest import make_product
from seller_inventory.errors import ForbiddenError, InvalidOperationError, NotFoundError, ValidationError
from seller_inventory.models import Order, OrderItem, OrderStatus, Product
from seller_inventory.services import customer_service, order_service


def _stock(uow, product_id):
    return uow.session.get(Product, product_id).stock_quantity


class TestCreateOrder:

    def test_totals_and_stock(self, uow, staff_a_ctx, staff_a, product_a):
        order, items = order_service.create_order(
            staff_a_ctx, uow, [{"product_id": product_a.id, "quantity": 3}], tax_cents=100
        )

        assert order.status == OrderStatus.PENDING
        assert order.sub_total_cents == 1500
        assert order.total_cents == 1600
        assert order.user_id == staff_a.id
        assert order.order_number.startswith("ORD-")
        assert len(items) == 1
        assert items[0].product_name == "Product A"
        assert items[0].unit_price_cents == 500
        assert items[0].line_total_cents == 1500
        assert _stock(uow, product_a.id) == 7

    def test_uses_default_customer(self, uow, staff_a_ctx, store_a, product_a):
        order, _ = order_service.create_order(staff_a_ctx, uow, [{"product_id": product_a.id, "quantity": 1}])

        default = customer_service.find_default_customer(uow, store_a.id)
        assert default is not None
        assert order.customer_id == default.id

    def test_discount_applied(self, uow, staff_a_ctx, product_a):
        order, _ = order_service.create_order(
            staff_a_ctx, uow, [{"product_id": product_a.id, "quantity": 2}], tax_cents=50, discount_cents=200
        )
        assert order.total_cents == 1000 + 50 - 200

    def test_discount_above_value_rejected(self, uow, staff_a_ctx, product_a):
        with pytest.raises(InvalidOperationError):
            order_service.create_order(
                staff_a_ctx, uow, [{"product_id": product_a.id, "quantity": 1}], discount_cents=501
            )
        assert _stock(uow, product_a.id) == 10

    def test_empty_items_rejected(self, uow, staff_a_ctx):
        with pytest.raises(InvalidOperationError):
            order_service.create_order(staff_a_ctx, uow, [])

    @pytest.mark.parametrize("quantity", [0, -2, "1.5"])
    def test_bad_quantity_rejected(self, uow, staff_a_ctx, product_a, quantity):
        with pytest.raises(ValidationError):
            order_service.create_order(staff_a_ctx, uow, [{"product_id": product_a.id, "quantity": quantity}])

    def test_insufficient_stock_rolls_back(self, db_session, uow, staff_a_ctx, store_a):
        plenty = make_product(db_session, store_a, name="Plenty", stock=50)
        scarce = make_product(db_session, store_a, name="Scarce", stock=2)

        with pytest.raises(InvalidOperationError) as exc_info:
            order_service.create_order(staff_a_ctx, uow, [
                {"product_id": plenty.id, "quantity": 5},
                {"product_id": scarce.id, "quantity": 3},
            ])

        assert "Scarce" in exc_info.value.message
        assert _stock(uow, plenty.id) == 50
        assert _stock(uow, scarce.id) == 2
        assert uow.orders.count() == 0
        assert uow.order_items.count() == 0

    def test_repeated_lines_checked_cumulatively(self, db_session, uow, staff_a_ctx, store_a):
        product = make_product(db_session, store_a, name="Pair", stock=3)

        with pytest.raises(InvalidOperationError):
            order_service.create_order(staff_a_ctx, uow, [
                {"product_id": product.id, "quantity": 2},
                {"product_id": product.id, "quantity": 2},
            ])
        assert _stock(uow, product.id) == 3

    def test_exact_stock_allowed(self, uow, staff_a_ctx, product_a):
        order_service.create_order(staff_a_ctx, uow, [{"product_id": product_a.id, "quantity": 10}])
        assert _stock(uow, product_a.id) == 0

    def test_missing_product(self, uow, staff_a_ctx):
        with pytest.raises(NotFoundError):
            order_service.create_order(staff_a_ctx, uow, [{"product_id": 987654, "quantity": 1}])

    def test_inactive_product_rejected(self, db_session, uow, staff_a_ctx, product_a):
        product_a.is_active = False
        db_session.commit()

        with pytest.raises(InvalidOperationError):
            order_service.create_order(staff_a_ctx, uow, [{"product_id": product_a.id, "quantity": 1}])

    def test_foreign_product_forbidden(self, uow, staff_a_ctx, product_b):
        with pytest.raises(ForbiddenError):
            order_service.create_order(staff_a_ctx, uow, [{"product_id": product_b.id, "quantity": 1}])
        assert _stock(uow, product_b.id) == 10

    def test_foreign_customer_rejected(self, uow, staff_a_ctx, manager_b_ctx, product_a):
        foreign = customer_service.create_customer(manager_b_ctx, uow, {"name": "Elsewhere"})

        with pytest.raises(InvalidOperationError):
            order_service.create_order(
                staff_a_ctx, uow, [{"product_id": product_a.id, "quantity": 1}], customer_id=foreign.id
            )
        assert _stock(uow, product_a.id) == 10

    def test_admin_without_store_cannot_order(self, uow, admin_ctx, product_a):
        with pytest.raises(InvalidOperationError):
            order_service.create_order(admin_ctx, uow, [{"product_id": product_a.id, "quantity": 1}])

    def test_snapshot_survives_catalog_edit(self, db_session, uow, staff_a_ctx, product_a):
        order, _ = order_service.create_order(staff_a_ctx, uow, [{"product_id": product_a.id, "quantity": 1}])

        product_a.name = "Renamed"
        product_a.sell_price_cents = 999
        db_session.commit()

        _, items = order_service.get_order_with_items(staff_a_ctx, uow, order.id)
        assert items[0].product_name == "Product A"
        assert items[0].unit_price_cents == 500


class TestOrderItems:

    @pytest.fixture
    def open_order(self, uow, staff_a_ctx, product_a):
        order, _ = order_service.create_order(staff_a_ctx, uow, [{"product_id": product_a.id, "quantity": 2}])
        return order

    def test_add_item(self, db_session, uow, staff_a_ctx, store_a, product_a, open_order):
        extra = make_product(db_session, store_a, name="Extra", price=250, stock=4)

        order, items = order_service.add_item(staff_a_ctx, uow, open_order.id, extra.id, 2)

        assert len(items) == 2
        assert order.sub_total_cents == 1000 + 500
        assert _stock(uow, extra.id) == 2

    def test_add_item_insufficient_stock(self, uow, staff_a_ctx, product_a, open_order):
        with pytest.raises(InvalidOperationError):
            order_service.add_item(staff_a_ctx, uow, open_order.id, product_a.id, 9)

        assert _stock(uow, product_a.id) == 8
        assert uow.order_items.count(OrderItem.order_id == open_order.id) == 1

    def test_remove_item_restores_stock(self, uow, staff_a_ctx, product_a, open_order):
        item = uow.order_items.first(OrderItem.order_id == open_order.id)

        order, items = order_service.remove_item(staff_a_ctx, uow, open_order.id, item.id)

        assert items == []
        assert order.sub_total_cents == 0
        assert order.total_cents == 0
        assert _stock(uow, product_a.id) == 10

    def test_remove_unknown_item(self, uow, staff_a_ctx, open_order):
        with pytest.raises(NotFoundError):
            order_service.remove_item(staff_a_ctx, uow, open_order.id, 55555)

    def test_items_locked_after_completion(self, uow, manager_a_ctx, staff_a_ctx, product_a, open_order):
        order_service.update_status(manager_a_ctx, uow, open_order.id, "Confirmed")
        order_service.update_status(manager_a_ctx, uow, open_order.id, "Completed")

        with pytest.raises(InvalidOperationError):
            order_service.add_item(staff_a_ctx, uow, open_order.id, product_a.id, 1)
        item = uow.order_items.first(OrderItem.order_id == open_order.id)
        with pytest.raises(InvalidOperationError):
            order_service.remove_item(staff_a_ctx, uow, open_order.id, item.id)


class TestStatusTransitions:

    @pytest.fixture
    def order(self, uow, staff_a_ctx, product_a):
        order, _ = order_service.create_order(staff_a_ctx, uow, [{"product_id": product_a.id, "quantity": 1}])
        return order

    def test_full_lifecycle(self, uow, manager_a_ctx, order):
        for status in ("Confirmed", "Completed", "Finished"):
            order_service.update_status(manager_a_ctx, uow, order.id, status)
        assert uow.orders.get_by_id(order.id).status == OrderStatus.FINISHED

    @pytest.mark.parametrize("path,target", [
        ((), "Completed"),
        ((), "Finished"),
        (("Cancelled",), "Confirmed"),
        (("Confirmed", "Completed"), "Cancelled"),
        (("Confirmed", "Completed", "Finished"), "Pending"),
    ])
    def test_illegal_transitions(self, uow, manager_a_ctx, order, path, target):
        for status in path:
            order_service.update_status(manager_a_ctx, uow, order.id, status)

        with pytest.raises(InvalidOperationError):
            order_service.update_status(manager_a_ctx, uow, order.id, target)

    def test_same_status_is_noop(self, uow, manager_a_ctx, order):
        result = order_service.update_status(manager_a_ctx, uow, order.id, "Pending")
        assert result.status == OrderStatus.PENDING

    def test_cancel_does_not_restock(self, uow, manager_a_ctx, order, product_a):
        order_service.update_status(manager_a_ctx, uow, order.id, "Cancelled")
        assert _stock(uow, product_a.id) == 9

    def test_staff_cannot_change_status(self, uow, staff_a_ctx, order):
        with pytest.raises(ForbiddenError):
            order_service.update_status(staff_a_ctx, uow, order.id, "Confirmed")

    def test_unknown_status_rejected(self, uow, manager_a_ctx, order):
        with pytest.raises(ValidationError):
            order_service.update_status(manager_a_ctx, uow, order.id, "Shipped")


class TestOrderQueries:

    def test_list_and_filter(self, uow, manager_a_ctx, staff_a_ctx, product_a):
        first, _ = order_service.create_order(staff_a_ctx, uow, [{"product_id": product_a.id, "quantity": 1}])
        order_service.create_order(manager_a_ctx, uow, [{"product_id": product_a.id, "quantity": 1}])
        order_service.update_status(manager_a_ctx, uow, first.id, "Confirmed")

        assert len(order_service.list_orders(manager_a_ctx, uow)) == 2
        confirmed = order_service.list_orders(manager_a_ctx, uow, status="Confirmed")
        assert [o.id for o in confirmed] == [first.id]
        assert [o.id for o in order_service.list_my_orders(staff_a_ctx, uow)] == [first.id]

    def test_order_numbers_unique(self, uow, staff_a_ctx, product_a):
        numbers = {
            order_service.create_order(staff_a_ctx, uow, [{"product_id": product_a.id, "quantity": 1}])[0].order_number
            for _ in range(3)
        }
        assert len(numbers) == 3
        assert uow.orders.count(Order.store_id == product_a.store_id) == 3
