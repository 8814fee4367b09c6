# Overview: Pytest coverage for categories, products, stock corrections and bulk import.

import pytest

from conftest import make_product
from seller_inventory.errors import ForbiddenError, InvalidOperationError, NotFoundError, ValidationError
from seller_inventory.models import Category, Product
from seller_inventory.services import catalog_service, order_service


class TestCategories:

    def test_create_and_list(self, uow, manager_a_ctx, store_a):
        catalog_service.create_category(manager_a_ctx, uow, {"name": "Snacks", "description": "Chips"})
        catalog_service.create_category(manager_a_ctx, uow, {"name": "Beverages"})

        names = [c.name for c in catalog_service.list_categories(manager_a_ctx, uow)]
        assert names == ["Beverages", "Snacks"]

    def test_duplicate_name_rejected_case_insensitive(self, uow, manager_a_ctx):
        catalog_service.create_category(manager_a_ctx, uow, {"name": "Snacks"})

        with pytest.raises(InvalidOperationError):
            catalog_service.create_category(manager_a_ctx, uow, {"name": "snacks"})

    def test_same_name_allowed_in_other_store(self, uow, manager_a_ctx, manager_b_ctx):
        catalog_service.create_category(manager_a_ctx, uow, {"name": "Snacks"})
        category = catalog_service.create_category(manager_b_ctx, uow, {"name": "Snacks"})
        assert category.id is not None

    def test_staff_cannot_create(self, uow, staff_a_ctx):
        with pytest.raises(ForbiddenError):
            catalog_service.create_category(staff_a_ctx, uow, {"name": "Snacks"})

    def test_unknown_field_rejected(self, uow, manager_a_ctx):
        with pytest.raises(ValidationError):
            catalog_service.create_category(manager_a_ctx, uow, {"name": "Snacks", "store_id": 99})

    def test_delete_refused_with_products(self, uow, manager_a_ctx, product_a):
        with pytest.raises(InvalidOperationError):
            catalog_service.delete_category(manager_a_ctx, uow, product_a.category_id)

    def test_delete_empty_category(self, uow, manager_a_ctx):
        category = catalog_service.create_category(manager_a_ctx, uow, {"name": "Empty"})
        catalog_service.delete_category(manager_a_ctx, uow, category.id)

        assert uow.categories.count() == 0


class TestProducts:

    def test_create_inherits_category_store(self, uow, manager_a_ctx, store_a):
        category = catalog_service.create_category(manager_a_ctx, uow, {"name": "Tools"})
        product = catalog_service.create_product(manager_a_ctx, uow, {
            "name": "Hammer",
            "category_id": category.id,
            "sell_price_cents": 1500,
            "cost_price_cents": 900,
            "stock_quantity": 5,
            "sku": "HAM-1",
        })

        assert product.store_id == store_a.id
        assert product.stock_quantity == 5

    def test_create_requires_existing_category(self, uow, manager_a_ctx):
        with pytest.raises(NotFoundError):
            catalog_service.create_product(manager_a_ctx, uow, {
                "name": "Ghost", "category_id": 9999, "sell_price_cents": 100,
            })

    @pytest.mark.parametrize("field,value", [
        ("sell_price_cents", 0),
        ("sell_price_cents", -5),
        ("cost_price_cents", -1),
        ("stock_quantity", -1),
    ])
    def test_price_and_stock_rules(self, uow, manager_a_ctx, field, value):
        category = catalog_service.create_category(manager_a_ctx, uow, {"name": "Rules"})
        payload = {"name": "Thing", "category_id": category.id, "sell_price_cents": 100}
        payload[field] = value

        with pytest.raises(ValidationError):
            catalog_service.create_product(manager_a_ctx, uow, payload)

    def test_decimal_price_rejected(self, uow, manager_a_ctx):
        category = catalog_service.create_category(manager_a_ctx, uow, {"name": "Rules"})
        with pytest.raises(ValidationError):
            catalog_service.create_product(manager_a_ctx, uow, {
                "name": "Thing", "category_id": category.id, "sell_price_cents": 9.99,
            })

    def test_duplicate_sku_rejected(self, uow, manager_a_ctx, product_a):
        with pytest.raises(InvalidOperationError):
            catalog_service.create_product(manager_a_ctx, uow, {
                "name": "Clone", "category_id": product_a.category_id,
                "sell_price_cents": 100, "sku": "PROD-A-001",
            })

    def test_update_product(self, uow, manager_a_ctx, product_a):
        product = catalog_service.update_product(manager_a_ctx, uow, product_a.id, {
            "name": "Product A+", "sell_price_cents": 650,
        })
        assert product.name == "Product A+"
        assert product.sell_price_cents == 650

    def test_list_filters(self, db_session, uow, manager_a_ctx, store_a, product_a):
        other = make_product(db_session, store_a, name="Zeta", category_name="Other")
        other.is_active = False
        db_session.commit()

        assert len(catalog_service.list_products(manager_a_ctx, uow)) == 2
        assert [p.id for p in catalog_service.list_products(manager_a_ctx, uow, active_only=True)] == [product_a.id]
        by_category = catalog_service.list_products(manager_a_ctx, uow, category_id=other.category_id)
        assert [p.id for p in by_category] == [other.id]

    def test_delete_refused_when_ordered(self, uow, manager_a_ctx, staff_a_ctx, product_a):
        order_service.create_order(staff_a_ctx, uow, [{"product_id": product_a.id, "quantity": 1}])

        with pytest.raises(InvalidOperationError):
            catalog_service.delete_product(manager_a_ctx, uow, product_a.id)

    def test_delete_unordered_product(self, uow, manager_a_ctx, product_a):
        catalog_service.delete_product(manager_a_ctx, uow, product_a.id)
        assert uow.products.get_by_id(product_a.id) is None


class TestUpdateStock:

    def test_manager_sets_stock(self, uow, manager_a_ctx, product_a):
        product = catalog_service.update_stock(manager_a_ctx, uow, product_a.id, 42)
        assert product.stock_quantity == 42

    def test_zero_is_allowed(self, uow, manager_a_ctx, product_a):
        assert catalog_service.update_stock(manager_a_ctx, uow, product_a.id, 0).stock_quantity == 0

    def test_negative_rejected(self, uow, manager_a_ctx, product_a):
        with pytest.raises(ValidationError):
            catalog_service.update_stock(manager_a_ctx, uow, product_a.id, -1)

    def test_staff_forbidden(self, uow, staff_a_ctx, product_a):
        with pytest.raises(ForbiddenError):
            catalog_service.update_stock(staff_a_ctx, uow, product_a.id, 5)

    def test_missing_product(self, uow, manager_a_ctx):
        with pytest.raises(NotFoundError):
            catalog_service.update_stock(manager_a_ctx, uow, 424242, 5)

    def test_foreign_product_looks_missing(self, uow, manager_a_ctx, product_b):
        with pytest.raises(NotFoundError):
            catalog_service.update_stock(manager_a_ctx, uow, product_b.id, 5)
        assert uow.products.get_by_id(product_b.id).stock_quantity == 10


class TestImport:

    def test_partial_success(self, uow, manager_a_ctx, store_a):
        rows = [
            {"name": "Cola", "category": "Drinks", "sell_price": "1.50", "stock_quantity": "24"},
            {"name": "Broken", "category": "Drinks", "sell_price": "0"},
            {"name": "Water", "category": "drinks", "sell_price_cents": 99, "cost_price_cents": 40},
            {"name": "", "category": "Drinks", "sell_price": "2.00"},
            {"name": "Chips", "category": "Snacks", "sell_price": 2.25, "sku": "CH-1"},
        ]

        results = catalog_service.import_products(manager_a_ctx, uow, rows)

        assert [r.success for r in results] == [True, False, True, False, True]
        assert results[1].product_name == "Broken"
        assert results[3].product_name == "row 4"

        products = {p.name: p for p in uow.products.find(Product.store_id == store_a.id)}
        assert set(products) == {"Cola", "Water", "Chips"}
        assert products["Cola"].sell_price_cents == 150
        assert products["Cola"].stock_quantity == 24
        assert products["Water"].cost_price_cents == 40

        # "drinks" resolved to the existing "Drinks" category
        assert products["Cola"].category_id == products["Water"].category_id
        assert uow.categories.count(Category.store_id == store_a.id) == 2

    def test_duplicate_sku_row_fails_alone(self, uow, manager_a_ctx, product_a):
        results = catalog_service.import_products(manager_a_ctx, uow, [
            {"name": "Dup", "category": "General", "sell_price_cents": 100, "sku": "PROD-A-001"},
            {"name": "Fresh", "category": "General", "sell_price_cents": 100, "sku": "NEW-1"},
        ])

        assert [r.success for r in results] == [False, True]
        assert "SKU" in results[0].message

    def test_result_to_dict(self, uow, manager_a_ctx):
        results = catalog_service.import_products(manager_a_ctx, uow, [
            {"name": "Solo", "category": "Misc", "sell_price_cents": 100},
        ])
        assert results[0].to_dict() == {"product_name": "Solo", "success": True, "message": "Imported"}

    @pytest.mark.parametrize("price", [5, 5.0, "5", "5.00", "$5"])
    def test_sell_price_is_always_an_amount(self, uow, manager_a_ctx, store_a, price):
        results = catalog_service.import_products(manager_a_ctx, uow, [
            {"name": "Widget", "category": "General", "sell_price": price, "cost_price": price},
        ])

        assert results[0].success
        product = uow.products.first(Product.store_id == store_a.id, Product.name == "Widget")
        assert product.sell_price_cents == 500
        assert product.cost_price_cents == 500

    def test_thousands_separator_and_rounding(self, uow, manager_a_ctx, store_a):
        catalog_service.import_products(manager_a_ctx, uow, [
            {"name": "Sofa", "category": "Home", "sell_price": "$1,250.50"},
            {"name": "Gum", "category": "Snacks", "sell_price": 0.125},
        ])

        products = {p.name: p for p in uow.products.find(Product.store_id == store_a.id)}
        assert products["Sofa"].sell_price_cents == 125050
        assert products["Gum"].sell_price_cents == 13

    @pytest.mark.parametrize("quantity", ["2.7", 2.7])
    def test_fractional_stock_row_fails(self, uow, manager_a_ctx, store_a, quantity):
        results = catalog_service.import_products(manager_a_ctx, uow, [
            {"name": "Rope", "category": "General", "sell_price": "5", "stock_quantity": quantity},
            {"name": "Twine", "category": "General", "sell_price": "5", "stock_quantity": "3.0"},
        ])

        assert [r.success for r in results] == [False, True]
        assert "whole number" in results[0].message
        products = {p.name: p for p in uow.products.find(Product.store_id == store_a.id)}
        assert set(products) == {"Twine"}
        assert products["Twine"].stock_quantity == 3

    def test_non_numeric_price_row_fails(self, uow, manager_a_ctx):
        results = catalog_service.import_products(manager_a_ctx, uow, [
            {"name": "Mystery", "category": "General", "sell_price": "cheap"},
        ])

        assert not results[0].success
        assert results[0].message == "sell_price must be a number"

    def test_staff_cannot_import(self, uow, staff_a_ctx):
        with pytest.raises(ForbiddenError):
            catalog_service.import_products(staff_a_ctx, uow, [])
