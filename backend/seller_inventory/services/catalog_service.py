"""
Catalog Service with Multi-Tenant Support

MULTI-TENANT: All category and product operations are tenant-scoped.
- list/get filter to the caller's store (SystemAdmin sees all stores)
- create validates that the referenced category belongs to the caller's store
- update/delete validate store ownership (foreign rows are Forbidden)

INVARIANT: Product.store_id == Category.store_id for every product.

Stock is only *set* here (manual correction). Order-driven decrements and
restocks go through ProductRepository.reserve_stock/release_stock in the
order service.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from sqlalchemy import func

from ..errors import InvalidOperationError, ServiceError, ValidationError
from ..models import Category, OrderItem, Product
from ..persistence import UnitOfWork
from ..tenant_context import TenantContext
from ..validation import (
    ModelValidationPolicy,
    apply_patch,
    coerce_int,
    enforce_rules_product,
    to_cents,
    to_int,
    to_text,
    validate_payload,
)
from .tenant_service import (
    ensure_mutable,
    ensure_readable,
    require_manager,
    store_scope,
    target_store_id,
)

logger = logging.getLogger(__name__)

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "description", "is_active"}),
    required_on_create=frozenset({"name"}),
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "name", "description", "sku", "image_url", "category_id",
        "cost_price_cents", "sell_price_cents", "stock_quantity", "is_active",
    }),
    required_on_create=frozenset({"name", "category_id", "sell_price_cents"}),
)


# =============================================================================
# CATEGORIES
# =============================================================================

def list_categories(tenant: TenantContext, uow: UnitOfWork, *, active_only: bool = False) -> list[Category]:
    criteria = store_scope(tenant, Category)
    if active_only:
        criteria.append(Category.is_active.is_(True))
    return uow.categories.find(*criteria, order_by=(Category.name, Category.id))


def get_category(tenant: TenantContext, uow: UnitOfWork, category_id: int) -> Category:
    return ensure_readable(tenant, uow.categories.get_by_id(category_id), "Category", category_id)


def _ensure_category_name_free(uow: UnitOfWork, store_id: int, name: str, exclude_id: int | None = None) -> None:
    criteria = [Category.store_id == store_id, func.lower(Category.name) == name.lower()]
    if exclude_id is not None:
        criteria.append(Category.id != exclude_id)
    if uow.categories.exists(*criteria):
        raise InvalidOperationError(f"Category '{name}' already exists", details={"name": name})


def create_category(
    tenant: TenantContext,
    uow: UnitOfWork,
    payload: dict,
    *,
    store_id: int | None = None,
) -> Category:
    require_manager(tenant, "create categories")
    store_id = target_store_id(tenant, store_id)
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
    _ensure_category_name_free(uow, store_id, patch["name"])

    category = Category(store_id=store_id)
    apply_patch(category, patch)
    uow.categories.add(category)
    uow.commit()
    return category


def update_category(tenant: TenantContext, uow: UnitOfWork, category_id: int, payload: dict) -> Category:
    require_manager(tenant, "update categories")
    category = ensure_mutable(tenant, uow.categories.get_by_id(category_id), "Category", category_id)
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
    if "name" in patch:
        _ensure_category_name_free(uow, category.store_id, patch["name"], exclude_id=category.id)

    apply_patch(category, patch)
    uow.categories.update(category)
    uow.commit()
    return category


def delete_category(tenant: TenantContext, uow: UnitOfWork, category_id: int) -> None:
    require_manager(tenant, "delete categories")
    category = ensure_mutable(tenant, uow.categories.get_by_id(category_id), "Category", category_id)
    if uow.products.exists(Product.category_id == category.id):
        raise InvalidOperationError(
            "Cannot delete a category that still has products",
            details={"category_id": category.id},
        )
    uow.categories.delete(category)
    uow.commit()


# =============================================================================
# PRODUCTS
# =============================================================================

def list_products(
    tenant: TenantContext,
    uow: UnitOfWork,
    *,
    category_id: int | None = None,
    active_only: bool = False,
) -> list[Product]:
    criteria = store_scope(tenant, Product)
    if category_id is not None:
        criteria.append(Product.category_id == category_id)
    if active_only:
        criteria.append(Product.is_active.is_(True))
    return uow.products.find(*criteria, order_by=(Product.name, Product.id))


def get_product(tenant: TenantContext, uow: UnitOfWork, product_id: int) -> Product:
    return ensure_readable(tenant, uow.products.get_by_id(product_id), "Product", product_id)


def category_names(uow: UnitOfWork, products: list[Product]) -> dict[int, str]:
    """Explicit batch lookup of category names for serialization."""
    ids = {p.category_id for p in products}
    if not ids:
        return {}
    return {c.id: c.name for c in uow.categories.find(Category.id.in_(ids))}


def _ensure_sku_free(uow: UnitOfWork, store_id: int, sku: str | None, exclude_id: int | None = None) -> None:
    if not sku:
        return
    criteria = [Product.store_id == store_id, Product.sku == sku]
    if exclude_id is not None:
        criteria.append(Product.id != exclude_id)
    if uow.products.exists(*criteria):
        raise InvalidOperationError(f"SKU '{sku}' already exists in this store", details={"sku": sku})


def create_product(
    tenant: TenantContext,
    uow: UnitOfWork,
    payload: dict,
    *,
    store_id: int | None = None,
) -> Product:
    """
    Create a product under an existing category.

    The category must exist (NotFound) and belong to the caller's store
    (Forbidden otherwise). The product inherits the category's store.
    """
    require_manager(tenant, "create products")
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    category_id = patch["category_id"]
    category = ensure_mutable(tenant, uow.categories.get_by_id(category_id), "Category", category_id)
    if store_id is not None and store_id != category.store_id:
        target_store_id(tenant, store_id)
        raise InvalidOperationError("Category belongs to a different store", details={"category_id": category_id})

    _ensure_sku_free(uow, category.store_id, patch.get("sku"))

    product = Product(store_id=category.store_id)
    apply_patch(product, patch)
    uow.products.add(product)
    uow.commit()
    return product


def update_product(tenant: TenantContext, uow: UnitOfWork, product_id: int, payload: dict) -> Product:
    require_manager(tenant, "update products")
    product = ensure_mutable(tenant, uow.products.get_by_id(product_id), "Product", product_id)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    if "category_id" in patch and patch["category_id"] != product.category_id:
        new_id = patch["category_id"]
        category = ensure_mutable(tenant, uow.categories.get_by_id(new_id), "Category", new_id)
        if category.store_id != product.store_id:
            raise InvalidOperationError("Category belongs to a different store", details={"category_id": new_id})
    if "sku" in patch:
        _ensure_sku_free(uow, product.store_id, patch["sku"], exclude_id=product.id)

    apply_patch(product, patch)
    uow.products.update(product)
    uow.commit()
    return product


def delete_product(tenant: TenantContext, uow: UnitOfWork, product_id: int) -> None:
    require_manager(tenant, "delete products")
    product = ensure_mutable(tenant, uow.products.get_by_id(product_id), "Product", product_id)
    if uow.order_items.exists(OrderItem.product_id == product.id):
        raise InvalidOperationError(
            "Cannot delete a product referenced by orders; deactivate it instead",
            details={"product_id": product.id},
        )
    uow.products.delete(product)
    uow.commit()


def update_stock(tenant: TenantContext, uow: UnitOfWork, product_id: int, quantity) -> Product:
    """
    Manual stock correction: unconditionally set stock_quantity.

    A missing or foreign product is reported as not found.
    """
    require_manager(tenant, "update stock")
    product = ensure_readable(tenant, uow.products.get_by_id(product_id), "Product", product_id)
    quantity = coerce_int(quantity, "quantity")
    if quantity < 0:
        raise ValidationError("quantity must be >= 0")

    product.stock_quantity = quantity
    uow.products.update(product)
    uow.commit()
    return product


# =============================================================================
# BULK IMPORT
# =============================================================================

@dataclass
class ImportResult:
    product_name: str
    success: bool
    message: str

    def to_dict(self) -> dict:
        return asdict(self)


def _find_category_by_name(uow: UnitOfWork, store_id: int, name: str) -> Category | None:
    return uow.categories.first(
        Category.store_id == store_id,
        func.lower(Category.name) == name.lower(),
    )


def _import_row(uow: UnitOfWork, store_id: int, row: dict) -> Product:
    name = to_text(row.get("name"))
    if not name:
        raise ValidationError("Product name is required")
    category_name = to_text(row.get("category"))
    if not category_name:
        raise ValidationError("Category name is required")

    sell = row.get("sell_price_cents")
    if sell not in (None, ""):
        sell_price_cents = to_int(sell, "sell_price_cents")
    else:
        sell_price_cents = to_cents(row.get("sell_price"), "sell_price")
    cost = row.get("cost_price_cents")
    if cost not in (None, ""):
        cost_price_cents = to_int(cost, "cost_price_cents")
    else:
        cost_price_cents = to_cents(row.get("cost_price"), "cost_price")

    patch = {
        "name": name,
        "description": to_text(row.get("description")),
        "sku": to_text(row.get("sku")),
        "image_url": to_text(row.get("image_url")),
        "sell_price_cents": sell_price_cents,
        "cost_price_cents": cost_price_cents or 0,
        "stock_quantity": to_int(row.get("stock_quantity"), "stock_quantity") or 0,
    }
    if patch["sell_price_cents"] is None:
        raise ValidationError("Sell price is required")
    enforce_rules_product(patch)
    _ensure_sku_free(uow, store_id, patch["sku"])

    category = _find_category_by_name(uow, store_id, category_name)
    if category is None:
        category = uow.categories.add(Category(store_id=store_id, name=category_name))
        uow.flush()

    product = Product(store_id=store_id, category_id=category.id)
    apply_patch(product, patch)
    uow.products.add(product)
    return product


def import_products(
    tenant: TenantContext,
    uow: UnitOfWork,
    rows: list[dict],
    *,
    store_id: int | None = None,
) -> list[ImportResult]:
    """
    Best-effort bulk create.

    Each row is committed on its own: categories are resolved by name
    (case-insensitive) within the store and created when missing, then the
    product is inserted. A failing row is rolled back, recorded in the
    result list and logged; it never aborts the rest of the batch.

    Row keys: name, category, sku, description, image_url, stock_quantity,
    sell_price / sell_price_cents, cost_price / cost_price_cents.
    """
    require_manager(tenant, "import products")
    store_id = target_store_id(tenant, store_id)
    if not isinstance(rows, list):
        raise ValidationError("Import payload must be a list of products")

    results: list[ImportResult] = []
    for index, row in enumerate(rows, start=1):
        label = (to_text(row.get("name")) if isinstance(row, dict) else None) or f"row {index}"
        try:
            if not isinstance(row, dict):
                raise ValidationError("Row must be an object")
            with uow.atomic():
                _import_row(uow, store_id, row)
        except (ServiceError, ValueError, TypeError) as exc:
            message = exc.message if isinstance(exc, ServiceError) else str(exc)
            logger.warning("Import row %s (%s) failed for store %s: %s", index, label, store_id, message)
            results.append(ImportResult(product_name=label, success=False, message=message))
            continue
        results.append(ImportResult(product_name=label, success=True, message="Imported"))

    logger.info(
        "Import finished for store %s: %d of %d rows imported",
        store_id,
        sum(1 for r in results if r.success),
        len(results),
    )
    return results
