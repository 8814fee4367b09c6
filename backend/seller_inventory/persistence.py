# Overview: Unit of work and per-entity repositories over the request's SQLAlchemy session.

"""
Persistence Gateway

WHY: Services never touch db.session directly. They receive a UnitOfWork
bound to the current request's session, mutate entities through its
repositories, and call commit() exactly once when every business rule has
been checked. commit() either lands every pending change or rolls back and
raises PersistenceError; nothing partial stays visible.

The gateway enforces no business rules. It only surfaces storage constraint
failures (unique indexes, foreign keys, check constraints).

Repositories do not lazy-load related rows. Cross-entity reads are explicit
id-based calls made by the service, each with its own tenant check.
"""

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from .errors import PersistenceError
from .extensions import db
from .models import (
    Category,
    Customer,
    Invoice,
    Order,
    OrderItem,
    Product,
    SessionToken,
    Store,
    StoreInvitation,
    User,
)


class Repository:
    """Generic CRUD + predicate query for one mapped entity type."""

    def __init__(self, model, session):
        self.model = model
        self.session = session

    def get_by_id(self, entity_id):
        if entity_id is None:
            return None
        return self.session.get(self.model, entity_id)

    def get_all(self):
        stmt = select(self.model).order_by(self.model.id)
        return list(self.session.execute(stmt).scalars())

    def find(self, *criteria, order_by=None, limit=None):
        """Return entities matching every SQLAlchemy criterion given."""
        stmt = select(self.model).where(*criteria)
        stmt = stmt.order_by(*(order_by if order_by is not None else (self.model.id,)))
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars())

    def first(self, *criteria, order_by=None):
        rows = self.find(*criteria, order_by=order_by, limit=1)
        return rows[0] if rows else None

    def count(self, *criteria) -> int:
        stmt = select(func.count()).select_from(self.model).where(*criteria)
        return int(self.session.execute(stmt).scalar_one())

    def exists(self, *criteria) -> bool:
        return self.first(*criteria) is not None

    def add(self, entity):
        self.session.add(entity)
        return entity

    def update(self, entity):
        # Attribute changes on a persistent entity are already tracked;
        # re-adding also attaches a detached instance.
        self.session.add(entity)
        return entity

    def delete(self, entity) -> None:
        self.session.delete(entity)


class ProductRepository(Repository):
    """
    Product access with an explicit conditional stock decrement.

    CONCURRENCY: reserve_stock issues
        UPDATE products SET stock_quantity = stock_quantity - :n,
                            version_id = version_id + 1
        WHERE id = :id AND stock_quantity >= :n
    so two requests racing for the last units cannot both succeed; the loser
    sees rowcount 0. The identity-map copy is expired afterwards so the next
    attribute access reloads the committed-in-transaction values.
    """

    def __init__(self, session):
        super().__init__(Product, session)

    def reserve_stock(self, product: Product, quantity: int) -> bool:
        stmt = (
            update(Product)
            .where(Product.id == product.id, Product.stock_quantity >= quantity)
            .values(
                stock_quantity=Product.stock_quantity - quantity,
                version_id=Product.version_id + 1,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        self.session.expire(product, ["stock_quantity", "version_id"])
        return result.rowcount == 1

    def release_stock(self, product: Product, quantity: int) -> None:
        stmt = (
            update(Product)
            .where(Product.id == product.id)
            .values(
                stock_quantity=Product.stock_quantity + quantity,
                version_id=Product.version_id + 1,
            )
            .execution_options(synchronize_session=False)
        )
        self.session.execute(stmt)
        self.session.expire(product, ["stock_quantity", "version_id"])


class UnitOfWork:
    """
    One instance per inbound request.

    All repositories share the same session, so every mutation made through
    any of them is part of the same transaction.
    """

    def __init__(self, session=None):
        self.session = session if session is not None else db.session
        self.stores = Repository(Store, self.session)
        self.invitations = Repository(StoreInvitation, self.session)
        self.users = Repository(User, self.session)
        self.session_tokens = Repository(SessionToken, self.session)
        self.categories = Repository(Category, self.session)
        self.products = ProductRepository(self.session)
        self.customers = Repository(Customer, self.session)
        self.orders = Repository(Order, self.session)
        self.order_items = Repository(OrderItem, self.session)
        self.invoices = Repository(Invoice, self.session)

    def flush(self) -> None:
        """Push pending changes so generated ids are available; same failure mapping as commit()."""
        self._guarded(self.session.flush)

    def commit(self) -> None:
        self._guarded(self.session.commit)

    def rollback(self) -> None:
        self.session.rollback()

    @contextmanager
    def atomic(self):
        """
        Run a block as one transaction: commit on success, roll back on any error.

        Usage:
            with uow.atomic():
                ...mutations...
        """
        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        self.commit()

    def _guarded(self, operation) -> None:
        try:
            operation()
        except (IntegrityError, StaleDataError) as exc:
            self.session.rollback()
            raise PersistenceError(
                "Write rejected by a storage constraint",
                details={"reason": str(getattr(exc, "orig", exc))},
                conflict=True,
            ) from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PersistenceError(
                "Database commit failed",
                details={"reason": str(exc)},
            ) from exc
