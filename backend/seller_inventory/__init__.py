# backend/seller_inventory/__init__.py
import logging

from flask import Flask, jsonify, request

from .config import Config
from .errors import PersistenceError, ServiceError
from .extensions import db, migrate


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.auth import auth_bp
    from .routes.stores import stores_bp
    from .routes.users import users_bp
    from .routes.categories import categories_bp
    from .routes.products import products_bp
    from .routes.customers import customers_bp
    from .routes.orders import orders_bp
    from .routes.invoices import invoices_bp
    from .routes.reports import reports_bp
    from .routes.system import system_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(stores_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(system_bp)

    @app.errorhandler(ServiceError)
    def handle_service_error(exc: ServiceError):
        """Single mapping from service error kinds to HTTP responses."""
        status = exc.status_code
        if isinstance(exc, PersistenceError) and not exc.conflict:
            app.logger.exception("Persistence failure on %s %s", request.method, request.path)
        elif status >= 500:
            app.logger.exception("Unhandled service error on %s %s", request.method, request.path)
        elif status in (401, 403):
            app.logger.warning("%s %s denied (%s): %s", request.method, request.path, status, exc.message)
        else:
            app.logger.info("%s %s rejected (%s): %s", request.method, request.path, status, exc.message)
        return jsonify(exc.to_dict()), status

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
