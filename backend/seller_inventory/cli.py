# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/seller_inventory/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--demo]
#   Create all tables (idempotent). --demo also registers a demo store with a manager.
# - python -m flask system create-admin --username admin --email admin@example.com
#   Create a platform SystemAdmin (no store). Prompts for the password.
#
# Inspection:
# - python -m flask stores list
#   List all stores with subscription status.
# - python -m flask users list [--store-id 1]
#   List users with role and active status.

import click
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .models import Store, User, UserRole
from .persistence import UnitOfWork
from .services.auth_service import create_user
from .services.store_service import register_store

DEMO_PASSWORD = "Password123!"


@click.group("system")
def system_group():
    """System bootstrap commands."""


@system_group.command("init")
@click.option("--demo", is_flag=True, help="Also register a demo store with a manager")
@with_appcontext
def init_system(demo):
    """
    Create database tables and optionally a demo store.

    Demo manager: manager / manager@demo.local / Password123!
    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing database...")
    db.create_all()
    click.echo("PASS Tables created")

    if not demo:
        return

    uow = UnitOfWork()
    if uow.stores.exists(Store.slug == "demo-store"):
        click.echo("PASS Using existing demo store")
        return

    try:
        store, owner, _ = register_store(uow, {
            "store_name": "Demo Store",
            "store_slug": "demo-store",
            "owner_username": "manager",
            "owner_email": "manager@demo.local",
            "owner_password": DEMO_PASSWORD,
            "owner_full_name": "Demo Manager",
        })
    except ServiceError as exc:
        click.echo(f"FAIL Could not create demo store: {exc.message}")
        raise SystemExit(1)
    click.echo(f"PASS Created store: {store.name} (ID: {store.id}, slug: {store.slug})")
    click.echo(f"     manager -> {owner.email} / {DEMO_PASSWORD}")


@system_group.command("create-admin")
@click.option("--username", prompt=True, help="Username")
@click.option("--email", prompt=True, help="Email address")
@click.option("--full-name", default="System Administrator", help="Display name")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True, help="Password")
@with_appcontext
def create_admin(username, email, full_name, password):
    """
    Create a SystemAdmin user (platform level, no store).

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(
            UnitOfWork(),
            username=username,
            email=email,
            password=password,
            full_name=full_name,
            role=UserRole.SYSTEM_ADMIN,
        )
    except ServiceError as exc:
        click.echo(f"FAIL Failed to create admin: {exc.message}")
        raise SystemExit(1)
    click.echo(f"PASS Created SystemAdmin: {user.username} ({user.email})")
    click.echo("SECURITY Password securely hashed with bcrypt")


@click.group("stores")
def stores_group():
    """Store inspection commands."""


@stores_group.command("list")
@with_appcontext
def list_stores():
    stores = UnitOfWork().stores.get_all()
    if not stores:
        click.echo("No stores found. Register one via the API or 'flask system init --demo'.")
        return
    for store in stores:
        status = "active" if store.is_active else "inactive"
        click.echo(
            f"{store.id:>4}  {store.slug:<24} {store.name:<30} "
            f"{store.subscription_status.value:<10} {status}"
        )


@click.group("users")
def users_group():
    """User inspection commands."""


@users_group.command("list")
@click.option("--store-id", type=int, help="Only users of this store")
@with_appcontext
def list_users(store_id):
    uow = UnitOfWork()
    users = uow.users.find(User.store_id == store_id) if store_id else uow.users.get_all()
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(
            f"{user.id:>4}  {user.username:<20} {user.email:<32} "
            f"{user.role.value:<12} store={user.store_id or '-'} {status}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stores_group)
    app.cli.add_command(users_group)
