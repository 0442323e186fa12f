# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/shopledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--shop "Shop Name"]
#   Idempotent bootstrap: creates tables, a default shop with default fee rules,
#   and the superadmin/owner/worker users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Shop management (MULTI-TENANT):
# - python -m flask shops list
# - python -m flask shops create --name "Ali Mobile Centre" --code "ALI"
#
# Users:
# - python -m flask users list [--shop-id 1]
# - python -m flask users create --shop-id 1 --username owner2 --email owner2@shop.local --password "Password123!" --role SHOP_OWNER
#
# Reference data with no REST endpoints:
# - python -m flask customers create --shop-id 1 --name "Bilal" --phone 03001234567
# - python -m flask suppliers create --shop-id 1 --name "City Distributors"
#
# Closing:
# - python -m flask closing preview --shop-id 1 --date 2025-01-05
#   Show the day's aggregates and the closing an all-defaults submission would store.

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Shop, User
from .models.auth import ROLES, SUPER_ADMIN, SHOP_OWNER, SHOP_WORKER
from .services.auth_service import create_user, PasswordValidationError
from .services import shop_service, loan_service, purchase_service, closing_service
from .validation import parse_date_field
from .time_utils import local_today


DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--shop', 'shop_name', default='Main Shop', help='Default shop name')
@click.option('--shop-code', default='MAIN', help='Default shop code')
@with_appcontext
def init_system(shop_name, shop_code):
    """
    Initialize ShopLedger: tables, default shop, fee rules and users.

    Creates:
    - Default shop (if none exists) with default flat fee rules
    - Users: superadmin (no shop), owner and worker of the default shop
    - All passwords default to: "Password123!"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing ShopLedger...")

    db.create_all()

    shop = db.session.query(Shop).first()
    if not shop:
        shop = shop_service.create_shop(shop_name, code=shop_code)
        click.echo(f"PASS Created default shop: {shop.name} (ID: {shop.id}, Code: {shop.code})")
    else:
        click.echo(f"PASS Using existing shop: {shop.name} (ID: {shop.id})")

    click.echo("\nUSERS Creating default users...")
    default_users = [
        ("superadmin", "superadmin@shopledger.local", SUPER_ADMIN, None),
        ("owner", "owner@shopledger.local", SHOP_OWNER, shop.id),
        ("worker", "worker@shopledger.local", SHOP_WORKER, shop.id),
    ]
    for username, email, role, shop_id in default_users:
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"SKIP User '{username}' already exists")
            continue
        create_user(username, email, DEFAULT_PASSWORD, role, shop_id=shop_id)
        click.echo(f"PASS Created user: {username} ({role})")

    click.echo(f"\nDONE System ready. Default password: {DEFAULT_PASSWORD}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('shops')
def shops_group():
    """Shop (tenant) management commands."""


@shops_group.command('list')
@click.option('--all', 'show_all', is_flag=True, help='Include inactive shops')
@with_appcontext
def list_shops_cli(show_all):
    """List shops."""
    shops = shop_service.list_shops(include_inactive=show_all)

    if not shops:
        click.echo("No shops found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<12} {'Active':<8} {'Users'}")
    click.echo("="*70)

    for shop in shops:
        user_count = db.session.query(User).filter_by(shop_id=shop.id).count()
        active_str = "Yes" if shop.is_active else "No"
        click.echo(f"{shop.id:<5} {shop.name:<30} {shop.code or '-':<12} {active_str:<8} {user_count}")

    click.echo("="*70 + "\n")


@shops_group.command('create')
@click.option('--name', required=True, help='Shop name')
@click.option('--code', default=None, help='Short code (unique)')
@click.option('--phone', default=None, help='Contact phone')
@click.option('--address', default=None, help='Street address')
@with_appcontext
def create_shop_cli(name, code, phone, address):
    """Create a shop and seed its default fee rules."""
    try:
        shop = shop_service.create_shop(name, code=code, phone=phone, address=address)
    except ValueError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created shop: {shop.name} (ID: {shop.id}, Code: {shop.code or '-'})")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--shop-id', type=int, help='Shop ID (ignored for SUPER_ADMIN)')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(shop_id, username, email, password, role):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(username, email, password, role, shop_id=shop_id)
        click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")
        if user.shop_id:
            click.echo(f"     Shop ID: {user.shop_id}")
        click.echo("SECURITY Password securely hashed with bcrypt")

    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except ValueError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('list')
@click.option('--shop-id', type=int, help='Filter by shop ID')
@with_appcontext
def list_users(shop_id):
    """List users with their roles."""
    query = db.session.query(User)

    if shop_id:
        query = query.filter_by(shop_id=shop_id)

    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Shop':<6} {'Username':<20} {'Email':<30} {'Active':<8} {'Role'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        shop_str = str(user.shop_id) if user.shop_id else "-"
        click.echo(f"{user.id:<5} {shop_str:<6} {user.username:<20} {user.email:<30} {active_str:<8} {user.role}")

    click.echo("="*90 + "\n")


@click.group('customers')
def customers_group():
    """Loan customer commands."""


@customers_group.command('create')
@click.option('--shop-id', type=int, required=True)
@click.option('--name', required=True)
@click.option('--phone', default=None)
@click.option('--cnic', default=None, help='National identity card number')
@with_appcontext
def create_customer_cli(shop_id, name, phone, cnic):
    try:
        customer = loan_service.create_customer(shop_id, name, phone=phone, cnic=cnic)
    except ValueError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created customer: {customer.name} (ID: {customer.id})")


@click.group('suppliers')
def suppliers_group():
    """Supplier commands."""


@suppliers_group.command('create')
@click.option('--shop-id', type=int, required=True)
@click.option('--name', required=True)
@click.option('--phone', default=None)
@with_appcontext
def create_supplier_cli(shop_id, name, phone):
    try:
        supplier = purchase_service.create_supplier(shop_id, name, phone=phone)
    except ValueError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created supplier: {supplier.name} (ID: {supplier.id})")


@click.group('closing')
def closing_group():
    """Daily closing inspection."""


@closing_group.command('preview')
@click.option('--shop-id', type=int, required=True)
@click.option('--date', 'day', default=None, help='YYYY-MM-DD (default: today)')
@with_appcontext
def preview_closing_cli(shop_id, day):
    """Print the day's aggregates and suggested closing. Nothing is written."""
    try:
        closing_day = parse_date_field(day, "date") if day else local_today()
        view = closing_service.get_closing(shop_id, closing_day)
    except ValueError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(json.dumps(view, indent=2, sort_keys=True, default=str))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(shops_group)  # Multi-tenant shop management
    app.cli.add_command(users_group)
    app.cli.add_command(customers_group)
    app.cli.add_command(suppliers_group)
    app.cli.add_command(closing_group)
