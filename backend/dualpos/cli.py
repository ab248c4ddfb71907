# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/dualpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent) and seed the exchange rate from DEFAULT_LRD_PER_USD.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Exchange rate:
# - python -m flask rates show
#   Print the current LRD per USD rate.
# - python -m flask rates set 200
#   Replace the rate and re-price every product with a USD price.
#
# Catalog inspection:
# - python -m flask products list --store "Main Store" [--category Drinks]
#   List a store's products with stock and prices.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import currency_service, inventory_service
from .validation import ValidationError


def _money(cents):
    if cents is None:
        return "-"
    return f"{cents / 100:,.2f}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables and make sure a rate record exists."""
    click.echo("BUILD  Creating tables...")
    db.create_all()

    rate = currency_service.get_current_rate()
    click.echo(f"PASS Database ready. Current rate: {rate.lrd_per_usd} LRD per USD")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init-db' to seed the rate.")


@click.group('rates')
def rates_group():
    """Exchange rate inspection and updates."""


@rates_group.command('show')
@with_appcontext
def show_rate():
    """Print the current rate."""
    rate = currency_service.get_current_rate()
    click.echo(f"{rate.lrd_per_usd} LRD per USD (updated {rate.to_dict()['updated_at']})")


@rates_group.command('set')
@click.argument('value')
@with_appcontext
def set_rate(value):
    """Replace the rate and re-price the catalog."""
    try:
        rate, repriced = currency_service.update_rate(value)
    except ValidationError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Rate set to {rate.lrd_per_usd} LRD per USD; {repriced} products re-priced")


@click.group('products')
def products_group():
    """Catalog inspection commands."""


@products_group.command('list')
@click.option('--store', required=True, help='Store name')
@click.option('--category', help='Filter by category')
@with_appcontext
def list_products(store, category):
    """List a store's products with stock and prices."""
    try:
        products = inventory_service.list_products(store, category=category)
    except ValidationError as e:
        raise click.ClickException(str(e))

    if not products:
        click.echo("No products found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<6} {'Item':<30} {'Category':<15} {'Qty':>6} {'USD':>12} {'LRD':>14}")
    click.echo("="*90)

    for product in products:
        qty = "-" if product.quantity is None else product.quantity
        click.echo(
            f"{product.id:<6} {product.item[:30]:<30} {(product.category or '')[:15]:<15} "
            f"{qty:>6} {_money(product.price_usd_cents):>12} {_money(product.price_lrd_cents):>14}"
        )

    click.echo("="*90 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(rates_group)
    app.cli.add_command(products_group)
