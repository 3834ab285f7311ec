# Overview: Flask CLI command groups for bootstrap and quick terminal reports.

# backend/tabletpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to tabletpos (PowerShell: $env:FLASK_APP="tabletpos").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Products:
# - python -m flask products low-stock [--threshold 10]
#   List products at or below the threshold.
#
# Reports:
# - python -m flask reports summary --start 2026-01-01 --end 2026-01-31
#   Headline sales numbers for an inclusive date range (voided sales excluded).
# - python -m flask reports products --start 2026-01-01 --end 2026-01-31
#   Quantity and charged revenue per product.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services import products_service, reporting_service


def _money(cents: int) -> str:
    return f"{cents / 100:,.2f}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database initialized.")


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

    click.echo("PASS Database reset complete.")


@click.group('products')
def products_group():
    """Product catalog inspection."""


@products_group.command('low-stock')
@click.option('--threshold', type=int, default=None, help='Stock level to flag (default LOW_STOCK_THRESHOLD)')
@with_appcontext
def low_stock(threshold):
    """List products at or below the low-stock threshold."""
    if threshold is None:
        threshold = current_app.config["LOW_STOCK_THRESHOLD"]

    products = products_service.get_low_stock_products(db.session, threshold=threshold)
    if not products:
        click.echo(f"PASS No products at or below {threshold}.")
        return

    click.echo(f"WARN {len(products)} product(s) at or below {threshold}:")
    for p in products:
        click.echo(f"  [{p.id}] {p.name} ({p.barcode or 'no barcode'}): {p.quantity}")


@click.group('reports')
def reports_group():
    """Sales and inventory reports."""


@reports_group.command('summary')
@click.option('--start', default=None, help='Inclusive start date (YYYY-MM-DD)')
@click.option('--end', default=None, help='Inclusive end date (YYYY-MM-DD)')
@with_appcontext
def summary(start, end):
    """Headline numbers for a date range."""
    try:
        data = reporting_service.sales_summary(db.session, start, end)
    except reporting_service.ReportError as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Range:          {data['start'] or '-'} .. {data['end'] or '-'}")
    click.echo(f"Sales:          {data['sales_count']}")
    click.echo(f"Items sold:     {data['items_sold']}")
    click.echo(f"Gross:          {_money(data['original_total_cents'])}")
    click.echo(f"Discounts:      {_money(data['total_discount_cents'])}")
    click.echo(f"Total sales:    {_money(data['total_sales_cents'])}")
    click.echo(f"Voided sales:   {data['voided_count']}")


@reports_group.command('products')
@click.option('--start', default=None, help='Inclusive start date (YYYY-MM-DD)')
@click.option('--end', default=None, help='Inclusive end date (YYYY-MM-DD)')
@with_appcontext
def products_sold(start, end):
    """Quantity and revenue per product."""
    try:
        rows = reporting_service.products_sold_in_range(db.session, start, end)
    except reporting_service.ReportError as exc:
        raise click.ClickException(str(exc))

    for row in rows:
        click.echo(f"{row['name']:<40} {row['total_quantity']:>6} {_money(row['total_revenue_cents']):>14}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(products_group)
    app.cli.add_command(reports_group)
