# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/depot/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Outlets:
# - python -m flask outlets list
# - python -m flask outlets create --name "Depot Sukamaju" --code "SKM"
#
# Customer tiers:
# - python -m flask tiers list
# - python -m flask tiers create --name gold --display-name "Gold" --discount 10
#
# Capital:
# - python -m flask capital balance --outlet-id 1
# - python -m flask capital record --outlet-id 1 --kind in --amount 500000 --note "Opening capital"
#
# Inventory:
# - python -m flask inventory verify --outlet-id 1
#   Replay the event log and report counters that drifted from it.

import click
from flask.cli import with_appcontext

from .errors import DepotError
from .extensions import db
from .models import CustomerTier, Outlet
from .services import capital_service, inventory_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


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

    click.echo("PASS Database reset complete. Run 'python -m flask outlets create' to add an outlet.")


@click.group('outlets')
def outlets_group():
    """Outlet (tenant) management commands."""


@outlets_group.command('list')
@with_appcontext
def list_outlets():
    """List all outlets."""
    outlets = db.session.query(Outlet).order_by(Outlet.id).all()

    if not outlets:
        click.echo("No outlets found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active'}")
    click.echo("="*70)

    for outlet in outlets:
        active_str = "Yes" if outlet.is_active else "No"
        click.echo(f"{outlet.id:<5} {outlet.name:<30} {outlet.code:<15} {active_str}")

    click.echo("="*70 + "\n")


@outlets_group.command('create')
@click.option('--name', required=True, help='Outlet name')
@click.option('--code', required=True, help='Short code (unique)')
@click.option('--address', default=None, help='Street address')
@click.option('--phone', default=None, help='Contact phone')
@with_appcontext
def create_outlet_cli(name, code, address, phone):
    """Create a new outlet."""
    existing = db.session.query(Outlet).filter_by(code=code).first()
    if existing:
        click.echo(f"FAIL Outlet with code '{code}' already exists")
        return

    outlet = Outlet(name=name, code=code, address=address, phone=phone, is_active=True)
    db.session.add(outlet)
    db.session.commit()

    click.echo(f"PASS Created outlet: {outlet.name} (ID: {outlet.id}, Code: {outlet.code})")


@click.group('tiers')
def tiers_group():
    """Customer tier commands."""


@tiers_group.command('list')
@with_appcontext
def list_tiers():
    """List customer tiers and their global discounts."""
    tiers = db.session.query(CustomerTier).order_by(CustomerTier.min_spent, CustomerTier.name).all()

    if not tiers:
        click.echo("No tiers found.")
        return

    for tier in tiers:
        click.echo(
            f"{tier.id:<5} {tier.name:<16} {tier.display_name:<24} "
            f"{tier.global_discount_percent:>3}%  min_spent={tier.min_spent}"
        )


@tiers_group.command('create')
@click.option('--name', required=True, help='Tier key (unique), e.g. gold')
@click.option('--display-name', default=None, help='Label shown to cashiers')
@click.option('--discount', type=click.IntRange(0, 100), default=0, help='Global discount percent')
@click.option('--color', default=None, help='Badge color, e.g. #FFD700')
@click.option('--min-spent', type=click.IntRange(min=0), default=0, help='Spend threshold for the tier')
@with_appcontext
def create_tier_cli(name, display_name, discount, color, min_spent):
    """Create a customer tier."""
    existing = db.session.query(CustomerTier).filter_by(name=name).first()
    if existing:
        click.echo(f"FAIL Tier '{name}' already exists")
        return

    tier = CustomerTier(
        name=name,
        display_name=display_name or name.title(),
        global_discount_percent=discount,
        color=color,
        min_spent=min_spent,
    )
    db.session.add(tier)
    db.session.commit()

    click.echo(f"PASS Created tier: {tier.display_name} (ID: {tier.id}, discount {tier.global_discount_percent}%)")


@click.group('capital')
def capital_group():
    """Outlet capital ledger commands."""


@capital_group.command('balance')
@click.option('--outlet-id', type=int, required=True, help='Outlet ID')
@with_appcontext
def capital_balance(outlet_id):
    """Show total in, total out and balance for an outlet."""
    summary = capital_service.get_capital_summary(outlet_id)
    click.echo(f"Outlet {outlet_id}: in={summary['total_in']} out={summary['total_out']} balance={summary['balance']}")


@capital_group.command('record')
@click.option('--outlet-id', type=int, required=True, help='Outlet ID')
@click.option('--kind', type=click.Choice(['in', 'out']), required=True)
@click.option('--amount', type=int, required=True)
@click.option('--note', default=None)
@with_appcontext
def capital_record(outlet_id, kind, amount, note):
    """Append a capital entry."""
    try:
        entry = capital_service.record_entry(outlet_id, kind, amount, note=note)
    except DepotError as e:
        raise click.ClickException(e.message)

    balance = capital_service.get_balance(outlet_id)
    click.echo(f"PASS Recorded {entry.kind} {entry.amount} (entry {entry.id}); balance is now {balance}")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('verify')
@click.option('--outlet-id', type=int, required=True, help='Outlet ID')
@with_appcontext
def verify_inventory_cli(outlet_id):
    """Compare stored stock counters with the sum of their audit events."""
    mismatches = inventory_service.verify_inventory(outlet_id)
    if not mismatches:
        click.echo(f"PASS Inventory for outlet {outlet_id} matches its event log")
        return

    for m in mismatches:
        click.echo(f"FAIL product {m['product_id']}: stored={m['stored']} replayed={m['replayed']}")
    raise click.ClickException(f"{len(mismatches)} product(s) drifted from the event log")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(outlets_group)
    app.cli.add_command(tiers_group)
    app.cli.add_command(capital_group)
    app.cli.add_command(inventory_group)
