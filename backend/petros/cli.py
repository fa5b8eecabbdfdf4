# Overview: Flask CLI command groups for tenant bootstrap and ledger inspection.

# backend/petros/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Set FLASK_APP to wsgi.py.
# - Use: python -m flask <group> <command> [options]
#
# Tenants:
# - python -m flask tenants create --name "Kofi Stores" --code kofi
# - python -m flask tenants list
#
# Users:
# - python -m flask users create --tenant-id 1 --name "Ama" --email ama@example.com --role CASHIER
#
# Ledger consistency:
# - python -m flask ledger check [--tenant-id 1]
#   Recompute customer and supplier balances from their transaction history
#   and report every cached balance that drifted. Exit code 1 on drift.
#
# Till:
# - python -m flask till open-shifts [--tenant-id 1]
#   List shifts that are still OPEN with their live expected cash.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import LedgerError
from .models import Customer, Item, Supplier, Tenant, User, USER_ROLES
from .services import reporting_service, tenant_service, till_service


@click.group('tenants')
def tenants_group():
    """Tenant management commands."""


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    """List all tenants."""
    tenants = db.session.query(Tenant).order_by(Tenant.id).all()

    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active':<8} {'Users':<7} {'Items'}")
    click.echo("="*80)

    for tenant in tenants:
        user_count = db.session.query(User).filter_by(tenant_id=tenant.id).count()
        item_count = db.session.query(Item).filter_by(tenant_id=tenant.id).count()
        active_str = "Yes" if tenant.is_active else "No"
        click.echo(f"{tenant.id:<5} {tenant.name:<30} {tenant.code:<15} {active_str:<8} {user_count:<7} {item_count}")

    click.echo("="*80 + "\n")


@tenants_group.command('create')
@click.option('--name', required=True, help='Tenant name')
@click.option('--code', required=True, help='Short code (unique)')
@with_appcontext
def create_tenant_cli(name, code):
    """Create a new tenant."""
    try:
        tenant = tenant_service.create_tenant(name, code)
    except LedgerError as exc:
        raise click.ClickException(exc.message)
    click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id}, Code: {tenant.code})")


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User bootstrap commands."""


@users_group.command('create')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--name', required=True, help='Display name')
@click.option('--email', required=True, help='Email (unique)')
@click.option('--role', type=click.Choice(USER_ROLES, case_sensitive=False), default='STAFF', show_default=True)
@with_appcontext
def create_user_cli(tenant_id, name, email, role):
    """Create a user inside a tenant."""
    try:
        user = tenant_service.create_user(tenant_id, name, email, role)
    except LedgerError as exc:
        raise click.ClickException(exc.message)
    click.echo(f"PASS Created user: {user.email} (ID: {user.id}, Role: {user.role}, Tenant: {user.tenant_id})")


# =============================================================================
# LEDGER CONSISTENCY
# =============================================================================

@click.group('ledger')
def ledger_group():
    """Ledger consistency commands."""


def _tenant_ids(tenant_id):
    if tenant_id is not None:
        return [tenant_id]
    return [t.id for t in db.session.query(Tenant).order_by(Tenant.id).all()]


@ledger_group.command('check')
@click.option('--tenant-id', type=int, help='Only check this tenant')
@with_appcontext
def ledger_check(tenant_id):
    """Report customer/supplier balances that drifted from their history."""
    drifted = 0
    for tid in _tenant_ids(tenant_id):
        checks = (
            ("customer", reporting_service.customer_balance_drift(tid)),
            ("supplier", reporting_service.supplier_balance_drift(tid)),
        )
        for kind, rows in checks:
            for row in rows:
                drifted += 1
                click.echo(
                    f"FAIL tenant {tid} {kind} {row['id']} ({row['name']}): "
                    f"balance {row['balance_cents']} expected {row['expected_cents']} "
                    f"drift {row['drift_cents']}"
                )

    if drifted:
        raise click.ClickException(f"{drifted} balance(s) drifted")

    customers = db.session.query(Customer).count()
    suppliers = db.session.query(Supplier).count()
    click.echo(f"PASS {customers} customer and {suppliers} supplier balances match their history")


# =============================================================================
# TILL
# =============================================================================

@click.group('till')
def till_group():
    """Till shift inspection commands."""


@till_group.command('open-shifts')
@click.option('--tenant-id', type=int, help='Only this tenant')
@with_appcontext
def list_open_shifts(tenant_id):
    """List OPEN shifts with their live expected cash."""
    shifts = till_service.list_open_shifts(tenant_id)
    if not shifts:
        click.echo("No open shifts.")
        return

    click.echo(f"{'ID':<5} {'Tenant':<7} {'User':<25} {'Opened':<22} {'Expected cash (cents)'}")
    for shift in shifts:
        totals = till_service.get_running_totals(shift.tenant_id, shift.user_id)
        user_name = shift.user.name if shift.user else shift.user_id
        click.echo(
            f"{shift.id:<5} {shift.tenant_id:<7} {user_name:<25} "
            f"{shift.opened_at:%Y-%m-%d %H:%M:%S}    {totals['expected_cash_cents']}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(tenants_group)
    app.cli.add_command(users_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(till_group)
