# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/cashbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "cashbook:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create the stored_collections table if missing (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inventory inspection:
# - python -m flask inventory list [--low-stock] [--category "Ropa"] [--search shirt]
# - python -m flask inventory categories
#
# Ledger inspection:
# - python -m flask ledger list [--type inflow] [--start 2026-01-01] [--end 2026-01-31]
# - python -m flask ledger summary [--start ...] [--end ...]
#
# Debts:
# - python -m flask debts list [--type payable] [--status overdue]
# - python -m flask debts stats
# - python -m flask debts pay <debt_id>
#   Settle a debt; records the matching inflow/outflow.
#
# Bills:
# - python -m flask bills list
# - python -m flask bills toggle <bill_id> [--no-transaction]

import click
from flask.cli import with_appcontext

from .engine import get_engine
from .extensions import db
from .models import DebtStatus, DebtType, TransactionType
from .time_utils import to_utc_z
from .validation import ConflictError, NotFoundError, ValidationError


def _fail(exc: Exception) -> click.ClickException:
    return click.ClickException(str(exc))


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create database tables (safe to run repeatedly)."""
    db.create_all()
    click.echo("PASS Database tables ready")


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
    db.session.remove()
    db.drop_all()
    click.echo("BUILD Creating all tables...")
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('inventory')
def inventory_group():
    """Product catalog inspection."""


@inventory_group.command('list')
@click.option('--low-stock', is_flag=True, help='Only products at or below the low-stock threshold')
@click.option('--category', default=None, help='Exact category match')
@click.option('--search', 'search_term', default=None, help='Name/description/category substring')
@with_appcontext
def list_inventory(low_stock, category, search_term):
    """List products, most recently updated first."""
    products = get_engine().inventory.list_products(
        search_term=search_term,
        category=category,
        low_stock=low_stock,
    )

    if not products:
        click.echo("No products found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<22} {'Name':<30} {'Category':<15} {'Price':>10} {'Stock':>8}")
    click.echo("="*90)

    for p in products:
        click.echo(f"{p.id:<22} {p.name:<30} {p.category or '-':<15} {p.price:>10.2f} {p.total_quantity:>8}")
        for v in p.variants:
            click.echo(f"{'':<22}   - {v.name:<26} {'':<15} {'':>10} {v.quantity:>8}")

    click.echo("="*90 + "\n")


@inventory_group.command('categories')
@with_appcontext
def list_categories():
    """List distinct product categories."""
    categories = get_engine().inventory.categories()
    if not categories:
        click.echo("No categories found.")
        return
    for name in categories:
        click.echo(name)


@click.group('ledger')
def ledger_group():
    """Cash-flow ledger inspection."""


@ledger_group.command('list')
@click.option('--type', 'transaction_type', type=click.Choice([t.value for t in TransactionType]), default=None)
@click.option('--start', 'start_date', default=None, help='Inclusive start (ISO date)')
@click.option('--end', 'end_date', default=None, help='Inclusive end day (ISO date)')
@click.option('--search', 'search_term', default=None)
@with_appcontext
def list_ledger(transaction_type, start_date, end_date, search_term):
    """List transactions, newest first."""
    try:
        transactions = get_engine().ledger.list_transactions(
            start_date=start_date,
            end_date=end_date,
            transaction_type=transaction_type,
            search_term=search_term,
        )
    except ValidationError as e:
        raise _fail(e)

    if not transactions:
        click.echo("No transactions found.")
        return

    for t in transactions:
        sign = "+" if t.type == TransactionType.INFLOW else "-"
        click.echo(f"{to_utc_z(t.timestamp)}  {sign}{t.amount:.2f}  {t.description}  [{t.category or '-'}]")


@ledger_group.command('summary')
@click.option('--start', 'start_date', default=None)
@click.option('--end', 'end_date', default=None)
@with_appcontext
def ledger_summary(start_date, end_date):
    """Inflow, outflow and net totals."""
    try:
        summary = get_engine().ledger.summarize(start_date=start_date, end_date=end_date)
    except ValidationError as e:
        raise _fail(e)

    click.echo(f"Transactions: {summary.count}")
    click.echo(f"Inflow:       {summary.total_inflow:.2f}")
    click.echo(f"Outflow:      {summary.total_outflow:.2f}")
    click.echo(f"Net:          {summary.net:.2f}")


@click.group('debts')
def debts_group():
    """Receivables and payables."""


@debts_group.command('list')
@click.option('--type', 'debt_type', type=click.Choice([t.value for t in DebtType]), default=None)
@click.option('--status', type=click.Choice([s.value for s in DebtStatus]), default=None)
@with_appcontext
def list_debts(debt_type, status):
    """List debts with derived status."""
    debts = get_engine().debts.list_debts(debt_type=debt_type, status=status)

    if not debts:
        click.echo("No debts found.")
        return

    for d in debts:
        click.echo(
            f"{d.id:<22} {d.type.value:<11} {d.status.value:<8} "
            f"{d.amount:>10.2f}  {d.counterparty} - {d.description} (due {to_utc_z(d.due_date)})"
        )


@debts_group.command('stats')
@with_appcontext
def debt_stats():
    """Open totals and overdue counts."""
    stats = get_engine().debts.stats()
    click.echo(f"Receivables pending: {stats.total_receivables_pending:.2f} ({stats.overdue_receivables} overdue)")
    click.echo(f"Payables pending:    {stats.total_payables_pending:.2f} ({stats.overdue_payables} overdue)")
    click.echo(f"Net balance:         {stats.net_balance:.2f}")
    click.echo(f"Open debts:          {stats.total_pending_debts}")


@debts_group.command('pay')
@click.argument('debt_id')
@with_appcontext
def pay_debt(debt_id):
    """Mark a debt as paid and record the ledger entry."""
    try:
        debt, transaction = get_engine().debts.mark_as_paid(debt_id)
    except (NotFoundError, ConflictError) as e:
        raise _fail(e)

    click.echo(f"PASS Debt {debt.id} paid; transaction {transaction.id} ({transaction.type.value} {transaction.amount:.2f})")


@click.group('bills')
def bills_group():
    """Recurring bills."""


@bills_group.command('list')
@with_appcontext
def list_bills():
    """List all bills."""
    bills = get_engine().bills.list_bills()

    if not bills:
        click.echo("No bills found.")
        return

    for b in bills:
        paid = "PAID" if b.is_paid else "DUE"
        click.echo(f"{b.id:<22} {paid:<5} {b.amount:>10.2f}  {b.name} ({b.frequency.value}, due {to_utc_z(b.due_date)})")


@bills_group.command('toggle')
@click.argument('bill_id')
@click.option('--no-transaction', is_flag=True, help='Do not record an outflow when marking paid')
@with_appcontext
def toggle_bill(bill_id, no_transaction):
    """Flip a bill between paid and unpaid."""
    try:
        bill = get_engine().bills.toggle_paid(bill_id, create_transaction=not no_transaction)
    except NotFoundError as e:
        raise _fail(e)

    click.echo(f"PASS Bill {bill.id} is now {'paid' if bill.is_paid else 'unpaid'}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(debts_group)
    app.cli.add_command(bills_group)
