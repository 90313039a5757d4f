"""CLI for GroupLedger using Typer."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation

import typer
from rich.console import Console
from rich.table import Table

from .config import load_settings
from .db import Database
from .exceptions import GroupLedgerError, MemberNotFoundError
from .models import Group, SplitType, Transaction
from .reconciler import normalize_transaction
from .service import LedgerService, new_id

app = typer.Typer(
    name="group-ledger",
    help="Track shared group expenses and work out who should pay whom",
)

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@contextmanager
def ledger_session(verbose: bool) -> Iterator[LedgerService]:
    """Open the ledger database and report ledger errors the same way everywhere."""
    setup_logging(verbose)
    db = None
    try:
        settings = load_settings()
        db = Database(settings.database_path)
        yield LedgerService(settings, db)
    except GroupLedgerError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        raise typer.Exit(code=1) from e
    finally:
        if db is not None:
            db.close()


def format_money(amount: Decimal, currency: str = "$", use_color: bool = True) -> str:
    """
    Format money in accounting style with alignment.

    Negative amounts use parentheses: ($85.02)
    Positive amounts have spaces:      $85.02
    """
    abs_amount = abs(amount)
    if amount < 0:
        if use_color:
            return f"({currency}[red]{abs_amount:,.2f}[/red])"
        return f"({currency}{abs_amount:,.2f})"
    if use_color:
        return f" [green]{currency}{abs_amount:,.2f}[/green] "
    return f" {currency}{abs_amount:,.2f} "


def member_name(group: Group, member_id: str) -> str:
    """Display name of a member, including ones removed from the group."""
    member = group.members.get(member_id)
    return member.name if member else "Unnamed User"


def resolve_member(group: Group, ref: str) -> str:
    """
    Resolve a member reference (ID or case-insensitive name) to a member ID.

    Raises:
        MemberNotFoundError: If no member matches, or the name is ambiguous
    """
    if ref in group.members:
        return ref
    matches = [m.id for m in group.members.values() if m.name.lower() == ref.lower()]
    if len(matches) != 1:
        raise MemberNotFoundError(group.id, ref)
    return matches[0]


def parse_shares(
    group: Group, values: list[str], default: str | None = None
) -> dict[str, Decimal]:
    """
    Parse MEMBER=AMOUNT options into a map of member ID to amount.

    When ``default`` is given, a bare MEMBER is accepted and gets that amount.
    """
    shares: dict[str, Decimal] = {}
    for value in values:
        ref, sep, amount = value.partition("=")
        if not sep:
            if default is None:
                raise typer.BadParameter(f"Expected MEMBER=AMOUNT, got '{value}'")
            amount = default
        try:
            parsed = Decimal(amount.strip())
        except InvalidOperation as e:
            raise typer.BadParameter(f"Invalid amount in '{value}'") from e
        if not parsed.is_finite():
            raise typer.BadParameter(f"Amount must be a finite number in '{value}'")
        shares[resolve_member(group, ref.strip())] = parsed
    return shares


# ============================================================================
# Groups and members
# ============================================================================


@app.command()
def create_group(
    name: str = typer.Argument(..., help="Group name"),
    currency: str | None = typer.Option(None, "--currency", help="Currency symbol"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Create a new group."""
    with ledger_session(verbose) as service:
        group = service.create_group(name, currency)
        console.print(f"[green]✓ Created group {group.name}[/green] (id: {group.id})")


@app.command()
def groups(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List all groups."""
    with ledger_session(verbose) as service:
        all_groups = service.list_groups()
        if not all_groups:
            console.print("[yellow]No groups yet.[/yellow]")
            return

        table = Table(title="Groups", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Members", justify="right")
        table.add_column("Transactions", justify="right")
        for group in all_groups:
            table.add_row(
                group.id,
                group.name,
                str(len(group.members)),
                str(len(group.transactions)),
            )
        console.print(table)


@app.command()
def rename_group(
    group_id: str = typer.Argument(..., help="Group ID"),
    name: str = typer.Argument(..., help="New name"),
    by: str | None = typer.Option(None, "--by", help="Acting member ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Rename a group."""
    with ledger_session(verbose) as service:
        service.set_group_name(group_id, name, by)
        console.print(f"[green]✓ Renamed group to {name}[/green]")


@app.command()
def set_currency(
    group_id: str = typer.Argument(..., help="Group ID"),
    currency: str = typer.Argument(..., help="Currency symbol, e.g. € or CHF"),
    by: str | None = typer.Option(None, "--by", help="Acting member ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Change the currency symbol a group is displayed in."""
    with ledger_session(verbose) as service:
        service.set_group_currency(group_id, currency, by)
        console.print(f"[green]✓ Currency set to {currency}[/green]")


@app.command()
def add_member(
    group_id: str = typer.Argument(..., help="Group ID"),
    name: str = typer.Argument(..., help="Member name"),
    member_id: str | None = typer.Option(None, "--id", help="Member ID to use"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Add a member to a group."""
    with ledger_session(verbose) as service:
        member = service.add_member(group_id, name, member_id)
        console.print(f"[green]✓ Added {member.name}[/green] (id: {member.id})")


@app.command()
def remove_member(
    group_id: str = typer.Argument(..., help="Group ID"),
    member: str = typer.Argument(..., help="Member ID or name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Remove a member from a group."""
    with ledger_session(verbose) as service:
        group = service.get_group(group_id)
        member_id = resolve_member(group, member)
        service.delete_member(group_id, member_id)
        console.print(f"[green]✓ Removed {member_name(group, member_id)}[/green]")


# ============================================================================
# Transactions
# ============================================================================


@app.command()
def add_expense(
    group_id: str = typer.Argument(..., help="Group ID"),
    description: str = typer.Argument(..., help="What the money was spent on"),
    paid: list[str] = typer.Option(
        ..., "--paid", "-p", help="MEMBER=AMOUNT contributed (repeatable)"
    ),
    split: list[str] = typer.Option(
        ..., "--split", "-s", help="MEMBER or MEMBER=WEIGHT sharing the cost"
    ),
    weighted: bool = typer.Option(
        False, "--weighted", "-w", help="Split by weight instead of equally"
    ),
    by: str | None = typer.Option(None, "--by", help="Acting member ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Record an expense.

    Example: group-ledger add-expense GROUP "Dinner" -p alice=60 -s alice -s bob
    """
    with ledger_session(verbose) as service:
        group = service.get_group(group_id)
        transaction = Transaction(
            id=new_id(),
            description=description,
            split_type=SplitType.WEIGHTED if weighted else SplitType.EQUAL,
            payers=parse_shares(group, paid),
            splitters=parse_shares(group, split, default="1"),
        )
        service.add_transaction(group_id, transaction, by)

        normalized = normalize_transaction(transaction)
        console.print(
            f"[green]✓ Recorded {description}[/green] "
            f"({format_money(normalized.total_cost, group.currency).strip()}, "
            f"id: {transaction.id})"
        )
        for member_id, share in normalized.splits.items():
            console.print(
                f"  {member_name(group, member_id)}: "
                f"{format_money(share, group.currency)}"
            )


@app.command()
def delete_expense(
    group_id: str = typer.Argument(..., help="Group ID"),
    transaction_id: str = typer.Argument(
        ..., help="Transaction ID, or the short ID shown by history"
    ),
    by: str | None = typer.Option(None, "--by", help="Acting member ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete a recorded expense."""
    with ledger_session(verbose) as service:
        transaction_id = service.resolve_transaction_id(group_id, transaction_id)
        service.delete_transaction(group_id, transaction_id, by)
        console.print("[green]✓ Expense deleted[/green]")


@app.command()
def history(
    group_id: str = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show a group's expenses by month, newest first."""
    with ledger_session(verbose) as service:
        group = service.get_group(group_id)
        months = service.get_transactions_by_month(group_id)
        if not months:
            console.print("[yellow]No expenses recorded.[/yellow]")
            return

        for month, transactions in months:
            table = Table(title=month, show_header=True, header_style="bold magenta")
            table.add_column("ID", style="dim", width=10)
            table.add_column("Description", style="cyan", width=30)
            table.add_column("Paid by", width=20)
            table.add_column("Total", justify="right", width=12)
            for transaction in transactions:
                normalized = normalize_transaction(transaction)
                desc = normalized.description
                table.add_row(
                    normalized.id[:8],
                    desc[:30] + "..." if len(desc) > 30 else desc,
                    ", ".join(member_name(group, m) for m in normalized.payers),
                    format_money(normalized.total_cost, group.currency),
                )
            console.print(table)


# ============================================================================
# Balances and settlement
# ============================================================================


@app.command()
def balances(
    group_id: str = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show each member's net balance (positive = is owed money)."""
    with ledger_session(verbose) as service:
        group = service.get_group(group_id)
        group_balances = service.get_balances(group_id)

        table = Table(
            title=f"Balances: {group.name}",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Member", style="cyan")
        table.add_column("Balance", justify="right", width=14)
        for member_id, amount in group_balances.items():
            table.add_row(
                member_name(group, member_id), format_money(amount, group.currency)
            )
        console.print(table)

        drift = sum(group_balances.values(), Decimal("0"))
        if drift != 0:
            console.print(
                f"[dim]Rounding drift across balances: {drift} "
                f"(left with the last member settled)[/dim]"
            )


@app.command()
def settle(
    group_id: str = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Suggest payments that would settle all debts in a group."""
    with ledger_session(verbose) as service:
        group = service.get_group(group_id)
        payments = service.get_payments(group_id)
        if not payments:
            console.print("[green]✓ Everyone is settled up.[/green]")
            return

        table = Table(
            title="Suggested Payments", show_header=True, header_style="bold magenta"
        )
        table.add_column("From", style="cyan")
        table.add_column("To", style="cyan")
        table.add_column("Amount", justify="right", width=14)
        for payment in payments:
            table.add_row(
                member_name(group, payment.from_member),
                member_name(group, payment.to_member),
                format_money(payment.value, group.currency, use_color=False),
            )
        console.print(table)


@app.command()
def activity(
    group_id: str | None = typer.Argument(
        None, help="Group ID (all groups if omitted)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show the activity log, newest first."""
    with ledger_session(verbose) as service:
        if group_id:
            entries = service.get_activity(group_id)
        else:
            entries = service.get_all_activity()
        if not entries:
            console.print("[yellow]No activity yet.[/yellow]")
            return

        table = Table(title="Activity", show_header=True, header_style="bold magenta")
        table.add_column("When", style="dim")
        table.add_column("Group", style="dim", width=10)
        table.add_column("Type", style="cyan")
        table.add_column("By")
        for entry in entries:
            table.add_row(
                entry.created_at.strftime("%Y-%m-%d %H:%M"),
                entry.group_id[:8],
                entry.type.replace("_", " "),
                entry.by or "—",
            )
        console.print(table)


if __name__ == "__main__":
    app()
