"""CLI for trip-ledger using Typer."""

import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .config import load_settings
from .db import Database
from .exceptions import TripLedgerError
from .ledger.matcher import match_participant_names
from .ledger.reconciler import apply_settlements
from .ledger.service import SettlementService
from .ledger.shares import resolve_payer
from .models import ParsedExpense, SettlementSummary, Trip
from .parser.expense import parse_expense
from .ui import describe_metadata, format_money, select_participant_interactive

app = typer.Typer(
    name="trip-ledger",
    help="Split group trip expenses and suggest who pays whom",
)

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)


def load_trip(path: Path) -> Trip:
    """Load a trip (participants and expenses) from a JSON file."""
    return Trip.model_validate_json(path.read_text(encoding="utf-8"))


@app.command()
def parse(
    text: str = typer.Argument(
        ..., help="Expense text, e.g. 'Dinner €60 split 4 ways'"
    ),
    decimal_format: str | None = typer.Option(
        None, "--decimal-format", help="US (1,000.50) or EU (1.000,50)"
    ),
    currency: str | None = typer.Option(
        None, "--currency", help="Currency when the text names none"
    ),
    trip_file: Path | None = typer.Option(
        None, "--trip", exists=True, dir_okay=False, help="Trip JSON to resolve names"
    ),
    interactive: bool = typer.Option(
        False, "--interactive", "-i", help="Ask about unclear participant names"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Parse a free-text expense into a draft.

    With --trip, the payer and any names in the text are matched against
    the trip participants.
    """
    setup_logging(verbose)

    try:
        settings = load_settings()

        number_format = (decimal_format or settings.decimal_format).upper()
        if number_format not in ("US", "EU"):
            raise ValueError(f"Unknown decimal format: {decimal_format}")

        parsed = parse_expense(
            text,
            default_currency=currency or settings.default_currency,
            decimal_format=number_format,
        )
        if parsed is None:
            console.print("[yellow]No amount found in the text.[/yellow]")
            sys.exit(1)

        display_parsed(parsed)

        if trip_file:
            trip = load_trip(trip_file)
            resolve_names(parsed, trip, interactive)

    except (TripLedgerError, ValueError, OSError) as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)


def display_parsed(parsed: ParsedExpense):
    """Display a parsed expense draft."""
    table = Table(title="Parsed Expense", show_header=True, header_style="bold magenta")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Description", parsed.description)
    table.add_row("Amount", format_money(parsed.amount, parsed.currency))
    table.add_row("Category", parsed.category or "[dim]-[/dim]")
    table.add_row("Payer", parsed.payer or "[dim]-[/dim]")
    table.add_row("Split", parsed.split_type)
    table.add_row(
        "Split count", str(parsed.split_count) if parsed.split_count else "-"
    )
    table.add_row("Participants", ", ".join(parsed.participants or []) or "-")
    table.add_row("Confidence", f"{parsed.confidence:.2f}")

    console.print(table)


def resolve_names(parsed: ParsedExpense, trip: Trip, interactive: bool):
    """Match the payer and names of a parsed expense to trip participants."""
    settings = load_settings()
    names_by_id = {p.user_id: p.full_name for p in trip.participants}

    # "I paid" means whoever is entering the expense
    payer = resolve_payer(
        None if parsed.payer == "I" else parsed.payer,
        trip.owner_id,
        trip.participants,
        threshold=settings.name_match_threshold,
    )
    payer_name = names_by_id.get(payer.payer_id, payer.payer_id)
    console.print(f"\n[bold]Payer:[/bold] {payer_name}")
    if payer.error:
        console.print(f"  [yellow]⚠️  {payer.error}[/yellow]")

    if not parsed.participants:
        return

    resolution = match_participant_names(
        parsed.participants,
        trip.participants,
        min_confidence=settings.name_match_min_confidence,
        auto_resolve_threshold=settings.name_match_threshold,
    )

    table = Table(title="Participants", show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Match")
    table.add_column("Confidence", justify="right")

    for match in resolution.matches:
        best = match.best_match
        needs_input = (
            match.is_ambiguous
            or best is None
            or best.confidence < settings.name_match_threshold
        )

        if needs_input and interactive:
            user_id = select_participant_interactive(
                match.input, trip.participants, match.matches
            )
            if user_id:
                table.add_row(
                    match.input, names_by_id[user_id], "[green]chosen[/green]"
                )
                continue

        if best is None:
            table.add_row(match.input, "[red]no match[/red]", "-")
        elif match.is_ambiguous:
            options = ", ".join(m.full_name for m in match.matches)
            table.add_row(match.input, f"[yellow]? {options}[/yellow]", "-")
        else:
            table.add_row(match.input, best.full_name, f"{best.confidence:.2f}")

    console.print(table)


@app.command()
def settle(
    trip_file: Path = typer.Argument(..., exists=True, dir_okay=False),
    fetch_rates: bool = typer.Option(
        False, "--fetch-rates", help="Look up missing exchange rates"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Show balances and suggested settlements for a trip.

    Expenses in another currency need a rate snapshot; with --fetch-rates
    missing rates are looked up in the local cache, then the rates API.
    """
    setup_logging(verbose)

    try:
        settings = load_settings()
        trip = load_trip(trip_file)

        db = Database(settings.database_path) if fetch_rates else None
        service = SettlementService(settings, db)

        summary = service.summarize(trip, fetch_rates=fetch_rates)
        display_summary(trip, summary)

    except (TripLedgerError, ValueError, OSError) as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals() and db is not None:
            db.close()


def display_summary(trip: Trip, summary: SettlementSummary):
    """Display balances and settlements in table format."""
    console.print(f"\n[bold]{trip.name}[/bold] ({summary.currency})")
    console.print(
        f"  Total expenses: {format_money(summary.total_expenses, summary.currency)}\n"
    )

    balances = Table(title="Balances", show_header=True, header_style="bold magenta")
    balances.add_column("Participant", style="cyan")
    balances.add_column("Net", justify="right")
    for balance in summary.balances:
        balances.add_row(
            balance.user_name, format_money(balance.net_balance, balance.currency)
        )
    console.print(balances)

    if summary.settlements:
        settlements = Table(
            title="Suggested Settlements", show_header=True, header_style="bold magenta"
        )
        settlements.add_column("From", style="cyan")
        settlements.add_column("To", style="cyan")
        settlements.add_column("Amount", justify="right")
        for settlement in summary.settlements:
            settlements.add_row(
                settlement.from_user_name,
                settlement.to_user_name,
                format_money(settlement.amount, settlement.currency),
            )
        console.print(settlements)
    else:
        console.print("[green]Everyone is settled up.[/green]")

    for excluded in summary.excluded_expenses:
        console.print(
            f"[yellow]⚠️  Excluded '{excluded.description}': "
            f"{excluded.reason}[/yellow]"
        )
    for warning in summary.warnings:
        console.print(f"[yellow]⚠️  {warning}[/yellow]")

    residual = apply_settlements(summary.balances, summary.settlements)
    if all(amount == 0 for amount in residual.values()):
        console.print("\n[green]✓ Settlements close every balance[/green]")
    else:
        console.print(
            f"\n[red]✗ Balances left open after settlement: {residual}[/red]"
        )


@app.command()
def shares(
    trip_file: Path = typer.Argument(..., exists=True, dir_okay=False),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show the computed share of every participant for each expense."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        trip = load_trip(trip_file)
        service = SettlementService(settings)
        names_by_id = {p.user_id: p.full_name for p in trip.participants}

        for expense_input in trip.expenses:
            expense, error, payer_warning = service.build_expense(trip, expense_input)

            console.print(
                f"\n[bold]{expense_input.description}[/bold] "
                f"{format_money(expense_input.amount, expense_input.currency)}"
            )
            if expense_input.metadata:
                summary = describe_metadata(expense_input.metadata)
                console.print(f"  [dim]{summary}[/dim]")
            if payer_warning:
                console.print(f"  [yellow]⚠️  {payer_warning}[/yellow]")
            if expense is None:
                console.print(f"  [red]✗ {error}[/red]")
                continue

            console.print(
                f"  Paid by {names_by_id.get(expense.payer_id, expense.payer_id)}"
            )

            table = Table(show_header=True, header_style="bold magenta")
            table.add_column("Participant", style="cyan")
            table.add_column("Type")
            table.add_column("Share", justify="right")
            for share in expense.participants:
                table.add_row(
                    names_by_id.get(share.user_id, share.user_id),
                    share.share_type,
                    format_money(share.share_amount, expense.currency),
                )
            console.print(table)

    except (TripLedgerError, ValueError, OSError) as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)


if __name__ == "__main__":
    app()
