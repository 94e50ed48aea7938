"""
CLI interface for the backend cost calculator.

Provides command-line access to pricing, saved estimates and export.
"""

import sys
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from backend_cost_calc.config.loader import dump_usage_profiles, load_usage_profiles
from backend_cost_calc.core.aggregator import compute_provider_totals
from backend_cost_calc.core.session import EstimateSession
from backend_cost_calc.core.usage import DEFAULT_USAGE_PROFILES, Category, Provider
from backend_cost_calc.export.exporters import EXPORT_FORMATS, export_estimate
from backend_cost_calc.storage.models import Estimate
from backend_cost_calc.storage.repository import EstimateRepository
from backend_cost_calc.utils.logging import configure_logging

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

PROVIDER_LABELS = {
    Provider.SUPABASE: "Supabase",
    Provider.FIREBASE: "Firebase",
    Provider.AWS: "AWS",
    Provider.NEON: "Neon",
    Provider.PLANETSCALE: "PlanetScale",
}

_DB_OPTION_HELP = "Path to the SQLite database (defaults to $BACKEND_COST_CALC_DB)"


def get_repository(db_path: Optional[str] = None) -> EstimateRepository:
    """Repository for the CLI, with the schema in place."""
    repository = EstimateRepository(db_path)
    repository.initialize_schema()
    return repository


def _load_session(profile: Optional[str], name: str = "") -> EstimateSession:
    profiles = load_usage_profiles(profile) if profile else DEFAULT_USAGE_PROFILES
    return EstimateSession(profiles=profiles, name=name)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Render logs as JSON")
):
    """Backend Cost Calculator CLI."""
    configure_logging(level="DEBUG" if verbose else "WARNING", json=json_logs)
    if ctx.invoked_subcommand is None:
        console.print("Backend Cost Calculator - Use --help to see available commands")


@app.command()
def calculate(
    profile: Optional[str] = typer.Option(
        None,
        "--profile",
        "-p",
        help="YAML usage profile (defaults to the seed profile)"
    )
):
    """Price a usage profile across all providers."""
    try:
        session = _load_session(profile)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    _display_costs(session.costs)
    console.print(f"\n[bold]Total (Supabase):[/bold] {_format_currency(session.total)}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def template():
    """Print the seed usage profile as YAML, ready to edit."""
    typer.echo(dump_usage_profiles(DEFAULT_USAGE_PROFILES), nl=False)


@app.command()
def init(db: Optional[str] = typer.Option(None, "--db", help=_DB_OPTION_HELP)):
    """Initialize the estimates database."""
    try:
        get_repository(db)
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def save(
    name: str = typer.Argument(..., help="Name of the estimate"),
    user: str = typer.Option(..., "--user", "-u", help="Owner of the estimate"),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="YAML usage profile"),
    replace_id: Optional[str] = typer.Option(
        None,
        "--replace",
        help="Id of a saved estimate to overwrite instead of creating a new one"
    ),
    db: Optional[str] = typer.Option(None, "--db", help=_DB_OPTION_HELP)
):
    """Price a usage profile and save it as a named estimate."""
    try:
        repository = get_repository(db)
        if replace_id:
            existing = repository.get(replace_id)
            if existing is None or existing.user_id != user:
                console.print(f"[red]Error:[/] Estimate not found: {replace_id}")
                sys.exit(EXIT_CODE_FAIL)
            session = EstimateSession()
            session.load(existing)
            session.name = name
            if profile:
                # Fields the file leaves out keep their saved values
                session.set_profiles(load_usage_profiles(profile, defaults=existing.profiles))
            estimate = repository.replace(session.build_estimate(user))
        else:
            session = _load_session(profile, name)
            estimate = repository.save(session.build_estimate(user))
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"[green]✓[/] Saved estimate [bold]{estimate.name}[/bold] ({estimate.id})")
    console.print(f"Total: {_format_currency(estimate.total_cost)}")
    sys.exit(EXIT_CODE_PASS)


@app.command("list")
def list_estimates(
    user: str = typer.Option(..., "--user", "-u", help="Owner of the estimates"),
    db: Optional[str] = typer.Option(None, "--db", help=_DB_OPTION_HELP)
):
    """List saved estimates, newest first."""
    try:
        estimates = get_repository(db).list_for_user(user)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if not estimates:
        console.print("\n[bold yellow]No saved estimates[/]")
        console.print("Create one with `backend-cost-calc save NAME --user ID`\n")
        sys.exit(EXIT_CODE_PASS)

    table = Table(title="Saved Estimates")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Created")
    table.add_column("Total", justify="right")
    for estimate in estimates:
        table.add_row(
            estimate.id,
            estimate.name,
            estimate.created_at.strftime("%Y-%m-%d"),
            _format_currency(estimate.total_cost)
        )
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def show(
    estimate_id: str = typer.Argument(..., help="Id of the estimate"),
    db: Optional[str] = typer.Option(None, "--db", help=_DB_OPTION_HELP)
):
    """Show the cost breakdown of a saved estimate."""
    try:
        estimate = get_repository(db).get(estimate_id)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if estimate is None:
        console.print(f"[red]Error:[/] Estimate not found: {estimate_id}")
        sys.exit(EXIT_CODE_FAIL)

    _display_estimate(estimate)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def delete(
    estimate_id: str = typer.Argument(..., help="Id of the estimate"),
    user: str = typer.Option(..., "--user", "-u", help="Owner of the estimate"),
    db: Optional[str] = typer.Option(None, "--db", help=_DB_OPTION_HELP)
):
    """Delete a saved estimate."""
    try:
        deleted = get_repository(db).delete(estimate_id, user)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if not deleted:
        console.print(f"[red]Error:[/] Estimate not found: {estimate_id}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"[green]✓[/] Deleted estimate {estimate_id}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def export(
    estimate_id: str = typer.Argument(..., help="Id of the estimate"),
    fmt: str = typer.Option("csv", "--format", "-f", help=f"One of: {', '.join(EXPORT_FORMATS)}"),
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file (defaults to estimate-<id>.<format>)"
    ),
    db: Optional[str] = typer.Option(None, "--db", help=_DB_OPTION_HELP)
):
    """Export a saved estimate to CSV or JSON."""
    try:
        estimate = get_repository(db).get(estimate_id)
        if estimate is None:
            console.print(f"[red]Error:[/] Estimate not found: {estimate_id}")
            sys.exit(EXIT_CODE_FAIL)
        path = export_estimate(estimate, fmt, output)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"[green]✓[/] Exported to {path}")
    sys.exit(EXIT_CODE_PASS)


def _format_currency(amount: float) -> str:
    """Format currency with proper symbols and formatting."""
    return f"${abs(amount):,.2f}"


def _display_costs(costs) -> None:
    """Display per-category costs with one column per provider."""
    table = Table(title="Monthly Cost Comparison")
    table.add_column("Service")
    for provider in Provider:
        table.add_column(PROVIDER_LABELS[provider], justify="right")

    for category in Category:
        breakdown = costs[category]
        table.add_row(
            category.value.capitalize(),
            *[
                _format_currency(breakdown.amounts[provider])
                if provider in breakdown.amounts else "-"
                for provider in Provider
            ]
        )

    totals = compute_provider_totals(costs)
    table.add_row(
        "[bold]All modelled[/bold]",
        *[_format_currency(totals[provider]) for provider in Provider]
    )
    console.print(table)


def _display_estimate(estimate: Estimate) -> None:
    console.print(f"\n[bold]{estimate.name}[/bold]")
    console.print(f"Created {estimate.created_at.strftime('%Y-%m-%d')}")
    _display_costs(estimate.costs)
    console.print(f"\n[bold]Total (Supabase):[/bold] {_format_currency(estimate.total_cost)}")


if __name__ == "__main__":
    app()
