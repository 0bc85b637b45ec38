"""Portfolio Engine developer CLI.

Drives the engine against a SQLite state store.

Examples:
    # Create a 60/40 portfolio at tick 100
    portfolio-engine --caller alice --tick 100 create \\
        -t token-a:6000 -t token-b:4000

    # Show a portfolio and its allocations
    portfolio-engine show 1

    # Check whether it is due for rebalancing at tick 300
    portfolio-engine --tick 300 status 1

    # Record a rebalance
    portfolio-engine --caller alice --tick 300 rebalance 1
"""

from typing import List, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from portfolio_engine.api.portfolio_api import PortfolioAPI
from portfolio_engine.portfolio.clock import LogicalClock
from portfolio_engine.utils.config import load_engine_config
from portfolio_engine.utils.exceptions import PortfolioEngineError, PortfolioError
from portfolio_engine.utils.logging import setup_logging

console = Console()


def parse_allocations(values: Tuple[str, ...]) -> Tuple[List[str], List[int]]:
    """Parse ``token:percentage`` strings into token and percentage lists.

    Raises:
        click.BadParameter: If an entry is malformed
    """
    tokens = []
    percentages = []
    for value in values:
        if ":" not in value:
            raise click.BadParameter(
                f"Invalid allocation '{value}', expected 'token:percentage'"
            )
        token, percentage = value.rsplit(":", 1)
        try:
            percentages.append(int(percentage))
        except ValueError as e:
            raise click.BadParameter(
                f"Percentage in '{value}' must be an integer (basis points)"
            ) from e
        tokens.append(token)
    return tokens, percentages


def _fail(error: PortfolioEngineError) -> None:
    code = getattr(error, "code", type(error).__name__)
    console.print(f"[red]✗ {code}: {escape(str(error))}[/red]")
    raise SystemExit(1)


@click.group()
@click.option(
    "--config", "config_file",
    type=click.Path(exists=True, dir_okay=False), help="YAML config file",
)
@click.option("--db", "db_path", type=click.Path(), help="SQLite database path")
@click.option("--tick", type=int, default=0, show_default=True, help="Current tick")
@click.option("--caller", default=None, help="Calling account")
@click.pass_context
def cli(ctx, config_file, db_path, tick, caller):
    """Portfolio Engine"""
    config = load_engine_config(config_file)
    setup_logging(level=config.get("logging.level", "INFO"))

    config.set("storage.backend", "sqlite")
    if db_path:
        config.set("storage.db_path", db_path)

    try:
        api = PortfolioAPI.from_config(config, clock=LogicalClock(start=tick))
    except PortfolioEngineError as e:
        _fail(e)

    ctx.obj = {"api": api, "caller": caller}
    ctx.call_on_close(api.close)


def _require_caller(ctx) -> str:
    caller = ctx.obj["caller"]
    if not caller:
        raise click.UsageError("--caller is required for this command")
    return caller


@cli.command()
@click.option(
    "-t", "--allocation", "allocations", multiple=True, required=True,
    help="token:percentage pair, percentage in basis points",
)
@click.pass_context
def create(ctx, allocations):
    """Create a portfolio owned by --caller."""
    caller = _require_caller(ctx)
    tokens, percentages = parse_allocations(allocations)
    try:
        portfolio_id = ctx.obj["api"].create_portfolio(caller, tokens, percentages)
    except PortfolioError as e:
        _fail(e)
    console.print(f"[green]✓ Created portfolio {portfolio_id}[/green]")


@cli.command()
@click.argument("portfolio_id", type=int)
@click.argument("slot", type=int)
@click.argument("percentage", type=int)
@click.pass_context
def update(ctx, portfolio_id, slot, percentage):
    """Set the target percentage of one slot."""
    caller = _require_caller(ctx)
    try:
        ctx.obj["api"].update_portfolio_allocation(caller, portfolio_id, slot, percentage)
    except PortfolioError as e:
        _fail(e)
    console.print(
        f"[green]✓ Portfolio {portfolio_id} slot {slot} set to {percentage} bps[/green]"
    )


@cli.command()
@click.argument("portfolio_id", type=int)
@click.pass_context
def rebalance(ctx, portfolio_id):
    """Record a rebalance at the current tick."""
    caller = _require_caller(ctx)
    api = ctx.obj["api"]
    try:
        api.rebalance_portfolio(caller, portfolio_id)
    except PortfolioError as e:
        _fail(e)
    console.print(
        f"[green]✓ Portfolio {portfolio_id} rebalanced at tick {api.clock.now()}[/green]"
    )


@cli.command()
@click.argument("portfolio_id", type=int)
@click.pass_context
def show(ctx, portfolio_id):
    """Show portfolio metadata and allocations."""
    api = ctx.obj["api"]
    portfolio = api.get_portfolio(portfolio_id)
    if portfolio is None:
        console.print(f"[yellow]Portfolio {portfolio_id} not found[/yellow]")
        raise SystemExit(1)

    table = Table(title=f"Portfolio {portfolio_id}")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Owner", escape(portfolio.owner))
    table.add_row("Created At", str(portfolio.created_at))
    table.add_row("Last Rebalanced", str(portfolio.last_rebalanced))
    table.add_row("Total Value", f"{portfolio.total_value:,}")
    table.add_row("Active", str(portfolio.active))
    table.add_row("Slots", str(portfolio.slot_count))
    console.print(table)

    allocations = api.get_allocation_table(portfolio_id)
    table = Table(title="Allocations")
    table.add_column("Slot", justify="right")
    table.add_column("Token", style="cyan")
    table.add_column("Target (bps)", justify="right")
    table.add_column("Weight", justify="right")
    table.add_column("Amount", justify="right")
    for slot, row in allocations.iterrows():
        table.add_row(
            str(slot),
            escape(row["token"]),
            str(row["target_percentage"]),
            f"{row['target_weight']:.2%}",
            f"{row['current_amount']:,}",
        )
    console.print(table)


@cli.command()
@click.argument("account")
@click.pass_context
def user(ctx, account):
    """List the portfolio ids owned by ACCOUNT."""
    portfolio_ids = ctx.obj["api"].get_user_portfolios(account)
    if not portfolio_ids:
        console.print(f"No portfolios for {escape(account)}")
        return
    console.print(", ".join(str(pid) for pid in portfolio_ids))


@cli.command()
@click.argument("portfolio_id", type=int)
@click.pass_context
def status(ctx, portfolio_id):
    """Show whether a portfolio is due for rebalancing."""
    try:
        result = ctx.obj["api"].calculate_rebalance_amounts(portfolio_id)
    except PortfolioError as e:
        _fail(e)

    label = "[red]yes[/red]" if result.needs_rebalance else "[green]no[/green]"
    console.print(
        f"Portfolio {result.portfolio_id}: total value {result.total_value:,}, "
        f"needs rebalance: {label}"
    )


if __name__ == "__main__":
    cli()
