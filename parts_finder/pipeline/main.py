"""CLI entry point for the parts price finder.

Prices a list of damaged parts for one vehicle and prints the cheapest
offer per part, with live eBay prices where available and RockAuto table
estimates otherwise.
"""

import asyncio
import re
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from parts_finder.models.config import ConfigManager, FinderConfig
from parts_finder.models.data_models import BatchOutcome, DamageItem, PriceSource
from parts_finder.pipeline.finder import PartsFinder
from parts_finder.pipeline.output import JSONOutputFormatter


console = Console()


def parse_part_option(value: str) -> DamageItem:
    """
    Parse a ``--part`` value.

    Accepts ``damage_id=part name`` or a bare part name, in which case the
    damage id is the part name slugified (``"front bumper"`` -> ``front_bumper``).
    """
    if "=" in value:
        damage_id, part_name = value.split("=", 1)
    else:
        damage_id, part_name = "", value
    part_name = part_name.strip()
    if not part_name:
        raise click.BadParameter(f"empty part name in {value!r}")
    damage_id = damage_id.strip() or re.sub(r"\W+", "_", part_name.lower()).strip("_")
    return DamageItem(damage_id=damage_id, part_name=part_name)


@click.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(path_type=Path),
    default="config/config.yaml",
    help="Path to configuration YAML file (ignored if missing)",
)
@click.option("--year", "-y", required=True, help="Vehicle model year")
@click.option("--make", "-m", required=True, help="Vehicle make, e.g. Honda")
@click.option("--model", "-M", "model_name", required=True, help="Vehicle model, e.g. Accord")
@click.option(
    "--part",
    "-p",
    "parts",
    multiple=True,
    required=True,
    help="Damaged part, as 'damage_id=part name' or just 'part name' (repeatable)",
)
@click.option(
    "--timeout",
    "-t",
    type=float,
    help="Batch search timeout in seconds (overrides config)",
)
@click.option(
    "--batch-size",
    "-b",
    type=int,
    help="Parts searched concurrently (overrides config)",
)
@click.option(
    "--rockauto-api/--no-rockauto-api",
    default=None,
    help="Enable the structured catalog API enrichment (overrides config)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Write the JSON response to this file",
)
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (overrides config)",
)
@click.option(
    "--no-progress",
    is_flag=True,
    help="Disable spinner and tables (useful for scripts)",
)
@click.version_option(version="1.0.0", prog_name="parts-finder")
def main(
    config: Path,
    year: str,
    make: str,
    model_name: str,
    parts: Tuple[str, ...],
    timeout: Optional[float],
    batch_size: Optional[int],
    rockauto_api: Optional[bool],
    output: Optional[Path],
    log_level: Optional[str],
    no_progress: bool,
) -> None:
    """
    Parts Finder - live and estimated part prices for collision repairs.

    Examples:

        # Price two parts for a 2018 Honda Accord
        $ parts-finder -y 2018 -m Honda -M Accord -p "front bumper" -p "headlight_broken=headlight"

        # Save the JSON response
        $ parts-finder -y 2018 -m Honda -M Accord -p hood -o out/parts.json
    """
    try:
        damages = [parse_part_option(value) for value in parts]

        cli_overrides = {
            "batch_timeout": timeout,
            "batch_size": batch_size,
            "rockauto_api_enabled": rockauto_api,
            "log_level": log_level.upper() if log_level else None,
        }
        finder_config = ConfigManager(config).load_config(cli_overrides)

        outcome = asyncio.run(
            _run_search(finder_config, damages, year, make, model_name, no_progress)
        )

        formatter = JSONOutputFormatter()
        if output:
            formatter.save(outcome, str(output))

        _display_results(outcome, formatter, output, no_progress)
        sys.exit(0)

    except KeyboardInterrupt:
        console.print("\n[yellow]Search interrupted by user[/yellow]")
        sys.exit(130)
    except click.BadParameter:
        raise
    except Exception as e:
        console.print(f"\n[red]Error:[/red] {e}", style="bold red")
        if "--debug" in sys.argv:
            console.print_exception()
        sys.exit(1)


async def _run_search(
    config: FinderConfig,
    damages: List[DamageItem],
    year: str,
    make: str,
    model: str,
    no_progress: bool,
) -> BatchOutcome:
    """Run one batch search, with a spinner unless disabled."""
    async with PartsFinder(config) as finder:
        if no_progress:
            return await finder.search(damages, year, make, model)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            progress.add_task(
                f"[cyan]Pricing {len(damages)} part(s) for {year} {make} {model}...",
                total=None,
            )
            return await finder.search(damages, year, make, model)


def _display_results(
    outcome: BatchOutcome,
    formatter: JSONOutputFormatter,
    output_path: Optional[Path],
    no_progress: bool,
) -> None:
    """Display per-part prices and the batch summary."""
    summary = formatter.summarize(outcome.results, degraded=outcome.timed_out)

    if no_progress:
        console.print(
            f"✓ {summary.total_parts} part(s), total cheapest ${summary.total_cheapest:.2f}"
        )
        if outcome.timed_out:
            console.print("! Live search timed out; showing estimates")
        if output_path:
            console.print(f"✓ Output saved to: {output_path}")
        return

    if outcome.timed_out:
        console.print("\n[yellow]Live search timed out - showing estimated prices[/yellow]")

    table = Table(title="Parts Pricing")
    table.add_column("Part", style="cyan")
    table.add_column("Cheapest", justify="right", style="green")
    table.add_column("Source", justify="center")
    table.add_column("Live Median", justify="right", style="magenta")
    table.add_column("Confidence", justify="center")
    table.add_column("Cached", justify="center", style="dim")

    for result in outcome.results:
        cheapest = result.cheapest
        badge = "N/A"
        if cheapest:
            badge = "[green]Live[/green]" if cheapest.price_source is PriceSource.LIVE else "[yellow]Est.[/yellow]"
        table.add_row(
            result.part_name,
            f"${cheapest.price:.2f}" if cheapest else "N/A",
            badge,
            f"${result.live_median_price:.2f}" if result.live_median_price else "-",
            result.live_confidence.value if result.live_confidence else "-",
            "yes" if result.cached else "no",
        )

    console.print()
    console.print(table)
    console.print(
        f"\n[bold]Total (cheapest):[/bold] ${summary.total_cheapest:.2f}  "
        f"[dim]{summary.parts_with_live_price}/{summary.total_parts} with live prices[/dim]"
    )
    if output_path:
        console.print(f"[bold]Output saved to:[/bold] {output_path}")
    console.print()


if __name__ == "__main__":
    main()
