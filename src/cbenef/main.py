"""
Command-line interface for the CBenef extractor.
"""
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table
from loguru import logger

from cbenef.library import CBenefLibrary
from cbenef.models import BenefitRecord, EnvironmentSettings, Settings
from cbenef.utils import ExcelReporter

app = typer.Typer(
    name="cbenef",
    help="Extract and search Brazilian state CBenef benefit codes",
    add_completion=False,
)
console = Console()

_env_settings = EnvironmentSettings()
_library: Optional[CBenefLibrary] = None
_config_path: Path = Path(_env_settings.config_path)


def setup_logging(log_level: str = "INFO"):
    """Configure logging"""
    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
    )

    logs_dir = Path("logs")
    logs_dir.mkdir(exist_ok=True)

    logger.add(
        str(logs_dir / "cbenef_{time:YYYY-MM-DD}.log"),
        rotation="1 day",
        retention="7 days",
        level=log_level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}"
    )


def get_library() -> CBenefLibrary:
    """Get or create the library instance."""
    global _library
    if _library is None:
        _library = CBenefLibrary.from_settings(Settings.load_from_toml(_config_path))
    return _library


def print_benefits(records: List[BenefitRecord], title: str, limit: int = 50):
    if not records:
        console.print("No benefits found")
        return

    table = Table(title=f"{title} ({len(records)} benefits)")
    table.add_column("Code", style="cyan")
    table.add_column("Type")
    table.add_column("Start", style="dim")
    table.add_column("End", style="dim")
    table.add_column("Description")

    for record in records[:limit]:
        table.add_row(
            record.full_code,
            record.benefit_type.value,
            record.start_date.strftime("%d/%m/%Y"),
            record.end_date.strftime("%d/%m/%Y") if record.end_date else "-",
            record.description[:80],
        )

    console.print(table)
    if len(records) > limit:
        console.print(f"[dim]... {len(records) - limit} more not shown[/dim]")


@app.command()
def states():
    """List the enabled states and their sources."""
    library = get_library()

    table = Table(title="Available states")
    table.add_column("State", style="cyan")
    table.add_column("Priority", justify="right")
    table.add_column("Source")

    for state_code in library.get_available_states():
        info = library.get_extractor_info(state_code) or {}
        table.add_row(state_code, str(info.get("priority", "")), info.get("sourceName", ""))

    console.print(table)


@app.command()
def extract(
    state: Optional[str] = typer.Argument(None, help="State code (all enabled states if omitted)"),
    use_cache: bool = typer.Option(True, "--cache/--no-cache", help="Go through the cache when enabled"),
):
    """Extract the benefits of one or all states."""
    library = get_library()
    if state:
        records = library.extract_benefits_by_state(state, use_cache=use_cache)
        title = f"Benefits of {state.upper()}"
    else:
        records = library.extract_all_benefits(use_cache=use_cache)
        title = "Benefits of all states"
    print_benefits(records, title)


@app.command()
def search(
    code: Optional[str] = typer.Option(None, "--code", "-c", help="Code fragment"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Description fragment"),
    state: Optional[str] = typer.Option(None, "--state", "-s", help="Restrict to one state"),
    include_inactive: bool = typer.Option(False, "--all", "-a", help="Include benefits out of validity"),
):
    """Search benefits across states."""
    records = get_library().search_benefits(code, description, state, active_only=not include_inactive)
    print_benefits(records, "Search results")


@app.command()
def find(full_code: str = typer.Argument(..., help="Full code, e.g. SC850001")):
    """Look up a single benefit by its full code."""
    record = get_library().find_benefit_by_code(full_code)
    if record is None:
        console.print(f"[red]✗[/red] Benefit {full_code} not found")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] {record.full_code} - {record.benefit_type.value}")
    console.print(f"  {record.description}")
    console.print(f"  Valid from {record.start_date:%d/%m/%Y}"
                  + (f" to {record.end_date:%d/%m/%Y}" if record.end_date else ""))
    if record.applicable_tax_situation_codes:
        console.print(f"  CSTs: {', '.join(record.applicable_tax_situation_codes)}")


@app.command()
def availability(state: Optional[str] = typer.Argument(None, help="State code (all enabled states if omitted)")):
    """Check whether the state sources answer."""
    library = get_library()
    for state_code in ([state.upper()] if state else library.get_available_states()):
        if library.check_availability(state_code):
            console.print(f"[green]✓[/green] {state_code} available")
        else:
            console.print(f"[red]✗[/red] {state_code} unavailable")


@app.command()
def sync():
    """Run a synchronisation pass over the configured states."""
    results = get_library().sync()
    for state_code, result in sorted(results.items()):
        if result.is_success():
            console.print(f"[green]✓[/green] {state_code}: {result.record_count} benefits")
        else:
            console.print(f"[red]✗[/red] {state_code}: {result.status.value} {result.error_message or ''}")


@app.command()
def export(
    state: Optional[str] = typer.Option(None, "--state", "-s", help="Export a single state"),
    output_dir: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory"),
):
    """Export benefits to an Excel workbook."""
    library = get_library()
    records = library.extract_benefits_by_state(state) if state else library.extract_all_benefits()
    if not records:
        console.print("[red]Error:[/red] No benefits to export")
        raise typer.Exit(1)

    reporter = ExcelReporter(output_dir or Path(_env_settings.output_dir))
    output_file = reporter.generate_report(records)
    console.print(f"[green]✓[/green] Exported {len(records)} benefits to {output_file}")


@app.callback()
def main(
    config: Optional[Path] = typer.Option(None, "--config", help="Path to settings.toml"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """CBenef - Brazilian state tax-benefit codes."""
    global _config_path
    if config is not None:
        _config_path = config
    setup_logging("DEBUG" if debug else _env_settings.log_level)


if __name__ == "__main__":
    app()
