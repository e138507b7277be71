"""Command-line interface for bundlestats."""

from dotenv import load_dotenv

load_dotenv()

import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from bundlestats import __version__
from bundlestats.collectors.bundlephobia import DEFAULT_TOOL, BundlePhobiaCollector
from bundlestats.db.store import DATABASE_PATH, DatabaseError, PackageDatabase
from bundlestats.services.batch import BatchResult, CollectOutcome, run_collection
from bundlestats.services.cache import CACHE_FRESHNESS_DAYS, SCRAPE_ERROR, ScrapeCache
from bundlestats.suggestions import default_packages, load_package_list

app = typer.Typer(
    name="bundlestats",
    help="Collect and cache bundle sizes for npm packages via bundle-phobia",
    add_completion=False,
)
console = Console()

# Keys in a package entry that are not versions
ENTRY_META_KEYS = ("latest", "lastScraped")


def version_callback(value: bool):
    if value:
        console.print(f"bundlestats version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
):
    """bundlestats - bundle size collection for npm packages."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def human_size(size_bytes: Any) -> str:
    """Convert bytes to human-readable format (e.g., 5.2KB)."""
    if isinstance(size_bytes, bool) or not isinstance(size_bytes, (int, float)):
        return str(size_bytes)

    for unit in ["B", "KB", "MB"]:
        if abs(size_bytes) < 1024:
            if unit == "B":
                return f"{size_bytes:g}{unit}"
            return f"{size_bytes:.1f}{unit}"
        size_bytes /= 1024

    return f"{size_bytes:.1f}GB"


def _format_last_scraped(value: Any) -> str:
    if value == SCRAPE_ERROR:
        return f"[red]{SCRAPE_ERROR}[/red]"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000).strftime("%Y-%m-%d %H:%M")
    return "never"


def _load_database(path: str) -> PackageDatabase:
    try:
        return PackageDatabase.load(path)
    except DatabaseError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)


@app.command()
def collect(
    packages_file: Optional[str] = typer.Option(
        None, "--packages-file", "-p", help="YAML file with packages to collect (default: built-in suggestions)"
    ),
    database: str = typer.Option(DATABASE_PATH, "--database", "-d", help="Path to the JSON database"),
    tool: str = typer.Option(DEFAULT_TOOL, "--tool", "-t", help="Command used to run bundle-phobia"),
    max_age: int = typer.Option(CACHE_FRESHNESS_DAYS, "--max-age", help="Re-collect packages older than N days"),
    force: bool = typer.Option(False, "--force", "-f", help="Collect even if cached data is fresh"),
):
    """Collect bundle sizes for a list of packages into the database."""
    if packages_file:
        try:
            names = load_package_list(packages_file)
        except (OSError, ValueError) as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            raise typer.Exit(1)
    else:
        names = default_packages()

    result = asyncio.run(_collect(names, database, tool, max_age, force))
    if not result.success:
        raise typer.Exit(1)


async def _collect(names: list[str], database: str, tool: str, max_age: int, force: bool) -> BatchResult:
    """Internal async function to run a collection."""
    collector = BundlePhobiaCollector(tool)
    if not collector.is_available():
        console.print(f"[yellow]Warning: {escape(tool)} not found on PATH[/yellow]")

    def report(index: int, total: int, name: str, outcome: CollectOutcome):
        console.print(f"\n◉ ({index}/{total}) {escape(name)}")
        if outcome.status == "skipped":
            console.print("   ❕ Skipping")
        elif outcome.status == "error":
            console.print(f"   [red]❌ Failed to run {escape(tool)} {escape(name)} | {escape(outcome.error or '')}[/red]")
            console.print("Exiting early...")
        else:
            if outcome.parse_errors:
                console.print(f"   [red]❌ Failed to parse JSON | {escape(name)}[/red]")
            if outcome.last_scraped == SCRAPE_ERROR:
                console.print("   ❕ Marked for retry on the next run")
            for i, version in enumerate(outcome.versions):
                latest = " (latest)" if i == 0 else ""
                console.print(f"   [green]✔[/green] {escape(version)}{latest}")
            if not outcome.versions:
                console.print("   [dim]No valid records[/dim]")

    console.print(f"Collecting {len(names)} libraries...")
    try:
        result = await run_collection(
            names,
            database,
            collector,
            freshness_days=max_age,
            skip_fresh=not force,
            progress_callback=report,
        )
    except DatabaseError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print(f"\n◉ Saving database to {escape(database)}...")
    if result.saved:
        console.print(f"   [green]✔ Done![/green] Wrote {escape(str(result.database_path))}")
    else:
        console.print(f"   [red]❌ Failed saving | {escape(result.error_details[-1])}[/red]")

    console.print(
        f"\n{result.collected} collected, {result.skipped} skipped, {result.errors} errors "
        f"({result.total - result.processed - result.errors} not processed)."
    )
    console.print(f"Elapsed Time: {result.elapsed_seconds:.3f}")
    return result


@app.command()
def show(
    package: str = typer.Argument(..., help="Package name to display"),
    database: str = typer.Option(DATABASE_PATH, "--database", "-d", help="Path to the JSON database"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """Show cached bundle sizes for a package."""
    db = _load_database(database)
    entry = db.get(package)
    if not entry:
        console.print(f"[yellow]No cached data for {escape(package)}[/yellow]")
        raise typer.Exit(1)

    if output_json:
        console.print_json(json.dumps(entry))
        return

    latest = entry.get("latest") or {}
    table = Table(title=f"[bold]{escape(package)}[/bold]")
    table.add_column("Version", style="cyan")
    table.add_column("Gzip", justify="right", style="magenta")
    table.add_column("Latest")

    for key, record in entry.items():
        if key in ENTRY_META_KEYS or not isinstance(record, dict):
            continue
        marker = "✔" if key == latest.get("version") else ""
        table.add_row(escape(key), human_size(record.get("gzip")), marker)

    console.print(table)
    if latest.get("description"):
        console.print(f"[bold]Description:[/bold] {escape(str(latest['description']))}")
    if latest.get("repository"):
        console.print(f"[bold]Repository:[/bold] {escape(str(latest['repository']))}")
    console.print(f"[bold]Last collected:[/bold] {_format_last_scraped(entry.get('lastScraped'))}")


@app.command()
def status(
    database: str = typer.Option(DATABASE_PATH, "--database", "-d", help="Path to the JSON database"),
    max_age: int = typer.Option(CACHE_FRESHNESS_DAYS, "--max-age", help="Packages older than N days are stale"),
):
    """Summarize how fresh the cached packages are."""
    db = _load_database(database)
    if not len(db):
        console.print("No cached packages found.")
        return

    cache = ScrapeCache(db, freshness_days=max_age)
    fresh = stale = errored = 0
    for name in db:
        entry = db.get(name) or {}
        if entry.get("lastScraped") == SCRAPE_ERROR:
            errored += 1
        elif cache.is_fresh(name):
            fresh += 1
        else:
            stale += 1

    table = Table(title=f"Database: {escape(database)}")
    table.add_column("State", style="cyan")
    table.add_column("Packages", justify="right")
    table.add_row("Fresh", str(fresh))
    table.add_row("Stale", str(stale))
    table.add_row("[red]Errored[/red]", str(errored))
    table.add_section()
    table.add_row("[bold]Total[/bold]", f"[bold]{len(db)}[/bold]")
    console.print(table)


if __name__ == "__main__":
    app()
