"""CLI for Catalog Tinkerer.

Commands:
- list: Extract a catalog and list its images
- export: Extract a catalog and export images to a directory
- copy: Stage images in a private temporary directory for a handoff
- info: Show configuration
"""

from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from .config import settings
from .decoding import create_decoder
from .export import ExportExecutor
from .logging import setup_logging
from .progress import OperationState, ProgressHandle
from .session import CatalogSession

app = typer.Typer(
    name="catalog-tinkerer",
    help="Browse, search and export images from asset catalogs",
)
console = Console()

POLL_INTERVAL = 0.05


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Catalog Tinkerer - extract and export images from asset catalogs."""
    log_level = "DEBUG" if verbose else settings.log_level
    setup_logging(level=log_level, json_output=settings.log_json)
    logger.debug("CLI initialized with log level: {}", log_level)


def _follow(progress: ProgressHandle, description: str) -> None:
    """Render a handle as a rich progress bar until it finishes."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    ) as bar:
        task = bar.add_task(description, total=1.0)
        try:
            while not progress.wait(POLL_INTERVAL):
                bar.update(task, completed=progress.fraction_complete)
        except KeyboardInterrupt:
            logger.info("Interrupted, cancelling {}", progress.label)
            console.print("[yellow]Cancelling...[/]")
            progress.cancel()
            progress.wait()
        bar.update(task, completed=progress.fraction_complete)


def _open(session: CatalogSession, source: Path, search: str, max_count: int | None) -> None:
    """Extract a catalog, exiting with status 1 if extraction does not complete."""
    options = settings.decoder_options(max_count=max_count)
    progress = session.open(source, options)
    _follow(progress, f"Extracting {source.name}...")
    session.wait()

    if progress.state is not OperationState.COMPLETED:
        color = "yellow" if progress.state is OperationState.CANCELLED else "red"
        console.print(f"[{color}]{session.status}[/]")
        raise typer.Exit(1)

    session.search_term = search
    if session.status:
        console.print(f"[yellow]{session.status}[/]")


@app.command("list")
def list_images(
    source: Path = typer.Argument(..., help="Catalog to read"),
    search: str = typer.Option("", "--search", "-s", help="Only show names containing this"),
    max_count: int = typer.Option(None, "--max-count", "-n", help="Stop after N images"),
):
    """Extract a catalog and list its images."""
    logger.info("Listing images in {}", source)
    with CatalogSession(create_decoder(settings.decoder_type)) as session:
        _open(session, source, search, max_count)

        records = session.filtered_records
        table = Table(title=f"{source.name} ({len(records)} of {len(session.records)} images)")
        table.add_column("#", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Filename", style="green")
        table.add_column("Size", justify="right")
        for record in records:
            table.add_row(str(record.index), record.name, record.filename, f"{record.size:,}")
        console.print(table)


@app.command()
def export(
    source: Path = typer.Argument(..., help="Catalog to read"),
    destination: Path = typer.Argument(None, help="Directory to export to"),
    search: str = typer.Option("", "--search", "-s", help="Only export names containing this"),
    max_count: int = typer.Option(None, "--max-count", "-n", help="Stop after N images"),
    create: bool = typer.Option(False, "--create", help="Create the destination if missing"),
):
    """Extract a catalog and export its images to a directory."""
    destination = destination or settings.export_path
    logger.info("Exporting images from {} to {}", source, destination)
    if create:
        destination.mkdir(parents=True, exist_ok=True)

    with CatalogSession(create_decoder(settings.decoder_type)) as session:
        _open(session, source, search, max_count)

        progress = session.export_all(destination)
        if progress is None:
            console.print("[yellow]No images to export[/]")
            return
        _follow(progress, f"Exporting to {destination}...")

        report = progress.result
        if progress.state is OperationState.FAILED:
            console.print(f"[red]{progress.error}[/]")
            raise typer.Exit(1)
        if progress.state is OperationState.CANCELLED:
            console.print(f"[yellow]Export cancelled after {len(report.written)} files[/]")
            raise typer.Exit(1)

        console.print(f"[green]✓ Exported {len(report.written)} images to {destination}[/]")
        if report.failures:
            console.print(f"[yellow]{report.failure_count} images could not be written[/]")
            for failure in report.failures:
                logger.debug("Failed: {} ({})", failure.filename, failure.reason)


@app.command()
def copy(
    source: Path = typer.Argument(..., help="Catalog to read"),
    search: str = typer.Option("", "--search", "-s", help="Only stage names containing this"),
):
    """Stage images in a private temporary directory and print their paths."""
    # The staging directory outlives this command so the printed paths stay usable.
    executor = ExportExecutor(max_workers=1, temp_dir_prefix=settings.temp_dir_prefix)
    session = CatalogSession(create_decoder(settings.decoder_type), executor=executor)
    try:
        _open(session, source, search, None)
        paths = session.copy(range(len(session.filtered_records)))
    finally:
        session.close()
        executor.close(keep_temp=True)

    for path in paths:
        console.print(str(path), soft_wrap=True, highlight=False)
    logger.info("Staged {} images", len(paths))


@app.command()
def info():
    """Show configuration."""
    console.print("[bold blue]Catalog Tinkerer Configuration[/]")

    table = Table(title="Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Decoder", settings.decoder_type)
    table.add_row("Export Directory", settings.export_dir)
    table.add_row("Export Workers", str(settings.export_workers))
    table.add_row("Ignore Packed Assets", str(settings.ignore_packed_assets))
    table.add_row(
        "Distinguish Theme Stores", str(settings.distinguish_catalogs_from_theme_stores)
    )
    table.add_row("Max Count", str(settings.max_count or "unlimited"))
    table.add_row("Log Level", settings.log_level)

    console.print(table)


if __name__ == "__main__":
    app()
