"""
Command-line interface for docforge.
"""

import logging
import os
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from docforge import __version__
from docforge.assemble import load_document
from docforge.config import Settings
from docforge.exceptions import DocforgeError
from docforge.orchestrator import Operation, Orchestrator, run_local

console = Console()


def format_file_size(size):
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.1f} {unit}" if unit != "B" else f"{size} B"
        size /= 1024


def _load_settings():
    try:
        return Settings.from_env()
    except DocforgeError as e:
        console.print(f"[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)


def _run(ctx, operation, inputs, output, parameter=None):
    """Run one operation on local files and print a short summary."""
    orchestrator = Orchestrator(ctx.obj["settings"])
    try:
        result = run_local(operation, inputs, output, parameter=parameter, orchestrator=orchestrator)
    except DocforgeError as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)
    finally:
        orchestrator.shutdown()

    unit = "entries" if result.media_type == "application/zip" else "pages"
    console.print(
        f"\n[bold green]✓ {operation.value}:[/bold green] {result.path} "
        f"[dim]({result.count} {unit}, {format_file_size(result.path.stat().st_size)})[/dim]"
    )


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default=None, help="Logging level (defaults to DOCFORGE_LOG_LEVEL).")
@click.pass_context
def cli(ctx, log_level):
    """
    docforge - merge, split, reorder and convert PDF documents.
    """
    settings = _load_settings()
    level = (log_level or settings.log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
@click.option("--reload", is_flag=True, help="Reload on code changes.")
@click.pass_context
def serve(ctx, host, port, reload):
    """Start the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "apps.backend.app.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=ctx.obj["settings"].log_level.lower(),
    )


@cli.command()
@click.argument("input_pdf", type=click.Path(exists=True, dir_okay=False))
def info(input_pdf):
    """
    Display information about a PDF file.

    Example:

        docforge info input.pdf
    """
    try:
        document = load_document(input_pdf)
    except DocforgeError as e:
        console.print(f"[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)

    table = Table(title="PDF Information", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("File", os.path.basename(input_pdf))
    table.add_row("Pages", str(document.page_count))
    table.add_row("Size", format_file_size(os.path.getsize(input_pdf)))
    for key, value in sorted(document.metadata.items()):
        table.add_row(key.lstrip("/"), str(value))

    console.print()
    console.print(table)
    console.print()


@cli.command()
@click.argument("inputs", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", default="merged.pdf", show_default=True, type=click.Path())
@click.pass_context
def merge(ctx, inputs, output):
    """
    Merge PDFs in the order given.

    Example:

        docforge merge a.pdf b.pdf -o combined.pdf
    """
    _run(ctx, Operation.MERGE, inputs, output)


@cli.command()
@click.argument("inputs", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", default="images.pdf", show_default=True, type=click.Path())
@click.pass_context
def images(ctx, inputs, output):
    """Build a PDF with one page per JPEG or PNG image."""
    _run(ctx, Operation.IMAGES_TO_PDF, inputs, output)


@cli.command()
@click.argument("input_pdf", type=click.Path(exists=True, dir_okay=False))
@click.option("--range", "-r", "page_range", required=True, help='Pages to keep, e.g. "1-3,7".')
@click.option("--output", "-o", default="extracted.pdf", show_default=True, type=click.Path())
@click.pass_context
def extract(ctx, input_pdf, page_range, output):
    """
    Extract pages into a new PDF; each page is kept once.

    Example:

        docforge extract report.pdf -r "1-3,7"
    """
    _run(ctx, Operation.EXTRACT, [input_pdf], output, page_range)


@cli.command()
@click.argument("input_pdf", type=click.Path(exists=True, dir_okay=False))
@click.option("--order", required=True, help='New page order, e.g. "3,1,2,2".')
@click.option("--output", "-o", default="organized.pdf", show_default=True, type=click.Path())
@click.pass_context
def organize(ctx, input_pdf, order, output):
    """Reorder pages; pages may repeat or be left out."""
    _run(ctx, Operation.ORGANIZE, [input_pdf], output, order)


@cli.command()
@click.argument("input_pdf", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", default="split.zip", show_default=True, type=click.Path())
@click.pass_context
def split(ctx, input_pdf, output):
    """Split every page into its own PDF inside a ZIP archive."""
    _run(ctx, Operation.SPLIT, [input_pdf], output)


@cli.command()
@click.argument("input_pdf", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", default="images.zip", show_default=True, type=click.Path())
@click.pass_context
def rasterize(ctx, input_pdf, output):
    """Render every page to JPEG inside a ZIP archive."""
    _run(ctx, Operation.PDF_TO_JPG, [input_pdf], output)


@cli.command()
@click.argument("url")
@click.option("--output", "-o", default="website.pdf", show_default=True, type=click.Path())
@click.pass_context
def render(ctx, url, output):
    """Print a web page to PDF with a headless browser."""
    _run(ctx, Operation.HTML_TO_PDF, [], output, url)


if __name__ == "__main__":
    cli()
