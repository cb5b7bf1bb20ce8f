"""
Command-line interface for epubtotxt.
"""

import json
import logging
import sys
import time
from pathlib import Path
from typing import NoReturn, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .converter import EPUBConverter, derive_output_path, write_text_file
from .errors import EPUBToTxtError
from .parser import resolve_spine
from .rewrite import load_rules

console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool) -> None:
    """Route library logging through rich; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def fail(message: str) -> NoReturn:
    """Report a fatal error and exit with status 1."""
    console.print(f"[red]Error:[/red] {escape(message)}", soft_wrap=True)
    sys.exit(1)


def check_epub_path(filepath: Path) -> None:
    if filepath.suffix.lower() != ".epub":
        fail(f"Not a valid epub file: {filepath}")


@click.group()
@click.version_option(version=__version__, prog_name="epubtotxt")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose: bool):
    """
    epubtotxt - Convert EPUB files to plain text.

    Text is extracted from every document in the book's reading order,
    optionally after rewriting the raw markup with regex rules.
    """
    setup_logging(verbose)


@cli.command()
@click.argument(
    "filepath", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--rules",
    "-r",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Rewrite rules file: pattern and replacement on alternating lines",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Output directory or base name (default: next to the EPUB); "
    "'.txt' is appended",
)
@click.option(
    "--stdout", "to_stdout", is_flag=True, help="Print the text instead of saving"
)
def convert(
    filepath: Path,
    rules: Optional[Path],
    output: Optional[Path],
    to_stdout: bool,
):
    """
    Convert an EPUB file to a text file.

    Rules are checked before the book is read, so a broken pattern never
    produces partial output.
    """
    check_epub_path(filepath)
    start = time.perf_counter()

    try:
        rule_list = load_rules(rules) if rules else None
        converter = EPUBConverter(filepath, rules=rule_list)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            console=err_console,
            transient=True,
        ) as progress:
            task = progress.add_task(f"Converting {filepath.name}...", total=None)

            def on_progress(index: int, total: int, path: str) -> None:
                progress.update(task, completed=index, total=total)

            text = converter.convert(on_progress=on_progress)
            progress.stop()

        if to_stdout:
            # Bypass rich console
            print(text, end="")
            return

        output_path = derive_output_path(filepath, output)
        write_text_file(output_path, text)

    except EPUBToTxtError as e:
        fail(str(e))

    elapsed = time.perf_counter() - start
    console.print(
        f"[green]✓[/green] Saved to the text file: {escape(str(output_path))} "
        f"[dim]({len(text):,} characters in {elapsed:.2f}s)[/dim]",
        soft_wrap=True,
    )


@cli.command(name="list")
@click.argument(
    "filepath", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
def list_spine(filepath: Path):
    """List the content files of an EPUB in reading order."""
    check_epub_path(filepath)
    try:
        package = EPUBConverter(filepath).get_package()
    except EPUBToTxtError as e:
        fail(str(e))

    media_types = {
        item.id: item.media_type for item in reversed(package.manifest)
    }
    paths = resolve_spine(package.manifest, package.spine, package.directory)
    resolved = [ref for ref in package.spine if ref.idref in media_types]

    table = Table(
        title=f"📚 {filepath.name}", show_header=True, header_style="bold magenta"
    )
    table.add_column("#", style="dim", width=6)
    table.add_column("Id", style="cyan")
    table.add_column("Path", style="green")
    table.add_column("Media type", style="yellow")

    for idx, (ref, path) in enumerate(zip(resolved, paths), 1):
        table.add_row(str(idx), ref.idref, path, media_types[ref.idref])

    console.print(table)
    skipped = len(package.spine) - len(resolved)
    if skipped:
        console.print(
            f"[yellow]{skipped} spine reference(s) without manifest entry "
            f"skipped[/yellow]"
        )


@cli.command()
@click.argument(
    "filepath", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["panel", "json"]),
    default="panel",
    help="Display format for metadata (default: panel)",
)
def info(filepath: Path, format: str):
    """Display metadata information about an EPUB file."""
    check_epub_path(filepath)
    try:
        package = EPUBConverter(filepath).get_package()
    except EPUBToTxtError as e:
        fail(str(e))

    metadata = package.metadata
    spine_files = len(
        resolve_spine(package.manifest, package.spine, package.directory)
    )

    if format == "json":
        data = {
            "file": filepath.name,
            "package": package.path,
            "title": metadata.title,
            "authors": metadata.authors,
            "language": metadata.language,
            "identifier": metadata.identifier,
            "publisher": metadata.publisher,
            "description": metadata.description,
            "manifest_items": len(package.manifest),
            "spine_files": spine_files,
        }
        print(json.dumps(data, indent=2, ensure_ascii=False))
        return

    info_lines = []
    if metadata.title:
        info_lines.append(f"[bold]Title:[/bold] {escape(metadata.title)}")
    if metadata.authors:
        authors_str = ", ".join(metadata.authors)
        info_lines.append(f"[bold]Authors:[/bold] {escape(authors_str)}")
    if metadata.publisher:
        info_lines.append(f"[bold]Publisher:[/bold] {escape(metadata.publisher)}")
    if metadata.language:
        info_lines.append(f"[bold]Language:[/bold] {escape(metadata.language)}")
    if metadata.identifier:
        info_lines.append(f"[bold]Identifier:[/bold] {escape(metadata.identifier)}")
    if metadata.description:
        desc = (
            metadata.description[:200] + "..."
            if len(metadata.description) > 200
            else metadata.description
        )
        info_lines.append(f"[bold]Description:[/bold] {escape(desc)}")

    info_lines.append(f"\n[bold]Package:[/bold] {escape(package.path)}")
    info_lines.append(f"[bold]Manifest items:[/bold] {len(package.manifest)}")
    info_lines.append(f"[bold]Spine files:[/bold] {spine_files}")

    panel = Panel(
        "\n".join(info_lines), title=f"📖 {filepath.name}", border_style="cyan"
    )
    console.print(panel)


def main():
    """Main entry point for CLI."""
    cli(auto_envvar_prefix="EPUBTOTXT")


if __name__ == "__main__":
    main()
