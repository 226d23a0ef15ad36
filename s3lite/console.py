"""Console output using the Rich library.

Renders operation results for the command line:
- A status line per operation with an OK/FAIL indicator
- Bucket listings as a table
- JSON output for scripting
"""

import json
from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from s3lite.models import ListingEntry, OperationResult


def _format_size(size: Optional[int]) -> str:
    if size is None:
        return "-"
    if size < 1024:
        return f"{size} B"
    value = float(size)
    for unit in ("KiB", "MiB", "GiB"):
        value /= 1024
        if value < 1024 or unit == "GiB":
            break
    return f"{value:.1f} {unit}"


def listing_to_dict(entries: list[ListingEntry]) -> list[dict[str, Any]]:
    """Convert listing entries for JSON serialization."""
    return [entry.as_dict() for entry in entries]


class ConsolePrinter:
    """Rich-based printer for CLI output.

    Args:
        console: Console to print to; a new one is created when omitted.
        quiet: If True, print only errors and requested data.
    """

    def __init__(self, console: Optional[Console] = None, quiet: bool = False):
        # Use legacy_windows=True for ASCII-safe output on Windows consoles
        self.console = console or Console(legacy_windows=True)
        self.quiet = quiet

    def status(self, operation: str, key: str, result: OperationResult) -> None:
        """Print a one-line status for an operation."""
        if result.ok:
            if self.quiet:
                return
            status_text = "[green][OK][/green]"
        else:
            status_text = "[red][FAIL][/red]"

        self.console.print(f"{status_text} {operation} {escape(key)} (HTTP {result.status_code})")

        if not result.ok and isinstance(result.result, bytes) and result.result:
            body = result.result.decode("utf-8", "replace")
            self.console.print(Text(f"     {body}", style="dim"))

    def listing(self, bucket: str, entries: list[ListingEntry]) -> None:
        """Print bucket entries as a table."""
        if not entries:
            self.console.print(f"[yellow]No objects in {escape(bucket)}.[/yellow]")
            return

        # Create table with ASCII-safe box drawing
        table = Table(
            title=f"s3://{escape(bucket)}",
            show_header=True,
            header_style="bold magenta",
            border_style="dim",
            box=box.ASCII,
        )
        table.add_column("Key", style="cyan", no_wrap=True)
        table.add_column("Size", justify="right", no_wrap=True)
        table.add_column("Last Modified", no_wrap=True)
        table.add_column("Storage Class", no_wrap=True)
        table.add_column("ETag", style="dim", no_wrap=True)

        for entry in entries:
            table.add_row(
                escape(entry.key),
                _format_size(entry.size),
                entry.last_modified or "-",
                entry.storage_class or "-",
                entry.etag or "-",
            )

        self.console.print(table)

    def listing_json(self, entries: list[ListingEntry]) -> None:
        """Print bucket entries as JSON."""
        self.console.print_json(json.dumps(listing_to_dict(entries)))

    def url(self, url: str) -> None:
        """Print a URL unwrapped and without markup."""
        self.console.print(url, markup=False, highlight=False, soft_wrap=True)
