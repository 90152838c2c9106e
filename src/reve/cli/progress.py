"""
Rich progress displays for CLI operations.

This module provides progress indicators and result panels using the rich
library. All output goes to stderr to preserve stdout for machine-readable
output.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

# Console for stderr output (preserves stdout for machine output)
console = Console(stderr=True)


@contextmanager
def operation_progress(
    operation: str,
    version: str | None = None,
    reference_count: int = 0,
) -> Iterator[None]:
    """
    Display a spinner while an image operation runs.

    Args:
        operation: 'create', 'edit' or 'remix'
        version: Model version requested, if any
        reference_count: Number of reference images sent

    Yields:
        None while the operation is in progress
    """
    progress = Progress(
        SpinnerColumn(spinner_name="dots"),
        TextColumn("[green]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,  # Disappears when done
    )

    desc_parts = [f"Running {operation}"]
    if version:
        desc_parts.append(f"[dim]({version})[/dim]")
    if reference_count:
        noun = "reference" if reference_count == 1 else "references"
        desc_parts.append(f"[dim cyan]with {reference_count} {noun}[/dim cyan]")

    with progress:
        task = progress.add_task(" ".join(desc_parts), total=None)
        yield
        progress.update(task, completed=True)


def print_success_result(
    output_path: Path,
    operation: str,
    elapsed: float,
    version: str,
    request_id: str,
    credits_used: int,
    credits_remaining: int,
    content_violation: bool = False,
) -> None:
    """Print a rich formatted success panel with the result metadata."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="cyan", justify="right", vertical="top")
    table.add_column(style="white")

    table.add_row("Saved to", f"[bold green]{output_path}[/bold green]")
    table.add_row("Operation", operation)
    if version:
        table.add_row("Version", version)
    table.add_row("Time", f"{elapsed:.1f}s")
    table.add_row("Credits", f"{credits_used} used, {credits_remaining} remaining")
    if request_id:
        table.add_row("Request", f"[dim]{request_id}[/dim]")
    if content_violation:
        table.add_row("Policy", "[yellow]⚠ content violation flagged[/yellow]")

    panel = Panel(
        table,
        title="[bold green]✓ Image Saved[/bold green]",
        border_style="green",
        padding=(1, 2),
    )

    console.print()
    console.print(panel)


def print_info(message: str) -> None:
    """Print an info message in cyan."""
    console.print(f"[cyan]ℹ[/cyan] {message}")


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(f"[red]✗[/red] {message}")
