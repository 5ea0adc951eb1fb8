"""Console output helpers shared by the CLI commands."""

import logging

from rich.console import Console
from rich.markup import escape

console = Console()
error_console = Console(stderr=True)

logger = logging.getLogger("dotstow")


def print_header(title: str) -> None:
    """Print a section header."""
    console.print()
    console.rule(f"[bold cyan]{escape(title)}[/bold cyan]")
    console.print()


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]Error:[/red] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {escape(message)}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]⚠[/yellow] {escape(message)}")


def print_info(message: str) -> None:
    """Print an informational message."""
    console.print(f"[blue]ℹ[/blue] {escape(message)}")


def print_detail(line: str) -> None:
    """Print an indented detail line (command output, file lists)."""
    console.print(f"  [dim]{escape(line)}[/dim]")

