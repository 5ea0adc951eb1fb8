"""Interactive package menu."""

import typer
from rich.markup import escape

from dotstow.cli.output import console, print_error, print_header, print_info, print_success, print_warning
from dotstow.core.selector import Selection, SelectionAction, parse_selection


def render_menu(packages: list[str], verb: str) -> None:
    """Print the numbered package list and the menu options."""
    console.print("Available packages:")
    console.print()
    for index, name in enumerate(packages, start=1):
        console.print(f"  {index}. [cyan]{escape(name)}[/cyan]")
    console.print()
    console.print("Options:")
    console.print(f"  a) {verb.capitalize()} all")
    console.print("  n) Enter numbers separated by spaces (e.g. 1 3 5)")
    console.print("  q) Cancel")
    console.print()


def report_selection(selection: Selection) -> None:
    """Print the warnings carried by a parsed selection."""
    for token in selection.invalid:
        print_warning(f"Invalid option: {token}")
    for name in selection.duplicates:
        print_warning(f"Package already selected: {name}")


def prompt_selection(packages: list[str], verb: str) -> list[str]:
    """Show the menu and read the user's selection.

    Exits with status 0 when the user cancels and with status 1 when nothing
    valid was selected.

    Args:
        packages: Candidate package names in menu order
        verb: Action shown in the menu ("install", "uninstall")

    Returns:
        Selected package names, deduplicated
    """
    print_header(f"Select packages to {verb}")
    render_menu(packages, verb)

    choice = typer.prompt("Your choice", default="", show_default=False)
    console.print()

    selection = parse_selection(choice, packages)
    if selection.cancelled:
        print_warning(f"{verb.capitalize()} cancelled")
        raise typer.Exit(0)

    report_selection(selection)
    if selection.is_empty:
        print_error("No package selected")
        raise typer.Exit(1)

    if selection.action is SelectionAction.ALL:
        print_success("Selected all packages")
    print_info(f"Selected packages: {' '.join(selection.packages)}")
    return selection.packages
