"""Main CLI application for Dotstow."""

import contextlib
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Annotated

import typer
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from dotstow import __version__
from dotstow.cli.menu import prompt_selection
from dotstow.cli.output import (
    console,
    error_console,
    logger,
    print_detail,
    print_error,
    print_header,
    print_info,
    print_success,
    print_warning,
)
from dotstow.config.parser import ConfigError, load_settings
from dotstow.config.schemas import Settings
from dotstow.core.backup import BackupResult
from dotstow.core.discovery import DiscoveryError, NoPackagesError, discover_packages
from dotstow.core.installer import DotfilesInstaller, OperationSummary
from dotstow.core.metadata import MetadataStore
from dotstow.core.restore import clean_state, find_traces, remove_traces, restore_backup
from dotstow.core.stow import StowRunner
from dotstow.utils.platform import (
    PrerequisiteError,
    check_dependencies,
    detect_package_manager,
    install_system_packages,
)

# Create the main Typer app
app = typer.Typer(
    name="dotstow",
    help="Install and uninstall dotfiles packages with GNU Stow",
    add_completion=False,
    no_args_is_help=True,
)

DotfilesDirOption = Annotated[
    Path | None,
    typer.Option(
        "--dotfiles-dir",
        "-d",
        help="Dotfiles directory (defaults to $DOTFILES_DIR or ~/dotfiles)",
    ),
]
TargetOption = Annotated[
    Path | None,
    typer.Option(
        "--target",
        "-t",
        help="Directory the packages are linked into (defaults to home)",
    ),
]


def setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2=DEBUG, 3+=DEBUG with source paths
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logger.setLevel(level)

    # Only add handler if not already configured
    if not logger.handlers:
        handler = RichHandler(
            console=error_console,
            show_time=verbosity >= 2,
            show_path=verbosity >= 3,
            rich_tracebacks=True,
        )
        handler.setLevel(level)
        logger.addHandler(handler)
    else:
        for h in logger.handlers:
            h.setLevel(level)


@contextlib.contextmanager
def error_trap() -> Iterator[None]:
    """Report any unexpected error and exit with status 1."""
    try:
        yield
    except (typer.Exit, typer.Abort):
        raise
    except Exception as e:
        logger.debug("Unexpected error", exc_info=True)
        print_error(f"Unexpected error: {e}")
        raise typer.Exit(1) from e


def get_settings(dotfiles_dir: Path | None, target: Path | None) -> Settings:
    """Load settings and check the dotfiles directory exists."""
    try:
        settings = load_settings(dotfiles_dir, target)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    if not settings.dotfiles_dir.is_dir():
        print_error(f"Directory {settings.dotfiles_dir} not found")
        raise typer.Exit(1)
    return settings


def ensure_prerequisites(settings: Settings) -> None:
    """Check stow and git, offering to install stow when it's missing."""
    print_header("Checking dependencies")

    report = check_dependencies(required=(settings.stow_command,), optional=("git",))
    for version in report.versions.values():
        print_success(version)
    for tool in report.missing_optional:
        print_warning(f"{tool} is not installed (recommended for managing dotfiles)")

    if report.ok:
        return

    print_error(f"Missing dependencies: {', '.join(report.missing_required)}")
    if not typer.confirm("Install the missing dependencies?", default=True):
        print_error("Cannot continue without the required dependencies")
        raise typer.Exit(1)

    manager = detect_package_manager()
    if manager is None:
        print_error("Could not detect a package manager")
        raise typer.Exit(1)

    print_info(f"Installing dependencies with {manager.name}...")
    try:
        install_system_packages(manager, [Path(tool).name for tool in report.missing_required])
    except PrerequisiteError as e:
        print_error(str(e))
        raise typer.Exit(1) from e
    print_success("Dependencies installed")


def render_backup(backup: BackupResult) -> None:
    """Print what the conflict backup did."""
    print_header("Backup")
    for package in backup.missing_packages:
        print_warning(f"Package not found: {package}")
    for conflict in backup.backed_up:
        print_info(f"Backed up: {conflict.target}")
    for failure in backup.failed:
        print_warning(f"{failure.conflict.target}: {failure.reason}")

    if backup.backup_dir is None:
        print_info("No files needed a backup")
    else:
        print_success(f"Backup complete: {backup.count} item(s) backed up")


def render_summary(summary: OperationSummary, verb: str, past: str) -> None:
    """Print per-package stow output and the final tally."""
    for result in summary.results:
        console.print(f"[bold]{escape(verb.capitalize())}:[/bold] {escape(result.package)}")
        for line in result.output:
            print_detail(line)
        if result.success:
            print_success(f"{result.package} {past}")
        else:
            print_error(f"Failed to {verb} {result.package}: {result.message}")
        console.print()

    print_header(f"{verb.capitalize()} summary")
    if summary.succeeded:
        print_success(
            f"{past.capitalize()} ({len(summary.succeeded)}): {' '.join(summary.succeeded)}"
        )
    if summary.failed:
        print_error(f"Failed ({len(summary.failed)}): {' '.join(summary.failed)}")


@app.callback()
def callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase verbosity (-v info, -vv debug, -vvv with source paths)",
        ),
    ] = 0,
) -> None:
    """Dotstow - stow-based dotfiles installer."""
    setup_logging(verbose)


@app.command()
def version() -> None:
    """Show the Dotstow version."""
    console.print(f"dotstow {__version__}")


@app.command()
def install(dotfiles_dir: DotfilesDirOption = None, target: TargetOption = None) -> None:
    """Link dotfiles packages into the target directory.

    Pre-existing files that would block a link are backed up into a
    timestamped directory and removed first. The run is recorded so that
    'dotstow uninstall' can undo it.
    """
    settings = get_settings(dotfiles_dir, target)

    with error_trap():
        print_header("Dotfiles installer")
        ensure_prerequisites(settings)

        print_header("Detecting packages")
        try:
            packages = discover_packages(settings.dotfiles_dir, settings.ignore)
        except DiscoveryError as e:
            print_error(str(e))
            raise typer.Exit(1) from e
        for name in packages:
            print_info(f"Found: {name}")

        selected = prompt_selection(packages, "install")

        console.print()
        if not typer.confirm("Continue with the installation?", default=True):
            print_warning("Installation cancelled")
            raise typer.Exit(0)

        installer = DotfilesInstaller(settings)
        summary = installer.install(selected)

        render_backup(summary.backup)
        print_header("Installing packages")
        render_summary(summary, "install", "installed")
        if summary.metadata is not None:
            print_success(f"Metadata saved to {installer.metadata.path}")

        print_header("Installation complete")
        print_info("To apply the changes, reload your shell:")
        console.print("  [cyan]source ~/.bashrc[/cyan]")
        if summary.backup.backup_dir is not None:
            print_info("Backup saved in:")
            console.print(f"  [cyan]{escape(str(summary.backup.backup_dir))}[/cyan]")
        print_info("To uninstall, run:")
        console.print("  [cyan]dotstow uninstall[/cyan]")


@app.command()
def uninstall(dotfiles_dir: DotfilesDirOption = None, target: TargetOption = None) -> None:
    """Remove the links of installed packages.

    Uses the metadata of the last install, or detects linked packages when
    there is none. Afterwards it can restore the backup, delete the stored
    state, and clean up leftover links.
    """
    settings = get_settings(dotfiles_dir, target)

    with error_trap():
        print_header("Dotfiles uninstaller")

        stow = StowRunner(settings)
        if not stow.is_available():
            print_error(f"{settings.stow_command} is not installed")
            raise typer.Exit(1)

        installer = DotfilesInstaller(settings, stow=stow)
        store = installer.metadata

        try:
            metadata = store.load()
        except ConfigError as e:
            print_warning(f"Ignoring unreadable metadata: {e}")
            metadata = None

        backup_dir: Path | None = None
        if metadata is not None:
            print_info(f"Installed on: {metadata.install_date}")
            print_info(f"Installed packages: {' '.join(metadata.installed_packages)}")
            if metadata.has_backup:
                print_info(f"Backup available: {metadata.backup_dir}")
            packages = metadata.installed_packages
            backup_dir = metadata.backup_dir
        else:
            print_warning("No install metadata found")
            print_warning("Detecting installed packages...")
            try:
                candidates = discover_packages(settings.dotfiles_dir, settings.ignore)
            except NoPackagesError:
                candidates = []
            packages = installer.detect_installed(candidates)
            for name in packages:
                print_info(f"Found installed: {name}")

        if not packages:
            print_warning("No installed packages found")
            raise typer.Exit(0)

        selected = prompt_selection(packages, "uninstall")

        console.print()
        print_warning("This removes the links of the selected packages")
        if not typer.confirm("Continue with the uninstall?", default=False):
            print_warning("Uninstall cancelled")
            raise typer.Exit(0)

        print_header("Uninstalling packages")
        summary = installer.uninstall(selected)
        render_summary(summary, "uninstall", "uninstalled")

        _offer_restore(settings, backup_dir)
        _offer_cleanup(store, backup_dir)
        _offer_trace_cleanup(settings)

        print_header("Uninstall complete")


def _offer_restore(settings: Settings, backup_dir: Path | None) -> None:
    if backup_dir is None or not backup_dir.is_dir():
        print_info("No backup available to restore")
        return

    print_header("Restore backup")
    print_warning(f"Found a backup in: {backup_dir}")
    if not typer.confirm("Restore the backed up files?", default=False):
        print_info("Restore skipped")
        return

    result = restore_backup(backup_dir, settings.target_dir)
    for path in result.restored:
        print_detail(str(path))
    for path, reason in result.failed:
        print_warning(f"Could not restore {path}: {reason}")
    if result.restored:
        print_success(f"Restored {len(result.restored)} item(s)")
    else:
        print_warning("No files were restored")


def _offer_cleanup(store: MetadataStore, backup_dir: Path | None) -> None:
    print_header("Cleanup")
    print_warning("This will delete:")
    console.print(f"  - Install metadata ({escape(store.path.name)})")
    if backup_dir is not None and backup_dir.is_dir():
        console.print(f"  - Backup directory: {escape(str(backup_dir))}")

    if not typer.confirm("Delete the stored state?", default=False):
        print_info("Cleanup skipped")
        return

    result = clean_state(store, backup_dir)
    if result.metadata_removed:
        print_success("Metadata deleted")
    if result.backup_removed is not None:
        print_success(f"Backup deleted: {result.backup_removed}")
    print_success("Cleanup finished")


def _offer_trace_cleanup(settings: Settings) -> None:
    print_header("Trace check")
    report = find_traces(
        settings.target_dir,
        link_depth=settings.trace_link_depth,
        marker_depth=settings.trace_marker_depth,
        exclude_prefixes=(settings.backup_prefix,),
    )
    if report.clean:
        print_success("No traces found, the system is clean")
        return

    for path in report.broken_links:
        print_warning(f"Broken symlink: {path}")
    for path in report.markers:
        print_warning(f"Stow marker: {path}")
    print_warning(f"Found {report.count} possible trace(s)")

    if not typer.confirm("Remove these traces?", default=False):
        print_info("Traces kept")
        return

    removed = remove_traces(report)
    print_success(f"Removed {len(removed)} trace(s)")


@app.command()
def status(dotfiles_dir: DotfilesDirOption = None, target: TargetOption = None) -> None:
    """Show the recorded install and the live state of each package."""
    settings = get_settings(dotfiles_dir, target)

    with error_trap():
        installer = DotfilesInstaller(settings)
        try:
            metadata = installer.metadata.load()
        except ConfigError as e:
            print_error(str(e))
            raise typer.Exit(1) from e

        if metadata is None:
            console.print("No install recorded")
        else:
            console.print(f"[bold]Last install:[/bold] {escape(metadata.install_date)}")
            console.print(f"  Packages: {escape(' '.join(metadata.installed_packages))}")
            console.print(f"  Backup: {escape(metadata.backup_location)}")

        try:
            packages = discover_packages(settings.dotfiles_dir, settings.ignore)
        except NoPackagesError:
            console.print("No packages found")
            return

        stow_available = installer.stow.is_available()
        if not stow_available:
            print_warning(f"{settings.stow_command} is not installed; link state unknown")

        table = Table(title="Packages")
        table.add_column("Package", style="cyan")
        table.add_column("Linked", style="green")
        table.add_column("Conflicts", style="yellow")

        for name in packages:
            if not stow_available:
                linked = "?"
            else:
                linked = "yes" if installer.stow.is_installed(name) else "no"
            conflicts = installer.backup_engine.find_conflicts(name)
            table.add_row(escape(name), linked, str(len(conflicts)) if conflicts else "-")

        console.print(table)


if __name__ == "__main__":
    app()
