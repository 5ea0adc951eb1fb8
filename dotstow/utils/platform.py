"""Platform detection and prerequisite installation.

System package managers are described by a small strategy table. The first
manager found on PATH is picked once and used to install missing tools.
"""

import logging
import os
import shutil
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger("dotstow.platform")

Which = Callable[[str], str | None]


@dataclass(frozen=True)
class PackageManager:
    """Install-command template for one system package manager."""

    name: str
    install: tuple[str, ...]
    refresh: tuple[str, ...] | None = None
    needs_sudo: bool = True

    def commands_for(self, packages: list[str], as_root: bool = False) -> list[list[str]]:
        """Build the command lines that install ``packages``.

        Args:
            packages: System package names
            as_root: Skip the sudo prefix when already running as root

        Returns:
            Commands to run in order
        """
        prefix = ["sudo"] if self.needs_sudo and not as_root else []
        commands: list[list[str]] = []
        if self.refresh:
            commands.append(prefix + list(self.refresh))
        commands.append(prefix + list(self.install) + list(packages))
        return commands


PACKAGE_MANAGERS: tuple[PackageManager, ...] = (
    PackageManager("apt-get", ("apt-get", "install", "-y"), refresh=("apt-get", "update")),
    PackageManager("dnf", ("dnf", "install", "-y")),
    PackageManager("yum", ("yum", "install", "-y")),
    PackageManager("pacman", ("pacman", "-S", "--noconfirm")),
    PackageManager("zypper", ("zypper", "--non-interactive", "install")),
    PackageManager("brew", ("brew", "install"), needs_sudo=False),
)


class PrerequisiteError(Exception):
    """Error installing missing prerequisites."""


@dataclass
class DependencyReport:
    """Availability of the tools dotstow shells out to."""

    versions: dict[str, str] = field(default_factory=dict)
    missing_required: list[str] = field(default_factory=list)
    missing_optional: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing_required


def is_root() -> bool:
    """Check whether the process runs with root privileges."""
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def detect_package_manager(which: Which = shutil.which) -> PackageManager | None:
    """Pick the first package manager available on PATH.

    Args:
        which: Executable lookup, ``shutil.which`` by default

    Returns:
        The matching strategy entry, or None if none is available
    """
    for manager in PACKAGE_MANAGERS:
        if which(manager.name):
            logger.debug("Detected package manager: %s", manager.name)
            return manager
    return None


def tool_version(command: str) -> str | None:
    """Return the first line of ``<command> --version``, or None if unavailable."""
    if shutil.which(command) is None:
        return None
    try:
        result = subprocess.run(
            [command, "--version"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.debug("Cannot run %s --version: %s", command, e)
        return None
    output = (result.stdout or result.stderr).strip()
    return output.splitlines()[0] if output else command


def check_dependencies(
    required: tuple[str, ...] = ("stow",),
    optional: tuple[str, ...] = ("git",),
) -> DependencyReport:
    """Check which required and optional tools are installed."""
    report = DependencyReport()
    for tool in required + optional:
        version = tool_version(tool)
        if version is not None:
            report.versions[tool] = version
        elif tool in required:
            report.missing_required.append(tool)
        else:
            report.missing_optional.append(tool)
    return report


def install_system_packages(manager: PackageManager, packages: list[str]) -> None:
    """Install packages with the given package manager.

    Output is passed through to the terminal so sudo can prompt.

    Raises:
        PrerequisiteError: If any command fails
    """
    for command in manager.commands_for(packages, as_root=is_root()):
        logger.info("Running: %s", " ".join(command))
        try:
            subprocess.run(command, check=True)
        except (subprocess.CalledProcessError, OSError) as e:
            raise PrerequisiteError(f"Command failed: {' '.join(command)}: {e}") from e
