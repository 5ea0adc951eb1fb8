"""Package discovery in the dotfiles directory."""

import logging
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger("dotstow.discovery")


class DiscoveryError(Exception):
    """Error locating packages."""

    def __init__(self, message: str, root: Path | None = None):
        self.root = root
        super().__init__(message)


class NoPackagesError(DiscoveryError):
    """The dotfiles directory holds no candidate packages."""

    def __init__(self, root: Path):
        super().__init__(f"No packages found in: {root}", root)


def discover_packages(root: Path, ignore: Iterable[str] = ()) -> list[str]:
    """List the package directories under ``root``.

    Hidden entries and names in ``ignore`` are skipped.

    Args:
        root: The dotfiles (stow) directory
        ignore: Package names to exclude

    Returns:
        Sorted package names

    Raises:
        DiscoveryError: If ``root`` is not a directory
        NoPackagesError: If no package is found
    """
    if not root.is_dir():
        raise DiscoveryError(f"Directory not found: {root}", root)

    ignored = set(ignore)
    packages: list[str] = []
    for entry in sorted(root.iterdir()):
        if entry.name.startswith(".") or not entry.is_dir():
            continue
        if entry.name in ignored:
            logger.debug("Ignoring package: %s", entry.name)
            continue
        logger.info("Found package: %s", entry.name)
        packages.append(entry.name)

    if not packages:
        raise NoPackagesError(root)
    return packages
