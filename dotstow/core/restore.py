"""Uninstall-side restore, cleanup, and trace checks."""

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from dotstow.core.metadata import MetadataStore
from dotstow.utils.filesystem import ensure_directory, remove_path, walk_bounded

logger = logging.getLogger("dotstow.restore")

STOW_MARKER_PREFIX = ".stow-"


@dataclass
class RestoreResult:
    """Entries copied back from a backup."""

    restored: list[Path] = field(default_factory=list)
    failed: list[tuple[Path, str]] = field(default_factory=list)


@dataclass
class CleanupResult:
    """State removed by a cleanup."""

    metadata_removed: bool = False
    backup_removed: Path | None = None


@dataclass
class TraceReport:
    """Leftovers found in the target directory."""

    broken_links: list[Path] = field(default_factory=list)
    markers: list[Path] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.broken_links) + len(self.markers)

    @property
    def clean(self) -> bool:
        return self.count == 0


def _restore_entry(src: Path, dest: Path) -> None:
    # Never write through a link into the dotfiles tree
    if dest.is_symlink() or dest.is_file():
        dest.unlink()
    elif dest.exists():
        raise IsADirectoryError(f"Directory in the way: {dest}")
    if src.is_symlink():
        os.symlink(os.readlink(src), dest)
    else:
        shutil.copy2(src, dest)


def restore_backup(backup_dir: Path, target_dir: Path) -> RestoreResult:
    """Copy a backup tree back onto the target directory.

    Existing entries are overwritten. Symlinks in the backup come back as
    symlinks; a directory in the backup replaces a file or link in the way.
    ``target_dir`` itself is never replaced, even when it is a symlink.

    Args:
        backup_dir: Backup directory of an install run
        target_dir: Directory to restore into

    Returns:
        RestoreResult listing restored and failed entries
    """
    result = RestoreResult()
    if not backup_dir.is_dir():
        logger.info("No backup to restore at %s", backup_dir)
        return result

    for dirpath, dirnames, filenames in os.walk(backup_dir):
        rel_dir = Path(dirpath).relative_to(backup_dir)
        dest_dir = target_dir / rel_dir
        try:
            # The target directory itself may be a link (a symlinked home); keep it
            at_top = rel_dir == Path(".")
            if not at_top and (dest_dir.is_symlink() or (dest_dir.exists() and not dest_dir.is_dir())):
                dest_dir.unlink()
            ensure_directory(dest_dir)
        except OSError as e:
            logger.warning("Cannot restore into %s: %s", dest_dir, e)
            result.failed.append((dest_dir, str(e)))
            dirnames.clear()
            continue

        # os.walk lists symlinks to directories under dirnames
        linked_dirs = [d for d in dirnames if (Path(dirpath) / d).is_symlink()]
        dirnames[:] = sorted(d for d in dirnames if d not in linked_dirs)

        for name in sorted(filenames + linked_dirs):
            src = Path(dirpath) / name
            dest = dest_dir / name
            try:
                _restore_entry(src, dest)
            except OSError as e:
                logger.warning("Could not restore %s: %s", dest, e)
                result.failed.append((dest, str(e)))
                continue
            logger.debug("Restored %s", dest)
            result.restored.append(dest)

    return result


def clean_state(store: MetadataStore, backup_dir: Path | None) -> CleanupResult:
    """Delete the metadata file and the backup directory."""
    result = CleanupResult(metadata_removed=store.delete())
    if backup_dir is not None and backup_dir.is_dir():
        shutil.rmtree(backup_dir)
        logger.info("Deleted backup %s", backup_dir)
        result.backup_removed = backup_dir
    return result


def find_traces(
    target_dir: Path,
    link_depth: int = 3,
    marker_depth: int = 2,
    exclude_prefixes: tuple[str, ...] = (),
) -> TraceReport:
    """Scan the target directory for dangling symlinks and stow markers.

    Args:
        target_dir: Directory to scan (usually home)
        link_depth: Max depth for dangling symlinks
        marker_depth: Max depth for ``.stow-*`` entries
        exclude_prefixes: Directory name prefixes to skip (backups)

    Returns:
        TraceReport with the leftovers found
    """
    report = TraceReport()
    max_depth = max(link_depth, marker_depth)
    for path, depth in walk_bounded(target_dir, max_depth, exclude_prefixes):
        if depth <= marker_depth and path.name.startswith(STOW_MARKER_PREFIX):
            report.markers.append(path)
        elif depth <= link_depth and path.is_symlink() and not path.exists():
            report.broken_links.append(path)
    return report


def remove_traces(report: TraceReport) -> list[Path]:
    """Delete the entries listed in a trace report.

    Returns:
        Paths actually removed
    """
    removed: list[Path] = []
    for path in report.broken_links + report.markers:
        try:
            if remove_path(path):
                removed.append(path)
                logger.info("Removed trace %s", path)
        except OSError as e:
            logger.warning("Could not remove %s: %s", path, e)
    return removed
