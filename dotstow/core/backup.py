"""Conflict detection and backup before linking packages.

For every regular file in a package, the matching path under the target
directory is checked. Anything already there that is not a link back to the
package's own file is a conflict: it is copied into a timestamped backup
directory (mirroring its relative path) and then removed so stow can link.

A conflicting entry is removed only after it has been copied successfully,
and each target is handled at most once per run.
"""

import logging
import shutil
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from dotstow.config.schemas import Settings
from dotstow.utils.filesystem import EntryKind, copy_entry, entry_kind, iter_files, lexists, remove_path

logger = logging.getLogger("dotstow.backup")


@dataclass(frozen=True)
class Conflict:
    """An existing entry standing where a package link should go."""

    package: str
    source: Path
    target: Path
    relative_path: Path
    kind: EntryKind


@dataclass
class BackupFailure:
    """A conflict that could not be fully handled."""

    conflict: Conflict
    reason: str


@dataclass
class BackupResult:
    """Outcome of a backup run."""

    backup_dir: Path | None = None
    started: datetime | None = None
    backed_up: list[Conflict] = field(default_factory=list)
    failed: list[BackupFailure] = field(default_factory=list)
    missing_packages: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.backed_up)


def _is_within(path: Path, root: Path) -> bool:
    return path == root or root in path.parents


class ConflictBackupEngine:
    """Finds and backs up conflicts for a set of packages."""

    def __init__(self, settings: Settings, now: Callable[[], datetime] = datetime.now):
        """Initialize the engine.

        Args:
            settings: Run settings
            now: Clock used to name the backup directory
        """
        self.settings = settings
        self._now = now

    def package_root(self, package: str) -> Path:
        """Source directory of a package."""
        return self.settings.dotfiles_dir / package

    def find_conflicts(self, package: str) -> list[Conflict]:
        """Detect conflicts for one package without touching anything.

        Args:
            package: Package name

        Returns:
            Conflicts in file order, one per conflicting path
        """
        root = self.package_root(package)
        conflicts: list[Conflict] = []
        seen: set[Path] = set()
        for source in iter_files(root):
            conflict = self._check_source(package, root, source)
            if conflict is not None and conflict.target not in seen:
                seen.add(conflict.target)
                conflicts.append(conflict)
        return conflicts

    def _check_source(self, package: str, root: Path, source: Path) -> Conflict | None:
        home = self.settings.target_dir
        rel_path = source.relative_to(root)
        dotfiles_real = self.settings.dotfiles_dir.resolve()

        # Parents first: a foreign symlink or a file in the way blocks the whole subtree
        current = home
        for part in rel_path.parts[:-1]:
            current = current / part
            if current.is_symlink():
                if _is_within(current.resolve(), dotfiles_real):
                    # Folded by stow; stow unfolds or keeps it itself
                    return None
                return Conflict(package, source, current, current.relative_to(home), "symlink")
            if not current.exists():
                return None
            if not current.is_dir():
                return Conflict(package, source, current, current.relative_to(home), "file")

        target = home / rel_path
        if not lexists(target):
            return None
        if target.resolve() == source.resolve():
            return None
        return Conflict(package, source, target, rel_path, entry_kind(target))

    def fresh_backup_dir(self, moment: datetime) -> Path:
        """Backup directory for a run at ``moment`` that no earlier run has used.

        Runs started within the same second get a numeric suffix.
        """
        base = self.settings.backup_dir_for(moment)
        candidate = base
        counter = 1
        while lexists(candidate):
            candidate = base.with_name(f"{base.name}_{counter}")
            counter += 1
        return candidate

    def backup(self, packages: Iterable[str]) -> BackupResult:
        """Back up and clear every conflict for the given packages.

        Args:
            packages: Selected package names

        Returns:
            BackupResult; ``backup_dir`` is None when nothing was backed up
        """
        started = self._now()
        backup_dir = self.fresh_backup_dir(started)
        result = BackupResult(started=started)
        seen: set[Path] = set()

        for package in packages:
            if not self.package_root(package).is_dir():
                logger.warning("Package not found: %s", package)
                result.missing_packages.append(package)
                continue

            logger.info("Checking conflicts for: %s", package)
            for conflict in self.find_conflicts(package):
                if conflict.target in seen:
                    continue
                seen.add(conflict.target)
                self._backup_conflict(conflict, backup_dir, result)

        if result.backed_up:
            result.backup_dir = backup_dir
            logger.info("Backed up %d item(s) to %s", result.count, backup_dir)
        elif backup_dir.is_dir():
            # Only folders left by failed copies; the directory is new to this run
            shutil.rmtree(backup_dir)
        return result

    def _backup_conflict(self, conflict: Conflict, backup_dir: Path, result: BackupResult) -> None:
        logger.info("Backing up: %s", conflict.target)
        try:
            copy_entry(conflict.target, backup_dir / conflict.relative_path.parent)
        except OSError as e:
            logger.warning("Could not back up %s: %s", conflict.target, e)
            result.failed.append(BackupFailure(conflict, f"backup failed: {e}"))
            return
        result.backed_up.append(conflict)

        try:
            remove_path(conflict.target)
        except OSError as e:
            logger.warning("Backed up but could not remove %s: %s", conflict.target, e)
            result.failed.append(BackupFailure(conflict, f"could not remove: {e}"))
            return
        logger.debug("Removed: %s", conflict.target)
