"""Filesystem utilities for Dotstow."""

import os
import shutil
from collections.abc import Iterator
from pathlib import Path
from typing import Literal

EntryKind = Literal["file", "directory", "symlink"]


def ensure_directory(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists

    Returns:
        The directory path
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def lexists(path: Path) -> bool:
    """Check whether a path exists, counting dangling symlinks."""
    return path.is_symlink() or path.exists()


def entry_kind(path: Path) -> EntryKind:
    """Classify an existing entry without following a final symlink."""
    if path.is_symlink():
        return "symlink"
    if path.is_dir():
        return "directory"
    return "file"


def copy_entry(src: Path, dest_dir: Path) -> Path:
    """Copy an entry into a directory, archive style.

    Symlinks are copied as symlinks, directories recursively (inner symlinks
    preserved), and regular files with their permission bits and timestamps.

    Args:
        src: Entry to copy
        dest_dir: Directory receiving the copy

    Returns:
        Path of the copy
    """
    dest_dir.mkdir(parents=True, exist_ok=True)
    dest = dest_dir / src.name
    if src.is_symlink():
        os.symlink(os.readlink(src), dest)
        shutil.copystat(src, dest, follow_symlinks=False)
    elif src.is_dir():
        shutil.copytree(src, dest, symlinks=True)
    else:
        shutil.copy2(src, dest)
    return dest


def remove_path(path: Path) -> bool:
    """Remove a file, symlink, or directory tree.

    Symlinks are unlinked, never followed.

    Args:
        path: Path to remove

    Returns:
        True if something was removed, False if nothing existed
    """
    if path.is_symlink() or path.is_file():
        path.unlink()
        return True
    if path.is_dir():
        shutil.rmtree(path)
        return True
    return False


def iter_files(root: Path) -> Iterator[Path]:
    """Yield every regular file under ``root`` in sorted order.

    Symlinked directories are not followed and symlinks are not yielded.
    """
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.is_file() and not path.is_symlink():
                yield path


def walk_bounded(
    root: Path,
    max_depth: int,
    skip_dir_prefixes: tuple[str, ...] = (),
) -> Iterator[tuple[Path, int]]:
    """Yield ``(path, depth)`` for entries under ``root`` up to ``max_depth``.

    Depth 1 is a direct child of ``root``. Directory symlinks are yielded but
    not descended into, and directories whose name starts with one of
    ``skip_dir_prefixes`` are neither yielded nor descended into. Unreadable
    directories are skipped.
    """
    stack: list[tuple[Path, int]] = [(root, 0)]
    while stack:
        directory, depth = stack.pop()
        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
        except OSError:
            continue
        for entry in entries:
            is_real_dir = entry.is_dir(follow_symlinks=False)
            if is_real_dir and skip_dir_prefixes and entry.name.startswith(skip_dir_prefixes):
                continue
            path = Path(entry.path)
            yield path, depth + 1
            if is_real_dir and depth + 1 < max_depth:
                stack.append((path, depth + 1))
