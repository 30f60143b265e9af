"""Filesystem helpers for ricething."""

from __future__ import annotations

import logging
import os
import shutil
import stat
from pathlib import Path

from .models import EntryType

logger = logging.getLogger(__name__)


def ensure_parent(path: Path) -> None:
    """Ensure the parent directory exists."""

    path.parent.mkdir(parents=True, exist_ok=True)


def lexists(path: Path) -> bool:
    """Return ``True`` if ``path`` exists, without following a final symlink."""

    return path.exists() or path.is_symlink()


def detect_entry_type(path: Path) -> EntryType:
    """Determine the ``EntryType`` for ``path`` without following symlinks.

    Raises ``FileNotFoundError`` when ``path`` does not exist.
    """

    mode = path.lstat().st_mode
    if stat.S_ISLNK(mode):
        return EntryType.SYMLINK
    if stat.S_ISDIR(mode):
        return EntryType.DIRECTORY
    return EntryType.FILE


def real_location(path: Path) -> Path:
    """Return ``path`` with its parent resolved but its final component left unfollowed."""

    return path.parent.resolve() / path.name


def ensure_distinct(source: Path, destination: Path) -> None:
    """Raise ``shutil.SameFileError`` if ``source`` and ``destination`` name the same entry.

    Copy helpers clear the destination before writing, so this must run first.
    """

    if real_location(source) == real_location(destination):
        raise shutil.SameFileError(f"'{source}' and '{destination}' are the same file")


def copy_file(source: Path, destination: Path) -> None:
    """Copy a single file into ``destination``, creating parent directories."""

    ensure_parent(destination)
    if destination.is_symlink():
        destination.unlink()
    shutil.copy2(source, destination)


def copy_symlink(source: Path, destination: Path) -> None:
    """Recreate the ``source`` symlink at ``destination`` with the same target text."""

    ensure_parent(destination)
    if lexists(destination):
        remove_path(destination)
    destination.symlink_to(os.readlink(source))


def copy_tree(source: Path, destination: Path) -> None:
    """Merge the directory ``source`` into ``destination``.

    Files already present in ``destination`` are overwritten, extra files are
    left alone. Symlinks inside the tree are recreated rather than followed, so
    the walk cannot loop. Any ``OSError`` aborts this tree and propagates.
    """

    ensure_distinct(source, destination)
    pending: list[tuple[Path, Path]] = [(source, destination)]
    while pending:
        src_dir, dest_dir = pending.pop()
        children = sorted(src_dir.iterdir())

        if dest_dir.is_symlink() or (dest_dir.exists() and not dest_dir.is_dir()):
            remove_path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)

        for child in children:
            target = dest_dir / child.name
            entry_type = detect_entry_type(child)
            if entry_type == EntryType.SYMLINK:
                copy_symlink(child, target)
            elif entry_type == EntryType.DIRECTORY:
                pending.append((child, target))
            else:
                if target.is_dir() and not target.is_symlink():
                    shutil.rmtree(target)
                copy_file(child, target)

    logger.debug("Copied tree %s -> %s", source, destination)


def copy_entry(source: Path, destination: Path) -> EntryType:
    """Copy ``source`` into ``destination`` whatever kind of entry it is."""

    ensure_distinct(source, destination)
    entry_type = detect_entry_type(source)

    if entry_type == EntryType.SYMLINK:
        copy_symlink(source, destination)
    elif entry_type == EntryType.DIRECTORY:
        copy_tree(source, destination)
    else:
        if destination.is_dir() and not destination.is_symlink():
            shutil.rmtree(destination)
        copy_file(source, destination)

    return entry_type


def remove_path(path: Path) -> None:
    """Delete ``path`` without following a final symlink; missing paths are ignored."""

    if not lexists(path):
        return
    if path.is_symlink() or not path.is_dir():
        path.unlink()
        return
    shutil.rmtree(path)
