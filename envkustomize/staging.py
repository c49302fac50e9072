"""Library for staging a copy of a directory tree with file contents rewritten.

kustomize runs as a separate binary and reads manifests directly from disk, so
substitution can't happen as files are read. Instead the tree is copied to a
scratch directory with every text file passed through a transform, and
kustomize builds the copy. Symlinked directories are copied as regular
directories and links to missing files are left out.
"""

from collections.abc import Callable, Iterable
import logging
import os
from pathlib import Path
import shutil

import aiofiles
import aiofiles.os
from aiofiles.ospath import isdir

from .command import format_path
from .exceptions import InputException

__all__ = [
    "stage_tree",
]

_LOGGER = logging.getLogger(__name__)

IGNORE_DIRS = {".git", "venv", ".venv"}
KRMIGNORE = ".krmignore"


def read_krmignore(root: Path) -> set[Path]:
    """Return the directories listed in the root `.krmignore` file."""
    krmignore = root / KRMIGNORE
    if not krmignore.exists():
        return set()
    with krmignore.open() as fd:
        return {
            (root / line.strip()).resolve()
            for line in fd.readlines()
            if line.strip() and not line.startswith("#")
        }


async def _stage_file(
    src: Path, dest: Path, transform: Callable[[str, Path], str]
) -> bool:
    """Copy one file, returning False if it was skipped."""
    if src.is_symlink() and not src.exists():
        _LOGGER.debug("Skipping dangling symlink %s", src)
        return False
    try:
        async with aiofiles.open(src, "rb") as fd:
            data = await fd.read()
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            _LOGGER.debug("Copying binary file %s", src)
            shutil.copy2(src, dest)
            return True
        content = transform(text, src)
        async with aiofiles.open(dest, "w", encoding="utf-8", newline="") as fd:
            await fd.write(content)
        shutil.copymode(src, dest)
    except OSError as err:
        raise InputException(f"unable to stage {src}: {err}") from err
    return True


def _is_loop(current: Path, child: Path) -> bool:
    """Return True if the child directory links back to one of its ancestors."""
    return child.is_symlink() and current.resolve().is_relative_to(child.resolve())


async def stage_tree(
    root: Path,
    dest: Path,
    transform: Callable[[str, Path], str],
    exclude: Iterable[Path] = (),
) -> int:
    """Copy the tree under root into dest, rewriting text files with transform.

    Symlinked directories are copied as regular directories. The transform is
    called with the file contents and the source path. Returns the number of
    files staged.
    """
    if not await isdir(root):
        raise InputException(f"Path is not a directory: {root}")
    root = root.resolve()
    skip = read_krmignore(root) | {path.resolve() for path in exclude}
    _LOGGER.debug("Staging %s into %s", format_path(root), dest)

    count = 0
    for dirpath, dirnames, filenames in os.walk(root, followlinks=True):
        current = Path(dirpath)
        dirnames[:] = sorted(
            name
            for name in dirnames
            if name not in IGNORE_DIRS
            and (current / name).resolve() not in skip
            and not _is_loop(current, current / name)
        )
        target_dir = dest / current.relative_to(root)
        await aiofiles.os.makedirs(target_dir, exist_ok=True)
        for name in sorted(filenames):
            src = current / name
            if name == KRMIGNORE or src.resolve() in skip:
                continue
            if await _stage_file(src, target_dir / name, transform):
                count += 1
    _LOGGER.debug("Staged %d files", count)
    return count
