import asyncio
import logging
import os
import stat
from pathlib import Path, PurePath
from typing import Iterator

from ..filters import FilterSet

logger = logging.getLogger(__name__)

# Version-control metadata directories, never descended into
VCS_METADATA = frozenset({'.git'})


def walk(
        path: Path,
        relative: PurePath = PurePath(),
        _ancestors: frozenset[tuple[int, int]] | None = None) -> Iterator[tuple[Path, PurePath]]:
    """Recursively yield (absolute_path, relative_path) for every non-directory entry.

    Directories are always descended into, except version-control metadata directories.
    Symlinks are followed, so a link to a directory is walked like the directory itself.
    Broken links are skipped, and a link back to a directory being walked is not followed.
    Entries are produced in directory-enumeration order.
    """
    if _ancestors is None:
        st = path.stat()
        _ancestors = frozenset({(st.st_dev, st.st_ino)})

    child: Path
    for child in path.iterdir():
        if child.name in VCS_METADATA:
            continue

        child_relative = relative / child.name
        try:
            st = child.stat()
        except OSError as e:
            logger.debug(f"Skipping unreadable entry {child}: {e}")
            continue

        if stat.S_ISDIR(st.st_mode):
            key = (st.st_dev, st.st_ino)
            if key in _ancestors:
                logger.debug(f"Skipping symlink loop at {child}")
                continue
            yield from walk(child, child_relative, _ancestors | {key})
        else:
            yield child, child_relative


def list_files(root: Path, filter_set: FilterSet) -> list[str]:
    """List files under root accepted by the filter set.

    Paths are returned relative to root with a leading separator (e.g.
    "/assets/minecraft/textures/block/stone.png"), so that lists from two different roots
    can be compared by identity. A file is kept when its extension is allowed and the path
    contains none of the excluded substrings.

    Args:
        root: Directory to enumerate
        filter_set: Exclusion rules for the edition being computed

    Returns:
        Relative paths in directory-enumeration order
    """
    files = []
    for _, relative in walk(root):
        relative_path = os.path.normpath(os.sep + str(relative))
        if filter_set.allows_extension(relative_path) and not filter_set.excludes(relative_path):
            files.append(relative_path)

    logger.info(f"Found {len(files)} files under {root}")
    return files


async def list_files_async(root: Path, filter_set: FilterSet) -> list[str]:
    """Run list_files in a worker thread so large trees don't block the event loop."""
    return await asyncio.to_thread(list_files, root, filter_set)
