"""Lazy traversal of a local fixture tree"""

import enum
import logging
import os
from dataclasses import dataclass
from typing import Iterator

logger = logging.getLogger(__name__)


class EntryKind(enum.Enum):
    DIRECTORY = "directory"
    FILE = "file"


@dataclass(frozen=True)
class TreeEntry:
    """A directory or regular file found under the walked root

    ``relative_path`` uses ``/`` separators and starts with the root's own
    name, so walking ``testdata`` yields ``testdata``, ``testdata/a.txt``...
    """

    kind: EntryKind
    local_path: str
    relative_path: str


def walk_tree(root: str) -> Iterator[TreeEntry]:
    """Yield the root and everything beneath it, depth-first in name order

    Symlinks, devices, sockets and FIFOs are skipped; symlinked directories
    are not followed. Nothing is yielded if ``root`` is not a directory.

    Args:
        root: Local directory to walk

    Yields:
        TreeEntry for every directory and regular file
    """
    if not os.path.isdir(root) or os.path.islink(root):
        return

    name = os.path.basename(os.path.normpath(root))
    yield TreeEntry(EntryKind.DIRECTORY, root, name)
    yield from _walk(root, name)


def _walk(local_dir: str, relative_dir: str) -> Iterator[TreeEntry]:
    with os.scandir(local_dir) as it:
        entries = sorted(it, key=lambda e: e.name)

    for entry in entries:
        relative_path = f"{relative_dir}/{entry.name}"
        if entry.is_dir(follow_symlinks=False):
            yield TreeEntry(EntryKind.DIRECTORY, entry.path, relative_path)
            yield from _walk(entry.path, relative_path)
        elif entry.is_file(follow_symlinks=False):
            yield TreeEntry(EntryKind.FILE, entry.path, relative_path)
        else:
            logger.debug(f"Skipping non-regular file: {entry.path}")
