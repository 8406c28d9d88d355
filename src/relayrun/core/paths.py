"""Derivation of remote locations from the local source layout"""

import logging
import os
import posixpath
from typing import Iterable, Optional

from relayrun.core.errors import ConfigError

logger = logging.getLogger(__name__)

# Conventional leading segment dropped from derived subdirectories
SOURCE_PREFIX = "src/"


def _relative_to(base: str, path: str) -> Optional[str]:
    """Return path relative to base, or None if path is not inside base"""
    base = os.path.abspath(base)
    path = os.path.abspath(path)
    try:
        if os.path.commonpath([base, path]) != base:
            return None
    except ValueError:
        # Different drives or mixed absolute/relative paths
        return None
    return os.path.relpath(path, base)


def to_remote(path: str) -> str:
    """Convert a local relative path to remote (POSIX) separators"""
    if os.sep != "/":
        path = path.replace(os.sep, "/")
    return path


def derive_subdir(cwd: str, system_root: Optional[str], search_path: Iterable[str]) -> str:
    """Locate cwd relative to the system root or a search path entry

    Args:
        cwd: Current working directory
        system_root: Toolchain root directory (may be empty)
        search_path: Workspace directories, checked in order

    Returns:
        Subdirectory in remote form, e.g. ``src/pkg/sub``

    Raises:
        ConfigError: cwd is under neither base
    """
    search_path = [p for p in search_path if p]

    if system_root:
        subdir = _relative_to(system_root, cwd)
        if subdir is not None:
            logger.debug(f"{cwd} is under system root {system_root}: {subdir}")
            return to_remote(subdir)

    for entry in search_path:
        subdir = _relative_to(entry, cwd)
        if subdir is not None:
            logger.debug(f"{cwd} is under search path entry {entry}: {subdir}")
            return to_remote(subdir)

    root_text = repr(system_root) if system_root else "unset"
    raise ConfigError(
        f"the current path {cwd!r} is not in either the system root ({root_text}) "
        f"or the search path ({os.pathsep.join(search_path)!r})"
    )


def strip_source_prefix(subdir: str) -> str:
    """Drop the conventional leading ``src/`` segment"""
    if subdir.startswith(SOURCE_PREFIX):
        return subdir[len(SOURCE_PREFIX):]
    return subdir


def derive_remote_name(subdir: str, binary: str) -> str:
    """Build a single-segment remote file name for the binary

    The subdirectory (minus a leading ``src/``) is joined with the binary's
    file name and every ``/`` is flattened to ``_``, e.g. ``src/pkg/sub`` and
    ``./t.test`` give ``pkg_sub_t.test``.

    Args:
        subdir: Subdirectory as returned by derive_subdir
        binary: Local path of the binary

    Returns:
        Remote file name without path separators
    """
    name = os.path.basename(binary)
    joined = posixpath.normpath(posixpath.join(strip_source_prefix(subdir), name))
    return joined.replace("/", "_")
