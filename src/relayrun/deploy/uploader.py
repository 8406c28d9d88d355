"""Upload of the binary and mirroring of fixture trees over SFTP"""

import logging
import os
import posixpath
import stat
from typing import Iterable, Optional

import paramiko

from relayrun.core.errors import DeployError
from relayrun.deploy.walker import EntryKind, TreeEntry, walk_tree

logger = logging.getLogger(__name__)

# Failures surfaced by paramiko SFTP operations
SFTP_ERRORS = (OSError, paramiko.SSHException)


def upload_file(sftp, local_path: str, remote_path: str) -> int:
    """Copy a local file to the remote host, preserving its permission bits

    Args:
        sftp: SFTP client
        local_path: Path to local file
        remote_path: Path on remote host

    Returns:
        Number of bytes written

    Raises:
        DeployError: Local file unreadable or any remote operation failed
    """
    try:
        mode = stat.S_IMODE(os.stat(local_path).st_mode)
        with open(local_path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise DeployError(f"Cannot read {local_path}: {e}") from e

    logger.debug(f"Uploading {local_path} to {remote_path} ({len(data)} bytes, mode {mode:o})")
    try:
        with sftp.open(remote_path, "wb") as remote_file:
            remote_file.write(data)
        sftp.chmod(remote_path, mode)
    except SFTP_ERRORS as e:
        raise DeployError(f"Failed to upload {local_path} to {remote_path}: {e}") from e

    return len(data)


def ensure_remote_dir(sftp, remote_dir: str) -> bool:
    """Create a remote directory unless it already exists

    Args:
        sftp: SFTP client
        remote_dir: Directory path on remote host

    Returns:
        True if the directory was created, False if it already existed

    Raises:
        DeployError: The directory could not be created
    """
    try:
        sftp.stat(remote_dir)
        return False
    except SFTP_ERRORS:
        pass

    try:
        sftp.mkdir(remote_dir)
    except SFTP_ERRORS as e:
        # Created concurrently or hidden from the first stat
        try:
            if stat.S_ISDIR(sftp.stat(remote_dir).st_mode or 0):
                return False
        except OSError:
            pass
        raise DeployError(f"Failed to create remote directory {remote_dir}: {e}") from e

    logger.debug(f"Created remote directory: {remote_dir}")
    return True


def ensure_remote_tree(sftp, remote_dir: str) -> None:
    """Create every missing directory along remote_dir, starting below /

    Raises:
        DeployError: A directory could not be created
    """
    absolute = remote_dir.startswith("/")
    parts = [part for part in remote_dir.split("/") if part]
    for i in range(1, len(parts) + 1):
        path = "/".join(parts[:i])
        ensure_remote_dir(sftp, "/" + path if absolute else path)


def upload_tree(sftp, entries: Iterable[TreeEntry], remote_root: str) -> int:
    """Reproduce walked entries beneath remote_root

    Args:
        sftp: SFTP client
        entries: Entries as produced by walk_tree
        remote_root: Remote directory the relative paths are joined to

    Returns:
        Number of files uploaded

    Raises:
        DeployError: A directory could not be created or a file upload failed
    """
    files = 0
    for entry in entries:
        remote_path = posixpath.join(remote_root, entry.relative_path)
        if entry.kind is EntryKind.DIRECTORY:
            ensure_remote_dir(sftp, remote_path)
        elif entry.kind is EntryKind.FILE:
            upload_file(sftp, entry.local_path, remote_path)
            files += 1
    return files


def mirror_directory(sftp, local_dir: str, remote_root: str) -> Optional[int]:
    """Mirror a local fixture directory beneath remote_root

    ``local_dir`` itself appears under ``remote_root`` by name, so mirroring
    ``testdata`` into ``/tmp/pkg`` produces ``/tmp/pkg/testdata/...``.

    Args:
        sftp: SFTP client
        local_dir: Local directory to mirror
        remote_root: Remote directory to mirror into

    Returns:
        Number of files uploaded, or None if local_dir is not a directory

    Raises:
        DeployError: The local tree could not be read or a remote directory or
            file could not be written
    """
    if not os.path.isdir(local_dir):
        logger.debug(f"No fixture directory at {local_dir}, skipping")
        return None

    ensure_remote_tree(sftp, remote_root)
    try:
        files = upload_tree(sftp, walk_tree(local_dir), remote_root)
    except OSError as e:
        # Local traversal failures; remote ones arrive as DeployError
        raise DeployError(f"Cannot read fixture directory {local_dir}: {e}") from e
    logger.info(f"Mirrored {files} file(s) from {local_dir} to {remote_root}")
    return files
