"""Best-effort removal of the deployed binary"""

import logging

from relayrun.transport.base import BaseSession

logger = logging.getLogger(__name__)


def remove_artifact(session: BaseSession, remote_path: str) -> bool:
    """Remove a remote file through a short-lived SFTP handle

    Failures are logged and never raised.

    Args:
        session: Connected session
        remote_path: Path on remote host

    Returns:
        True if the file was removed
    """
    try:
        sftp = session.open_sftp()
    except Exception as e:
        logger.warning(f"Could not open SFTP channel to remove {remote_path}: {e}")
        return False

    try:
        sftp.remove(remote_path)
        logger.info(f"Removed {remote_path}")
        removed = True
    except Exception as e:
        logger.warning(f"Failed to remove {remote_path}: {e}")
        removed = False

    try:
        sftp.close()
    except Exception as e:
        logger.warning(f"Error closing cleanup SFTP channel: {e}")

    return removed
