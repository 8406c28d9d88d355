"""Execution of a command over a session with captured output"""

import io
import logging
from dataclasses import dataclass
from typing import Optional

import paramiko

from relayrun.transport.base import BaseSession

logger = logging.getLogger(__name__)

# Bytes read from the channel per recv call
READ_SIZE = 32768


@dataclass(frozen=True)
class RunResult:
    """Outcome of one remote run"""

    exit_status: int
    output: bytes = b""
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.exit_status == 0 and self.error is None


def run_command(session: BaseSession, command: str) -> RunResult:
    """Run a command on the session and wait for it to finish

    Standard output and standard error are captured into one buffer. A
    non-zero exit or a failure while running the command is returned as an
    unsuccessful RunResult, never raised.

    Args:
        session: Connected session
        command: Shell command line

    Returns:
        RunResult with exit status and combined output

    Raises:
        ExecutionError: The command channel could not be opened
    """
    channel = session.open_channel()
    buffer = io.BytesIO()
    try:
        channel.set_combine_stderr(True)
        logger.debug(f"Executing: {command}")
        channel.exec_command(command)

        while True:
            data = channel.recv(READ_SIZE)
            if not data:
                break
            buffer.write(data)

        exit_status = channel.recv_exit_status()
    except (OSError, paramiko.SSHException) as e:
        logger.error(f"Remote command failed: {e}")
        return RunResult(exit_status=-1, output=buffer.getvalue(), error=str(e))
    finally:
        channel.close()

    if exit_status == -1:
        logger.error("Remote command exited without reporting a status")
        return RunResult(exit_status=-1, output=buffer.getvalue(),
                         error="remote command exited without reporting a status")

    if exit_status != 0:
        logger.info(f"Remote command exited with status {exit_status}")
        return RunResult(exit_status=exit_status, output=buffer.getvalue(),
                         error=f"Process exited with status {exit_status}")

    logger.debug("Remote command completed successfully")
    return RunResult(exit_status=0, output=buffer.getvalue())
