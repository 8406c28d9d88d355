"""Main orchestration logic"""

import logging
from typing import Callable, Optional

from relayrun.core.config import Config
from relayrun.deploy.uploader import mirror_directory, upload_file
from relayrun.execution.cleanup import remove_artifact
from relayrun.execution.command import build_command
from relayrun.execution.runner import RunResult, run_command
from relayrun.transport.base import BaseSession
from relayrun.transport.ssh import open_session

logger = logging.getLogger(__name__)


class Orchestrator:
    """Runs one deploy, execute and cleanup cycle"""

    def __init__(self, config: Config, session_factory: Optional[Callable[[Config], BaseSession]] = None):
        """Initialize orchestrator

        Args:
            config: Resolved configuration
            session_factory: Opens a connected session for the config (default: SSH)
        """
        self.config = config
        self.session_factory = session_factory or open_session

    @property
    def command(self) -> str:
        """Remote command line for the configured binary and arguments"""
        config = self.config
        return build_command(
            config.remote_test_dir,
            config.remote_binary,
            config.args,
            mem=config.mem,
            wrapper=config.wrapper,
        )

    def _deploy(self, session: BaseSession) -> None:
        """Upload the binary, then mirror the fixture directory"""
        config = self.config
        size = upload_file(session.sftp, config.binary, config.remote_binary)
        logger.info(f"Uploaded {config.binary} to {config.host}:{config.remote_binary} ({size} bytes)")

        mirror_directory(session.sftp, config.fixtures_dir, config.remote_test_dir)

    def _cleanup(self, session: BaseSession, result: RunResult) -> None:
        """Remove the binary after a successful run unless it is to be kept"""
        config = self.config
        if config.keep:
            logger.info(f"Keeping {config.remote_binary} on {config.host}")
        elif not result.success:
            logger.info(f"Run failed, leaving {config.remote_binary} on {config.host} for inspection")
        else:
            remove_artifact(session, config.remote_binary)

    def run(self) -> RunResult:
        """Execute the complete workflow

        Returns:
            Result of the remote run

        Raises:
            RelayError: Connection, upload or channel setup failed
        """
        config = self.config
        logger.info(f"Running {config.binary} on {config.user}@{config.host}:{config.port}")

        with self.session_factory(config) as session:
            self._deploy(session)

            result = run_command(session, self.command)
            if result.success:
                logger.info("Remote run succeeded")
            else:
                logger.info(f"Remote run failed: {result.error}")

            self._cleanup(session, result)

        return result
