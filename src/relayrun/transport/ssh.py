"""SSH/SFTP session implementation"""

import logging
import os
from typing import Optional, Sequence

import paramiko

from relayrun.core.errors import ExecutionError, SessionError
from relayrun.transport.auth import AuthMethod
from relayrun.transport.base import BaseSession

logger = logging.getLogger(__name__)


class SSHSession(BaseSession):
    """Authenticated SSH connection with an SFTP sub-channel"""

    def __init__(self, host: str, user: str, auth_chain: Sequence[AuthMethod], port: int = 22,
                 known_hosts: Optional[str] = None, skip_host_verification: bool = False):
        """Initialize SSH session

        Args:
            host: Hostname or IP address
            user: Username for authentication
            auth_chain: Authentication methods, tried in order
            port: SSH port (default: 22)
            known_hosts: Path to known_hosts file used for host key verification
            skip_host_verification: Accept host keys that contradict known_hosts (insecure)
        """
        self.host = host
        self.user = user
        self.port = port
        self.auth_chain = list(auth_chain)
        self.known_hosts = os.path.expanduser(known_hosts) if known_hosts else None
        self.skip_host_verification = skip_host_verification
        self.transport: Optional[paramiko.Transport] = None
        self._sftp: Optional[paramiko.SFTPClient] = None
        if skip_host_verification:
            logger.warning("SSH host key verification is DISABLED - only use for testing!")

    @property
    def sftp(self) -> paramiko.SFTPClient:
        if self._sftp is None:
            raise SessionError("Session is not connected")
        return self._sftp

    def connect(self) -> "SSHSession":
        """Connect, verify the host key, authenticate and open the SFTP handle

        Returns:
            This session

        Raises:
            SessionError: Any step failed; the connection is closed again
        """
        if not self.host:
            raise SessionError("No target host configured")

        try:
            logger.debug(f"Connecting to {self.host}:{self.port}")
            self.transport = paramiko.Transport((self.host, self.port))
            self.transport.start_client()
            self._verify_host_key()
            self._authenticate()
            self._sftp = self.open_sftp()
        except (OSError, paramiko.SSHException) as e:
            self.close()
            raise SessionError(f"Failed to connect to {self.host}:{self.port}: {e}") from e
        except SessionError:
            self.close()
            raise

        logger.info(f"Connected to {self.host} as {self.user}")
        return self

    def _verify_host_key(self) -> None:
        """Check the server key against known_hosts"""
        server_key = self.transport.get_remote_server_key()
        lookup_name = self.host if self.port == 22 else f"[{self.host}]:{self.port}"

        known = None
        if self.known_hosts and os.path.exists(self.known_hosts):
            try:
                known = paramiko.HostKeys(self.known_hosts).lookup(lookup_name)
            except OSError as e:
                logger.warning(f"Failed to load known hosts from {self.known_hosts}: {e}")

        if not known or server_key.get_name() not in known:
            logger.warning(f"Unknown {server_key.get_name()} host key for {lookup_name}: "
                           f"{server_key.get_fingerprint().hex()}")
            return

        if known[server_key.get_name()] != server_key:
            message = f"Host key for {lookup_name} does not match {self.known_hosts}"
            if not self.skip_host_verification:
                raise SessionError(message)
            logger.warning(message)

    def _authenticate(self) -> None:
        """Walk the authentication chain until the transport is authenticated"""
        attempted = []
        for method in self.auth_chain:
            attempted.append(method.name)
            try:
                remaining = method.authenticate(self.transport, self.user)
            except paramiko.BadAuthenticationType as e:
                logger.debug(f"Server does not allow {method.name} (allowed: {', '.join(e.allowed_types)})")
                continue
            except paramiko.AuthenticationException as e:
                logger.debug(f"{method.name} authentication failed: {e}")
                continue

            if self.transport.is_authenticated():
                logger.debug(f"Authenticated to {self.host} with {method.name}")
                return
            logger.debug(f"{method.name} accepted, server requires: {', '.join(remaining)}")

        if attempted:
            raise SessionError(
                f"Authentication to {self.host} as {self.user} failed\n"
                f"  Attempted auth methods: {', '.join(attempted)}"
            )
        raise SessionError(f"Authentication to {self.host} failed: no auth methods available!")

    def open_sftp(self) -> paramiko.SFTPClient:
        if self.transport is None:
            raise SessionError("Session is not connected")
        sftp = paramiko.SFTPClient.from_transport(self.transport)
        if sftp is None:
            raise SessionError(f"Failed to open SFTP channel to {self.host}")
        return sftp

    def open_channel(self) -> paramiko.Channel:
        if self.transport is None:
            raise ExecutionError("Session is not connected")
        try:
            return self.transport.open_session()
        except paramiko.SSHException as e:
            raise ExecutionError(f"Failed to create session: {e}") from e

    def close(self) -> None:
        if self._sftp is not None:
            try:
                self._sftp.close()
            except Exception as e:
                logger.warning(f"Error closing SFTP channel: {e}")
            self._sftp = None

        if self.transport is not None:
            try:
                self.transport.close()
            except Exception as e:
                logger.warning(f"Error closing SSH connection: {e}")
            self.transport = None
            logger.debug(f"Closed SSH connection to {self.host}")


def open_session(config) -> SSHSession:
    """Open an authenticated session for a resolved Config

    Args:
        config: Resolved configuration

    Returns:
        Connected session

    Raises:
        SessionError: Connection, authentication or SFTP failure
    """
    session = SSHSession(
        host=config.host,
        user=config.user,
        auth_chain=config.auth_chain,
        port=config.port,
        known_hosts=config.known_hosts,
        skip_host_verification=config.skip_host_verification,
    )
    return session.connect()
