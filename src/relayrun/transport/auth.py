"""Authentication methods tried in order against an SSH transport"""

import logging
import os
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

import paramiko

logger = logging.getLogger(__name__)


class AuthMethod(ABC):
    """One way of presenting credentials to the server"""

    name = "unknown"

    @abstractmethod
    def authenticate(self, transport: paramiko.Transport, username: str) -> List[str]:
        """Attempt authentication on an already negotiated transport

        Args:
            transport: Transport with a completed client handshake
            username: User to authenticate as

        Returns:
            List of further auth types the server requires (empty when done)

        Raises:
            paramiko.AuthenticationException: The server rejected the attempt
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


class PasswordAuth(AuthMethod):
    """Shared-secret authentication"""

    name = "password"

    def __init__(self, password: str):
        self.password = password

    def authenticate(self, transport: paramiko.Transport, username: str) -> List[str]:
        # Keyboard-interactive is a separate link in the chain
        return transport.auth_password(username, self.password, fallback=False)


class KeyboardInteractiveAuth(AuthMethod):
    """Challenge/response authentication answering every prompt with the password"""

    name = "keyboard-interactive"

    def __init__(self, password: str):
        self.password = password

    def answer(self, title: str, instructions: str, prompts: List[Tuple[str, bool]]) -> List[str]:
        """Interactive handler: one copy of the password per prompt"""
        return [self.password for _ in prompts]

    def authenticate(self, transport: paramiko.Transport, username: str) -> List[str]:
        return transport.auth_interactive(username, self.answer)


class PublicKeyAuth(AuthMethod):
    """Public-key authentication with a locally loaded private key"""

    name = "publickey"

    def __init__(self, key: paramiko.PKey, key_file: Optional[str] = None):
        self.key = key
        self.key_file = key_file

    def authenticate(self, transport: paramiko.Transport, username: str) -> List[str]:
        return transport.auth_publickey(username, self.key)

    def __repr__(self) -> str:
        return f"<PublicKeyAuth {self.key_file or self.key.get_name()}>"


def load_private_key(key_file: Optional[str]) -> Optional[paramiko.PKey]:
    """Load a private key, returning None if it is absent or unusable

    Args:
        key_file: Path to private key (~ is expanded)

    Returns:
        Parsed key or None
    """
    if not key_file:
        return None

    expanded_key = os.path.expanduser(key_file)
    if not os.path.exists(expanded_key):
        logger.debug(f"Private key not found: {expanded_key}, public key auth disabled")
        return None

    try:
        return paramiko.PKey.from_path(expanded_key)
    except Exception as e:
        logger.debug(f"Could not load private key {expanded_key}: {e}, public key auth disabled")
        return None


def build_auth_chain(password: str, key_file: Optional[str]) -> Tuple[AuthMethod, ...]:
    """Assemble the ordered authentication chain

    Password and keyboard-interactive are always present; public key is
    appended last only when ``key_file`` holds a parseable private key.

    Args:
        password: Shared secret
        key_file: Path to private key

    Returns:
        Tuple of auth methods in the order they are tried
    """
    chain: List[AuthMethod] = [
        PasswordAuth(password),
        KeyboardInteractiveAuth(password),
    ]

    key = load_private_key(key_file)
    if key is not None:
        chain.append(PublicKeyAuth(key, key_file=os.path.expanduser(key_file)))

    logger.debug(f"Auth methods (in priority order): {' → '.join(m.name for m in chain)}")
    return tuple(chain)
