"""Abstract base class for remote sessions"""

from abc import ABC, abstractmethod
from typing import Any


class BaseSession(ABC):
    """One authenticated connection with a file-transfer handle

    Sessions are context managers: leaving the ``with`` block releases the
    file-transfer handle and the connection on every exit path.
    """

    @property
    @abstractmethod
    def sftp(self) -> Any:
        """File-transfer handle owned by the session"""
        pass

    @abstractmethod
    def open_sftp(self) -> Any:
        """Open an additional short-lived file-transfer handle

        Returns:
            SFTP client the caller must close
        """
        pass

    @abstractmethod
    def open_channel(self) -> Any:
        """Open a command-execution channel for a single command

        Returns:
            Channel the caller must close

        Raises:
            ExecutionError: The channel could not be opened
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the file-transfer handle and the connection"""
        pass

    def __enter__(self) -> "BaseSession":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
