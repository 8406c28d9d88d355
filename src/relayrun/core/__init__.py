"""Core configuration and orchestration module"""

from .config import Config, resolve_config
from .errors import ConfigError, DeployError, ExecutionError, RelayError, SessionError

__all__ = [
    "Config",
    "resolve_config",
    "RelayError",
    "ConfigError",
    "SessionError",
    "DeployError",
    "ExecutionError",
]
