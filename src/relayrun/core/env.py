"""Environment references inside configuration file values"""

import re
from typing import Any, Mapping

from relayrun.core.errors import ConfigError

# $NAME, ${NAME}, ${NAME:-default} or ${NAME:?message}
_REFERENCE = re.compile(
    r"\$(?:\{(?P<name>[A-Za-z_]\w*)(?:(?P<op>:[-?])(?P<arg>[^}]*))?\}|(?P<bare>[A-Za-z_]\w*))"
)


def expand_string(value: str, env: Mapping[str, str]) -> str:
    """Substitute environment references in one string

    Unset plain references are left as written.

    Raises:
        ConfigError: A ``${NAME:?message}`` reference names an unset variable
    """

    def substitute(match):
        name = match.group("name") or match.group("bare")
        if name in env:
            return env[name]
        if match.group("op") == ":-":
            return match.group("arg")
        if match.group("op") == ":?":
            raise ConfigError(f"Required variable not set: {name} ({match.group('arg')})")
        return match.group(0)

    return _REFERENCE.sub(substitute, value)


def expand_values(data: Any, env: Mapping[str, str]) -> Any:
    """Apply expand_string to every string nested in mappings and lists"""
    if isinstance(data, str):
        return expand_string(data, env)
    if isinstance(data, dict):
        return {key: expand_values(value, env) for key, value in data.items()}
    if isinstance(data, list):
        return [expand_values(item, env) for item in data]
    return data
