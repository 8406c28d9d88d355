"""Configuration resolution"""

import logging
import os
import posixpath
import subprocess
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

import click
import yaml

from relayrun.core.env import expand_values
from relayrun.core.errors import ConfigError
from relayrun.core.paths import derive_remote_name, derive_subdir, strip_source_prefix
from relayrun.transport.auth import AuthMethod, build_auth_chain

logger = logging.getLogger(__name__)

DEFAULT_FLAGS_ENV = "RELAYRUN_FLAGS"
DEFAULT_WRAPPER = "/usr/lib/vmware/rp/bin/runInRP"
DEFAULT_KEY_FILE = "~/.ssh/id_rsa"
DEFAULT_KNOWN_HOSTS = "~/.ssh/known_hosts"

# YAML-only settings and their defaults
FILE_SETTINGS: Dict[str, Any] = {
    "port": 22,
    "key_file": DEFAULT_KEY_FILE,
    "known_hosts": DEFAULT_KNOWN_HOSTS,
    "skip_host_verification": False,
    "wrapper": DEFAULT_WRAPPER,
    "fixtures_dir": "testdata",
    "system_root": None,
    "search_path": None,
}


@click.command(name=DEFAULT_FLAGS_ENV, add_help_option=False)
@click.option("--host", default="", help="Target host address")
@click.option("--user", default="root", help="SSH user")
@click.option("--password", default="", help="SSH password")
@click.option("--root", default="/tmp", help="Root directory on the target")
@click.option("--keep/--no-keep", default=False, help="Keep the binary on the target")
@click.option("--mem", type=click.IntRange(min=0), default=0, help="Memory reservation (0 = unlimited)")
def flag_options(**kwargs):
    """Options recognised in the flags environment variable"""
    return kwargs


FLAG_NAMES = frozenset(param.name for param in flag_options.params)


@dataclass(frozen=True)
class Config:
    """Resolved settings for one deploy, run and cleanup cycle"""

    binary: str
    args: Tuple[str, ...]
    host: str
    user: str
    password: str = field(repr=False)
    root: str
    subdir: str
    remote_name: str
    keep: bool = False
    mem: int = 0
    port: int = 22
    wrapper: str = DEFAULT_WRAPPER
    fixtures_dir: str = "testdata"
    known_hosts: Optional[str] = DEFAULT_KNOWN_HOSTS
    skip_host_verification: bool = False
    auth_chain: Tuple[AuthMethod, ...] = field(default=(), repr=False)

    @property
    def remote_test_dir(self) -> str:
        """Remote working directory the binary runs in"""
        return posixpath.normpath(posixpath.join(self.root, self.subdir))

    @property
    def remote_binary(self) -> str:
        """Remote path the binary is uploaded to"""
        return posixpath.join(self.root, self.remote_name)


def load_config_file(config_file: str, env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Load a YAML configuration file with environment variable expansion

    Args:
        config_file: Path to configuration YAML file
        env: Variables for expansion (defaults to the process environment)

    Returns:
        Configuration dict

    Raises:
        ConfigError: File missing, unparseable or not a mapping
    """
    config_file = os.path.expanduser(config_file)
    try:
        with open(config_file, "r") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {config_file}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse configuration file {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {config_file} must contain a mapping")

    try:
        data = expand_values(data, os.environ if env is None else env)
    except ConfigError as e:
        raise ConfigError(f"Environment variable expansion failed in {config_file}: {e}") from e

    for key in data:
        if key not in FLAG_NAMES and key not in FILE_SETTINGS:
            logger.warning(f"Unknown configuration key ignored: {key}")

    logger.info(f"Loaded configuration from {config_file}")
    return data


def parse_flags(value: str, defaults: Optional[Dict[str, Any]] = None,
                source: str = DEFAULT_FLAGS_ENV) -> Dict[str, Any]:
    """Parse the whitespace separated option list from the flags variable

    Args:
        value: Raw variable value, e.g. ``"--host=10.0.0.5 --mem=512"``
        defaults: Values used for options absent from ``value``
        source: Variable name used in diagnostics

    Returns:
        Dict with one entry per recognised option

    Raises:
        ConfigError: Unknown option or invalid value
    """
    tokens = value.split()
    try:
        ctx = flag_options.make_context(
            flag_options.name, tokens, default_map=defaults or {}
        )
    except click.ClickException as e:
        raise ConfigError(f"Invalid option in {source}: {e.format_message()}") from e

    return dict(ctx.params)


def _system_root(value: Any, env: Mapping[str, str]) -> Optional[str]:
    if value:
        return os.path.expanduser(value)
    if env.get("GOROOT"):
        return env["GOROOT"]

    try:
        result = subprocess.run(
            ["go", "env", "GOROOT"],
            capture_output=True,
            text=True,
            check=True,
            timeout=10,
        )
    except (subprocess.SubprocessError, OSError) as e:
        logger.debug(f"Could not ask the go tool for GOROOT: {e}")
        return None
    return result.stdout.strip() or None


def _search_path(value: Any, env: Mapping[str, str]) -> List[str]:
    if value is None:
        value = env.get("GOPATH") or os.path.expanduser("~/go")
    if isinstance(value, str):
        value = value.split(os.pathsep)
    return [os.path.expanduser(p) for p in value if p]


def resolve_config(binary: str, args: Tuple[str, ...] = (), config_file: Optional[str] = None,
                   flags_env: str = DEFAULT_FLAGS_ENV, cwd: Optional[str] = None,
                   env: Optional[Mapping[str, str]] = None) -> Config:
    """Resolve every setting needed for one invocation

    Precedence: flags variable > configuration file > defaults.

    Args:
        binary: Local path of the binary to deploy
        args: Arguments passed to the remote binary
        config_file: Optional YAML configuration file
        flags_env: Name of the environment variable holding option tokens
        cwd: Local working directory (defaults to os.getcwd())
        env: Environment mapping (defaults to os.environ)

    Returns:
        Fully populated Config

    Raises:
        ConfigError: Options or the local working directory cannot be resolved
    """
    env = os.environ if env is None else env

    file_data = load_config_file(config_file, env) if config_file else {}
    defaults = {k: v for k, v in file_data.items() if k in FLAG_NAMES}
    settings = dict(FILE_SETTINGS)
    settings.update({k: v for k, v in file_data.items() if k in FILE_SETTINGS})

    flags = parse_flags(env.get(flags_env, ""), defaults, source=flags_env)
    if not flags["host"]:
        logger.warning(f"No target host set in {flags_env}")

    if cwd is None:
        try:
            cwd = os.getcwd()
        except OSError as e:
            raise ConfigError(f"Cannot determine the current directory: {e}") from e

    raw_subdir = derive_subdir(
        cwd,
        _system_root(settings["system_root"], env),
        _search_path(settings["search_path"], env),
    )

    try:
        port = int(settings["port"])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid port: {settings['port']!r}") from e

    config = Config(
        binary=binary,
        args=tuple(args),
        host=flags["host"],
        user=flags["user"],
        password=flags["password"],
        root=flags["root"],
        subdir=strip_source_prefix(raw_subdir),
        remote_name=derive_remote_name(raw_subdir, binary),
        keep=bool(flags["keep"]),
        mem=flags["mem"],
        port=port,
        wrapper=settings["wrapper"],
        fixtures_dir=os.path.join(cwd, settings["fixtures_dir"]),
        known_hosts=settings["known_hosts"],
        skip_host_verification=bool(settings["skip_host_verification"]),
        auth_chain=build_auth_chain(flags["password"], settings["key_file"]),
    )

    logger.debug(f"Resolved configuration: {config}")
    return config
