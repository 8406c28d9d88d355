"""CLI interface for relayrun"""

import logging
import sys

import click

from relayrun.core.config import DEFAULT_FLAGS_ENV, resolve_config
from relayrun.core.errors import RelayError
from relayrun.core.orchestrator import Orchestrator

logger = logging.getLogger("relayrun")

# Exit status for faults before or during setup of the remote run
EXIT_SETUP_FAILURE = 2


def configure_logging(verbose: bool, debug: bool) -> None:
    """Log to stderr; stdout carries only the remote program's output"""
    level = logging.WARNING
    if verbose:
        level = logging.INFO
    if debug:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger().setLevel(level)
    if not debug:
        logging.getLogger("paramiko").setLevel(logging.WARNING)


@click.command(context_settings={"allow_interspersed_args": False})
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, dir_okay=False),
    envvar="RELAYRUN_CONFIG",
    help="Path to configuration YAML file (or RELAYRUN_CONFIG)",
)
@click.option(
    "--flags-env",
    default=DEFAULT_FLAGS_ENV,
    show_default=True,
    help="Environment variable holding the space separated connection options",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable verbose logging",
)
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug logging, including paramiko",
)
@click.version_option(package_name="relayrun")
@click.argument("binary", type=click.Path(dir_okay=False))
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def cli(config, flags_env: str, verbose: bool, debug: bool, binary: str, args: tuple):
    """Run BINARY on a remote host over SSH with ARGS

    The binary is uploaded together with the local ``testdata`` directory,
    run from a remote directory mirroring the local source location, and
    removed again if it succeeds. The current directory must lie under GOROOT
    (or what `go env GOROOT` reports) or a GOPATH entry. Connection options
    are read from the environment variable named by --flags-env:

    \b
        --host=ADDR      target host (required)
        --user=NAME      ssh user (default: root)
        --password=PASS  ssh password
        --root=DIR       root directory on the target (default: /tmp)
        --keep           keep the binary on the target
        --mem=N          memory reservation, 0 for unlimited

    Examples:
        RELAYRUN_FLAGS="--host=10.0.0.5 --password=secret" relayrun ./pkg.test -test.v
        relayrun -c relayrun.yaml ./pkg.test -test.run TestFoo
    """
    configure_logging(verbose, debug)

    try:
        cfg = resolve_config(binary, args, config_file=config, flags_env=flags_env)
        result = Orchestrator(cfg).run()

    except RelayError as e:
        click.echo(f"relayrun: {e}", err=True)
        sys.exit(EXIT_SETUP_FAILURE)

    except Exception as e:
        click.echo(f"relayrun: unexpected error: {e}", err=True)
        if verbose or debug:
            import traceback

            traceback.print_exc()
        sys.exit(EXIT_SETUP_FAILURE)

    click.echo(result.output, nl=False)
    if not result.success:
        logger.info(f"Remote run failed: {result.error}")
        sys.exit(1)
    sys.exit(0)


def main():
    """Entry point for CLI"""
    cli()


if __name__ == "__main__":
    main()
