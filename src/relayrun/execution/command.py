"""Remote command line construction"""

from typing import Sequence


def build_command(test_dir: str, binary: str, args: Sequence[str] = (), mem: int = 0,
                  wrapper: str = "") -> str:
    """Compose the shell command that runs the binary in its test directory

    Arguments are joined with single spaces and are not quoted.

    Args:
        test_dir: Remote working directory, created if missing
        binary: Remote path of the uploaded binary
        args: Arguments for the binary
        mem: Memory reservation; non-zero wraps the binary with ``wrapper``
        wrapper: Path of the resource-reservation helper

    Returns:
        Command string, e.g. ``mkdir -p /tmp/pkg && cd /tmp/pkg && /tmp/pkg_t.test -v``
    """
    program = binary
    if mem and wrapper:
        program = f"{wrapper} --max {mem} {binary}"

    return f"mkdir -p {test_dir} && cd {test_dir} && " + " ".join([program, *args])
