"""Pytest configuration and shared fixtures"""

import errno
import os
import stat
import tempfile
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from relayrun.core.config import Config


class FakeRemoteFile:
    """Writable file handle returned by FakeSFTP.open"""

    def __init__(self, sftp, path):
        self.sftp = sftp
        self.path = path
        self.chunks = []

    def write(self, data):
        self.chunks.append(bytes(data))

    def close(self):
        self.sftp.files[self.path] = b"".join(self.chunks)
        self.sftp.modes.setdefault(self.path, 0o644)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class FakeSFTP:
    """In-memory SFTP client covering the operations relayrun uses"""

    def __init__(self, dirs=("/", "/tmp")):
        self.dirs = set(dirs)
        self.files = {}
        self.modes = {}
        self.calls = []
        self.closed = False

    def _parent_exists(self, path):
        parent = os.path.dirname(path.rstrip("/")) or "/"
        return parent in self.dirs

    def stat(self, path):
        self.calls.append(("stat", path))
        if path in self.dirs:
            return SimpleNamespace(st_mode=stat.S_IFDIR | 0o755)
        if path in self.files:
            return SimpleNamespace(st_mode=stat.S_IFREG | self.modes[path])
        raise IOError(errno.ENOENT, "No such file")

    def mkdir(self, path, mode=0o777):
        self.calls.append(("mkdir", path))
        if path in self.dirs or path in self.files or not self._parent_exists(path):
            raise IOError("Failure")
        self.dirs.add(path)

    def open(self, path, mode="r"):
        self.calls.append(("open", path, mode))
        if not self._parent_exists(path):
            raise IOError(errno.ENOENT, "No such file")
        return FakeRemoteFile(self, path)

    def chmod(self, path, mode):
        self.calls.append(("chmod", path, mode))
        if path not in self.files:
            raise IOError(errno.ENOENT, "No such file")
        self.modes[path] = mode

    def remove(self, path):
        self.calls.append(("remove", path))
        if path not in self.files:
            raise IOError(errno.ENOENT, "No such file")
        del self.files[path]
        del self.modes[path]

    def close(self):
        self.closed = True


class FakeChannel:
    """Command channel replaying canned output and exit status"""

    def __init__(self, output=b"", exit_status=0):
        self.pending = [output] if output else []
        self.exit_status = exit_status
        self.command = None
        self.combine_stderr = False
        self.closed = False

    def set_combine_stderr(self, combine):
        self.combine_stderr = combine

    def exec_command(self, command):
        self.command = command

    def recv(self, size):
        if self.pending:
            return self.pending.pop(0)
        return b""

    def recv_exit_status(self):
        return self.exit_status

    def close(self):
        self.closed = True


class FakeSession:
    """Session backed by FakeSFTP and FakeChannel"""

    def __init__(self, sftp=None, channel=None):
        self._sftp = sftp or FakeSFTP()
        self.channel = channel or FakeChannel()
        self.extra_sftp = []
        self.closed = False

    @property
    def sftp(self):
        return self._sftp

    def open_sftp(self):
        # Short-lived handle sharing the same remote filesystem
        handle = MagicMock(wraps=self._sftp)
        self.extra_sftp.append(handle)
        return handle

    def open_channel(self):
        return self.channel

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def fake_sftp():
    return FakeSFTP()


@pytest.fixture
def fake_session(fake_sftp):
    return FakeSession(sftp=fake_sftp)


@pytest.fixture
def test_binary(temp_dir):
    """Create an executable test binary"""
    path = os.path.join(temp_dir, "t.test")
    with open(path, "wb") as f:
        f.write(b"\x7fELF" + b"0" * 1024)
    os.chmod(path, 0o755)
    return path


@pytest.fixture
def fixture_tree(temp_dir):
    """Create a nested testdata directory"""
    root = os.path.join(temp_dir, "testdata")
    os.makedirs(os.path.join(root, "nested", "deeper"))
    with open(os.path.join(root, "a.txt"), "w") as f:
        f.write("alpha")
    with open(os.path.join(root, "nested", "b.bin"), "wb") as f:
        f.write(b"\x00\x01")
    with open(os.path.join(root, "nested", "deeper", "c.txt"), "w") as f:
        f.write("gamma")
    return root


@pytest.fixture
def make_config(test_binary, temp_dir):
    """Build a Config without going through resolution"""

    def _make(**overrides):
        values = dict(
            binary=test_binary,
            args=(),
            host="192.168.1.100",
            user="root",
            password="secret",
            root="/tmp",
            subdir="pkg/sub",
            remote_name="pkg_sub_t.test",
            keep=False,
            mem=0,
            fixtures_dir=os.path.join(temp_dir, "testdata"),
        )
        values.update(overrides)
        return Config(**values)

    return _make
