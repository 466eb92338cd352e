"""Tests for the fsspec-backed local backend."""

from __future__ import annotations

import errno
import hashlib
import os
import stat
from pathlib import Path

import pytest

from chdfs.backend import BackendContext, LocalBackend, get_backend_factory
from chdfs.backend.local import default_local_root
from chdfs.config import Configuration
from chdfs.exceptions import UnsupportedOperationError

ADDRESS = "f4mabcdefgh-xyzw.chdfs.ap-guangzhou.myqcloud.com"


@pytest.fixture
def backend(tmp_path: Path) -> LocalBackend:
    fs = LocalBackend(str(tmp_path / "root"))
    fs.initialize(f"ofs://{ADDRESS}/warehouse", Configuration())
    return fs


def _write(fs: LocalBackend, path: str, data: bytes) -> None:
    with fs.create(path) as out:
        out.write(data)


def _read(fs: LocalBackend, path: str) -> bytes:
    with fs.open(path) as handle:
        return handle.read()


class TestLifecycle:
    def test_initialize(self, backend: LocalBackend, tmp_path: Path) -> None:
        assert backend.get_uri() == f"ofs://{ADDRESS}"
        assert backend.get_working_directory() == "/user/tester"
        assert backend.get_home_directory() == "/user/tester"
        assert (tmp_path / "root").is_dir()

    def test_set_working_directory_resolves_relative(self, backend: LocalBackend) -> None:
        backend.set_working_directory("/data")
        backend.set_working_directory("sub/../part")
        assert backend.get_working_directory() == "/data/part"

    def test_relative_paths_use_working_directory(self, backend: LocalBackend, tmp_path: Path) -> None:
        _write(backend, "notes.txt", b"x")
        assert (tmp_path / "root" / "user" / "tester" / "notes.txt").is_file()

    def test_paths_cannot_climb_above_root(self, backend: LocalBackend, tmp_path: Path) -> None:
        backend.mkdirs("/../../outside")
        assert (tmp_path / "root" / "outside").is_dir()
        assert not (tmp_path / "outside").exists()

    def test_full_uri_paths(self, backend: LocalBackend) -> None:
        _write(backend, f"ofs://{ADDRESS}/data/a.txt", b"abc")
        assert _read(backend, "/data/a.txt") == b"abc"


class TestData:
    def test_create_and_open(self, backend: LocalBackend) -> None:
        _write(backend, "/data/a.txt", b"hello")
        assert _read(backend, "/data/a.txt") == b"hello"

    def test_create_with_permission(self, backend: LocalBackend, tmp_path: Path) -> None:
        backend.create("/data/p.txt", permission=0o640).close()
        assert stat.S_IMODE((tmp_path / "root" / "data" / "p.txt").stat().st_mode) == 0o640

    def test_create_without_overwrite(self, backend: LocalBackend) -> None:
        _write(backend, "/data/a.txt", b"one")
        with pytest.raises(FileExistsError):
            backend.create("/data/a.txt", overwrite=False)
        assert _read(backend, "/data/a.txt") == b"one"

    def test_create_over_directory(self, backend: LocalBackend) -> None:
        backend.mkdirs("/data")
        with pytest.raises(IsADirectoryError):
            backend.create("/data")

    def test_open_missing_file(self, backend: LocalBackend) -> None:
        with pytest.raises(FileNotFoundError):
            backend.open("/missing")

    def test_create_non_recursive_needs_parent(self, backend: LocalBackend) -> None:
        with pytest.raises(FileNotFoundError):
            backend.create_non_recursive("/nope/a.txt")
        backend.mkdirs("/data")
        backend.create_non_recursive("/data/a.txt").close()
        assert backend.get_file_status("/data/a.txt").length == 0

    def test_create_non_recursive_append_flag(self, backend: LocalBackend) -> None:
        _write(backend, "/data/a.txt", b"ab")
        with backend.create_non_recursive("/data/a.txt", flags=["APPEND"]) as out:
            out.write(b"cd")
        assert _read(backend, "/data/a.txt") == b"abcd"

    def test_create_non_recursive_without_overwrite(self, backend: LocalBackend) -> None:
        _write(backend, "/data/a.txt", b"ab")
        with pytest.raises(FileExistsError):
            backend.create_non_recursive("/data/a.txt", flags=["create"])

    def test_append(self, backend: LocalBackend) -> None:
        _write(backend, "/data/a.txt", b"ab")
        with backend.append("/data/a.txt") as out:
            out.write(b"c")
        assert _read(backend, "/data/a.txt") == b"abc"
        with pytest.raises(FileNotFoundError):
            backend.append("/data/missing.txt")

    def test_truncate(self, backend: LocalBackend) -> None:
        _write(backend, "/data/a.txt", b"abcdef")
        assert backend.truncate("/data/a.txt", 2) is True
        assert _read(backend, "/data/a.txt") == b"ab"
        with pytest.raises(OSError):
            backend.truncate("/data/a.txt", 10)

    def test_concat(self, backend: LocalBackend) -> None:
        _write(backend, "/data/target", b"1")
        _write(backend, "/data/s1", b"2")
        _write(backend, "/data/s2", b"3")
        backend.concat("/data/target", ["/data/s1", "/data/s2"])
        assert _read(backend, "/data/target") == b"123"
        assert [status.path for status in backend.list_status("/data")] == ["/data/target"]

    def test_concat_rejects_target_as_source(self, backend: LocalBackend) -> None:
        _write(backend, "/data/target", b"12345")
        with pytest.raises(OSError) as exc_info:
            backend.concat("/data/target", ["/data/target"])
        assert exc_info.value.errno == errno.EINVAL
        assert _read(backend, "/data/target") == b"12345"

    def test_concat_rejects_duplicate_sources(self, backend: LocalBackend) -> None:
        _write(backend, "/data/target", b"1")
        _write(backend, "/data/s1", b"2")
        with pytest.raises(OSError) as exc_info:
            backend.concat("/data/target", ["/data/s1", "/data/./s1"])
        assert exc_info.value.errno == errno.EINVAL
        assert _read(backend, "/data/target") == b"1"
        assert _read(backend, "/data/s1") == b"2"

    def test_concat_missing_source_writes_nothing(self, backend: LocalBackend) -> None:
        _write(backend, "/data/target", b"1")
        _write(backend, "/data/s1", b"2")
        with pytest.raises(FileNotFoundError):
            backend.concat("/data/target", ["/data/s1", "/data/missing"])
        assert _read(backend, "/data/target") == b"1"
        assert _read(backend, "/data/s1") == b"2"


class TestNamespace:
    def test_rename_file(self, backend: LocalBackend) -> None:
        _write(backend, "/data/a.txt", b"x")
        assert backend.rename("/data/a.txt", "/data/b.txt") is True
        assert _read(backend, "/data/b.txt") == b"x"

    def test_rename_into_directory(self, backend: LocalBackend) -> None:
        _write(backend, "/data/a.txt", b"x")
        backend.mkdirs("/archive")
        assert backend.rename("/data/a.txt", "/archive") is True
        assert backend.get_file_status("/archive/a.txt").length == 1

    def test_rename_failures_return_false(self, backend: LocalBackend) -> None:
        _write(backend, "/data/a.txt", b"x")
        _write(backend, "/data/b.txt", b"y")
        assert backend.rename("/data/missing", "/data/c") is False
        assert backend.rename("/data/a.txt", "/data/b.txt") is False
        assert backend.rename("/data/a.txt", "/nope/c.txt") is False
        assert backend.rename("/", "/data/root") is False

    def test_delete(self, backend: LocalBackend) -> None:
        _write(backend, "/data/sub/a.txt", b"x")
        assert backend.delete("/data/missing") is False
        with pytest.raises(OSError):
            backend.delete("/data/sub")
        assert backend.delete("/data/sub", recursive=True) is True
        backend.mkdirs("/data/empty")
        assert backend.delete("/data/empty") is True
        assert [status.path for status in backend.list_status("/data")] == []

    def test_delete_refuses_root(self, backend: LocalBackend) -> None:
        backend.mkdirs("/warehouse")
        assert backend.delete("/", recursive=True) is False
        assert backend.delete("/warehouse/..", recursive=True) is False
        assert os.path.isdir(os.path.join(backend.root, "warehouse"))

    def test_delete_on_exit(self, backend: LocalBackend) -> None:
        _write(backend, "/tmp/a", b"x")
        _write(backend, "/tmp/b", b"x")
        assert backend.delete_on_exit("/tmp/a") is True
        assert backend.delete_on_exit("/tmp/b") is True
        assert backend.delete_on_exit("/tmp/missing") is False
        assert backend.cancel_delete_on_exit("/tmp/b") is True
        assert backend.cancel_delete_on_exit("/tmp/b") is False
        backend.close()
        assert [status.path for status in backend.list_status("/tmp")] == ["/tmp/b"]

    def test_list_status(self, backend: LocalBackend) -> None:
        _write(backend, "/data/b.txt", b"bb")
        _write(backend, "/data/a.txt", b"a")
        backend.mkdirs("/data/dir")
        listing = backend.list_status("/data")
        assert [status.path for status in listing] == ["/data/a.txt", "/data/b.txt", "/data/dir"]
        assert [status.is_dir for status in listing] == [False, False, True]
        assert [status.length for status in listing] == [1, 2, 0]

    def test_list_status_of_file_and_missing(self, backend: LocalBackend) -> None:
        _write(backend, "/data/a.txt", b"a")
        assert [status.path for status in backend.list_status("/data/a.txt")] == ["/data/a.txt"]
        with pytest.raises(FileNotFoundError):
            backend.list_status("/missing")

    def test_mkdirs(self, backend: LocalBackend) -> None:
        assert backend.mkdirs("/a/b/c") is True
        assert backend.mkdirs("/a/b/c") is True
        assert backend.get_file_status("/a/b/c").is_dir
        _write(backend, "/file", b"x")
        with pytest.raises(FileExistsError):
            backend.mkdirs("/file")

    def test_get_file_status(self, backend: LocalBackend) -> None:
        _write(backend, "/data/a.txt", b"hello")
        status = backend.get_file_status("/data/a.txt")
        assert status.path == "/data/a.txt"
        assert status.length == 5
        assert not status.is_dir
        assert not status.is_symlink
        assert status.owner == str(os.getuid())
        with pytest.raises(FileNotFoundError):
            backend.get_file_status("/data/missing")

    def test_get_file_checksum(self, backend: LocalBackend) -> None:
        _write(backend, "/data/a.txt", b"hello world")
        checksum = backend.get_file_checksum("/data/a.txt")
        assert checksum.algorithm == "MD5"
        assert checksum.value == hashlib.md5(b"hello world").hexdigest()
        assert checksum.length == 11
        partial = backend.get_file_checksum("/data/a.txt", length=5)
        assert partial.value == hashlib.md5(b"hello").hexdigest()
        assert partial.length == 5

    def test_get_content_summary(self, backend: LocalBackend) -> None:
        _write(backend, "/data/a.txt", b"abc")
        _write(backend, "/data/sub/b.txt", b"de")
        summary = backend.get_content_summary("/data")
        assert summary.length == 5
        assert summary.file_count == 2
        assert summary.directory_count == 2
        single = backend.get_content_summary("/data/a.txt")
        assert (single.length, single.file_count, single.directory_count) == (3, 1, 0)


class TestAttributes:
    def test_set_permission(self, backend: LocalBackend) -> None:
        _write(backend, "/data/a.txt", b"x")
        backend.set_permission("/data/a.txt", 0o600)
        assert backend.get_file_status("/data/a.txt").permission == 0o600

    def test_set_times(self, backend: LocalBackend) -> None:
        _write(backend, "/data/a.txt", b"x")
        before = backend.get_file_status("/data/a.txt")
        backend.set_times("/data/a.txt", 1_000_000, -1)
        after = backend.get_file_status("/data/a.txt")
        assert after.modification_time == 1_000_000
        assert after.access_time == pytest.approx(before.access_time)

    def test_symlinks(self, backend: LocalBackend) -> None:
        _write(backend, "/data/a.txt", b"x")
        assert backend.supports_symlinks() is True
        with pytest.raises(FileNotFoundError):
            backend.create_symlink("/data/a.txt", "/links/a")
        backend.create_symlink("/data/a.txt", "/links/a", create_parent=True)
        assert backend.get_link_target("/links/a") == "/data/a.txt"
        assert backend.get_file_status("/links/a").is_symlink
        assert _read(backend, "/links/a") == b"x"

    def test_release_file_lock_is_a_no_op(self, backend: LocalBackend) -> None:
        assert backend.release_file_lock("/data/a.txt") is None

    def test_xattrs_are_unsupported(self, backend: LocalBackend) -> None:
        with pytest.raises(UnsupportedOperationError):
            backend.set_xattr("/data", "user.k", b"v")


class TestFactory:
    def _context(self, tmp_path: Path, **values: str) -> BackendContext:
        return BackendContext(
            address=ADDRESS,
            account_id=1,
            server_port=443,
            cache_dir_path=str(tmp_path / "cache"),
            use_transport_security=True,
            configuration=Configuration(values),
        )

    def test_default_root_under_cache_dir(self, tmp_path: Path) -> None:
        context = self._context(tmp_path)
        assert default_local_root(context) == str(tmp_path / "cache" / "local" / "f4mabcdefgh-xyzw")
        backend = get_backend_factory("local")(context)
        assert isinstance(backend, LocalBackend)
        assert backend.root == os.path.realpath(default_local_root(context))

    def test_configured_root(self, tmp_path: Path) -> None:
        context = self._context(tmp_path, **{"fs.ofs.local.root": str(tmp_path / "elsewhere")})
        backend = get_backend_factory("local")(context)
        assert backend.root == os.path.realpath(str(tmp_path / "elsewhere"))
