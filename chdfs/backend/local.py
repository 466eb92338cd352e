"""Local filesystem backend.

Serves an ``ofs`` namespace out of a local directory through fsspec's
``file`` filesystem. Used for tests, local development and as the default
implementation when no other backend is configured.
"""

from __future__ import annotations

import errno
import hashlib
import logging
import os
import posixpath
import shutil
import threading
from typing import Any, BinaryIO, Iterable, List, Optional, Sequence, Set
from urllib.parse import urlsplit

import fsspec

from chdfs.address import SCHEME, mount_point_id
from chdfs.config.keys import LOCAL_ROOT_KEY
from chdfs.config.source import Configuration
from chdfs.identity import get_identity_context
from .base import BackendContext, BackendFileSystem
from .models import ContentSummary, FileChecksum, FileStatus
from .registry import register_backend

logger = logging.getLogger(__name__)

_CHECKSUM_CHUNK = 1024 * 1024


class LocalBackend(BackendFileSystem):
    """Backend rooted at a local directory."""

    backend_type = "local"

    def __init__(self, root: str) -> None:
        self.root = os.path.realpath(root)
        self.fs = fsspec.filesystem("file")
        self._uri: Optional[str] = None
        self._working_dir = "/"
        self._delete_on_exit: Set[str] = set()
        self._lock = threading.Lock()

    # -- path handling --------------------------------------------------------

    def _ofs_path(self, path: str) -> str:
        if "://" in path:
            path = urlsplit(path).path or "/"
        if not path.startswith("/"):
            path = posixpath.join(self._working_dir, path)
        # normpath folds ".." so a path can never climb above the root
        normalized = posixpath.normpath(path)
        if normalized.startswith("//"):
            normalized = "/" + normalized.lstrip("/")
        return normalized

    def _local(self, path: str) -> str:
        relative = self._ofs_path(path).lstrip("/")
        return os.path.join(self.root, *relative.split("/")) if relative else self.root

    def _to_ofs(self, local_path: str) -> str:
        relative = os.path.relpath(local_path, self.root)
        if relative == ".":
            return "/"
        return "/" + relative.replace(os.sep, "/")

    def _status(self, local_path: str) -> FileStatus:
        info = self.fs.info(local_path)
        stat = os.lstat(local_path)
        return FileStatus(
            path=self._to_ofs(local_path),
            length=info["size"] if info["type"] != "directory" else 0,
            is_dir=info["type"] == "directory",
            modification_time=stat.st_mtime,
            access_time=stat.st_atime,
            permission=stat.st_mode & 0o777,
            owner=str(stat.st_uid),
            group=str(stat.st_gid),
            is_symlink=bool(info.get("islink")),
        )

    # -- lifecycle ------------------------------------------------------------

    def initialize(self, uri: str, config: Configuration) -> None:
        parts = urlsplit(uri if "://" in uri else f"{SCHEME}://{uri}")
        self._uri = f"{parts.scheme}://{parts.netloc}"
        os.makedirs(self.root, exist_ok=True)
        self._working_dir = self.get_home_directory()
        logger.debug("local backend for %s rooted at %s", self._uri, self.root)

    def get_uri(self) -> str:
        return self._uri

    def get_working_directory(self) -> str:
        return self._working_dir

    def set_working_directory(self, path: str) -> None:
        self._working_dir = self._ofs_path(path)

    def get_home_directory(self) -> str:
        return get_identity_context().current().home_directory

    def close(self) -> None:
        with self._lock:
            pending = sorted(self._delete_on_exit)
            self._delete_on_exit.clear()
        for path in pending:
            try:
                self.delete(path, recursive=True)
            except FileNotFoundError:
                pass

    # -- data -----------------------------------------------------------------

    def open(self, path: str, buffer_size: Optional[int] = None) -> BinaryIO:
        local = self._local(path)
        if os.path.isdir(local):
            raise IsADirectoryError(errno.EISDIR, "Is a directory", self._ofs_path(path))
        return self.fs.open(local, "rb")

    def create(
        self,
        path: str,
        permission: Optional[int] = None,
        overwrite: bool = True,
        buffer_size: Optional[int] = None,
        replication: Optional[int] = None,
        block_size: Optional[int] = None,
        progress: Optional[Any] = None,
    ) -> BinaryIO:
        local = self._local(path)
        if os.path.isdir(local):
            raise IsADirectoryError(errno.EISDIR, "Is a directory", self._ofs_path(path))
        if not overwrite and os.path.exists(local):
            raise FileExistsError(errno.EEXIST, "File already exists", self._ofs_path(path))
        self.fs.makedirs(os.path.dirname(local), exist_ok=True)
        handle = self.fs.open(local, "wb")
        if permission is not None:
            os.chmod(local, permission)
        return handle

    def create_non_recursive(
        self,
        path: str,
        permission: Optional[int] = None,
        flags: Optional[Iterable[str]] = None,
        buffer_size: Optional[int] = None,
        replication: Optional[int] = None,
        block_size: Optional[int] = None,
        progress: Optional[Any] = None,
    ) -> BinaryIO:
        local = self._local(path)
        if not os.path.isdir(os.path.dirname(local)):
            raise FileNotFoundError(
                errno.ENOENT, "Parent directory does not exist", posixpath.dirname(self._ofs_path(path))
            )
        flag_set = {flag.lower() for flag in flags} if flags is not None else {"create", "overwrite"}
        if "append" in flag_set and os.path.exists(local):
            return self.append(path)
        return self.create(path, permission=permission, overwrite="overwrite" in flag_set)

    def append(self, path: str, buffer_size: Optional[int] = None, progress: Optional[Any] = None) -> BinaryIO:
        local = self._local(path)
        if not os.path.isfile(local):
            raise FileNotFoundError(errno.ENOENT, "No such file", self._ofs_path(path))
        return self.fs.open(local, "ab")

    def truncate(self, path: str, new_length: int) -> bool:
        local = self._local(path)
        size = self.fs.size(local)
        if new_length < 0 or new_length > size:
            raise OSError(
                errno.EINVAL,
                f"Cannot truncate to length {new_length}, file length is {size}",
                self._ofs_path(path),
            )
        os.truncate(local, new_length)
        return True

    def concat(self, target: str, sources: Sequence[str]) -> None:
        target_local = self._local(target)
        if not os.path.isfile(target_local):
            raise FileNotFoundError(errno.ENOENT, "No such file", self._ofs_path(target))
        source_locals = [self._local(source) for source in sources]
        if target_local in source_locals:
            raise OSError(errno.EINVAL, "Target is also listed as a source", self._ofs_path(target))
        if len(set(source_locals)) != len(source_locals):
            raise OSError(errno.EINVAL, "Sources are not unique", self._ofs_path(target))
        for source, source_local in zip(sources, source_locals):
            if not os.path.isfile(source_local):
                raise FileNotFoundError(errno.ENOENT, "No such file", self._ofs_path(source))
        with open(target_local, "ab") as out:
            for source_local in source_locals:
                with self.fs.open(source_local, "rb") as src:
                    shutil.copyfileobj(src, out)
        for source_local in source_locals:
            self.fs.rm_file(source_local)

    # -- namespace ------------------------------------------------------------

    def rename(self, src: str, dst: str) -> bool:
        src_local = self._local(src)
        dst_local = self._local(dst)
        if not os.path.lexists(src_local) or src_local == self.root:
            return False
        if os.path.isdir(dst_local):
            dst_local = os.path.join(dst_local, os.path.basename(src_local))
        if os.path.lexists(dst_local) or not os.path.isdir(os.path.dirname(dst_local)):
            return False
        self.fs.mv(src_local, dst_local, recursive=True)
        return True

    def delete(self, path: str, recursive: bool = False) -> bool:
        local = self._local(path)
        if not os.path.lexists(local) or local == self.root:
            return False
        if os.path.isdir(local) and not os.path.islink(local):
            if recursive:
                self.fs.rm(local, recursive=True)
            else:
                os.rmdir(local)
        else:
            os.remove(local)
        with self._lock:
            self._delete_on_exit.discard(self._ofs_path(path))
        return True

    def delete_on_exit(self, path: str) -> bool:
        if not os.path.lexists(self._local(path)):
            return False
        with self._lock:
            self._delete_on_exit.add(self._ofs_path(path))
        return True

    def cancel_delete_on_exit(self, path: str) -> bool:
        with self._lock:
            ofs_path = self._ofs_path(path)
            if ofs_path in self._delete_on_exit:
                self._delete_on_exit.remove(ofs_path)
                return True
        return False

    def list_status(self, path: str) -> List[FileStatus]:
        local = self._local(path)
        if not os.path.lexists(local):
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", self._ofs_path(path))
        if not os.path.isdir(local):
            return [self._status(local)]
        entries = self.fs.ls(local, detail=False)
        return [self._status(entry) for entry in sorted(entries)]

    def mkdirs(self, path: str, permission: Optional[int] = None) -> bool:
        local = self._local(path)
        if os.path.exists(local) and not os.path.isdir(local):
            raise FileExistsError(errno.EEXIST, "Path exists and is not a directory", self._ofs_path(path))
        self.fs.makedirs(local, exist_ok=True)
        if permission is not None:
            os.chmod(local, permission)
        return True

    def get_file_status(self, path: str) -> FileStatus:
        return self._status(self._local(path))

    def get_file_checksum(self, path: str, length: Optional[int] = None) -> FileChecksum:
        local = self._local(path)
        if os.path.isdir(local):
            raise IsADirectoryError(errno.EISDIR, "Is a directory", self._ofs_path(path))
        digest = hashlib.md5()
        remaining = length
        consumed = 0
        with self.fs.open(local, "rb") as handle:
            while remaining is None or remaining > 0:
                size = _CHECKSUM_CHUNK if remaining is None else min(_CHECKSUM_CHUNK, remaining)
                chunk = handle.read(size)
                if not chunk:
                    break
                digest.update(chunk)
                consumed += len(chunk)
                if remaining is not None:
                    remaining -= len(chunk)
        return FileChecksum(algorithm="MD5", value=digest.hexdigest(), length=consumed)

    def get_content_summary(self, path: str) -> ContentSummary:
        local = self._local(path)
        if not os.path.lexists(local):
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", self._ofs_path(path))
        if not os.path.isdir(local):
            return ContentSummary(length=os.path.getsize(local), file_count=1, directory_count=0)
        length = 0
        files = 0
        directories = 0
        for dirpath, _dirnames, filenames in os.walk(local):
            directories += 1
            for name in filenames:
                files += 1
                length += os.path.getsize(os.path.join(dirpath, name))
        return ContentSummary(length=length, file_count=files, directory_count=directories)

    # -- attributes -----------------------------------------------------------

    def set_permission(self, path: str, permission: int) -> None:
        os.chmod(self._local(path), permission)

    def set_owner(self, path: str, username: Optional[str], groupname: Optional[str]) -> None:
        shutil.chown(self._local(path), user=username, group=groupname)

    def set_times(self, path: str, mtime: float, atime: float) -> None:
        """Set modification and access times; a negative value keeps the current one."""
        local = self._local(path)
        stat = os.stat(local)
        os.utime(
            local,
            (
                atime if atime >= 0 else stat.st_atime,
                mtime if mtime >= 0 else stat.st_mtime,
            ),
        )

    # -- symlinks -------------------------------------------------------------

    def supports_symlinks(self) -> bool:
        return True

    def create_symlink(self, target: str, link: str, create_parent: bool = False) -> None:
        link_local = self._local(link)
        parent = os.path.dirname(link_local)
        if not os.path.isdir(parent):
            if not create_parent:
                raise FileNotFoundError(
                    errno.ENOENT, "Parent directory does not exist", posixpath.dirname(self._ofs_path(link))
                )
            self.fs.makedirs(parent, exist_ok=True)
        os.symlink(self._local(target), link_local)

    def get_link_target(self, path: str) -> str:
        target = os.readlink(self._local(path))
        if os.path.commonpath([self.root, os.path.abspath(target)]) == self.root:
            return self._to_ofs(target)
        return target

    # -- misc -----------------------------------------------------------------

    def release_file_lock(self, path: str) -> None:
        logger.debug("release_file_lock(%s): local backend holds no locks", path)


def default_local_root(context: BackendContext) -> str:
    mount = mount_point_id(context.address) or context.address
    return os.path.join(context.cache_dir_path, "local", mount)


@register_backend("local")
def _local_factory(context: BackendContext) -> BackendFileSystem:
    root = context.configuration.get_str(LOCAL_ROOT_KEY) or default_local_root(context)
    return LocalBackend(root)
