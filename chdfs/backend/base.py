"""Backend filesystem contract.

This module provides:
- BackendContext: everything a backend factory receives at acquisition time
- BackendFileSystem: base class declaring the capability set the adapter forwards to
- FORWARDED_OPERATIONS / SAFE_QUERY_DEFAULTS: the operation table used by the adapter
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, Iterable, List, Mapping, Optional, Sequence

from chdfs.config.source import Configuration
from chdfs.exceptions import UnsupportedOperationError
from .models import ContentSummary, FileChecksum, FileStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackendContext:
    """Arguments of a single backend acquisition attempt."""

    address: str
    account_id: int
    server_port: int
    cache_dir_path: str
    use_transport_security: bool
    configuration: Configuration = field(default_factory=Configuration)


# =============================================================================
# Operation table
# =============================================================================

FORWARDED_OPERATIONS = (
    "open",
    "create",
    "create_non_recursive",
    "append",
    "truncate",
    "rename",
    "delete",
    "delete_on_exit",
    "cancel_delete_on_exit",
    "list_status",
    "mkdirs",
    "get_file_status",
    "get_file_checksum",
    "set_permission",
    "set_owner",
    "set_times",
    "set_xattr",
    "get_xattr",
    "get_xattrs",
    "list_xattrs",
    "remove_xattr",
    "create_snapshot",
    "rename_snapshot",
    "delete_snapshot",
    "create_symlink",
    "get_link_target",
    "modify_acl_entries",
    "remove_acl_entries",
    "remove_default_acl",
    "remove_acl",
    "set_acl",
    "get_acl_status",
    "concat",
    "get_delegation_token",
    "get_content_summary",
    "release_file_lock",
)

# Queries a host framework may call before initialization completes.
SAFE_QUERY_DEFAULTS: Dict[str, Any] = {
    "supports_symlinks": False,
    "get_canonical_service_name": None,
}


# =============================================================================
# Backend base class
# =============================================================================


class BackendFileSystem:
    """Base class for backends reached through the adapter.

    Every capability raises UnsupportedOperationError unless a subclass
    overrides it, so a backend only implements what its storage engine can do.
    """

    backend_type = "base"

    def _unsupported(self, operation: str) -> UnsupportedOperationError:
        return UnsupportedOperationError(operation, backend_type=self.backend_type)

    # -- lifecycle ------------------------------------------------------------

    def initialize(self, uri: str, config: Configuration) -> None:
        raise self._unsupported("initialize")

    def get_uri(self) -> str:
        raise self._unsupported("get_uri")

    def get_working_directory(self) -> str:
        raise self._unsupported("get_working_directory")

    def set_working_directory(self, path: str) -> None:
        raise self._unsupported("set_working_directory")

    def get_home_directory(self) -> str:
        raise self._unsupported("get_home_directory")

    def close(self) -> None:
        """Release backend resources. The default has nothing to release."""

    # -- data -----------------------------------------------------------------

    def open(self, path: str, buffer_size: Optional[int] = None) -> BinaryIO:
        """Open a file for reading."""
        raise self._unsupported("open")

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
        """Create a file for writing, creating missing parent directories."""
        raise self._unsupported("create")

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
        """Create a file for writing; the parent directory must already exist."""
        raise self._unsupported("create_non_recursive")

    def append(self, path: str, buffer_size: Optional[int] = None, progress: Optional[Any] = None) -> BinaryIO:
        raise self._unsupported("append")

    def truncate(self, path: str, new_length: int) -> bool:
        raise self._unsupported("truncate")

    def concat(self, target: str, sources: Sequence[str]) -> None:
        raise self._unsupported("concat")

    # -- namespace ------------------------------------------------------------

    def rename(self, src: str, dst: str) -> bool:
        raise self._unsupported("rename")

    def delete(self, path: str, recursive: bool = False) -> bool:
        raise self._unsupported("delete")

    def delete_on_exit(self, path: str) -> bool:
        raise self._unsupported("delete_on_exit")

    def cancel_delete_on_exit(self, path: str) -> bool:
        raise self._unsupported("cancel_delete_on_exit")

    def list_status(self, path: str) -> List[FileStatus]:
        raise self._unsupported("list_status")

    def mkdirs(self, path: str, permission: Optional[int] = None) -> bool:
        raise self._unsupported("mkdirs")

    def get_file_status(self, path: str) -> FileStatus:
        raise self._unsupported("get_file_status")

    def get_file_checksum(self, path: str, length: Optional[int] = None) -> FileChecksum:
        raise self._unsupported("get_file_checksum")

    def get_content_summary(self, path: str) -> ContentSummary:
        raise self._unsupported("get_content_summary")

    # -- attributes -----------------------------------------------------------

    def set_permission(self, path: str, permission: int) -> None:
        raise self._unsupported("set_permission")

    def set_owner(self, path: str, username: Optional[str], groupname: Optional[str]) -> None:
        raise self._unsupported("set_owner")

    def set_times(self, path: str, mtime: float, atime: float) -> None:
        raise self._unsupported("set_times")

    def set_xattr(self, path: str, name: str, value: bytes, flags: Optional[Iterable[str]] = None) -> None:
        raise self._unsupported("set_xattr")

    def get_xattr(self, path: str, name: str) -> bytes:
        raise self._unsupported("get_xattr")

    def get_xattrs(self, path: str, names: Optional[Sequence[str]] = None) -> Mapping[str, bytes]:
        raise self._unsupported("get_xattrs")

    def list_xattrs(self, path: str) -> List[str]:
        raise self._unsupported("list_xattrs")

    def remove_xattr(self, path: str, name: str) -> None:
        raise self._unsupported("remove_xattr")

    # -- snapshots ------------------------------------------------------------

    def create_snapshot(self, path: str, snapshot_name: Optional[str] = None) -> str:
        raise self._unsupported("create_snapshot")

    def rename_snapshot(self, path: str, snapshot_old_name: str, snapshot_new_name: str) -> None:
        raise self._unsupported("rename_snapshot")

    def delete_snapshot(self, path: str, snapshot_name: str) -> None:
        raise self._unsupported("delete_snapshot")

    # -- symlinks -------------------------------------------------------------

    def create_symlink(self, target: str, link: str, create_parent: bool = False) -> None:
        raise self._unsupported("create_symlink")

    def supports_symlinks(self) -> bool:
        return False

    def get_link_target(self, path: str) -> str:
        raise self._unsupported("get_link_target")

    # -- ACLs -----------------------------------------------------------------

    def modify_acl_entries(self, path: str, acl_spec: Sequence[Any]) -> None:
        raise self._unsupported("modify_acl_entries")

    def remove_acl_entries(self, path: str, acl_spec: Sequence[Any]) -> None:
        raise self._unsupported("remove_acl_entries")

    def remove_default_acl(self, path: str) -> None:
        raise self._unsupported("remove_default_acl")

    def remove_acl(self, path: str) -> None:
        raise self._unsupported("remove_acl")

    def set_acl(self, path: str, acl_spec: Sequence[Any]) -> None:
        raise self._unsupported("set_acl")

    def get_acl_status(self, path: str) -> Any:
        raise self._unsupported("get_acl_status")

    # -- security / misc ------------------------------------------------------

    def get_delegation_token(self, renewer: Optional[str]) -> Any:
        raise self._unsupported("get_delegation_token")

    def get_canonical_service_name(self) -> Optional[str]:
        return None

    def release_file_lock(self, path: str) -> None:
        """Drop any lock the backend holds for ``path``. No-op by default."""
