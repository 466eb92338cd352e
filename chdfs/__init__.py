"""chdfs-adapter: an ``ofs://`` filesystem façade over a runtime-loaded backend."""

from chdfs.adapter import AdapterState, CHDFSFileSystemAdapter, connect
from chdfs.address import SCHEME, extract_mount_point_addr, is_valid_mount_point_addr
from chdfs.backend import BackendFileSystem, BackendLoader, register_backend
from chdfs.cache_dir import CacheDirectoryHandle, provision_cache_dir
from chdfs.config import BootstrapConfig, Configuration, resolve_bootstrap_config
from chdfs.exceptions import (
    AddressValidationError,
    BackendAcquisitionError,
    ChdfsError,
    ConfigError,
    ConfigErrorReason,
    InitializationError,
    NotInitializedError,
    UnexpectedError,
    UnsupportedOperationError,
)

__version__ = "1.0.0"

__all__ = [
    "AdapterState",
    "AddressValidationError",
    "BackendAcquisitionError",
    "BackendFileSystem",
    "BackendLoader",
    "BootstrapConfig",
    "CHDFSFileSystemAdapter",
    "CacheDirectoryHandle",
    "ChdfsError",
    "ConfigError",
    "ConfigErrorReason",
    "Configuration",
    "InitializationError",
    "NotInitializedError",
    "SCHEME",
    "UnexpectedError",
    "UnsupportedOperationError",
    "connect",
    "extract_mount_point_addr",
    "is_valid_mount_point_addr",
    "provision_cache_dir",
    "register_backend",
    "resolve_bootstrap_config",
]
