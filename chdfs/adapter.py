"""The ``ofs`` filesystem adapter.

The adapter owns no storage logic. ``initialize`` validates the mount point
address, resolves the bootstrap configuration, provisions the local cache
directory and acquires a backend; afterwards every filesystem operation is
forwarded to that backend.

Example:
    >>> fs = connect("ofs://f4mabcdefgh-xyzw.chdfs.ap-guangzhou.myqcloud.com/", {
    ...     "fs.ofs.user.appid": 1250000000,
    ...     "fs.ofs.tmp.cache.dir": "/tmp/chdfs",
    ... })
    >>> fs.mkdirs("/warehouse")
    True
    >>> fs.close()
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, Optional, Tuple, Union

from chdfs.address import SCHEME, extract_mount_point_addr, is_valid_mount_point_addr
from chdfs.backend.base import SAFE_QUERY_DEFAULTS, BackendFileSystem
from chdfs.backend.loader import BackendLoader, PluginFetcher
from chdfs.cache_dir import provision_cache_dir
from chdfs.config.resolver import BootstrapConfig, resolve_bootstrap_config
from chdfs.config.source import ConfigSource, Configuration, as_configuration
from chdfs.error_wrapper import RECOGNIZED_ERRORS, call_backend
from chdfs.exceptions import (
    AddressValidationError,
    ConfigError,
    InitializationError,
    NotInitializedError,
    UnexpectedError,
)
from chdfs.identity import IdentityContext, get_identity_context
from chdfs.logging_config import get_logger, log_exception

logger = logging.getLogger(__name__)


class AdapterState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    CLOSED = "closed"


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _dispatch(backend: BackendFileSystem, operation: str, *args: Any, **kwargs: Any) -> Any:
    return getattr(backend, operation)(*args, **kwargs)


def _forwarded(operation: str) -> Callable[..., Any]:
    def method(self: "CHDFSFileSystemAdapter", *args: Any, **kwargs: Any) -> Any:
        return self._invoke(operation, *args, **kwargs)

    method.__name__ = operation
    method.__qualname__ = f"CHDFSFileSystemAdapter.{operation}"
    method.__doc__ = getattr(BackendFileSystem, operation).__doc__ or f"Forward ``{operation}`` to the backend."
    return method


def _safe_query(operation: str) -> Callable[..., Any]:
    default = SAFE_QUERY_DEFAULTS[operation]

    def method(self: "CHDFSFileSystemAdapter") -> Any:
        backend = self._ready_backend()
        if backend is None:
            return default
        return call_backend(operation, _dispatch, backend, operation)

    method.__name__ = operation
    method.__qualname__ = f"CHDFSFileSystemAdapter.{operation}"
    method.__doc__ = f"Forward ``{operation}``; returns {default!r} before initialization."
    return method


class CHDFSFileSystemAdapter:
    """Filesystem façade bound to a backend acquired at initialization.

    State moves UNINITIALIZED -> INITIALIZING -> READY -> CLOSED. A failed
    initialize drops back to UNINITIALIZED, but nothing it created (cache
    directory, half-initialized backend) is rolled back, so a failed instance
    should be discarded.

    Forwarded calls are not locked; the backend is responsible for its own
    thread safety.
    """

    def __init__(
        self,
        fetcher: Optional[PluginFetcher] = None,
        loader: Optional[BackendLoader] = None,
        identity_context: Optional[IdentityContext] = None,
    ) -> None:
        self._loader = loader or BackendLoader(fetcher)
        self._identity = identity_context or get_identity_context()
        self._state_lock = threading.Lock()
        self._state = AdapterState.UNINITIALIZED
        self._backend: Optional[BackendFileSystem] = None
        self._conf: Optional[Configuration] = None
        self._bootstrap_config: Optional[BootstrapConfig] = None
        self._uri: Optional[str] = None
        self._working_dir: Optional[str] = None
        self._init_start: Optional[float] = None
        self._log: Union[logging.Logger, logging.LoggerAdapter] = logger

    def __repr__(self) -> str:
        return f"CHDFSFileSystemAdapter(uri={self._uri!r}, state={self._state.value})"

    def __enter__(self) -> "CHDFSFileSystemAdapter":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if self._state is AdapterState.READY:
            self.close()

    @property
    def state(self) -> AdapterState:
        return self._state

    @property
    def bootstrap_config(self) -> Optional[BootstrapConfig]:
        return self._bootstrap_config

    @property
    def configuration(self) -> Optional[Configuration]:
        return self._conf

    def get_scheme(self) -> str:
        return SCHEME

    # =========================================================================
    # Initialization
    # =========================================================================

    def initialize(self, uri: str, config: Optional[ConfigSource] = None) -> None:
        """Bind this adapter to the mount point named by ``uri``.

        Args:
            uri: ``ofs://<mount point address>/`` or the bare address
            config: Mapping or Configuration holding the ``fs.ofs.*`` keys

        Raises:
            AddressValidationError: If the mount point address is malformed
            ConfigError: If a bootstrap setting or the cache directory is unusable
            InitializationError: If the backend could not be acquired
            UnexpectedError: For any other failure during bootstrap
        """
        with self._state_lock:
            if self._state is not AdapterState.UNINITIALIZED:
                raise InitializationError(
                    f"filesystem is {self._state.value}; initialize can only run once per instance"
                )
            self._state = AdapterState.INITIALIZING

        try:
            backend, conf = self._bootstrap(uri, config)
        except BaseException:
            self._state = AdapterState.UNINITIALIZED
            raise

        self._conf = conf
        self._backend = backend
        self._state = AdapterState.READY
        self._log.debug("total init file system, [elapse-ms: %d]", _elapsed_ms(self._init_start))

    def _bootstrap(self, uri: str, config: Optional[ConfigSource]) -> Tuple[BackendFileSystem, Configuration]:
        try:
            conf = as_configuration(config)
            self._identity.ensure_initialized(conf)
            logger.debug("CHDFSFileSystemAdapter adapter initialize")
            self._init_start = time.monotonic()

            address = extract_mount_point_addr(uri)
            if not is_valid_mount_point_addr(address):
                message = (
                    f"mountPointAddr {address} is invalid, fullUri: {uri}, "
                    "exp. f4mabcdefgh-xyzw.chdfs.ap-guangzhou.myqcloud.com"
                )
                logger.error(message)
                raise AddressValidationError(message, address=address, uri=uri)
            self._log = get_logger(__name__, extra={"mount_point": address})

            bootstrap = resolve_bootstrap_config(conf)
            provision_cache_dir(bootstrap.cache_dir_path)
            self._bootstrap_config = bootstrap

            backend = self._loader.acquire(address, bootstrap, conf)
            if backend is None:
                self._log.error("init chdfs impl failed, impl filesystem is null")
                raise InitializationError("impl filesystem is null")

            actual_start = time.monotonic()
            call_backend("initialize", _dispatch, backend, "initialize", uri, conf)
            self._log.debug("init actual file system, [elapse-ms: %d]", _elapsed_ms(actual_start))

            self._uri = call_backend("get_uri", _dispatch, backend, "get_uri")
            self._working_dir = call_backend("get_working_directory", _dispatch, backend, "get_working_directory")
            return backend, conf
        except (AddressValidationError, ConfigError, InitializationError):
            # already logged where raised
            raise
        except RECOGNIZED_ERRORS as exc:
            self._log.error("initialize failed! %s", exc)
            raise
        except Exception as exc:
            log_exception(self._log, "initialize failed! a unexpected exception occur!", exc)
            raise UnexpectedError("initialize", exc) from exc

    # =========================================================================
    # Forwarding
    # =========================================================================

    def _ready_backend(self) -> Optional[BackendFileSystem]:
        if self._state is not AdapterState.READY:
            return None
        return self._backend

    def _invoke(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        backend = self._ready_backend()
        if backend is None:
            raise NotInitializedError(operation, self._state.value)
        return call_backend(operation, _dispatch, backend, operation, *args, **kwargs)

    open = _forwarded("open")
    create = _forwarded("create")
    create_non_recursive = _forwarded("create_non_recursive")
    append = _forwarded("append")
    truncate = _forwarded("truncate")
    concat = _forwarded("concat")
    rename = _forwarded("rename")
    delete = _forwarded("delete")
    delete_on_exit = _forwarded("delete_on_exit")
    cancel_delete_on_exit = _forwarded("cancel_delete_on_exit")
    list_status = _forwarded("list_status")
    mkdirs = _forwarded("mkdirs")
    get_file_status = _forwarded("get_file_status")
    get_file_checksum = _forwarded("get_file_checksum")
    get_content_summary = _forwarded("get_content_summary")
    set_permission = _forwarded("set_permission")
    set_owner = _forwarded("set_owner")
    set_times = _forwarded("set_times")
    set_xattr = _forwarded("set_xattr")
    get_xattr = _forwarded("get_xattr")
    get_xattrs = _forwarded("get_xattrs")
    list_xattrs = _forwarded("list_xattrs")
    remove_xattr = _forwarded("remove_xattr")
    create_snapshot = _forwarded("create_snapshot")
    rename_snapshot = _forwarded("rename_snapshot")
    delete_snapshot = _forwarded("delete_snapshot")
    create_symlink = _forwarded("create_symlink")
    get_link_target = _forwarded("get_link_target")
    modify_acl_entries = _forwarded("modify_acl_entries")
    remove_acl_entries = _forwarded("remove_acl_entries")
    remove_default_acl = _forwarded("remove_default_acl")
    remove_acl = _forwarded("remove_acl")
    set_acl = _forwarded("set_acl")
    get_acl_status = _forwarded("get_acl_status")
    get_delegation_token = _forwarded("get_delegation_token")
    release_file_lock = _forwarded("release_file_lock")

    supports_symlinks = _safe_query("supports_symlinks")
    get_canonical_service_name = _safe_query("get_canonical_service_name")

    # =========================================================================
    # Locally cached accessors
    # =========================================================================

    def get_uri(self) -> Optional[str]:
        return self._uri

    def get_working_directory(self) -> Optional[str]:
        return self._working_dir

    def set_working_directory(self, path: str) -> None:
        self._working_dir = path
        backend = self._ready_backend()
        if backend is None:
            self._log.warning("fileSystem is not init yet!")
            return
        call_backend("set_working_directory", _dispatch, backend, "set_working_directory", path)

    def get_home_directory(self) -> str:
        backend = self._ready_backend()
        if backend is None:
            return self._identity.current().home_directory
        return call_backend("get_home_directory", _dispatch, backend, "get_home_directory")

    # =========================================================================
    # Shutdown
    # =========================================================================

    def close(self) -> None:
        """Close the backend. The adapter is CLOSED afterwards even if that fails."""
        with self._state_lock:
            backend = self._ready_backend()
            if backend is None:
                raise NotInitializedError("close", self._state.value)
            self._backend = None
            self._state = AdapterState.CLOSED

        close_start = time.monotonic()
        try:
            call_backend("close", _dispatch, backend, "close")
        except RECOGNIZED_ERRORS as exc:
            self._log.error("close fileSystem failed! %s", exc)
            raise
        self._log.debug("actual-file-system-close usedTime: %d", _elapsed_ms(close_start))
        if self._init_start is not None:
            self._log.debug("end-close, total-used-time: %d", _elapsed_ms(self._init_start))


def connect(
    uri: str,
    config: Optional[ConfigSource] = None,
    fetcher: Optional[PluginFetcher] = None,
) -> CHDFSFileSystemAdapter:
    """Create an adapter and initialize it in one step."""
    adapter = CHDFSFileSystemAdapter(fetcher=fetcher)
    adapter.initialize(uri, config)
    return adapter
