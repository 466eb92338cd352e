"""Backend filesystems and their acquisition.

This package provides:
- BackendFileSystem: base class declaring the forwarded capability set
- Backend registry: register and look up backend factories
- BackendLoader: retrying acquisition of a backend
- LocalBackend: fsspec-backed implementation registered as ``local``
"""

from .base import (
    FORWARDED_OPERATIONS,
    SAFE_QUERY_DEFAULTS,
    BackendContext,
    BackendFileSystem,
)
from .loader import (
    DEFAULT_MAX_RETRIES,
    TRANSIENT_ERRORS,
    BackendLoader,
    PluginFetcher,
    RegistryPluginFetcher,
    sleep_ignoring_interrupt,
)
from .models import ContentSummary, FileChecksum, FileStatus
from .registry import BACKEND_REGISTRY, get_backend_factory, list_backends, register_backend

# Registers the "local" factory as a side effect of the import.
from .local import LocalBackend  # noqa: E402

__all__ = [
    "BACKEND_REGISTRY",
    "BackendContext",
    "BackendFileSystem",
    "BackendLoader",
    "ContentSummary",
    "DEFAULT_MAX_RETRIES",
    "FORWARDED_OPERATIONS",
    "FileChecksum",
    "FileStatus",
    "LocalBackend",
    "PluginFetcher",
    "RegistryPluginFetcher",
    "SAFE_QUERY_DEFAULTS",
    "TRANSIENT_ERRORS",
    "get_backend_factory",
    "list_backends",
    "register_backend",
    "sleep_ignoring_interrupt",
]
