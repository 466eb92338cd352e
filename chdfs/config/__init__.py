"""Configuration loading and bootstrap parameter resolution."""

from .keys import (
    BACKEND_IMPL_KEY,
    DEFAULT_BACKEND_IMPL,
    DEFAULT_META_SERVER_PORT,
    DEFAULT_META_TRANSFER_USE_TLS,
    LOCAL_ROOT_KEY,
    META_SERVER_PORT_KEY,
    META_TRANSFER_USE_TLS_KEY,
    TMP_CACHE_DIR_KEY,
    USER_APPID_KEY,
    USER_NAME_KEY,
)
from .resolver import BootstrapConfig, resolve_bootstrap_config
from .source import ConfigSource, Configuration, as_configuration, expand_env_references, parse_int

__all__ = [
    "BACKEND_IMPL_KEY",
    "BootstrapConfig",
    "ConfigSource",
    "Configuration",
    "DEFAULT_BACKEND_IMPL",
    "DEFAULT_META_SERVER_PORT",
    "DEFAULT_META_TRANSFER_USE_TLS",
    "LOCAL_ROOT_KEY",
    "META_SERVER_PORT_KEY",
    "META_TRANSFER_USE_TLS_KEY",
    "TMP_CACHE_DIR_KEY",
    "USER_APPID_KEY",
    "USER_NAME_KEY",
    "as_configuration",
    "expand_env_references",
    "parse_int",
    "resolve_bootstrap_config",
]
