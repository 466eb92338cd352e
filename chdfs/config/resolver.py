"""Resolution of the bootstrap parameters needed before a backend can load."""

from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chdfs.exceptions import ConfigError, ConfigErrorReason
from .keys import (
    DEFAULT_META_SERVER_PORT,
    DEFAULT_META_TRANSFER_USE_TLS,
    META_SERVER_PORT_KEY,
    META_TRANSFER_USE_TLS_KEY,
    TMP_CACHE_DIR_KEY,
    USER_APPID_KEY,
)
from .source import ConfigSource, Configuration, as_configuration

logger = logging.getLogger(__name__)


class BootstrapConfig(BaseModel):
    """Validated bootstrap parameters; immutable once built."""

    model_config = ConfigDict(frozen=True)

    account_id: int = Field(gt=0)
    server_port: int = DEFAULT_META_SERVER_PORT
    use_transport_security: bool = DEFAULT_META_TRANSFER_USE_TLS
    cache_dir_path: str

    @field_validator("cache_dir_path")
    def _validate_cache_dir_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("cache_dir_path must be an absolute path")
        return value


def _resolve_account_id(conf: Configuration) -> int:
    try:
        appid = conf.get_int(USER_APPID_KEY, 0)
    except ValueError as exc:
        raise ConfigError(
            f"config for {USER_APPID_KEY} is invalid appid number",
            reason=ConfigErrorReason.INVALID_NUMBER,
            key=USER_APPID_KEY,
        ) from exc
    if appid <= 0:
        raise ConfigError(
            f"config for {USER_APPID_KEY} is missing or invalid appid number",
            reason=ConfigErrorReason.MISSING_OR_INVALID,
            key=USER_APPID_KEY,
        )
    return appid


def _resolve_server_port(conf: Configuration) -> int:
    try:
        return conf.get_int(META_SERVER_PORT_KEY, DEFAULT_META_SERVER_PORT)
    except ValueError:
        logger.warning(
            "config for %s is not a number (%r), using default %d",
            META_SERVER_PORT_KEY,
            conf.get(META_SERVER_PORT_KEY),
            DEFAULT_META_SERVER_PORT,
        )
        return DEFAULT_META_SERVER_PORT


def _resolve_cache_dir_path(conf: Configuration) -> str:
    path = conf.get_str(TMP_CACHE_DIR_KEY)
    if path is None:
        raise ConfigError(
            f"chdfs config {TMP_CACHE_DIR_KEY} is missing",
            reason=ConfigErrorReason.MISSING,
            key=TMP_CACHE_DIR_KEY,
        )
    if not path.startswith("/"):
        raise ConfigError(
            f"chdfs config [{TMP_CACHE_DIR_KEY}: {path}] must be absolute path",
            reason=ConfigErrorReason.NOT_ABSOLUTE,
            key=TMP_CACHE_DIR_KEY,
            path=path,
        )
    return path


def resolve_bootstrap_config(source: Optional[ConfigSource]) -> BootstrapConfig:
    """Build a BootstrapConfig from a configuration source.

    Every check runs even after an earlier one fails, so the log shows all
    problems with the configuration at once. The first failure is raised and
    the others are attached to it as ``additional_errors``.

    Raises:
        ConfigError: If the account id or cache directory setting is invalid
    """
    conf = as_configuration(source)
    errors: List[ConfigError] = []

    account_id: Optional[int] = None
    try:
        account_id = _resolve_account_id(conf)
    except ConfigError as exc:
        errors.append(exc)

    server_port = _resolve_server_port(conf)
    use_tls = conf.get_bool(META_TRANSFER_USE_TLS_KEY, DEFAULT_META_TRANSFER_USE_TLS)

    cache_dir_path: Optional[str] = None
    try:
        cache_dir_path = _resolve_cache_dir_path(conf)
    except ConfigError as exc:
        errors.append(exc)

    if errors:
        for error in errors:
            logger.error(error.message)
        first = errors[0]
        first.additional_errors = tuple(errors[1:])
        raise first

    return BootstrapConfig(
        account_id=account_id,
        server_port=server_port,
        use_transport_security=use_tls,
        cache_dir_path=cache_dir_path,
    )
