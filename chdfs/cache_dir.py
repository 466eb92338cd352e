"""Provisioning of the local cache directory shared by backend plugins.

Many processes on one host (map-reduce tasks, executors) usually point at the
same cache directory and may try to create it at the same moment. Creation is
therefore allowed to fail as long as the directory exists afterwards.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from chdfs.config.keys import TMP_CACHE_DIR_KEY
from chdfs.exceptions import ConfigError, ConfigErrorReason

logger = logging.getLogger(__name__)

SHARED_DIR_MODE = 0o777


@dataclass(frozen=True)
class CacheDirectoryHandle:
    """A cache directory that exists and is readable and writable."""

    path: str
    created: bool = False


def _fail(message: str, reason: ConfigErrorReason, key: str, path: str) -> ConfigError:
    logger.error(message)
    return ConfigError(message, reason=reason, key=key, path=path)


def provision_cache_dir(path: str, key: str = TMP_CACHE_DIR_KEY) -> CacheDirectoryHandle:
    """Ensure ``path`` exists as a readable, writable directory.

    A directory created by this call is opened up to mode 0777 so cooperating
    processes running as other users can share it.

    Args:
        path: Absolute directory path
        key: Configuration key the path came from, used in error messages

    Raises:
        ConfigError: If the directory cannot be created or is not usable
    """
    abs_path = os.path.abspath(path)
    created = False

    if not os.path.exists(abs_path):
        try:
            os.makedirs(abs_path)
            created = True
        except OSError as exc:
            # another process may have created it between our check and makedirs
            if not os.path.exists(abs_path):
                raise _fail(
                    f"mkdir for chdfs tmp dir {abs_path} failed: {exc}",
                    ConfigErrorReason.CREATE_FAILED,
                    key,
                    abs_path,
                ) from exc
            logger.debug("chdfs tmp cache dir %s was created concurrently", abs_path)

    if created:
        try:
            os.chmod(abs_path, SHARED_DIR_MODE)
        except OSError as exc:
            logger.debug("could not open up permissions of %s: %s", abs_path, exc)
        logger.debug("created chdfs tmp cache dir %s", abs_path)

    if not os.path.isdir(abs_path):
        raise _fail(
            f"chdfs config [{key}: {abs_path}] is invalid directory",
            ConfigErrorReason.NOT_A_DIRECTORY,
            key,
            abs_path,
        )

    if not os.access(abs_path, os.R_OK):
        raise _fail(
            f"chdfs config [{key}: {abs_path}] is not readable",
            ConfigErrorReason.NOT_READABLE,
            key,
            abs_path,
        )

    if not os.access(abs_path, os.W_OK):
        raise _fail(
            f"chdfs config [{key}: {abs_path}] is not writeable",
            ConfigErrorReason.NOT_WRITABLE,
            key,
            abs_path,
        )

    return CacheDirectoryHandle(path=abs_path, created=created)
