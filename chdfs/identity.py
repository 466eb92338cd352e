"""Process-wide user identity, initialised once on first use."""

from __future__ import annotations

import getpass
import logging
import os
import threading
from dataclasses import dataclass
from typing import Optional

from chdfs.config.keys import USER_NAME_KEY
from chdfs.config.source import ConfigSource, as_configuration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserIdentity:
    user_name: str

    @property
    def home_directory(self) -> str:
        return f"/user/{self.user_name}"


def _detect_user_name(source: Optional[ConfigSource]) -> str:
    conf = as_configuration(source)
    configured = conf.get_str(USER_NAME_KEY)
    if configured:
        return configured
    env_user = os.environ.get("HADOOP_USER_NAME")
    if env_user:
        return env_user
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        # no passwd entry, e.g. an arbitrary uid inside a container
        return str(os.getuid()) if hasattr(os, "getuid") else "unknown"


class IdentityContext:
    """Lazily initialised identity shared by every adapter in the process.

    ``ensure_initialized`` is safe to call from many threads; only the first
    caller pays for the lock and for detecting the user.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._identity: Optional[UserIdentity] = None

    @property
    def initialized(self) -> bool:
        return self._identity is not None

    def ensure_initialized(self, source: Optional[ConfigSource] = None) -> UserIdentity:
        identity = self._identity
        if identity is None:
            with self._lock:
                identity = self._identity
                if identity is None:
                    identity = UserIdentity(user_name=_detect_user_name(source))
                    self._identity = identity
                    logger.debug("initialized process identity for user %s", identity.user_name)
        return identity

    def current(self) -> UserIdentity:
        return self.ensure_initialized()

    def reset(self) -> None:
        """Forget the identity. Only meant for tests."""
        with self._lock:
            self._identity = None


_IDENTITY_CONTEXT = IdentityContext()


def get_identity_context() -> IdentityContext:
    return _IDENTITY_CONTEXT
