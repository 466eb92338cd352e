"""Retrying acquisition of the backend filesystem implementation.

Loading the backend is the only step of initialization that is retried: the
plugin server may be briefly unreachable while hundreds of tasks bootstrap at
once. Attempts are spaced by a random 0.5-2s pause so those tasks do not
retry in lockstep.

Implementation: uses tenacity for the retry loop.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import tenacity

from chdfs.config.keys import BACKEND_IMPL_KEY, DEFAULT_BACKEND_IMPL
from chdfs.config.resolver import BootstrapConfig
from chdfs.config.source import ConfigSource, as_configuration
from chdfs.exceptions import BackendAcquisitionError, InitializationError
from .base import BackendContext, BackendFileSystem
from .registry import get_backend_factory

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5
DEFAULT_MIN_BACKOFF_SECONDS = 0.5
DEFAULT_MAX_BACKOFF_SECONDS = 2.0

# Failures worth another attempt. Anything else is a programming or
# configuration problem and propagates on first occurrence.
TRANSIENT_ERRORS = (OSError, BackendAcquisitionError)

PluginFetcher = Callable[[BackendContext], BackendFileSystem]


class RegistryPluginFetcher:
    """Fetch the backend through the factory registry.

    The implementation name is read from ``fs.ofs.backend.impl`` in the
    context's configuration on every attempt.
    """

    def __call__(self, context: BackendContext) -> BackendFileSystem:
        name = context.configuration.get_str(BACKEND_IMPL_KEY, DEFAULT_BACKEND_IMPL)
        factory = get_backend_factory(name)
        logger.debug("fetching backend %s for %s", name, context.address)
        return factory(context)


def sleep_ignoring_interrupt(seconds: float) -> None:
    """Sleep for ``seconds``; an interrupted sleep simply ends early.

    ``time.sleep`` retries on EINTR by itself (PEP 475), so the
    ``InterruptedError`` branch is reached only when a signal handler raises
    that exception.
    """
    try:
        time.sleep(seconds)
    except InterruptedError:
        logger.debug("backoff sleep interrupted, retrying immediately")


class BackendLoader:
    """Acquire a backend handle with bounded, jittered retries."""

    def __init__(
        self,
        fetcher: Optional[PluginFetcher] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        min_backoff: float = DEFAULT_MIN_BACKOFF_SECONDS,
        max_backoff: float = DEFAULT_MAX_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = sleep_ignoring_interrupt,
    ) -> None:
        self.fetcher: PluginFetcher = fetcher or RegistryPluginFetcher()
        self.max_retries = max_retries
        self.min_backoff = min_backoff
        self.max_backoff = max_backoff
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def _log_retry(self, retry_state: tenacity.RetryCallState) -> None:
        exception = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "init chdfs impl failed, we will retry again, retryInfo: %d/%d",
            retry_state.attempt_number,
            self.max_attempts,
            exc_info=exception,
        )

    def acquire(
        self,
        address: str,
        config: BootstrapConfig,
        configuration: Optional[ConfigSource] = None,
    ) -> BackendFileSystem:
        """Return a backend for ``address``, retrying transient failures.

        Raises:
            InitializationError: If every attempt failed with a transient error
        """
        context = BackendContext(
            address=address,
            account_id=config.account_id,
            server_port=config.server_port,
            cache_dir_path=config.cache_dir_path,
            use_transport_security=config.use_transport_security,
            configuration=as_configuration(configuration),
        )
        attempts = 0

        def attempt() -> BackendFileSystem:
            nonlocal attempts
            attempts += 1
            return self.fetcher(context)

        retrying = tenacity.Retrying(
            stop=tenacity.stop_after_attempt(self.max_attempts),
            wait=tenacity.wait_random(min=self.min_backoff, max=self.max_backoff),
            retry=tenacity.retry_if_exception_type(TRANSIENT_ERRORS),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )

        start = time.monotonic()
        try:
            backend = retrying(attempt)
        except TRANSIENT_ERRORS as exc:
            logger.error("init chdfs impl failed", exc_info=exc)
            raise InitializationError(
                "init chdfs impl failed",
                attempts=attempts,
                last_error=exc,
            ) from exc
        logger.debug(
            "acquired backend for %s after %d attempt(s), [elapse-ms: %d]",
            address,
            attempts,
            (time.monotonic() - start) * 1000,
        )
        return backend
