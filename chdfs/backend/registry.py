"""Registry of backend factories, keyed by implementation name."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List

from chdfs.config.keys import BACKEND_IMPL_KEY
from chdfs.exceptions import ConfigError, ConfigErrorReason
from .base import BackendContext, BackendFileSystem

logger = logging.getLogger(__name__)

BackendFactory = Callable[[BackendContext], BackendFileSystem]

BACKEND_REGISTRY: Dict[str, BackendFactory] = {}


def register_backend(name: str) -> Callable[[BackendFactory], BackendFactory]:
    """Decorator to register a backend factory.

    Usage:
        @register_backend("my_backend")
        def my_backend_factory(context: BackendContext) -> BackendFileSystem:
            return MyBackend(context)
    """
    def decorator(factory: BackendFactory) -> BackendFactory:
        BACKEND_REGISTRY[name.lower()] = factory
        logger.debug("registered backend factory %s", name.lower())
        return factory

    return decorator


def list_backends() -> List[str]:
    """Return all registered backend identifiers."""
    return sorted(BACKEND_REGISTRY.keys())


def get_backend_factory(name: str) -> BackendFactory:
    """Get the factory registered under ``name``.

    Raises:
        ConfigError: If no factory is registered under that name
    """
    factory = BACKEND_REGISTRY.get(name.lower())
    if not factory:
        available = list_backends()
        message = (
            f"Backend implementation '{name}' is not available. "
            f"Available backends: {', '.join(available) or '(none)'}."
        )
        logger.error(message)
        raise ConfigError(
            message,
            reason=ConfigErrorReason.UNKNOWN_BACKEND,
            key=BACKEND_IMPL_KEY,
        )
    return factory
