"""Helpers to turn arbitrary backend failures into domain exceptions.

Backends are loaded at runtime and may raise anything. Errors the adapter's
callers already know how to handle pass through untouched; everything else is
wrapped into UnexpectedError carrying the failing operation's name.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

from chdfs.exceptions import ChdfsError, UnexpectedError
from chdfs.logging_config import log_exception

logger = logging.getLogger(__name__)

T = TypeVar("T")

# OSError covers FileNotFoundError, PermissionError, FileExistsError, ...
RECOGNIZED_ERRORS = (ChdfsError, OSError)


def call_backend(operation: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Call ``func`` and normalise its failures.

    Args:
        operation: Operation name used in logs and in the wrapped error
        func: Bound backend method
        *args, **kwargs: Passed to ``func`` unchanged

    Raises:
        ChdfsError, OSError: Re-raised unchanged
        UnexpectedError: For any other exception, chained to the original
    """
    try:
        return func(*args, **kwargs)
    except RECOGNIZED_ERRORS:
        raise
    except Exception as exc:
        log_exception(logger, f"{operation} failed! a unexpected exception occur!", exc)
        raise UnexpectedError(operation, exc) from exc

