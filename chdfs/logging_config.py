"""Logging setup for applications embedding chdfs-adapter.

The library only creates loggers (``logging.getLogger(__name__)``) and never
installs handlers. Applications, and the ``chdfs-doctor`` CLI, call
``setup_logging`` once at start-up.

Records may carry adapter context passed through ``extra`` or a
``get_logger`` adapter, e.g. ``mount_point``, ``operation`` or
``elapse_ms``. The JSON formatter emits them as top-level fields; the console
formatter appends them in brackets.

Environment variables:
    CHDFS_LOG_LEVEL (fallback LOG_LEVEL): DEBUG, INFO, WARNING/WARN, ERROR, CRITICAL
    CHDFS_LOG_FORMAT: human (default), json or simple
    CHDFS_LOG_FILE: path of an additional rotating JSON log file
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

LEVEL_ENV_VARS = ('CHDFS_LOG_LEVEL', 'LOG_LEVEL')
FORMAT_ENV_VAR = 'CHDFS_LOG_FORMAT'
FILE_ENV_VAR = 'CHDFS_LOG_FILE'

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'WARN': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL,
}

# Attributes every LogRecord has; anything else arrived through ``extra``.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord('', logging.INFO, '', 0, '', (), None))
) | {'message', 'asctime'}


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Return the non-standard attributes attached to ``record``."""
    return {key: value for key, value in vars(record).items() if key not in _STANDARD_ATTRS}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, context fields at the top level."""

    def __init__(self, include_context: bool = True):
        super().__init__()
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: Dict[str, Any] = {
            'timestamp': created.isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        if self.include_context:
            payload['source'] = f"{record.module}.{record.funcName}:{record.lineno}"
        if record.exc_info:
            payload['exception'] = self.formatException(record.exc_info)
        payload.update(record_context(record))
        return json.dumps(payload, default=str)


class HumanReadableFormatter(logging.Formatter):
    """``[LEVEL] time - logger - message [key=value ...]`` with optional colors."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = False, include_context: bool = False):
        source = ' - %(module)s.%(funcName)s:%(lineno)d' if include_context else ''
        super().__init__(
            fmt=f'[%(levelname)s] %(asctime)s - %(name)s{source} - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
        )
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = record_context(record)
        if context:
            line += ' [' + ' '.join(f"{key}={value}" for key, value in sorted(context.items())) + ']'
        if self.use_colors and record.levelname in self.COLORS:
            line = f"{self.COLORS[record.levelname]}{line}{self.RESET}"
        return line


def get_log_level_from_env() -> int:
    """Level named by CHDFS_LOG_LEVEL, then LOG_LEVEL; INFO when unset or unknown."""
    for var in LEVEL_ENV_VARS:
        name = os.environ.get(var)
        if name:
            return _LEVELS.get(name.strip().upper(), logging.INFO)
    return logging.INFO


def get_log_format_from_env() -> str:
    """Return CHDFS_LOG_FORMAT ('json', 'human', 'simple'), default 'human'."""
    return os.environ.get(FORMAT_ENV_VAR, 'human').strip().lower()


def _console_formatter(format_type: str, use_colors: bool, include_context: bool) -> logging.Formatter:
    if format_type == 'json':
        return JSONFormatter(include_context=include_context)
    if format_type == 'simple':
        return logging.Formatter('%(levelname)s: %(message)s')
    return HumanReadableFormatter(use_colors=use_colors, include_context=include_context)


def setup_logging(
    level: Optional[Union[int, str]] = None,
    format_type: Optional[str] = None,
    log_file: Optional[Path] = None,
    use_colors: bool = False,
    include_context: bool = False,
) -> List[logging.Handler]:
    """
    Replace the root logger's handlers with a stderr handler and, optionally,
    a rotating JSON file handler.

    Args:
        level: Level number or name (defaults to the environment, then INFO)
        format_type: Console format 'json', 'human' or 'simple'
        log_file: Rotating log file; CHDFS_LOG_FILE is used when omitted
        use_colors: Color console lines by level when stderr is a terminal
        include_context: Add module/function/line to every line

    Returns:
        The handlers installed on the root logger

    Examples:
        >>> setup_logging()
        >>> setup_logging(level='DEBUG', format_type='json')
    """
    if level is None:
        level = get_log_level_from_env()
    elif isinstance(level, str):
        level = _LEVELS.get(level.strip().upper(), logging.INFO)
    if format_type is None:
        format_type = get_log_format_from_env()
    if log_file is None and os.environ.get(FILE_ENV_VAR):
        log_file = Path(os.environ[FILE_ENV_VAR])

    root = logging.getLogger()
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)
    root.setLevel(level)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(_console_formatter(format_type, use_colors, include_context))
    handlers: List[logging.Handler] = [console]

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding='utf-8'
        )
        # file output is always JSON so it can be shipped as-is
        file_handler.setFormatter(JSONFormatter(include_context=True))
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(level)
        root.addHandler(handler)
    return handlers


def get_logger(name: str, extra: Optional[Dict[str, Any]] = None) -> Union[logging.Logger, logging.LoggerAdapter]:
    """
    Get a logger, wrapped in an adapter when context is given.

    Example:
        >>> log = get_logger(__name__, extra={'mount_point': 'f4mabcdefgh-xyzw'})
        >>> log.debug("total init file system")
    """
    logger = logging.getLogger(name)
    if extra:
        return logging.LoggerAdapter(logger, extra)
    return logger


def log_exception(
    logger: Union[logging.Logger, logging.LoggerAdapter],
    message: str,
    exc: BaseException,
) -> None:
    """Log ``exc`` at error level with its traceback and type as context."""
    logger.error(
        "%s: %s",
        message,
        exc,
        exc_info=exc,
        extra={'exception_type': type(exc).__name__, 'exception_message': str(exc)},
    )
