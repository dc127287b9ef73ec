"""
Logging for the counseling assessment engine.

Records are routed through the ``counsel`` logger namespace and stamped with
the caller, member and assessment of the unit of work that emitted them.
Nothing is configured on import; entry points call ``configure_logging``.
"""

from __future__ import annotations

import json
import logging
import logging.config
from collections.abc import Callable, Mapping
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from functools import wraps
from pathlib import Path
from time import perf_counter
from types import TracebackType
from typing import Any, ParamSpec, TypeVar

from .config import LoggingConfig, get_settings

P = ParamSpec("P")
R = TypeVar("R")

CONTEXT_FIELDS = ("caller_id", "member_id", "assessment_id", "request_id", "operation")

# Each thread and each asyncio task sees its own copy.
_log_context: ContextVar[Mapping[str, Any]] = ContextVar("counsel_log_context", default={})


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, context fields included when present."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update(
            {field: getattr(record, field) for field in CONTEXT_FIELDS if hasattr(record, field)}
        )

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(entry, ensure_ascii=False, default=str)


class ContextFilter(logging.Filter):
    """Copies the current logging context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            setattr(record, key, value)
        return True


def current_context() -> dict[str, Any]:
    return dict(_log_context.get())


def set_context(**kwargs: Any) -> None:
    """
    Add fields to the logging context of the current thread or task.

    Example:
        >>> set_context(caller_id="counselor-1", member_id="member-7")
    """
    _log_context.set({**_log_context.get(), **kwargs})


def clear_context() -> None:
    _log_context.set({})


class LogContext:
    """Temporarily extend the logging context; the previous one is restored on exit."""

    def __init__(self, **kwargs: Any):
        self.fields = kwargs
        self._token: Token[Mapping[str, Any]] | None = None

    def __enter__(self) -> LogContext:
        self._token = _log_context.set({**_log_context.get(), **self.fields})
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    structured: bool = True,
    enable_console: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Install handlers on the ``counsel`` logger tree with ``dictConfig``.

    Example:
        >>> setup_logging(level="DEBUG", log_file="./logs/counsel.log")
    """
    handlers: dict[str, dict[str, Any]] = {}

    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "structured" if structured else "standard",
            "filters": ["context"],
            "stream": "ext://sys.stdout",
        }

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "structured",
            "filters": ["context"],
            "filename": log_file,
            "maxBytes": max_bytes,
            "backupCount": backup_count,
            "encoding": "utf-8",
        }

    names = list(handlers)
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structured": {"()": StructuredFormatter},
                "standard": {
                    "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
            },
            "filters": {"context": {"()": ContextFilter}},
            "handlers": handlers,
            "loggers": {
                "counsel": {"level": level, "handlers": names, "propagate": False},
                "sqlalchemy.engine": {"level": "WARNING", "handlers": names, "propagate": False},
            },
        }
    )


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Apply the ``LOG_*`` settings (environment-adjusted) to the ``counsel`` loggers."""
    if config is None:
        config = get_settings().logging

    setup_logging(
        level=config.level,
        log_file=config.file_path,
        structured=config.structured,
        enable_console=config.console_enabled,
        max_bytes=config.max_bytes,
        backup_count=config.backup_count,
    )
    get_logger(__name__).debug(f"Logging configured at {config.level}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger namespaced under ``counsel``.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Assessment created")
    """
    full = name if name.startswith("counsel.") or name == "counsel" else f"counsel.{name}"
    return logging.getLogger(full)


def log_operation(
    operation: str, logger: logging.Logger | None = None
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Log start, completion and failure of a facade operation under its name.

    Example:
        >>> @log_operation("create_custom_assessment")
        ... def create_custom_assessment(session, caller_id, data):
        ...     pass
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            func_logger = logger or get_logger(func.__module__)

            with LogContext(operation=operation):
                func_logger.info(f"Starting {operation}")
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    func_logger.error(f"Failed {operation}: {e}", exc_info=True)
                    raise
                func_logger.info(f"Completed {operation}")
                return result

        return wrapper

    return decorator


def log_database_operation(operation: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Time a repository call and log failures with the elapsed time.

    Example:
        >>> @log_database_operation("assessment.save")
        ... def save_definition(self, definition, organization_id, created_by):
        ...     pass
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            logger = get_logger("database")

            with LogContext(operation=f"db_{operation}"):
                started = perf_counter()
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    logger.error(
                        f"Database operation {operation} failed after "
                        f"{perf_counter() - started:.3f}s: {e}",
                        exc_info=True,
                    )
                    raise
                logger.debug(f"Database operation {operation} took {perf_counter() - started:.3f}s")
                return result

        return wrapper

    return decorator
