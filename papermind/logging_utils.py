"""
Centralized logging and error handling utilities for PaperMind.

This module provides decorators and helper functions to standardize logging
and error reporting across the codebase.

Features:
- Structured logging with contextual information
- Automatic error classification for log records
- Performance timing of async operations
"""

from __future__ import annotations

import functools
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, ParamSpec, TypeVar

import httpx
import structlog
from pydantic import ValidationError

from papermind.llm.exceptions import ConfigError, FrameError, TransportError

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(colors=True),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

# Type variables for generic decorators
P = ParamSpec("P")
T = TypeVar("T")
AsyncCallable = Callable[P, Awaitable[T]]

logger = structlog.get_logger(__name__)


def get_logger(name: str) -> Any:
    """Return a structlog logger bound to a module name."""
    return structlog.get_logger(name)


def setup_logging(level: str | int = "INFO") -> None:
    """Set the stdlib level that structlog's level filter honours."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError("Unknown logging level")
    logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger().setLevel(level)


class ErrorClassifier:
    """Maps exceptions to a category used in structured log records."""

    @staticmethod
    def classify_error(error: BaseException) -> str:
        """
        Classify an error.

        Args:
            error: The exception to classify

        Returns:
            Error category name
        """
        if isinstance(error, ConfigError):
            return "config_error"
        if isinstance(error, TransportError):
            return "transport_error"
        if isinstance(error, FrameError):
            return "frame_error"
        if isinstance(error, TimeoutError | httpx.TimeoutException):
            return "timeout_error"
        if isinstance(error, ConnectionError | OSError | httpx.TransportError):
            return "connection_error"
        if isinstance(error, ValidationError | ValueError | TypeError):
            return "parameter_error"
        return "unknown_error"


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)


@asynccontextmanager
async def operation_context(
    operation: str,
    *,
    context: dict[str, Any] | None = None,
    log_timing: bool = True,
    start_fields: dict[str, Any] | None = None,
):
    """
    Log the start and outcome of a block of async work.

    Failures are logged with their error category and re-raised unchanged.

    Args:
        operation: Description of the operation
        context: Fields bound to every record of the operation
        log_timing: Whether to add ``duration_ms`` to the outcome record
        start_fields: Fields added to the start record only

    Yields:
        Bound logger for the operation
    """
    operation_logger = logger.bind(operation=operation, **(context or {}))
    operation_logger.info("Operation started", **(start_fields or {}))
    start_time = time.perf_counter() if log_timing else None

    try:
        yield operation_logger
    except Exception as e:
        failure: dict[str, Any] = {
            "error_type": type(e).__name__,
            "error_category": ErrorClassifier.classify_error(e),
            "error_message": str(e),
        }
        if start_time is not None:
            failure["duration_ms"] = _elapsed_ms(start_time)
        operation_logger.error("Operation failed", **failure)
        raise

    if start_time is None:
        operation_logger.info("Operation completed successfully")
    else:
        operation_logger.info(
            "Operation completed successfully", duration_ms=_elapsed_ms(start_time)
        )


def log_operation(
    operation: str,
    *,
    log_args: bool = False,
    log_result: bool = False,
    log_timing: bool = True,
    context: dict[str, Any] | None = None,
) -> Callable[[AsyncCallable[P, T]], AsyncCallable[P, T]]:
    """
    Decorator that runs an async function inside ``operation_context``.

    The function name is bound as ``function``. When ``log_args`` is set, the
    call arguments go on the start record, leaving out a leading ``self``.
    The result is logged at debug level when ``log_result`` is set.
    """
    def decorator(func: AsyncCallable[P, T]) -> AsyncCallable[P, T]:
        bound_context = {"function": func.__name__, **(context or {})}
        params = list(inspect.signature(func).parameters)
        skip_first = bool(params) and params[0] == "self"

        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            start_fields = None
            if log_args:
                start_fields = {
                    "args": args[1:] if skip_first else args,
                    "kwargs": kwargs,
                }

            async with operation_context(
                operation,
                context=bound_context,
                log_timing=log_timing,
                start_fields=start_fields,
            ) as operation_logger:
                result = await func(*args, **kwargs)
                if log_result:
                    operation_logger.debug("Operation result", result=result)
            return result

        return wrapper
    return decorator
