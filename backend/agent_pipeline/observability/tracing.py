"""
Span Timing — `@traced(name)` decorator

Wraps pipeline entry points with wall-clock timing and error logging:

  trace | span=ContentReadingCoordinator.read_content elapsed_ms=41.7 ok
  trace | span=TaskCreationCoordinator.create_tasks elapsed_ms=2.3 error=...

Spans are logged through the standard `logging` module at DEBUG on success
and ERROR (with traceback) on failure, so they follow whatever handler
configure_logging() installed. Exceptions are always re-raised.

Works for both `async def` and plain functions.
"""

from __future__ import annotations

import functools
import inspect
import logging
import time
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _log_ok(span_name: str, t0: float) -> None:
    elapsed_ms = (time.perf_counter() - t0) * 1000
    logger.debug("trace | span=%s elapsed_ms=%.1f ok", span_name, elapsed_ms)


def _log_error(span_name: str, t0: float, exc: Exception) -> None:
    elapsed_ms = (time.perf_counter() - t0) * 1000
    logger.error(
        "trace | span=%s elapsed_ms=%.1f error=%s",
        span_name, elapsed_ms, exc, exc_info=True,
    )


def traced(name: str | None = None) -> Callable[[F], F]:
    """
    Usage::

        @traced("read_content")
        async def read_content(self, files): ...

        @traced()   # uses the function's qualified name
        def create_tasks(...): ...
    """
    def decorator(func: F) -> F:
        span_name = name or func.__qualname__

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                t0 = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as exc:
                    _log_error(span_name, t0, exc)
                    raise
                _log_ok(span_name, t0)
                return result

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            t0 = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                _log_error(span_name, t0, exc)
                raise
            _log_ok(span_name, t0)
            return result

        return sync_wrapper  # type: ignore[return-value]
    return decorator
