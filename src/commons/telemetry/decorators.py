"""Timing decorator and scoped log context."""

import functools
import inspect
import logging
import time
from collections.abc import Callable
from typing import Any, ParamSpec, TypeVar, overload

from src.commons.telemetry.logger import get_log_context, get_logger, log_context_var

P = ParamSpec("P")
R = TypeVar("R")


@overload
def timed(func: Callable[P, R]) -> Callable[P, R]: ...


@overload
def timed(
    *,
    logger: logging.Logger | None = None,
    level: int = logging.DEBUG,
    threshold_ms: float | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]: ...


def timed(
    func: Callable[P, R] | None = None,
    *,
    logger: logging.Logger | None = None,
    level: int = logging.DEBUG,
    threshold_ms: float | None = None,
) -> Callable[P, R] | Callable[[Callable[P, R]], Callable[P, R]]:
    """Log the duration and outcome of a sync or async call.

    Usable bare or with options:

        @timed
        async def search_chunks(...): ...

        @timed(level=logging.INFO, threshold_ms=500)
        async def index_media_transcript(...): ...

    A successful call logs "<name> completed" with `duration_ms` and
    `outcome="ok"`. A call that raises logs "<name> failed" with
    `outcome="error"` and the exception type at WARNING or above, regardless
    of the threshold, and the exception propagates unchanged.

    Args:
        func: The function when used without parentheses.
        logger: Logger to use. Defaults to the function's module logger.
        level: Level for successful calls.
        threshold_ms: Skip successful calls faster than this.
    """

    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        log = logger or get_logger(fn.__module__)
        name = fn.__qualname__

        def _report(start: float, error: BaseException | None) -> None:
            elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
            if error is not None:
                log.log(
                    max(level, logging.WARNING),
                    f"{name} failed",
                    extra={
                        "duration_ms": elapsed_ms,
                        "outcome": "error",
                        "error_type": type(error).__name__,
                    },
                )
            elif threshold_ms is None or elapsed_ms >= threshold_ms:
                log.log(
                    level,
                    f"{name} completed",
                    extra={"duration_ms": elapsed_ms, "outcome": "ok"},
                )

        @functools.wraps(fn)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()
            try:
                result = fn(*args, **kwargs)
            except Exception as e:
                _report(start, e)
                raise
            _report(start, None)
            return result

        @functools.wraps(fn)
        async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()
            try:
                result = await fn(*args, **kwargs)  # type: ignore[misc]
            except Exception as e:
                _report(start, e)
                raise
            _report(start, None)
            return result  # type: ignore[no-any-return]

        if inspect.iscoroutinefunction(fn):
            return async_wrapper  # type: ignore[return-value]
        return sync_wrapper

    if func is not None:
        return decorator(func)
    return decorator


class LogContext:
    """Adds fields to every log line emitted inside its block.

    Nested blocks merge with the enclosing context, and the previous context
    comes back on exit. Tasks created inside the block, such as background
    transcriptions, inherit the fields.
    """

    def __init__(self, **fields: Any) -> None:
        self.fields = fields
        self._outer: dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        self._outer = get_log_context()
        log_context_var.set({**self._outer, **self.fields})
        return self

    def __exit__(self, *exc_info: Any) -> None:
        log_context_var.set(self._outer)
