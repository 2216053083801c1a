"""
Execution contexts — separate WHAT (pure decode logic) from HOW it is run.

The decode pipeline is a pure function returning Result[T]. An
ExecutionContext wraps the call to add behaviour around it (timing and
outcome logging) without the pipeline knowing about it.

    ctx = LoggingExecutionContext(operation="DecodeToken")
    result = ctx.execute(lambda: decode_token(token))
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Protocol, TypeVar, runtime_checkable

from railway.result import Result

T = TypeVar("T")
logger = logging.getLogger("railway.execution")


@runtime_checkable
class ExecutionContext(Protocol):
    """
    Protocol for execution contexts.

    Any class implementing execute(computation) satisfies this protocol
    via structural typing — no explicit inheritance needed.
    """

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        """Execute a Result-returning computation within this context."""
        ...


class NoOpExecutionContext:
    """Passthrough execution context — runs the computation without any wrapper."""

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        return computation()


class LoggingExecutionContext:
    """
    Execution context that logs entry, exit, duration, and result state.

    Wraps another context (decorator pattern) to add observability.
    Exceptions escaping the computation are logged and re-raised: an
    exception here is a defect, not a decode failure.

        ctx = LoggingExecutionContext(operation="DecodeToken")
    """

    def __init__(
        self,
        inner: ExecutionContext | None = None,
        operation: str = "unknown",
        log_level: int = logging.INFO,
    ) -> None:
        self._inner = inner or NoOpExecutionContext()
        self._operation = operation
        self._log_level = log_level

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        logger.log(self._log_level, "[%s] Starting execution", self._operation)
        start = time.monotonic()

        try:
            result = self._inner.execute(computation)
        except Exception:
            logger.exception(
                "[%s] Execution raised after %.3fs",
                self._operation,
                time.monotonic() - start,
            )
            raise

        elapsed = time.monotonic() - start
        state = "SUCCESS" if result.is_success() else f"FAILURE ({result.error().code.value})"
        logger.log(
            self._log_level,
            "[%s] Completed in %.3fs — %s",
            self._operation,
            elapsed,
            state,
        )
        return result
