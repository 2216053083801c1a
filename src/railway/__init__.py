"""
Railway-Oriented Programming (ROP) support for the decoder.

Explicit, composable error handling: every decode stage returns a Result and
the stages are chained with flat_map.

    from railway import Result, ErrorCode

    def check_arity(items: tuple) -> Result[tuple]:
        if len(items) != 4:
            return Result.failure(ErrorCode.UNEXPECTED_COSE_SHAPE, "expected 4 elements")
        return Result.success(items)
"""

from railway.result import Result, Success, Failure
from railway.failure import ErrorCode, FailureDescription
from railway.execution import (
    ExecutionContext,
    NoOpExecutionContext,
    LoggingExecutionContext,
)
from railway.assertions import ResultAssertions

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ExecutionContext",
    "NoOpExecutionContext",
    "LoggingExecutionContext",
    "ResultAssertions",
]

__version__ = "1.1.0"
