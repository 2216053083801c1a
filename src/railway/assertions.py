"""
Test assertions for Result values.

Expressive assert helpers that produce clear failure messages:

    from railway import ErrorCode, ResultAssertions

    def test_rejects_truncated_buffer():
        result = decoder.decode(b"\\x82\\x01")
        ResultAssertions.assert_failure(result, ErrorCode.MALFORMED_CBOR)
        ResultAssertions.assert_failure_message_contains(result, "end of input")
"""

from __future__ import annotations

from typing import Any, TypeVar

from railway.failure import ErrorCode, FailureDescription
from railway.result import Result

T = TypeVar("T")


class ResultAssertions:
    """Expressive test assertions for Result values."""

    @staticmethod
    def assert_success(result: Result[T], message: str = "") -> T:
        """
        Assert the Result is a Success and return the value.

            certificate = ResultAssertions.assert_success(result)
        """
        context = f" — {message}" if message else ""
        assert result.is_success(), (
            f"Expected Success but got Failure("
            f"{result.error().code.value}: {result.error().message!r}){context}"
        )
        return result.value()

    @staticmethod
    def assert_failure(
        result: Result[T],
        expected_code: ErrorCode | None = None,
        message: str = "",
    ) -> FailureDescription:
        """
        Assert the Result is a Failure, optionally checking the error code.

            error = ResultAssertions.assert_failure(result, ErrorCode.INVALID_BASE45)
        """
        context = f" — {message}" if message else ""
        assert result.is_failure(), (
            f"Expected Failure but got Success({result.value()!r}){context}"
        )
        error = result.error()
        if expected_code is not None:
            assert error.code == expected_code, (
                f"Expected error code {expected_code.value} "
                f"but got {error.code.value}: {error.message!r}{context}"
            )
        return error

    @staticmethod
    def assert_failure_message_contains(result: Result[T], substring: str) -> None:
        """Assert that the failure message contains the given substring (case-insensitive)."""
        assert result.is_failure(), (
            f"Expected Failure but got Success({result.value()!r})"
        )
        error = result.error()
        assert substring.lower() in error.message.lower(), (
            f"Expected failure message to contain {substring!r} "
            f"but message was: {error.message!r}"
        )

    @staticmethod
    def assert_failure_details(result: Result[T], **expected: Any) -> None:
        """
        Assert that the failure details contain every given key/value pair.

            ResultAssertions.assert_failure_details(result, array="v", index=0, key="ci")
        """
        error = ResultAssertions.assert_failure(result)
        for key, value in expected.items():
            assert key in error.details, (
                f"Expected failure detail {key!r} but details were: {dict(error.details)!r}"
            )
            assert error.details[key] == value, (
                f"Expected failure detail {key}={value!r} "
                f"but got {key}={error.details[key]!r}"
            )

    @staticmethod
    def assert_success_value(result: Result[T], expected_value: Any) -> None:
        """Assert the Result is a Success with the specific value."""
        value = ResultAssertions.assert_success(result)
        assert value == expected_value, (
            f"Expected success value {expected_value!r} but got {value!r}"
        )
