"""
Exception classes for the Imperva WAF client.

All exceptions inherit from ImpervaError and provide structured
error information with codes, messages, and optional details.
"""

from typing import Optional

from .enums import ErrorCode


class ImpervaError(Exception):
    """Base exception for all Imperva client errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class TransportError(ImpervaError):
    """Raised when the HTTP exchange itself fails (DNS, connect, timeout)."""

    pass


class HTTPStatusError(ImpervaError):
    """Raised when the API answers with a status code of 400 or above."""

    def __init__(self, status_code: int, body: bytes, url: str = "") -> None:
        self.status_code = status_code
        self.body = body
        preview = body.decode("utf-8", errors="replace")
        super().__init__(
            code=ErrorCode.HTTP_STATUS.value,
            message=f"API request failed with status {status_code}: {preview}",
            details={"status_code": status_code, "url": url},
        )


class DecodeError(ImpervaError):
    """Raised when a response matches none of the known envelope shapes."""

    def __init__(
        self,
        message: str,
        tried: Optional[list[str]] = None,
        code: str = ErrorCode.DECODE_ERROR.value,
    ) -> None:
        details = {"tried": list(tried)} if tried else {}
        super().__init__(code=code, message=message, details=details)

    @property
    def tried(self) -> list[str]:
        return self.details.get("tried", [])


class MalformedPointError(DecodeError):
    """Raised when a timeseries point is not a [timestamp, value] pair."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=ErrorCode.MALFORMED_POINT.value)


class EmptyResponseError(DecodeError):
    """Raised when a response parses but carries no result object."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=ErrorCode.EMPTY_RESPONSE.value)


class ResultCodeError(ImpervaError):
    """Raised when the body reports a non-zero application result code."""

    def __init__(self, operation: str, result_code: int, result_message: str) -> None:
        self.operation = operation
        self.result_code = result_code
        self.result_message = result_message
        super().__init__(
            code=ErrorCode.RESULT_CODE.value,
            message=f"{operation} failed: {result_message} ({result_code})",
            details={"res": result_code, "res_message": result_message},
        )


class ValidationError(ImpervaError):
    """Raised when caller-supplied options are invalid."""

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        super().__init__(ErrorCode.INVALID_OPTION.value, message, details)


class ConfigError(ImpervaError):
    """Raised when client configuration cannot be loaded or is unusable."""

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        super().__init__(ErrorCode.CONFIG_ERROR.value, message, details)
