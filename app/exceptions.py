# =============================================================================
# app/exceptions.py - Error Taxonomy
# =============================================================================
# Every failure the request pipeline knows about is a StorefrontException.
# Each one carries its HTTP status and a fixed client-facing message, and
# knows how to render itself. The ErrorNormalizer in app/pipeline decides
# which message a client actually gets.
# =============================================================================

from typing import Any, Optional

from fastapi.responses import JSONResponse, PlainTextResponse, Response

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."
API_NOT_FOUND_MESSAGE = "API endpoint not found"
GENERIC_ERROR_MESSAGE = "Internal server error"


class StorefrontException(Exception):
    """
    Base exception for the storefront server.

    Client errors (status < 500) always show their message. Server errors
    show it only outside production.
    """

    def __init__(
        self,
        message: str,
        code: str = "STOREFRONT_ERROR",
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code

    @property
    def is_client_error(self) -> bool:
        return self.status_code < 500

    def to_dict(self, message: Optional[str] = None) -> dict[str, Any]:
        """Convert exception to API response dict."""
        return {"error": message if message is not None else self.message}

    def to_response(self, message: Optional[str] = None) -> Response:
        return JSONResponse(status_code=self.status_code, content=self.to_dict(message))


# =============================================================================
# Body Decoder Exceptions
# =============================================================================

class PayloadError(StorefrontException):
    """Raised when a request body cannot be decoded."""

    def __init__(self, message: str, status_code: int = 400, code: str = "PAYLOAD_INVALID"):
        super().__init__(message=message, code=code, status_code=status_code)


class PayloadTooLargeError(PayloadError):
    """Raised when a body exceeds the configured ceiling."""

    def __init__(self, limit: int, length: Optional[int] = None):
        super().__init__(
            message="request entity too large",
            code="PAYLOAD_TOO_LARGE",
            status_code=413,
        )
        self.limit = limit
        self.length = length


class UnsupportedCharsetError(PayloadError):
    """Raised when a body declares a charset we cannot decode."""

    def __init__(self, charset: str):
        super().__init__(
            message=f'unsupported charset "{charset.upper()}"',
            code="CHARSET_UNSUPPORTED",
            status_code=415,
        )
        self.charset = charset


class TooManyParametersError(PayloadError):
    """Raised when a form body carries more fields than allowed."""

    def __init__(self, limit: int):
        super().__init__(
            message="too many parameters",
            code="PARAMETERS_TOO_MANY",
            status_code=413,
        )
        self.limit = limit


# =============================================================================
# Rate Limiting
# =============================================================================

class RateLimitError(StorefrontException):
    """Raised when a client exceeds its request ceiling for the window."""

    def __init__(self, retry_after: int):
        super().__init__(
            message=RATE_LIMIT_MESSAGE,
            code="RATE_LIMITED",
            status_code=429,
        )
        self.retry_after = retry_after

    def to_response(self, message: Optional[str] = None) -> Response:
        return PlainTextResponse(
            message if message is not None else self.message,
            status_code=self.status_code,
            headers={"Retry-After": str(self.retry_after)},
        )


# =============================================================================
# Routing
# =============================================================================

class NotFoundError(StorefrontException):
    """Raised when nothing serves the requested path."""

    def __init__(self, path: str, message: str = API_NOT_FOUND_MESSAGE):
        super().__init__(message=message, code="NOT_FOUND", status_code=404)
        self.path = path


class HandlerError(StorefrontException):
    """
    Raised by route group handlers.

    Handlers pick the status; anything below 500 reaches the client
    verbatim (e.g. HandlerError("Invalid credentials", status_code=401)).
    """

    def __init__(self, message: str, status_code: int = 500, code: str = "HANDLER_ERROR"):
        super().__init__(message=message, code=code, status_code=status_code)
