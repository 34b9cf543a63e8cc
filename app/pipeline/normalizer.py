# =============================================================================
# app/pipeline/normalizer.py - Error Normalizer
# =============================================================================
# Turns any exception raised while serving a request into the single error
# shape clients see: {"error": <message>} with the error's status, or 500.
#
# Client errors (status < 500) always carry their own fixed message.
# Server errors carry the exception text outside production and a generic
# message in production. Every error is logged, whatever the mode.
# =============================================================================

import logging
from http import HTTPStatus

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from starlette.responses import Response

from app.exceptions import (
    GENERIC_ERROR_MESSAGE,
    HandlerError,
    NotFoundError,
    StorefrontException,
)

logger = logging.getLogger(__name__)

# Starlette's default detail, used when no route matches
ROUTER_MISS_DETAIL = HTTPStatus.NOT_FOUND.phrase


class ErrorNormalizer:
    """
    Renders exceptions as responses.

    Args:
        production: Hide server error detail behind a generic message
    """

    def __init__(self, production: bool):
        self.production = production

    def classify(self, exc: Exception, path: str) -> StorefrontException:
        """
        Map any exception onto the storefront taxonomy.

        Framework errors keep their status and detail. Only the router's own
        miss (a bare 404) becomes the API not-found error.
        """
        if isinstance(exc, StorefrontException):
            return exc
        if isinstance(exc, RequestValidationError):
            return HandlerError(_validation_summary(exc), status_code=422, code="VALIDATION_ERROR")
        if isinstance(exc, HTTPException):
            if exc.status_code == 404 and exc.detail == ROUTER_MISS_DETAIL:
                return NotFoundError(path)
            return HandlerError(str(exc.detail), status_code=exc.status_code, code="HTTP_ERROR")
        return HandlerError(str(exc) or exc.__class__.__name__, code="INTERNAL_ERROR")

    def message_for(self, error: StorefrontException) -> str:
        if error.is_client_error or not self.production:
            return error.message
        return GENERIC_ERROR_MESSAGE

    def render(self, exc: Exception, method: str, path: str) -> Response:
        """Log `exc` and build the response the client receives."""
        error = self.classify(exc, path)
        if error.is_client_error:
            logger.warning(f"{method} {path} -> {error.status_code} {error.code}: {error.message}")
        else:
            logger.error(f"Error: {method} {path} -> {error.status_code}", exc_info=exc)

        response = error.to_response(self.message_for(error))
        if isinstance(exc, HTTPException) and exc.headers:
            response.headers.update(exc.headers)
        return response

    async def handle_framework_exception(self, request: Request, exc: Exception) -> Response:
        """FastAPI exception handler hook for HTTPException / RequestValidationError."""
        return self.render(exc, request.method, request.url.path)


def _validation_summary(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(parts) or "Request validation failed"

