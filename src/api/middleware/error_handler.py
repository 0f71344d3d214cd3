"""Error types and the middleware that turns them into JSON responses."""

import logging
import traceback
from typing import Any, Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from src.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for errors returned to the client.

    Subclasses set `status_code`, `error_type` and `default_message`; raising
    one from a route or service produces an `ErrorResponse` body.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type: str = "api_error"
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None, details: list[dict[str, Any]] | None = None) -> None:
        """Initialize API error.

        Args:
            message: Human-readable message; the class default when omitted.
            details: Optional per-field problems, e.g. `{"loc": [...], "msg": ...}`.
        """
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NotFoundError(APIError):
    """Contact, task or discovery session does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    error_type = "not_found"
    default_message = "Resource not found"


class BadRequestError(APIError):
    """Missing or malformed input detected before touching the store."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "bad_request"
    default_message = "Bad request"


class ConflictError(APIError):
    """Write would create a duplicate contact."""

    status_code = status.HTTP_409_CONFLICT
    error_type = "conflict"
    default_message = "Resource already exists"


class StoreError(APIError):
    """Store or filesystem failure.

    The client gets the generic message; the chained cause is only logged.
    """

    error_type = "store_error"
    default_message = "Storage operation failed"


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Build a JSON response with the `ErrorResponse` body.

    Args:
        error_type: Error category for client handling.
        message: Human-readable error description.
        status_code: HTTP status code.
        details: Optional error details.
        request_id: Optional request ID for tracing.

    Returns:
        JSONResponse: Formatted error response.
    """
    body = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


def _respond(error: APIError, request_id: str | None) -> JSONResponse:
    return create_error_response(
        error_type=error.error_type,
        message=error.message,
        status_code=error.status_code,
        details=error.details,
        request_id=request_id,
    )


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Catch exceptions raised below this middleware and format them.

    Args:
        request: The incoming request.
        call_next: Next middleware or route handler.

    Returns:
        Response: The route's response or an error response.
    """
    request_id = request.headers.get("X-Request-ID")

    try:
        return await call_next(request)

    except StoreError as e:
        logger.error(
            "Store error on %s %s: %s (cause: %r)\n%s",
            request.method,
            request.url.path,
            e.message,
            e.__cause__,
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return _respond(e, request_id)

    except APIError as e:
        logger.warning(
            "%s on %s %s: %s",
            e.error_type,
            request.method,
            request.url.path,
            e.message,
            extra={"request_id": request_id, "status_code": e.status_code},
        )
        return _respond(e, request_id)

    except HTTPException as e:
        logger.warning("HTTP %s on %s: %s", e.status_code, request.url.path, e.detail, extra={"request_id": request_id})
        return create_error_response(
            error_type="http_error",
            message=str(e.detail),
            status_code=e.status_code,
            request_id=request_id,
        )

    except Exception as e:
        logger.error(
            "Unhandled exception on %s %s: %s\n%s",
            request.method,
            request.url.path,
            e,
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="internal_error",
            message="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )
