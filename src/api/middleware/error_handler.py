"""Maps pipeline exceptions to the API error envelope.

Every failure leaves the API as

    {"error": {"code", "message", "details", "request_id"}}

Domain exceptions get a stable code and HTTP status from `DOMAIN_ERRORS`.
Route-level conditions raise `APIError` directly. Anything else is logged
with its traceback and reported as `INTERNAL_ERROR` without leaking the
message.
"""

import logging
from typing import Any, NamedTuple

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import RequestResponseEndpoint
from starlette.responses import Response

from src.commons.telemetry.logger import get_logger
from src.domain.exceptions import (
    ChunkNotFoundException,
    DispatchValidationException,
    DomainException,
    EncodingJobNotFoundException,
    IndexingException,
    InvalidWebhookPayloadException,
    JobRetryException,
    MediaNotFoundException,
    MediaStateException,
    QueuePublishException,
    TranscriptionException,
    WebhookSignatureException,
)

logger = get_logger(__name__)

# Exception attributes surfaced to clients as error details
DETAIL_ATTRIBUTES = (
    "media_id",
    "job_id",
    "chunk_id",
    "status",
    "attempt_number",
    "max_attempts",
    "reason",
)


class APIError(Exception):
    """An error raised by a route with an explicit code and status."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ErrorMapping(NamedTuple):
    code: str
    status_code: int


DOMAIN_ERRORS: dict[type[DomainException], ErrorMapping] = {
    MediaNotFoundException: ErrorMapping("MEDIA_NOT_FOUND", 404),
    EncodingJobNotFoundException: ErrorMapping("JOB_NOT_FOUND", 404),
    ChunkNotFoundException: ErrorMapping("CHUNK_NOT_FOUND", 404),
    MediaStateException: ErrorMapping("INVALID_MEDIA_STATE", 409),
    JobRetryException: ErrorMapping("JOB_NOT_RETRYABLE", 409),
    DispatchValidationException: ErrorMapping("DISPATCH_VALIDATION_ERROR", 400),
    InvalidWebhookPayloadException: ErrorMapping("INVALID_WEBHOOK_PAYLOAD", 400),
    WebhookSignatureException: ErrorMapping("INVALID_SIGNATURE", 401),
    QueuePublishException: ErrorMapping("QUEUE_PUBLISH_FAILED", 502),
    TranscriptionException: ErrorMapping("TRANSCRIPTION_ERROR", 500),
    IndexingException: ErrorMapping("INDEXING_ERROR", 500),
}

UNMAPPED_DOMAIN_ERROR = ErrorMapping("DOMAIN_ERROR", 400)


def map_domain_error(exc: DomainException) -> ErrorMapping:
    """Find the mapping for the nearest mapped class in the exception's MRO."""
    for cls in type(exc).__mro__:
        mapping = DOMAIN_ERRORS.get(cls)  # type: ignore[call-overload]
        if mapping is not None:
            return mapping
    return UNMAPPED_DOMAIN_ERROR


def error_details(exc: Exception) -> dict[str, Any]:
    """Collect identifying attributes, unwrapping enum values."""
    details: dict[str, Any] = {}
    for key in DETAIL_ATTRIBUTES:
        value = getattr(exc, key, None)
        if value is not None:
            details[key] = getattr(value, "value", value)
    return details


def error_response(
    request: Request,
    code: str,
    message: str,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Render the error envelope, tagged with the request id."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
                "request_id": getattr(request.state, "request_id", "unknown"),
            }
        },
    )


def handle_exception(request: Request, exc: Exception) -> JSONResponse:
    """Translate an exception escaping a route into an error response."""
    if isinstance(exc, APIError):
        code, status_code = exc.code, exc.status_code
        message, details = exc.message, exc.details
    elif isinstance(exc, DomainException):
        code, status_code = map_domain_error(exc)
        message, details = str(exc), error_details(exc)
    else:
        logger.exception(
            "Unhandled error",
            extra={"path": request.url.path, "error_type": type(exc).__name__},
        )
        return error_response(
            request,
            "INTERNAL_ERROR",
            "An unexpected error occurred",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    logger.log(
        logging.ERROR if status_code >= 500 else logging.WARNING,
        "Request failed: %s",
        code,
        extra={"path": request.url.path, "error_message": message, **details},
    )
    return error_response(request, code, message, status_code, details)


async def error_handler_middleware(
    request: Request,
    call_next: RequestResponseEndpoint,
) -> Response:
    """Catch exceptions from downstream handlers and render them."""
    try:
        return await call_next(request)
    except Exception as exc:
        return handle_exception(request, exc)
