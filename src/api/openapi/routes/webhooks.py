"""Callback endpoint for the encoding worker."""

from typing import Annotated

from fastapi import APIRouter, Header, Request, status
from fastapi.responses import JSONResponse

from src.api.dependencies import SettingsDep, WebhookProcessorDep
from src.api.middleware.error_handler import APIError
from src.application.dtos.encoding import WebhookAck
from src.application.services.webhook import (
    parse_webhook_payload,
    verify_webhook_signature,
)
from src.commons.telemetry import get_logger
from src.domain.exceptions import WebhookSignatureException

router = APIRouter(prefix="/encoding")

logger = get_logger(__name__)


@router.post(
    "/webhook",
    response_model=WebhookAck,
    summary="Encoding worker callback",
    description=(
        "Signed worker events. Bad signatures get 401 and bad payloads 400. "
        "Processing failures are acknowledged with 200 and success=false so "
        "the worker does not retry them."
    ),
)
async def encoding_webhook(
    request: Request,
    settings: SettingsDep,
    processor: WebhookProcessorDep,
    signature: Annotated[str | None, Header(alias="X-Webhook-Signature")] = None,
) -> WebhookAck | JSONResponse:
    """Verify and apply one signed encoding worker event."""
    secret = settings.encoding.webhook_secret
    if not secret:
        raise APIError(
            code="WEBHOOK_NOT_CONFIGURED",
            message="Webhook secret is not configured",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    raw_body = await request.body()
    if not signature:
        raise WebhookSignatureException("Missing signature header")
    if not verify_webhook_signature(
        raw_body,
        signature,
        secret,
        tolerance_seconds=settings.encoding.signature_tolerance_seconds,
    ):
        raise WebhookSignatureException("Signature verification failed")

    payload = parse_webhook_payload(raw_body)
    try:
        await processor.process(payload)
    except Exception as e:
        logger.exception(
            "Webhook processing failed",
            extra={"event": payload.event, "job_id": payload.job_id},
        )
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=WebhookAck(success=False, error=str(e)).model_dump(),
        )

    return WebhookAck(
        success=True,
        data={"event": payload.event, "jobId": payload.job_id},
    )
