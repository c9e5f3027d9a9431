"""Unit tests for the error envelope mapping."""

import json
from types import SimpleNamespace

import pytest

from src.api.middleware.error_handler import (
    UNMAPPED_DOMAIN_ERROR,
    APIError,
    ErrorMapping,
    error_details,
    handle_exception,
    map_domain_error,
)
from src.domain.exceptions import (
    DomainException,
    JobRetryException,
    MediaNotFoundException,
    MediaStateException,
    QueuePublishException,
)
from src.domain.models.encoding import JobStatus
from src.domain.models.media import MediaStatus


def _request(request_id: str = "req-1") -> SimpleNamespace:
    return SimpleNamespace(
        state=SimpleNamespace(request_id=request_id),
        url=SimpleNamespace(path="/v1/test"),
    )


class TestMapDomainError:
    """Tests for exception to code resolution."""

    @pytest.mark.parametrize(
        ("exc", "expected"),
        [
            (MediaNotFoundException("m"), ErrorMapping("MEDIA_NOT_FOUND", 404)),
            (
                JobRetryException("j", JobStatus.FAILED, 3, 3),
                ErrorMapping("JOB_NOT_RETRYABLE", 409),
            ),
            (
                QueuePublishException("j", "timeout"),
                ErrorMapping("QUEUE_PUBLISH_FAILED", 502),
            ),
        ],
    )
    def test_mapped(self, exc, expected):
        assert map_domain_error(exc) == expected

    def test_subclass_uses_nearest_mapping(self):
        class LockedMediaException(MediaStateException):
            pass

        exc = LockedMediaException("m", MediaStatus.INDEXING, [MediaStatus.READY])

        assert map_domain_error(exc).code == "INVALID_MEDIA_STATE"

    def test_unmapped_domain_error(self):
        assert map_domain_error(DomainException("odd")) == UNMAPPED_DOMAIN_ERROR


class TestErrorDetails:
    """Tests for detail extraction."""

    def test_enum_values_unwrapped(self):
        exc = MediaStateException("m-1", MediaStatus.READY, [MediaStatus.UPLOADING])

        assert error_details(exc) == {"media_id": "m-1", "status": "ready"}

    def test_no_attributes(self):
        assert error_details(ValueError("x")) == {}


class TestHandleException:
    """Tests for the rendered envelope."""

    def test_api_error(self):
        exc = APIError("WEBHOOK_NOT_CONFIGURED", "no secret", 500, {"a": 1})

        response = handle_exception(_request(), exc)

        assert response.status_code == 500
        assert json.loads(response.body) == {
            "error": {
                "code": "WEBHOOK_NOT_CONFIGURED",
                "message": "no secret",
                "details": {"a": 1},
                "request_id": "req-1",
            }
        }

    def test_domain_error(self):
        response = handle_exception(_request(), MediaNotFoundException("m-9"))

        body = json.loads(response.body)["error"]
        assert response.status_code == 404
        assert body["code"] == "MEDIA_NOT_FOUND"
        assert body["details"] == {"media_id": "m-9"}

    def test_unexpected_error_hides_message(self):
        response = handle_exception(_request(), RuntimeError("secret dsn"))

        body = json.loads(response.body)["error"]
        assert response.status_code == 500
        assert body["code"] == "INTERNAL_ERROR"
        assert "secret dsn" not in body["message"]
