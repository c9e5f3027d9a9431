"""Unit tests for the encoding job message and its validators."""

import pytest
from pydantic import ValidationError

from src.domain.models.dispatch import (
    EncodingJobMessage,
    check_relative_path,
    is_public_address,
    webhook_hostname,
)

SECRET = "k" * 32


def _message(**overrides) -> dict:
    data = {
        "jobId": "job-1",
        "videoId": "media-1",
        "source": {
            "bucket": "media",
            "path": "videos/raw/media-1/a.mp4",
            "filename": "a.mp4",
        },
        "output": {"bucket": "media", "basePath": "videos/encoded/media-1"},
        "qualities": [
            {
                "quality": "720p",
                "width": 1280,
                "height": 720,
                "bitrate": 2500,
                "audioBitrate": 128,
            }
        ],
        "thumbnail": {"path": "videos/thumbnails/media-1.jpg"},
        "audioForStt": {"enabled": True},
        "callback": {
            "webhookUrl": "https://hooks.example.com/encoding/webhook",
            "webhookSecret": SECRET,
        },
        "metadata": {
            "userId": "user-1",
            "title": "Lesson",
            "createdAt": "2024-01-01T00:00:00+00:00",
        },
    }
    data.update(overrides)
    return data


class TestRelativePath:
    """Tests for object-store path checks."""

    @pytest.mark.parametrize(
        "path", ["videos/raw/a.mp4", "a.mp4", "videos/encoded/x/720p.mp4"]
    )
    def test_accepts_relative(self, path):
        assert check_relative_path(path) == path

    @pytest.mark.parametrize(
        "path",
        [
            "../etc/passwd",
            "videos/../../secret",
            "/abs/path.mp4",
            "\\share\\file.mp4",
            "C:\\videos\\a.mp4",
            "C:videos",
        ],
    )
    def test_rejects(self, path):
        with pytest.raises(ValueError):
            check_relative_path(path)


class TestWebhookHost:
    """Tests for callback URL shape and address checks."""

    @pytest.mark.parametrize(
        ("address", "public"),
        [
            ("93.184.216.34", True),
            ("10.0.0.1", False),
            ("192.168.1.10", False),
            ("127.0.0.1", False),
            ("169.254.169.254", False),
            ("::1", False),
            ("fe80::1%eth0", False),
            ("0.0.0.0", False),
            ("2606:4700::1111", True),
        ],
    )
    def test_is_public_address(self, address, public):
        assert is_public_address(address) is public

    def test_returns_hostname(self):
        assert webhook_hostname("https://Hooks.Example.com/cb") == "hooks.example.com"

    def test_public_ip_literal(self):
        assert webhook_hostname("https://93.184.216.34/cb") == "93.184.216.34"

    @pytest.mark.parametrize(
        "url",
        [
            "http://hooks.example.com/cb",
            "https:///cb",
            "https://localhost/cb",
            "https://api.localhost/cb",
            "https://127.0.0.1/cb",
            "https://10.1.2.3/cb",
            "https://[::1]/cb",
        ],
    )
    def test_rejects(self, url):
        with pytest.raises(ValueError):
            webhook_hostname(url)


class TestEncodingJobMessage:
    """Tests for message construction and wire format."""

    def test_valid_message_round_trips_camel_case(self):
        message = EncodingJobMessage.model_validate(_message())

        wire = message.to_wire()

        assert wire["jobId"] == "job-1"
        assert wire["output"]["basePath"] == "videos/encoded/media-1"
        assert wire["qualities"][0]["audioBitrate"] == 128
        assert wire["thumbnail"] == {
            "enabled": True,
            "timestampPercent": 25,
            "path": "videos/thumbnails/media-1.jpg",
        }
        assert wire["audioForStt"] == {"enabled": True}

    def test_requires_a_quality(self):
        with pytest.raises(ValidationError):
            EncodingJobMessage.model_validate(_message(qualities=[]))

    def test_rejects_traversal_in_source(self):
        source = {"bucket": "media", "path": "../raw/a.mp4", "filename": "a.mp4"}

        with pytest.raises(ValidationError):
            EncodingJobMessage.model_validate(_message(source=source))

    def test_rejects_short_secret(self):
        callback = {
            "webhookUrl": "https://hooks.example.com/cb",
            "webhookSecret": "short",
        }

        with pytest.raises(ValidationError):
            EncodingJobMessage.model_validate(_message(callback=callback))

    def test_rejects_private_callback(self):
        callback = {"webhookUrl": "https://10.0.0.5/cb", "webhookSecret": SECRET}

        with pytest.raises(ValidationError):
            EncodingJobMessage.model_validate(_message(callback=callback))
