"""Job message sent to the encoding worker through the queue."""

import ipaddress
from pathlib import PurePosixPath, PureWindowsPath
from typing import Annotated
from urllib.parse import urlparse

from pydantic import AfterValidator, Field, field_validator

from src.domain.models.base import CamelModel
from src.domain.models.encoding import VideoQuality

MIN_WEBHOOK_SECRET_LENGTH = 32

_LOCAL_HOSTNAMES = frozenset({"localhost", "localhost.localdomain", "ip6-localhost"})


def check_relative_path(value: str) -> str:
    """Reject traversal segments and absolute paths."""
    if ".." in value:
        raise ValueError(f"path must not contain '..': {value!r}")
    if PurePosixPath(value).is_absolute() or PureWindowsPath(value).is_absolute():
        raise ValueError(f"path must be relative: {value!r}")
    if value.startswith("\\") or PureWindowsPath(value).drive:
        raise ValueError(f"path must be relative: {value!r}")
    return value


def is_public_address(address: str) -> bool:
    """Check that an IP literal is globally routable."""
    ip = ipaddress.ip_address(address.split("%", 1)[0])
    return not (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_reserved
        or ip.is_multicast
        or ip.is_unspecified
    )


def webhook_hostname(url: str) -> str:
    """Validate the static shape of a webhook URL and return its host.

    DNS resolution happens separately because it needs the event loop.
    """
    parsed = urlparse(url)
    if parsed.scheme != "https":
        raise ValueError("webhook URL must use https")
    host = (parsed.hostname or "").lower()
    if not host:
        raise ValueError("webhook URL has no host")
    if host in _LOCAL_HOSTNAMES or host.endswith(".localhost"):
        raise ValueError(f"webhook host {host!r} is local")
    try:
        ipaddress.ip_address(host.split("%", 1)[0])
    except ValueError:
        return host
    if not is_public_address(host):
        raise ValueError(f"webhook host {host!r} is not a public address")
    return host


RelativePath = Annotated[str, AfterValidator(check_relative_path)]


class SourceLocation(CamelModel):
    bucket: str
    path: RelativePath
    filename: RelativePath


class OutputLocation(CamelModel):
    bucket: str
    base_path: RelativePath


class QualitySpec(CamelModel):
    quality: VideoQuality
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    bitrate: int = Field(gt=0)
    audio_bitrate: int = Field(gt=0)


class ThumbnailRequest(CamelModel):
    enabled: bool = True
    timestamp_percent: int = Field(default=25, ge=0, le=100)
    path: RelativePath


class AudioRequest(CamelModel):
    enabled: bool = False


class CallbackDescriptor(CamelModel):
    webhook_url: str
    webhook_secret: str = Field(min_length=MIN_WEBHOOK_SECRET_LENGTH)

    @field_validator("webhook_url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        webhook_hostname(value)
        return value


class DispatchMetadata(CamelModel):
    user_id: str
    title: str
    created_at: str


class EncodingJobMessage(CamelModel):
    """Everything the worker needs to encode one media.

    Constructing the model enforces the path and callback rules, so an
    invalid message can never reach the queue.
    """

    job_id: str
    video_id: str
    source: SourceLocation
    output: OutputLocation
    qualities: list[QualitySpec] = Field(min_length=1)
    thumbnail: ThumbnailRequest
    audio_for_stt: AudioRequest
    callback: CallbackDescriptor
    metadata: DispatchMetadata

    def to_wire(self) -> dict[str, object]:
        """Serialize with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
