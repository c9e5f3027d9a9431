"""NATS JetStream implementation of the job queue."""

import json
import time
from typing import Any

import nats
from nats.aio.client import Client as NATS
from nats.errors import Error as NatsError
from nats.js import JetStreamContext
from nats.js.errors import NotFoundError

from src.commons.infrastructure.blob.base import HealthStatus
from src.commons.infrastructure.queue.base import (
    PublishResult,
    QueuePublisherBase,
    QueuePublishError,
)
from src.commons.telemetry import get_logger

_DEDUP_HEADER = "Nats-Msg-Id"


class NatsJetStreamPublisher(QueuePublisherBase):
    """Publishes job messages to a JetStream stream.

    The connection is opened lazily on first publish, and the stream is
    created if it is missing.
    """

    def __init__(
        self,
        servers: list[str],
        stream: str,
        subjects: list[str],
        publish_timeout_seconds: float = 5.0,
    ) -> None:
        """Initialize the publisher.

        Args:
            servers: NATS server URLs.
            stream: JetStream stream name.
            subjects: Subjects bound to the stream.
            publish_timeout_seconds: Ack wait per publish.
        """
        self._servers = servers
        self._stream = stream
        self._subjects = subjects
        self._timeout = publish_timeout_seconds
        self._nc: NATS | None = None
        self._js: JetStreamContext | None = None
        self._logger = get_logger(__name__)

    async def connect(self) -> None:
        """Connect and ensure the stream exists."""
        await self._jetstream()

    async def _jetstream(self) -> JetStreamContext:
        if self._js is not None and self._nc is not None and self._nc.is_connected:
            return self._js

        async def _disconnected() -> None:
            self._logger.warning("Lost connection to NATS; waiting for reconnect")

        self._nc = await nats.connect(
            servers=self._servers,
            disconnected_cb=_disconnected,
        )
        self._js = self._nc.jetstream()
        try:
            await self._js.stream_info(self._stream)
        except NotFoundError:
            await self._js.add_stream(name=self._stream, subjects=self._subjects)
            self._logger.info(
                "Created JetStream stream",
                extra={"stream": self._stream, "subjects": self._subjects},
            )
        self._logger.info("Connected to NATS", extra={"servers": self._servers})
        return self._js

    async def publish(
        self,
        subject: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        dedup_id: str | None = None,
    ) -> PublishResult:
        """Publish a JSON message and wait for the stream ack."""
        message_headers = dict(headers or {})
        if dedup_id:
            message_headers[_DEDUP_HEADER] = dedup_id

        try:
            js = await self._jetstream()
            ack = await js.publish(
                subject,
                json.dumps(payload).encode(),
                timeout=self._timeout,
                headers=message_headers,
            )
        except (NatsError, OSError) as e:
            raise QueuePublishError(subject, str(e) or type(e).__name__) from e

        return PublishResult(
            message_id=f"{ack.stream}:{ack.seq}",
            stream=ack.stream,
            sequence=ack.seq,
            duplicate=bool(ack.duplicate),
        )

    async def close(self) -> None:
        """Drain and close the connection."""
        if self._nc is not None:
            await self._nc.drain()
            self._nc = None
            self._js = None

    async def health_check(self) -> HealthStatus:
        """Report connection state."""
        start = time.perf_counter()
        try:
            await self.connect()
        except (NatsError, OSError) as e:
            return HealthStatus(
                healthy=False,
                latency_ms=(time.perf_counter() - start) * 1000,
                message=f"NATS health check failed: {e}",
                details={"stream": self._stream, "error": str(e)},
            )
        return HealthStatus(
            healthy=True,
            latency_ms=(time.perf_counter() - start) * 1000,
            message="NATS is healthy",
            details={"stream": self._stream},
        )
