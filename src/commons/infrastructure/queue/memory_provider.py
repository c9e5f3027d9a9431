"""In-memory job queue for tests and local development."""

from dataclasses import dataclass, field
from typing import Any

from src.commons.infrastructure.blob.base import HealthStatus
from src.commons.infrastructure.queue.base import PublishResult, QueuePublisherBase


@dataclass
class PublishedMessage:
    """A message captured by the in-memory publisher."""

    subject: str
    payload: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    result: PublishResult | None = None


class InMemoryQueuePublisher(QueuePublisherBase):
    """Records messages in a list, honouring dedup ids like JetStream."""

    def __init__(self, stream: str = "MEMORY") -> None:
        self._stream = stream
        self._seen: dict[str, PublishResult] = {}
        self.messages: list[PublishedMessage] = []

    async def connect(self) -> None:
        return None

    async def publish(
        self,
        subject: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        dedup_id: str | None = None,
    ) -> PublishResult:
        if dedup_id and dedup_id in self._seen:
            first = self._seen[dedup_id]
            return PublishResult(
                message_id=first.message_id,
                stream=first.stream,
                sequence=first.sequence,
                duplicate=True,
            )

        sequence = len(self.messages) + 1
        result = PublishResult(
            message_id=f"{self._stream}:{sequence}",
            stream=self._stream,
            sequence=sequence,
        )
        self.messages.append(
            PublishedMessage(
                subject=subject,
                payload=payload,
                headers=dict(headers or {}),
                result=result,
            )
        )
        if dedup_id:
            self._seen[dedup_id] = result
        return result

    async def close(self) -> None:
        return None

    async def health_check(self) -> HealthStatus:
        return HealthStatus(
            healthy=True,
            latency_ms=0.0,
            message="In-memory queue",
            details={"messages": str(len(self.messages))},
        )
