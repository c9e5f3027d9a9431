"""Abstract base class for the encoding job queue."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from src.commons.infrastructure.blob.base import HealthStatus


@dataclass
class PublishResult:
    """Broker acknowledgement for a published message."""

    message_id: str
    stream: str
    sequence: int
    duplicate: bool = False


class QueuePublishError(Exception):
    """Raised when the broker refuses or times out a publish."""

    def __init__(self, subject: str, reason: str) -> None:
        self.subject = subject
        self.reason = reason
        super().__init__(f"Failed to publish to {subject}: {reason}")


class QueuePublisherBase(ABC):
    """Durable publisher for job messages.

    Implementations:
    - NATS JetStream (production)
    - In-memory list (tests and local development)
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open the broker connection and make sure the stream exists."""

    @abstractmethod
    async def publish(
        self,
        subject: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        dedup_id: str | None = None,
    ) -> PublishResult:
        """Publish a JSON message.

        Args:
            subject: Subject to publish on.
            payload: JSON-serializable message body.
            headers: Extra message headers.
            dedup_id: Broker-side deduplication key. Publishing twice with
                the same key inside the dedup window yields one message.

        Returns:
            The broker acknowledgement.

        Raises:
            QueuePublishError: If the broker does not acknowledge.
        """

    @abstractmethod
    async def close(self) -> None:
        """Drain and close the connection."""

    @abstractmethod
    async def health_check(self) -> HealthStatus:
        """Check broker connectivity."""
