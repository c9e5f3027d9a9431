"""Job queue abstractions and implementations."""

from src.commons.infrastructure.queue.base import (
    PublishResult,
    QueuePublisherBase,
    QueuePublishError,
)
from src.commons.infrastructure.queue.memory_provider import (
    InMemoryQueuePublisher,
    PublishedMessage,
)
from src.commons.infrastructure.queue.nats_provider import NatsJetStreamPublisher

__all__ = [
    # Base classes
    "PublishResult",
    "QueuePublisherBase",
    # Implementations
    "NatsJetStreamPublisher",
    "InMemoryQueuePublisher",
    "PublishedMessage",
    # Exceptions
    "QueuePublishError",
]
