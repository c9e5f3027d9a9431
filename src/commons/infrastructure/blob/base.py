"""Abstract base class for object storage operations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO


@dataclass
class BlobMetadata:
    """Metadata for a stored object."""

    path: str
    size_bytes: int
    content_type: str
    created_at: datetime
    etag: str
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class HealthStatus:
    """Health check result."""

    healthy: bool
    latency_ms: float
    message: str | None = None
    details: dict[str, str] | None = None


class BlobNotFoundError(Exception):
    """Raised when an object does not exist."""

    def __init__(self, bucket: str, path: str) -> None:
        self.bucket = bucket
        self.path = path
        super().__init__(f"Blob not found: {bucket}/{path}")


class BlobStorageBase(ABC):
    """Object store holding raw uploads, encoded variants, thumbnails,
    extracted audio and transcripts.

    Implementations:
    - MinIO / S3 (production)
    - In-memory (tests and local development)
    """

    @abstractmethod
    async def upload(
        self,
        bucket: str,
        path: str,
        data: BinaryIO | bytes,
        content_type: str = "application/octet-stream",
        metadata: dict[str, str] | None = None,
    ) -> BlobMetadata:
        """Upload an object.

        Args:
            bucket: Target bucket name.
            path: Key within the bucket.
            data: File-like object or bytes to upload.
            content_type: MIME type of the content.
            metadata: Optional user metadata stored with the object.

        Returns:
            Metadata of the uploaded object.
        """

    @abstractmethod
    async def download(self, bucket: str, path: str) -> bytes:
        """Download an object.

        Args:
            bucket: Source bucket name.
            path: Key within the bucket.

        Returns:
            Object content as bytes.

        Raises:
            BlobNotFoundError: If the object doesn't exist.
        """

    @abstractmethod
    async def delete(self, bucket: str, path: str) -> bool:
        """Delete an object.

        Returns:
            True if deleted, False if it didn't exist.
        """

    @abstractmethod
    async def exists(self, bucket: str, path: str) -> bool:
        """Check whether an object exists."""

    @abstractmethod
    async def get_metadata(self, bucket: str, path: str) -> BlobMetadata:
        """Get object metadata without downloading the body.

        Raises:
            BlobNotFoundError: If the object doesn't exist.
        """

    @abstractmethod
    async def generate_presigned_url(
        self,
        bucket: str,
        path: str,
        expiry_seconds: int = 3600,
        method: str = "GET",
    ) -> str:
        """Generate a presigned URL for direct client access.

        Args:
            bucket: Bucket name.
            path: Key within the bucket.
            expiry_seconds: URL validity duration.
            method: HTTP method (GET or PUT).

        Returns:
            Presigned URL string.
        """

    @abstractmethod
    async def create_bucket(self, bucket: str) -> bool:
        """Create a bucket.

        Returns:
            True if created, False if it already existed.
        """

    @abstractmethod
    async def bucket_exists(self, bucket: str) -> bool:
        """Check whether a bucket exists."""

    @abstractmethod
    async def health_check(self) -> HealthStatus:
        """Check service health."""
