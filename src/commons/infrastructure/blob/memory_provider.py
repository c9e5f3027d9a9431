"""In-memory object storage for tests and local development."""

import hashlib
from datetime import UTC, datetime
from typing import BinaryIO

from src.commons.infrastructure.blob.base import (
    BlobMetadata,
    BlobNotFoundError,
    BlobStorageBase,
    HealthStatus,
)


class InMemoryBlobStorage(BlobStorageBase):
    """Keeps objects in a dict keyed by (bucket, path)."""

    def __init__(self) -> None:
        self._buckets: set[str] = set()
        self._objects: dict[tuple[str, str], tuple[bytes, BlobMetadata]] = {}

    async def upload(
        self,
        bucket: str,
        path: str,
        data: BinaryIO | bytes,
        content_type: str = "application/octet-stream",
        metadata: dict[str, str] | None = None,
    ) -> BlobMetadata:
        body = data if isinstance(data, bytes) else data.read()
        self._buckets.add(bucket)
        meta = BlobMetadata(
            path=path,
            size_bytes=len(body),
            content_type=content_type,
            created_at=datetime.now(UTC),
            etag=hashlib.md5(body, usedforsecurity=False).hexdigest(),
            metadata=dict(metadata or {}),
        )
        self._objects[(bucket, path)] = (body, meta)
        return meta

    async def download(self, bucket: str, path: str) -> bytes:
        try:
            return self._objects[(bucket, path)][0]
        except KeyError:
            raise BlobNotFoundError(bucket, path) from None

    async def delete(self, bucket: str, path: str) -> bool:
        return self._objects.pop((bucket, path), None) is not None

    async def exists(self, bucket: str, path: str) -> bool:
        return (bucket, path) in self._objects

    async def get_metadata(self, bucket: str, path: str) -> BlobMetadata:
        try:
            return self._objects[(bucket, path)][1]
        except KeyError:
            raise BlobNotFoundError(bucket, path) from None

    async def generate_presigned_url(
        self,
        bucket: str,
        path: str,
        expiry_seconds: int = 3600,
        method: str = "GET",
    ) -> str:
        return (
            f"memory://{bucket}/{path}"
            f"?method={method.upper()}&expires={expiry_seconds}"
        )

    async def create_bucket(self, bucket: str) -> bool:
        if bucket in self._buckets:
            return False
        self._buckets.add(bucket)
        return True

    async def bucket_exists(self, bucket: str) -> bool:
        return bucket in self._buckets

    async def health_check(self) -> HealthStatus:
        return HealthStatus(
            healthy=True,
            latency_ms=0.0,
            message="In-memory storage",
            details={"objects": str(len(self._objects))},
        )
