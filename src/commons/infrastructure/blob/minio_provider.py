"""MinIO implementation of object storage."""

import asyncio
import io
import time
from datetime import UTC, datetime, timedelta
from typing import BinaryIO

from minio import Minio
from minio.error import S3Error

from src.commons.infrastructure.blob.base import (
    BlobMetadata,
    BlobNotFoundError,
    BlobStorageBase,
    HealthStatus,
)

_MISSING_CODES = frozenset({"NoSuchKey", "NoSuchObject"})


class MinioBlobStorage(BlobStorageBase):
    """MinIO/S3 object storage.

    The minio SDK is synchronous, so every call is pushed to the default
    executor.
    """

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        secure: bool = False,
        region: str | None = None,
    ) -> None:
        """Initialize MinIO client.

        Args:
            endpoint: MinIO/S3 endpoint (e.g., "localhost:9000").
            access_key: Access key ID.
            secret_key: Secret access key.
            secure: Use HTTPS connection.
            region: AWS region (optional, for S3).
        """
        self._client = Minio(
            endpoint=endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=secure,
            region=region,
        )
        self._endpoint = endpoint

    async def upload(
        self,
        bucket: str,
        path: str,
        data: BinaryIO | bytes,
        content_type: str = "application/octet-stream",
        metadata: dict[str, str] | None = None,
    ) -> BlobMetadata:
        """Upload an object."""
        loop = asyncio.get_running_loop()

        if isinstance(data, bytes):
            stream: BinaryIO = io.BytesIO(data)
            length = len(data)
        else:
            data.seek(0, io.SEEK_END)
            length = data.tell()
            data.seek(0)
            stream = data

        def _put() -> None:
            self._client.put_object(
                bucket_name=bucket,
                object_name=path,
                data=stream,
                length=length,
                content_type=content_type,
                metadata=metadata,  # type: ignore[arg-type]
            )

        await loop.run_in_executor(None, _put)
        return await self.get_metadata(bucket, path)

    async def download(self, bucket: str, path: str) -> bytes:
        """Download an object."""
        loop = asyncio.get_running_loop()

        def _get() -> bytes:
            try:
                response = self._client.get_object(bucket, path)
            except S3Error as e:
                if e.code in _MISSING_CODES:
                    raise BlobNotFoundError(bucket, path) from e
                raise
            try:
                return bytes(response.read())
            finally:
                response.close()
                response.release_conn()

        return await loop.run_in_executor(None, _get)

    async def delete(self, bucket: str, path: str) -> bool:
        """Delete an object."""
        if not await self.exists(bucket, path):
            return False
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._client.remove_object, bucket, path)
        return True

    async def exists(self, bucket: str, path: str) -> bool:
        """Check whether an object exists."""
        try:
            await self.get_metadata(bucket, path)
        except BlobNotFoundError:
            return False
        return True

    async def get_metadata(self, bucket: str, path: str) -> BlobMetadata:
        """Get object metadata without downloading the body."""
        loop = asyncio.get_running_loop()

        def _stat() -> BlobMetadata:
            try:
                stat = self._client.stat_object(bucket, path)
            except S3Error as e:
                if e.code in _MISSING_CODES:
                    raise BlobNotFoundError(bucket, path) from e
                raise
            user_metadata = {
                key.lower().removeprefix("x-amz-meta-"): str(value)
                for key, value in (stat.metadata or {}).items()
                if key.lower().startswith("x-amz-meta-")
            }
            return BlobMetadata(
                path=path,
                size_bytes=stat.size or 0,
                content_type=stat.content_type or "application/octet-stream",
                created_at=stat.last_modified or datetime.now(UTC),
                etag=stat.etag or "",
                metadata=user_metadata,
            )

        return await loop.run_in_executor(None, _stat)

    async def generate_presigned_url(
        self,
        bucket: str,
        path: str,
        expiry_seconds: int = 3600,
        method: str = "GET",
    ) -> str:
        """Generate a presigned URL for direct client access."""
        loop = asyncio.get_running_loop()
        expires = timedelta(seconds=expiry_seconds)

        def _presign() -> str:
            if method.upper() == "PUT":
                return str(self._client.presigned_put_object(bucket, path, expires))
            return str(self._client.presigned_get_object(bucket, path, expires))

        return await loop.run_in_executor(None, _presign)

    async def create_bucket(self, bucket: str) -> bool:
        """Create a bucket."""
        loop = asyncio.get_running_loop()

        def _create() -> bool:
            if self._client.bucket_exists(bucket):
                return False
            self._client.make_bucket(bucket)
            return True

        return await loop.run_in_executor(None, _create)

    async def bucket_exists(self, bucket: str) -> bool:
        """Check whether a bucket exists."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._client.bucket_exists, bucket)

    async def health_check(self) -> HealthStatus:
        """Check service health."""
        start = time.perf_counter()
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._client.list_buckets)
        except Exception as e:
            return HealthStatus(
                healthy=False,
                latency_ms=(time.perf_counter() - start) * 1000,
                message=f"MinIO health check failed: {e}",
                details={"endpoint": self._endpoint, "error": str(e)},
            )
        return HealthStatus(
            healthy=True,
            latency_ms=(time.perf_counter() - start) * 1000,
            message="MinIO is healthy",
            details={"endpoint": self._endpoint},
        )
