"""Pydantic settings models for application configuration."""

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseModel):
    """Application-level settings."""

    name: str = "media-pipeline-server"
    version: str = "0.1.0"
    environment: Literal["dev", "staging", "prod"] = "dev"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class ServerSettings(BaseModel):
    """HTTP server settings."""

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    workers: int = Field(default=1, ge=1, le=32)
    reload: bool = False
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    api_prefix: str = "/v1"
    docs_enabled: bool = True


class BucketSettings(BaseModel):
    """Bucket name configuration."""

    media: str = "media"


class BlobStorageSettings(BaseModel):
    """Object storage settings (MinIO/S3)."""

    provider: Literal["minio", "memory"] = "minio"
    endpoint: str = "localhost:9000"
    access_key: str = ""
    secret_key: str = ""
    use_ssl: bool = False
    region: str = "us-east-1"
    buckets: BucketSettings = Field(default_factory=BucketSettings)
    presigned_url_expiry_seconds: int = 3600


class CollectionSettings(BaseModel):
    """Vector DB collection names."""

    transcript_chunks: str = "transcript_chunks"


class VectorDBSettings(BaseModel):
    """Vector database settings (Qdrant)."""

    provider: Literal["qdrant", "memory"] = "qdrant"
    host: str = "localhost"
    port: int = 6333
    grpc_port: int = 6334
    url: str | None = None
    api_key: str | None = None
    use_ssl: bool = False
    prefer_grpc: bool = True
    collections: CollectionSettings = Field(default_factory=CollectionSettings)


class DocumentCollectionSettings(BaseModel):
    """Document DB collection names."""

    media: str = "media"
    media_variants: str = "media_variants"
    encoding_jobs: str = "encoding_jobs"
    transcript_chunks: str = "transcript_chunks"


class DocumentDBSettings(BaseModel):
    """Document database settings (MongoDB)."""

    provider: Literal["mongodb", "memory"] = "mongodb"
    host: str = "localhost"
    port: int = 27017
    username: str = ""
    password: str = ""
    database: str = "media_pipeline"
    auth_source: str = "admin"
    collections: DocumentCollectionSettings = Field(
        default_factory=DocumentCollectionSettings
    )


class QueueSettings(BaseModel):
    """Encoding queue settings (NATS JetStream)."""

    provider: Literal["nats", "memory"] = "nats"
    servers: list[str] = Field(default_factory=lambda: ["nats://localhost:4222"])
    stream: str = "ENCODING"
    subject: str = "encoding.jobs"
    publish_timeout_seconds: float = Field(default=10.0, gt=0)


class EncodingSettings(BaseModel):
    """Encoding dispatch settings."""

    webhook_url: str = ""
    webhook_secret: str = ""
    max_attempts: int = Field(default=3, ge=1, le=10)
    thumbnail_timestamp_percent: int = Field(default=25, ge=0, le=100)
    default_source_width: int = 1920
    default_source_height: int = 1080
    signature_tolerance_seconds: int = 300


class TranscriptionSettings(BaseModel):
    """Transcription model settings."""

    provider: Literal["openai", "memory"] = "openai"
    enabled: bool = True
    api_key: str = ""
    base_url: str | None = None
    model: str = "gpt-4o-audio-preview"
    language: str = "ar"
    temperature: float = Field(default=0.1, ge=0, le=2)
    max_audio_bytes: int = 20 * 1024 * 1024
    timeout_seconds: int = 300


class EmbeddingSettings(BaseModel):
    """Text embedding settings."""

    provider: Literal["openai", "memory"] = "openai"
    api_key: str = ""
    base_url: str | None = None
    model: str = "text-embedding-3-small"
    dimensions: int = 768
    batch_size: int = Field(default=100, ge=1, le=2048)


class RagSettings(BaseModel):
    """Chunking, indexing and retrieval parameters."""

    enabled: bool = True
    chunk_target_tokens: int = Field(default=400, ge=1)
    chunk_min_tokens: int = Field(default=100, ge=0)
    document_batch_size: int = Field(default=5, ge=1)
    vector_batch_size: int = Field(default=100, ge=1)
    default_top_k: int = Field(default=5, ge=1, le=100)
    default_min_score: float = Field(default=0.5, ge=0, le=1)


class TelemetrySettings(BaseModel):
    """Telemetry and logging settings."""

    enabled: bool = True
    log_format: Literal["json", "text"] = "json"
    log_level: str = "INFO"


class Settings(BaseSettings):
    """Root settings container with environment loading."""

    app: AppSettings = Field(default_factory=AppSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    blob_storage: BlobStorageSettings = Field(default_factory=BlobStorageSettings)
    vector_db: VectorDBSettings = Field(default_factory=VectorDBSettings)
    document_db: DocumentDBSettings = Field(default_factory=DocumentDBSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)
    encoding: EncodingSettings = Field(default_factory=EncodingSettings)
    transcription: TranscriptionSettings = Field(default_factory=TranscriptionSettings)
    embeddings: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    rag: RagSettings = Field(default_factory=RagSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MEDIA_PIPELINE__",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )
