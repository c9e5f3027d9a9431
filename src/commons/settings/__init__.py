"""Settings management module."""

from src.commons.settings.loader import SettingsLoader, get_settings, reset_settings
from src.commons.settings.models import (
    AppSettings,
    BlobStorageSettings,
    BucketSettings,
    CollectionSettings,
    DocumentCollectionSettings,
    DocumentDBSettings,
    EmbeddingSettings,
    EncodingSettings,
    QueueSettings,
    RagSettings,
    ServerSettings,
    Settings,
    TelemetrySettings,
    TranscriptionSettings,
    VectorDBSettings,
)

__all__ = [
    # Loader
    "SettingsLoader",
    "get_settings",
    "reset_settings",
    # Main settings
    "Settings",
    "AppSettings",
    "ServerSettings",
    # Storage
    "BlobStorageSettings",
    "BucketSettings",
    "VectorDBSettings",
    "CollectionSettings",
    "DocumentDBSettings",
    "DocumentCollectionSettings",
    # Pipeline
    "QueueSettings",
    "EncodingSettings",
    "TranscriptionSettings",
    "EmbeddingSettings",
    "RagSettings",
    # Telemetry
    "TelemetrySettings",
]
