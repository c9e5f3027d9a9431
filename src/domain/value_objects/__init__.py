"""Domain value objects."""

from src.domain.value_objects.chunking_config import ChunkingConfig
from src.domain.value_objects.storage_paths import MediaPaths

__all__ = [
    "ChunkingConfig",
    "MediaPaths",
]
