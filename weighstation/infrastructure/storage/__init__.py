"""Image storage infrastructure package."""

from weighstation.infrastructure.storage.storage import ImageStorage, StorageError

__all__ = [
    "ImageStorage",
    "StorageError",
]
