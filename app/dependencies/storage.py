"""
Storage dependency injection for FastAPI.

This module provides FastAPI dependency functions for injecting the
storage backend and the upload policy into endpoints.
"""
from app.config import settings
from app.storage.base import StorageBackend
from app.storage.local import LocalStorageBackend
from app.storage.validation import UploadPolicy


def get_storage() -> StorageBackend:
    """
    Return storage backend based on configuration.

    Returns:
        StorageBackend instance

    Raises:
        ValueError: If STORAGE_BACKEND is not supported
    """
    if settings.STORAGE_BACKEND == "local":
        return LocalStorageBackend(
            base_path=settings.STORAGE_BASE_PATH,
            max_size_bytes=settings.MAX_UPLOAD_SIZE_BYTES,
        )

    raise ValueError(f"Unknown storage backend: {settings.STORAGE_BACKEND}")


def get_upload_policy() -> UploadPolicy:
    """Return the upload policy built from configuration."""
    return UploadPolicy(
        max_size_bytes=settings.MAX_UPLOAD_SIZE_BYTES,
        allowed_types=frozenset(settings.ALLOWED_CONTENT_TYPES),
        sniff_content=settings.CONTENT_SNIFFING_ENABLED,
    )
