"""
Storage core for file operations.

This package validates uploads against size and type policy and persists
them under safe, backend-generated keys, allowing the local filesystem
backend to be swapped for another StorageBackend implementation.
"""

from app.storage.base import ObjectInfo, StorageBackend, StoredObject, TempFileInfo
from app.storage.local import LocalStorageBackend
from app.storage.exceptions import (
    ContentTypeMismatchError,
    DeleteFailedError,
    FileSizeExceededError,
    NoFileProvidedError,
    ObjectNotFoundError,
    StorageError,
    UnsupportedContentTypeError,
    WriteFailedError,
)
from app.storage.validation import UploadPolicy

__all__ = [
    "StorageBackend",
    "LocalStorageBackend",
    "ObjectInfo",
    "StoredObject",
    "TempFileInfo",
    "UploadPolicy",
    "StorageError",
    "FileSizeExceededError",
    "UnsupportedContentTypeError",
    "ContentTypeMismatchError",
    "NoFileProvidedError",
    "ObjectNotFoundError",
    "WriteFailedError",
    "DeleteFailedError",
]
