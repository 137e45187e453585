"""
Storage-specific exceptions.

Every failure the validator or the object store can produce is one of these
typed exceptions. The HTTP layer maps each class to a fixed status code.
"""


class StorageError(Exception):
    """Base exception for storage operations."""

    pass


class FileSizeExceededError(StorageError):
    """Raised when an upload exceeds the maximum size limit."""

    def __init__(self, file_size: int, max_size: int):
        self.file_size = file_size
        self.max_size = max_size
        super().__init__(
            f"File size ({file_size} bytes) exceeds maximum allowed size ({max_size} bytes)"
        )


class UnsupportedContentTypeError(StorageError):
    """Raised when the declared content type is not in the allow-list."""

    def __init__(self, content_type: str, message: str | None = None):
        self.content_type = content_type
        super().__init__(
            message or f"Unsupported file type: {content_type or '<none>'}"
        )


class ContentTypeMismatchError(UnsupportedContentTypeError):
    """Raised when the file's leading bytes contradict the declared content type."""

    def __init__(self, content_type: str, detected: str):
        self.detected = detected
        super().__init__(
            content_type,
            f"File content ({detected}) does not match declared type {content_type}",
        )


class NoFileProvidedError(StorageError):
    """Raised when an upload request carries no file."""

    def __init__(self):
        super().__init__("No file uploaded")


class ObjectNotFoundError(StorageError):
    """Raised when a key does not resolve to a stored object."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"File not found: {key!r}")


class WriteFailedError(StorageError):
    """Raised when the backing store fails while persisting an object."""

    def __init__(self, display_name: str, cause: Exception | None = None):
        self.display_name = display_name
        self.cause = cause
        super().__init__(f"Failed to save file {display_name!r}: {cause}")


class DeleteFailedError(StorageError):
    """Raised when the backing store fails while removing an object."""

    def __init__(self, key: str, cause: Exception | None = None):
        self.key = key
        self.cause = cause
        super().__init__(f"Failed to delete file {key!r}: {cause}")
