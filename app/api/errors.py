"""
Mapping of storage failures to HTTP responses.

Each storage exception class maps to one status code and one message, so the
same failure always produces the same response. Messages for I/O faults are
static and never include filesystem paths.
"""
from fastapi import HTTPException, status

from app.schemas.common import ErrorResponse
from app.storage.exceptions import (
    DeleteFailedError,
    FileSizeExceededError,
    NoFileProvidedError,
    ObjectNotFoundError,
    StorageError,
    UnsupportedContentTypeError,
    WriteFailedError,
)

# (exception class, status code, message or None to use str(exc))
ERROR_RESPONSES = (
    (NoFileProvidedError, status.HTTP_400_BAD_REQUEST, "No file uploaded"),
    (FileSizeExceededError, status.HTTP_400_BAD_REQUEST, None),
    (UnsupportedContentTypeError, status.HTTP_400_BAD_REQUEST, None),
    (ObjectNotFoundError, status.HTTP_404_NOT_FOUND, "File not found"),
    (WriteFailedError, status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to upload file"),
    (DeleteFailedError, status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to delete file"),
)

STATUS_ERRORS = {
    status.HTTP_400_BAD_REQUEST: "Bad Request",
    status.HTTP_404_NOT_FOUND: "Not Found",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "Internal Server Error",
}


def storage_http_exception(exc: StorageError) -> HTTPException:
    """
    Translate a storage exception into an HTTPException.

    Args:
        exc: Exception raised by the validator or a storage backend

    Returns:
        HTTPException with an ErrorResponse body as detail
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Storage error"

    for error_class, error_status, error_message in ERROR_RESPONSES:
        if isinstance(exc, error_class):
            status_code = error_status
            message = error_message or str(exc)
            break

    body = ErrorResponse(error=STATUS_ERRORS[status_code], message=message)
    return HTTPException(status_code=status_code, detail=body.model_dump())
