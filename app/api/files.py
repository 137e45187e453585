"""
File API endpoints.

This module provides the upload, list, read and delete endpoints. All storage
decisions are made by the storage core; these handlers only translate HTTP
requests into storage calls and storage failures into status codes.
"""
from typing import AsyncIterator

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from app.api.errors import storage_http_exception
from app.config import settings
from app.dependencies.storage import get_storage, get_upload_policy
from app.logging_config import setup_logging
from app.schemas.files import FileInfo, FileListResponse, MessageResponse, UploadResponse
from app.services.files import store_upload
from app.storage.base import StorageBackend
from app.storage.exceptions import NoFileProvidedError, StorageError
from app.storage.validation import UploadPolicy

router = APIRouter(tags=["files"])

# Setup logger for error tracking
logger = setup_logging()


async def _iter_upload(upload: UploadFile) -> AsyncIterator[bytes]:
    """Yield an uploaded file's content in UPLOAD_CHUNK_SIZE chunks."""
    while True:
        chunk = await upload.read(settings.UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        yield chunk


@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_200_OK,
)
async def upload_file(
    file: UploadFile | None = File(None),
    storage: StorageBackend = Depends(get_storage),
    policy: UploadPolicy = Depends(get_upload_policy),
):
    """
    Upload a single file.

    **Request (multipart/form-data):**
    - file: The file, with its declared content type

    **Returns:**
    - message: "File uploaded successfully"
    - file: Storage key to use with GET/DELETE /files/{key}

    **Example:**
    ```bash
    curl -X POST http://localhost:8000/upload -F "file=@cat.png;type=image/png"
    ```

    Raises:
        HTTPException 400: No file, file too large, or unsupported type
        HTTPException 500: Storage failure
    """
    try:
        if file is None or not file.filename:
            raise NoFileProvidedError()

        result = await store_upload(
            storage,
            policy,
            _iter_upload(file),
            display_name=file.filename,
            content_type=file.content_type,
            size_bytes=file.size,
        )
    except StorageError as e:
        # Detailed cause is logged by storage for I/O faults
        logger.warning(f"Upload rejected: {e.__class__.__name__}: {str(e)}")
        raise storage_http_exception(e)

    return UploadResponse(
        message="File uploaded successfully",
        file=result.key,
        display_name=result.display_name,
        content_type=result.content_type,
        size_bytes=result.size_bytes,
    )


@router.get(
    "/files",
    response_model=FileListResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
)
async def list_files(
    detail: bool = Query(False, description="Include size and display name per file."),
    storage: StorageBackend = Depends(get_storage),
):
    """
    List stored files in arrival order.

    Args:
        detail: Also return display name and size for every file
        storage: Storage backend

    Returns:
        FileListResponse with the storage keys
    """
    objects = await storage.list_objects()

    return FileListResponse(
        files=[info.key for info in objects],
        objects=[
            FileInfo(key=info.key, display_name=info.display_name, size_bytes=info.size_bytes)
            for info in objects
        ] if detail else None,
    )


@router.get(
    "/files/{key:path}",
    status_code=status.HTTP_200_OK,
)
async def get_file(
    key: str,
    storage: StorageBackend = Depends(get_storage),
):
    """
    Serve a stored file inline.

    Keys containing separators or traversal sequences are answered with 404
    without touching the filesystem.

    Raises:
        HTTPException 404: File not found
    """
    try:
        stored = await storage.get(key)
    except StorageError as e:
        raise storage_http_exception(e)

    return StreamingResponse(
        stored.stream,
        media_type=stored.content_type,
        headers={
            "Content-Disposition": f'inline; filename="{stored.display_name}"',
            "Content-Length": str(stored.size_bytes),
        },
        # Releases the file handle even if the stream was not drained
        background=BackgroundTask(stored.close),
    )


@router.delete(
    "/files/{key:path}",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
)
async def delete_file(
    key: str,
    storage: StorageBackend = Depends(get_storage),
):
    """
    Delete a stored file.

    Raises:
        HTTPException 404: File not found
        HTTPException 500: Storage failure
    """
    try:
        await storage.delete(key)
    except StorageError as e:
        raise storage_http_exception(e)

    return MessageResponse(message="File deleted successfully")
