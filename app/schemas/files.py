"""
File API schemas.

This module defines Pydantic schemas for file upload, listing and
deletion responses.
"""
from typing import List

from pydantic import BaseModel


class UploadResponse(BaseModel):
    """Response for a successful upload."""

    success: bool = True
    message: str
    file: str
    """Storage key of the new object."""

    display_name: str
    content_type: str
    size_bytes: int

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "success": True,
                    "message": "File uploaded successfully",
                    "file": "1760871234567-cat.png",
                    "display_name": "cat.png",
                    "content_type": "image/png",
                    "size_bytes": 1024,
                }
            ]
        }
    }


class FileInfo(BaseModel):
    """Listing entry for a stored file."""

    key: str
    display_name: str
    size_bytes: int


class FileListResponse(BaseModel):
    """Response for the file listing."""

    success: bool = True
    files: List[str]
    """Storage keys in arrival order."""

    objects: List[FileInfo] | None = None
    """Per-file details, only when requested."""


class MessageResponse(BaseModel):
    """Plain success message."""

    success: bool = True
    message: str
