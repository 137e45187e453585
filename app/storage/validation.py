"""
Upload policy validation.

This module decides, before any byte is committed, whether an upload's
declared size and content type are acceptable. Optional content sniffing
compares the file's leading bytes with the declared type.
"""
from dataclasses import dataclass, field

from app.config import settings
from app.storage.exceptions import (
    ContentTypeMismatchError,
    FileSizeExceededError,
    UnsupportedContentTypeError,
)

# Bytes needed by sniff_content_type to recognise every known signature
SNIFF_LENGTH = 512

OLE2_TYPES = frozenset({"application/msword", "application/vnd.ms-excel"})
OOXML_TYPES = frozenset({
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
})

# (magic prefix, family name, content types the family may be declared as)
SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "png", frozenset({"image/png"})),
    (b"\xff\xd8\xff", "jpeg", frozenset({"image/jpeg"})),
    (b"GIF87a", "gif", frozenset({"image/gif"})),
    (b"GIF89a", "gif", frozenset({"image/gif"})),
    (b"%PDF-", "pdf", frozenset({"application/pdf"})),
    (b"\x1a\x45\xdf\xa3", "webm", frozenset({"video/webm"})),
    (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1", "ole2", OLE2_TYPES),
    (b"PK\x03\x04", "zip", OOXML_TYPES),
)

SNIFFABLE_TYPES = frozenset().union(
    *(types for _, _, types in SIGNATURES), {"video/mp4", "text/plain"}
)


def normalize_content_type(content_type: str | None) -> str:
    """
    Normalize a declared MIME type for allow-list comparison.

    Parameters such as ``; charset=utf-8`` are dropped and the token is
    lower-cased.

    Examples:
        >>> normalize_content_type("Text/Plain; charset=UTF-8")
        'text/plain'
    """
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def sniff_content_type(head: bytes) -> tuple[str, frozenset[str]] | None:
    """
    Identify a file family from its leading bytes.

    Args:
        head: First bytes of the file (SNIFF_LENGTH is enough)

    Returns:
        (family, compatible content types), or None if the bytes match no
        known signature
    """
    for magic, family, types in SIGNATURES:
        if head.startswith(magic):
            return family, types

    # ISO base media: 4-byte box size followed by "ftyp"
    if len(head) >= 8 and head[4:8] == b"ftyp":
        return "mp4", frozenset({"video/mp4"})

    if b"\x00" not in head:
        try:
            head.decode("utf-8")
        except UnicodeDecodeError as e:
            # A multi-byte character cut at the end of the sample is still text
            if e.start < len(head) - 3:
                return None
        return "text", frozenset({"text/plain"})

    return None


@dataclass(frozen=True)
class UploadPolicy:
    """
    Size and type policy for uploads.

    check() is a pure decision over declared metadata. verify_content() is
    the opt-in content sniffing step and only runs when sniff_content is set.
    """

    max_size_bytes: int = field(default_factory=lambda: settings.MAX_UPLOAD_SIZE_BYTES)
    allowed_types: frozenset[str] = field(
        default_factory=lambda: frozenset(settings.ALLOWED_CONTENT_TYPES)
    )
    sniff_content: bool = field(
        default_factory=lambda: settings.CONTENT_SNIFFING_ENABLED
    )

    def __post_init__(self):
        # Accept any iterable of MIME strings and store it normalized
        object.__setattr__(
            self,
            "allowed_types",
            frozenset(normalize_content_type(t) for t in self.allowed_types),
        )

    def check(self, size_bytes: int, content_type: str | None) -> None:
        """
        Validate declared size and content type.

        Size is checked first, so an oversized file is reported as such
        whatever its type.

        Args:
            size_bytes: Declared size of the upload in bytes
            content_type: Client-declared MIME type

        Raises:
            FileSizeExceededError: If size_bytes exceeds max_size_bytes
            UnsupportedContentTypeError: If the type is not in the allow-list
        """
        if size_bytes > self.max_size_bytes:
            raise FileSizeExceededError(size_bytes, self.max_size_bytes)

        if normalize_content_type(content_type) not in self.allowed_types:
            raise UnsupportedContentTypeError(content_type or "")

    def verify_content(self, head: bytes, content_type: str | None) -> None:
        """
        Compare the file's leading bytes with its declared type.

        Declared types without a known signature are accepted as-is.

        Args:
            head: First bytes of the upload
            content_type: Client-declared MIME type

        Raises:
            ContentTypeMismatchError: If the bytes belong to a different family
        """
        if not self.sniff_content:
            return

        declared = normalize_content_type(content_type)
        if declared not in SNIFFABLE_TYPES:
            return

        detected = sniff_content_type(head)
        if detected is None or declared not in detected[1]:
            raise ContentTypeMismatchError(
                declared, detected[0] if detected else "unknown"
            )
