class URLs:
    UPLOAD = "/upload"
    FILES = "/files"
    FILE = "/files/{}"
    HEALTH = "/health"


MAX_SIZE_BYTES = 5 * 1024 * 1024  # 5MB

ALLOWED_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain",
    "video/mp4",
    "video/webm",
})

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
