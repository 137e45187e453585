from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Storage settings
    STORAGE_BACKEND: str = "local"  # local
    STORAGE_BASE_PATH: str = "app/storage/data"
    MAX_UPLOAD_SIZE_BYTES: int = 5 * 1024 * 1024  # 5MB
    ALLOWED_CONTENT_TYPES: list[str] = [
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
    ]
    # Off by default: only the declared content type is checked
    CONTENT_SNIFFING_ENABLED: bool = False
    UPLOAD_CHUNK_SIZE: int = 64 * 1024  # 64KB

    # Partial writes older than this are removed at startup
    TEMP_FILE_MAX_AGE_SECONDS: int = 3600

    # CORS settings
    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    # Read overrides from .env and ignore variables this class does not define
    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
