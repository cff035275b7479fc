"""Process settings, read from `VIDCAT_*` environment variables or `.env`."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from vidcat.ranges import WINDOW_SIZE
from vidcat.responder import DEFAULT_CHUNK_SIZE


class Settings(BaseSettings):
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    storage_backend: Literal["local", "memory", "s3"] = "local"
    upload_dir: str = "./uploads"

    s3_access_key_id: str = ""
    s3_access_key_secret: str = ""
    s3_region: str = "us-east-1"
    s3_bucket: str = ""
    s3_endpoint: str | None = None

    catalog_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"

    # largest slice served for an open-ended `bytes=N-` request
    window_size: int = WINDOW_SIZE
    chunk_size: int = DEFAULT_CHUNK_SIZE

    model_config = SettingsConfigDict(
        env_prefix="VIDCAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
