# filevault/core/config.py
from functools import lru_cache
from typing import Literal, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, loaded from env vars and .env."""

    app_name: str = "File Vault"
    host: str = "0.0.0.0"
    port: int = 5500

    database_url: str = "sqlite:///./filevault.db"
    database_echo: bool = False

    # Session cookie
    secret_key: str = "INSECURE_DEV_KEY_CHANGE_IN_PRODUCTION"
    session_cookie: str = "filevault_session"
    session_lifetime_seconds: int = 4 * 3600
    session_https_only: bool = False

    # Storage: "local" keeps one folder per user under uploads_dir,
    # "s3" keeps one key prefix per user in the bucket
    storage_backend: Literal["local", "s3"] = "local"
    uploads_dir: str = "uploads"
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: Optional[str] = None
    aws_s3_bucket_name: Optional[str] = None

    log_level: str = "INFO"
    log_format: Literal["plain", "json"] = "plain"
    log_file: Optional[str] = "logfile.log"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def check_s3_bucket(self) -> "Settings":
        if self.storage_backend == "s3" and not self.aws_s3_bucket_name:
            raise ValueError("aws_s3_bucket_name is required when storage_backend is 's3'")
        return self

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    return Settings()
