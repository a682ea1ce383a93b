from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./wallets.db"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Auth
    # Placeholder secret keeps local/test runs from failing. Real deployments
    # override via env.
    AUTH_JWT_SECRET: str = "test-jwt-secret"
    AUTH_JWT_ALGORITHM: str = "HS256"

    # Ledger collaborator
    LEDGER_BACKEND: Literal["database", "http"] = "database"
    LEDGER_SERVICE_URL: str = "http://ledger-service:8010"
    LEDGER_TIMEOUT_SECONDS: float = 10.0

    # Asset storage (wallet logo / cover images)
    STORAGE_BACKEND: Literal["supabase", "s3"] = "supabase"
    SUPABASE_URL: str = "http://localhost"
    SUPABASE_SERVICE_ROLE_KEY: str = "test-service-role-key"
    SUPABASE_STORAGE_BUCKET: str = "wallet-assets"
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_S3_BUCKET: str = ""
    AWS_REGION: str = "us-east-1"

    # Batch uploads
    BATCH_UPLOAD_DIR: str = "uploads"
    BATCH_MAX_ROWS: int = 5000
    BATCH_ROW_TIMEOUT_SECONDS: float = 15.0
    BATCH_PARSE_TIMEOUT_SECONDS: float = 30.0

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
