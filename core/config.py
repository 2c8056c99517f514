"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8080

    # Environment
    ENVIRONMENT: str = "development"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # Reporting APIs
    CM_API_BASE_URL: str = "https://dfareporting.googleapis.com/dfareporting/v4"
    DV_API_BASE_URL: str = "https://doubleclickbidmanager.googleapis.com/v2"
    REPORT_PAGE_SIZE: int = 10
    HTTP_TIMEOUT: float = 60.0

    # BigQuery load
    NULL_MARKER: str = "(not set)"
    LOAD_SPOOL_MAX_BYTES: int = 64 * 1024 * 1024

    # JSON list of {"pattern": ..., "replacement": ...} for legacy column renames
    RENAME_PATTERNS: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
