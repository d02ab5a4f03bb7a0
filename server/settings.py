"""
Configuration settings for the FarmSync API server
"""
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from farmsync import __version__
from farmsync.config import get_db_path


class Settings(BaseSettings):
    """Server settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "FarmSync API"
    APP_VERSION: str = __version__
    LOG_LEVEL: str = Field(default="INFO", validation_alias="FARMSYNC_LOG_LEVEL")

    # Database
    DATABASE_PATH: Optional[Path] = Field(default=None, validation_alias="FARMSYNC_DB_PATH")

    # API Server
    API_HOST: str = Field(default="0.0.0.0", validation_alias="SERVER_HOST")
    API_PORT: int = Field(default=8000, validation_alias="SERVER_PORT")
    API_RELOAD: bool = Field(default=False, validation_alias="SERVER_RELOAD")
    CORS_ORIGINS: list[str] = Field(default=["*"], validation_alias="FARMSYNC_CORS_ORIGINS")

    # Background work
    BACKGROUND_TASKS: bool = Field(default=True, validation_alias="FARMSYNC_BACKGROUND_TASKS")
    CONNECTIVITY_PROBE: bool = Field(default=True, validation_alias="FARMSYNC_CONNECTIVITY_PROBE")
    CONNECTIVITY_INTERVAL_SECONDS: float = Field(
        default=15.0, validation_alias="FARMSYNC_CONNECTIVITY_INTERVAL"
    )

    @property
    def database_path(self) -> Path:
        return self.DATABASE_PATH or get_db_path()


settings = Settings()
