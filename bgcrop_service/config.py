"""
Service settings: the remove.bg credential and endpoint, the upstream
timeout, the listen address, and the uploads/outputs directories.

Values come from the environment or a local `.env` file.
"""

from functools import lru_cache
import logging
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

REMOVE_BG_URL = "https://api.remove.bg/v1.0/removebg"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Upstream remove.bg API
    remove_bg_api_key: Optional[str] = None
    remove_bg_url: str = REMOVE_BG_URL
    request_timeout_seconds: float = Field(60.0, gt=0)

    # Server
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    # Filesystem layout
    uploads_dir: Path = Path("uploads")
    outputs_dir: Path = Path("outputs")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError("LOG_LEVEL must be one of CRITICAL|ERROR|WARNING|INFO|DEBUG")
        return level


@lru_cache()
def get_settings() -> Settings:
    """Load settings once per process and warn when no API key is configured."""
    settings = Settings()
    if not settings.remove_bg_api_key:
        logger.warning("REMOVE_BG_API_KEY is not set; /remove-bg calls will be rejected upstream")
    return settings


def ensure_directories(settings: Settings) -> None:
    """Create the uploads and outputs directories if they are missing."""
    for directory in (settings.uploads_dir, settings.outputs_dir):
        directory.mkdir(parents=True, exist_ok=True)
        logger.debug("Directory ready: %s", directory)
