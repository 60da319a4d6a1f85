"""Application settings."""

from functools import lru_cache
import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    host_url: str = Field(default="http://127.0.0.1:9000", pattern=r"\S")
    token: str = ""
    request_timeout_s: float = Field(default=10.0, gt=0.0)
    max_attempts: int = Field(default=60, ge=1)
    poll_interval_s: float = Field(default=5.0, ge=0.0)
    issues_page_size: int = Field(default=50, ge=1, le=500)
    report_task_path: Path = Path(".scannerwork/report-task.txt")
    log_level: str = Field(default="INFO", pattern=r"(?i)^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    model_config = SettingsConfigDict(
        env_prefix="TASKGATE_",
        extra="ignore",
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
    )

    def resolved_token(self) -> str:
        return self.token or os.getenv("SONAR_TOKEN", "")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
