"""Client configuration

Infrastructure settings loaded from environment variables (prefix DOCDRIFT_)
or a local .env file. The authentication provider supplies identity at
runtime; user_id/access_token here only serve the headless entry point.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings"""

    model_config = SettingsConfigDict(
        env_prefix="DOCDRIFT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend
    api_base_url: str = "http://localhost:8000"
    request_timeout: float = 60.0
    connect_timeout: float = 10.0

    # Readiness probing
    health_paths: list[str] = ["/health", "/"]
    health_check_interval: float = 1.0
    server_error_status: int = 500

    # Offline fallback
    offline_reply_delay: float = 1.0

    # Static identity (headless mode)
    user_id: str = ""
    access_token: str = ""

    # Logging
    log_dir: str = "logs"
    log_level: str = "INFO"

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("health_paths")
    @classmethod
    def paths_not_empty(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("health_paths cannot be empty")
        return v


settings = Settings()
