"""
Configuration management for the Leafs result tracker.
"""

from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = Field(default="sqlite:///leafs_tracker.db")

    # Logging
    log_level: str = Field(default="INFO")

    # NHL API Configuration
    nhl_api_base: str = Field(default="https://api-web.nhle.com/v1")
    nhl_api_timeout: int = Field(default=10)
    nhl_max_requests_per_minute: int = Field(default=60)

    # Tracked team
    team_code: str = Field(default="TOR")
    team_name: str = Field(default="Leafs")

    # Recap generation (Gemini). An empty key disables recaps.
    gemini_api_key: str = Field(default="")
    gemini_model: str = Field(default="gemini-3-flash-preview")

    # Polling Configuration
    poll_interval_seconds: int = Field(default=60)  # 1 minute
    recent_start_window_minutes: int = Field(default=90)
    detail_fetch_workers: int = Field(default=2)

    # Rebuild webhook (fire-and-forget). An empty URL disables it.
    rebuild_hook_url: str = Field(default="")
    rebuild_hook_timeout: int = Field(default=10)
    rebuild_on_startup: bool = Field(default=False, description="Trigger a rebuild when the poller script starts")

    # API Server
    api_host: str = Field(default="127.0.0.1")
    api_port: int = Field(default=34180)

    @field_validator('rebuild_on_startup', mode='before')
    @classmethod
    def parse_bool(cls, v):
        """Parse boolean from string or bool."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.lower() in ('true', '1', 'yes', 'on')
        return bool(v)

    @field_validator('team_code', mode='before')
    @classmethod
    def normalize_team_code(cls, v):
        """Team abbreviations are compared upper-case."""
        return str(v).strip().upper()

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def recap_enabled(self) -> bool:
        """Whether a Gemini credential is configured."""
        return bool(self.gemini_api_key.strip())

    @property
    def rebuild_hook(self) -> Optional[str]:
        """Rebuild webhook URL, or None when not configured."""
        url = self.rebuild_hook_url.strip()
        return url or None


# Global settings instance
settings = Settings()
