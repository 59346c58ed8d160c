"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """FitSync wellness server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default: the wellness server has no auth layer, so binding
    # to `0.0.0.0` must be requested explicitly.
    fitsync_host: str = "127.0.0.1"
    fitsync_port: int = 8003
    fitsync_log_level: str = "info"
    fitsync_allow_insecure_bind: bool = False

    # Storage (per-user key-value store)
    db_path: str = "~/.fitsync/wellness.db"

    # Encryption at rest. Empty means values are stored as plain JSON text.
    encryption_key: str = ""

    # Base daily goals used until a user has adapted goals of their own
    default_steps_goal: int = 8000
    default_calories_burned_goal: int = 300
    default_sleep_hours_goal: float = 7.5

    # Daily goal recalculation
    goal_scheduler_enabled: bool = True
    goal_scheduler_interval_seconds: int = 60


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
