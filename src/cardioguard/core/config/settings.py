"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """CardioGuard server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Default to loopback so a server holding heart data is not exposed to the LAN.
    cardioguard_host: str = "127.0.0.1"
    cardioguard_port: int = 8001
    cardioguard_log_level: str = "info"
    # Binding to a non-loopback host is refused unless this is set (no auth layer).
    cardioguard_allow_insecure_bind: bool = False

    # Storage (data bank)
    db_path: str = "~/.cardioguard/cardioguard.db"

    # Encryption
    encryption_key: str = ""

    # Monitoring
    scoring_window_days: int = 30
    live_hr_max_age_minutes: int = 30

    # Sync
    sync_metric_limit: int = 500


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
