"""Configuration settings for licensegate."""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # License server
    server_url: str = "https://licenses.example.com/api/v1/licenses/verify"
    http_timeout: float = 10.0
    verify_ssl: bool = True
    domain: Optional[str] = None

    # Verdict freshness
    cache_ttl_seconds: int = 300
    revalidation_interval_hours: float = 24.0
    # Offline trust for licenses without an expiry date
    grace_period_days: float = 7.0

    # Retry (1 attempt = no retry)
    max_attempts: int = 1
    backoff_base_delay: float = 0.5
    backoff_max_delay: float = 5.0

    # Storage
    db_path: Path = Path.home() / ".licensegate" / "license.db"
    db_timeout: float = 5.0
    session_prefix: str = "license_"

    # Blocking pages
    support_contact: str = "support@example.com"

    class Config:
        env_prefix = "LICENSEGATE_"
        env_file = ".env"


settings = Settings()
