from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    app_name: str = "URL Monitor"
    app_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./urlmonitor.db"

    # JWT (admin session cookie)
    secret_key: str = "change-me-in-production-use-a-real-secret-key"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Seeded admin account
    admin_username: str = "admin"
    admin_password: str = "admin123"

    # Bearer token expected from external cron callers (empty = open)
    cron_secret: str = ""

    # Probing
    probe_timeout: float = 10.0  # seconds, hard upper bound per probe
    uptime_window_days: int = 7

    # Retention
    retention_days: int = 7
    display_timezone: str = "America/Chicago"

    # Scheduling
    scheduler_enabled: bool = True
    sweep_interval_minutes: int = 15  # 0 disables the interval sweep
    archive_hour: int = 7
    archive_minute: int = 50
    archive_window_minutes: int = 5

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
