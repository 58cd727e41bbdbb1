# backend/turfbook/config.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # repo root


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/turfbook.db"
    redis_url: str = "redis://localhost:6379/0"

    # Storage deadlines (seconds)
    redis_socket_timeout: float = 2.0
    db_busy_timeout: float = 5.0

    # Slot reservation
    lock_ttl_minutes: int = 10
    slot_mutex_timeout_seconds: float = 10.0
    slot_mutex_wait_seconds: float = 3.0
    default_cancellation_hours: int = 1
    venue_timezone: str = "UTC"

    # Background jobs
    background_jobs_enabled: bool = True
    sweep_interval_seconds: int = 60
    reminder_window_minutes: int = 120

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            # relative sqlite path → absolute from repo root
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite:///{absolute_path}"
        return url


settings = Settings()
