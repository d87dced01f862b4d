from __future__ import annotations

import os
from functools import lru_cache
from dotenv import load_dotenv, find_dotenv

_env_path = find_dotenv(".env") or ".env"
load_dotenv(_env_path, override=False)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Settings:
    """Central configuration (env driven)."""

    def __init__(self) -> None:
        # Supabase
        raw_url = os.getenv("SUPABASE_URL", "")
        self.supabase_url: str = raw_url.rstrip("/")
        self.supabase_anon_key: str = os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY", "")
        self.supabase_service_role_key: str = (
            os.getenv("SUPABASE_SERVICE_ROLE_KEY")
            or os.getenv("SUPABASE_SERVICE_KEY")
            or ""
        )
        # Server-side access prefers the service role key; falls back to anon.
        self.supabase_key: str = self.supabase_service_role_key or self.supabase_anon_key
        self.supabase_jwt_secret: str = os.getenv("SUPABASE_JWT_SECRET", "")
        self.jwt_audience: str | None = os.getenv("JWT_AUDIENCE") or None
        # Database (alembic only)
        self.database_url: str = os.getenv("DATABASE_URL", "")
        self.store_timeout_seconds: int = _env_int("STORE_TIMEOUT_SECONDS", 10)
        # App meta
        self.app_name: str = "Course Tracker Backend"
        self.app_version: str = os.getenv("APP_VERSION", "dev")
        self.debug: bool = os.getenv("DEBUG", "False").lower() == "true"
        self.allow_origins: list[str] = [
            o.strip().rstrip("/")
            for o in os.getenv("ALLOW_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
            if o.strip()
        ]
        # Background jobs
        self.health_log_interval_sec: int = _env_int("HEALTH_LOG_INTERVAL_SEC", 30)
        self.notification_sweep_interval_sec: int = _env_int("NOTIFICATION_SWEEP_INTERVAL_SEC", 3600)
        self.background_jobs_enabled: bool = os.getenv("BACKGROUND_JOBS", "true").lower() != "false"
        # Uploads
        self.max_attachment_mb: int = _env_int("MAX_ATTACHMENT_MB", 10)

    @property
    def jwks_url(self) -> str:
        return f"{self.supabase_url}/auth/v1/certs" if self.supabase_url else ""


@lru_cache()
def get_settings() -> Settings:
    return Settings()
