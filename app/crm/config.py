import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    api_url: str
    api_timeout_seconds: int
    api_retries: int

    cache_stale_seconds: int
    notes_stale_seconds: int


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).") from None


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///crm.db"),
        # Falls back to VITE_API_URL.
        api_url=_getenv("API_URL") or _getenv("VITE_API_URL", "http://localhost:3000"),
        api_timeout_seconds=_getenv_int("API_TIMEOUT_SECONDS", 30),
        api_retries=_getenv_int("API_RETRIES", 3),
        cache_stale_seconds=_getenv_int("CACHE_STALE_SECONDS", 30),
        notes_stale_seconds=_getenv_int("NOTES_STALE_SECONDS", 60),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "API_URL": s.api_url.rstrip("/"),
        "API_TIMEOUT_SECONDS": s.api_timeout_seconds,
        "API_RETRIES": s.api_retries,
        "CACHE_STALE_SECONDS": s.cache_stale_seconds,
        "NOTES_STALE_SECONDS": s.notes_stale_seconds,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
    }
