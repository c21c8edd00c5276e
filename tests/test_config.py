import pytest

from app.crm.config import load_config


@pytest.fixture()
def clean_env(monkeypatch):
    for k in (
        "SECRET_KEY",
        "ENV",
        "DATABASE_URL",
        "API_URL",
        "VITE_API_URL",
        "API_TIMEOUT_SECONDS",
        "API_RETRIES",
        "CACHE_STALE_SECONDS",
        "NOTES_STALE_SECONDS",
    ):
        monkeypatch.delenv(k, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    cfg = load_config()
    assert cfg["API_URL"] == "http://localhost:3000"
    assert cfg["API_RETRIES"] == 3
    assert cfg["CACHE_STALE_SECONDS"] == 30
    assert cfg["NOTES_STALE_SECONDS"] == 60
    assert cfg["DATABASE_URL"].startswith("sqlite")
    assert cfg["SESSION_COOKIE_SECURE"] is False


def test_api_url_fallback_and_trailing_slash(clean_env):
    clean_env.setenv("VITE_API_URL", "https://api.example.com/")
    assert load_config()["API_URL"] == "https://api.example.com"

    clean_env.setenv("API_URL", "https://primary.example.com")
    assert load_config()["API_URL"] == "https://primary.example.com"


def test_bad_integer_is_rejected(clean_env):
    clean_env.setenv("API_RETRIES", "three")
    with pytest.raises(RuntimeError, match="API_RETRIES"):
        load_config()


def test_production_guardrails(clean_env):
    from app.crm import create_app

    clean_env.setenv("ENV", "production")
    clean_env.setenv("SECRET_KEY", "change-me")
    with pytest.raises(RuntimeError, match="SECRET_KEY"):
        create_app()

    clean_env.setenv("SECRET_KEY", "a-real-secret")
    clean_env.setenv("DATABASE_URL", "sqlite:///prod.db")
    with pytest.raises(RuntimeError, match="Postgres"):
        create_app()

    clean_env.setenv("DATABASE_URL", "postgresql://u:p@db/crm")
    clean_env.setenv("API_URL", "http://api.example.com")
    with pytest.raises(RuntimeError, match="https"):
        create_app()
