"""
Release-phase helper.

- Fail fast if DATABASE_URL is missing (avoid silently using SQLite in prod).
- Fail fast if API_URL is missing; the dashboard has no data of its own.
- Run alembic migrations for the audit trail.

Usage:
  python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _require_env(name: str, *fallbacks: str) -> str:
    for key in (name, *fallbacks):
        v = (os.environ.get(key) or "").strip()
        if v:
            return v
    raise RuntimeError(f"Missing required environment variable {name}.")


def run_release() -> None:
    db_url = _require_env("DATABASE_URL")
    api_url = _require_env("API_URL", "VITE_API_URL")
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to run release on sqlite DATABASE_URL in production. Set DATABASE_URL to Postgres.")

    print("=== LeadtechCRM release start ===", flush=True)
    print(f"ENV={env or '(unset)'}", flush=True)
    print(f"API_URL={api_url}", flush=True)
    print("Running Alembic migrations...", flush=True)

    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, "head")
    print("Migrations complete.", flush=True)
    print("=== LeadtechCRM release done ===", flush=True)


def main() -> None:
    run_release()


if __name__ == "__main__":
    main()
