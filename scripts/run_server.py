from __future__ import annotations

import os

import uvicorn

from counsel.infrastructure.config import get_settings
from counsel.infrastructure.db import create_database_engine, initialise_database

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000


def ensure_database() -> None:
    """Create the tables for the configured database if they are missing."""
    settings = get_settings()
    if settings.database.in_memory:
        print("[run-server] In-memory database; tables are created when the app starts.")
        return
    initialise_database(create_database_engine(settings.database))


def server_options() -> dict[str, object]:
    settings = get_settings()
    return {
        "host": os.getenv("HOST", DEFAULT_HOST),
        "port": int(os.getenv("PORT", str(DEFAULT_PORT))),
        "reload": settings.is_development(),
    }


def main() -> None:
    try:
        ensure_database()
    except Exception as exc:  # pragma: no cover - developer helper
        print(f"[run-server] Warning: {exc}")

    uvicorn.run("counsel.web.main:app", **server_options())


if __name__ == "__main__":
    main()
