from __future__ import annotations

import pytest

from counsel.infrastructure.config import reset_settings
from scripts import run_server


@pytest.fixture
def in_memory_database(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("DB_SQLITE_PATH", ":memory:")
    reset_settings()
    yield
    reset_settings()


def test_ensure_database_skips_in_memory(in_memory_database, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[object] = []
    monkeypatch.setattr(run_server, "initialise_database", calls.append)

    run_server.ensure_database()

    assert calls == []


def test_ensure_database_creates_file_tables(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DB_SQLITE_PATH", str(tmp_path / "counsel.db"))
    reset_settings()
    try:
        run_server.ensure_database()
    finally:
        reset_settings()

    assert (tmp_path / "counsel.db").exists()


def test_main_runs_uvicorn(in_memory_database, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "9001")
    captured: dict[str, object] = {}

    def fake_run(app: str, **options: object) -> None:
        captured["app"] = app
        captured.update(options)

    monkeypatch.setattr(run_server.uvicorn, "run", fake_run)

    run_server.main()

    assert captured["app"] == "counsel.web.main:app"
    assert captured["port"] == 9001
    assert captured["host"] == "0.0.0.0"
