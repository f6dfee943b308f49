from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _env(monkeypatch):
    monkeypatch.syspath_prepend(str(Path(__file__).resolve().parents[1]))
    for name in (
        "GITHUB_OAUTH_CLIENT_ID",
        "GITHUB_OAUTH_CLIENT_SECRET",
        "GOOGLE_OAUTH_CLIENT_ID",
        "GOOGLE_OAUTH_CLIENT_SECRET",
    ):
        monkeypatch.delenv(name, raising=False)
    from notedly.config import clear_config_caches

    clear_config_caches()
    try:
        yield
    finally:
        clear_config_caches()


def test_parser_defaults():
    from notedly.cli import DEFAULT_PORT, build_parser

    args = build_parser().parse_args(["serve"])
    assert args.port == DEFAULT_PORT == 8080
    assert args.debug is False
    assert args.silent is False

    args = build_parser().parse_args(["serve", "-p", "9000", "-d"])
    assert args.port == 9000
    assert args.debug is True


def test_debug_and_silent_are_exclusive():
    from notedly.cli import build_parser

    with pytest.raises(SystemExit):
        build_parser().parse_args(["serve", "--debug", "--silent"])


def test_serve_without_provider_exits_with_error(monkeypatch):
    import uvicorn

    from notedly import cli

    started = []
    monkeypatch.setattr(uvicorn, "run", lambda *args, **kwargs: started.append(kwargs))

    assert cli.main(["serve"]) == 1
    assert started == []


def test_serve_runs_uvicorn(monkeypatch):
    import uvicorn

    from notedly import cli
    from notedly.config import clear_config_caches

    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("GOOGLE_OAUTH_CLIENT_ID", "g-client")
    monkeypatch.setenv("GOOGLE_OAUTH_CLIENT_SECRET", "g-secret")
    clear_config_caches()
    started = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: started.append(kwargs))

    assert cli.main(["serve", "--port", "9100", "--silent"]) == 0
    assert started[0]["port"] == 9100


def test_init_db_creates_tables(monkeypatch, tmp_path):
    from sqlalchemy import inspect

    from notedly import cli
    from notedly.db import get_engine

    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")

    assert cli.main(["init-db"]) == 0
    tables = set(inspect(get_engine()).get_table_names())
    assert {"users", "boards", "notes", "permissions", "oauth_states"} <= tables
