import logging
import os
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine


logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./notedly.db"
IN_MEMORY_URL = "sqlite://"

_engine: Optional[Engine] = None
_engine_url: Optional[str] = None


def _database_url() -> str:
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


def _create_all_requested() -> bool:
    return os.getenv("SQLMODEL_CREATE_ALL", "0").strip().lower() in ("1", "true", "yes")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # noqa: ARG001
    # Board deletion relies on ON DELETE CASCADE, which sqlite ignores by default.
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def _engine_options(database_url: str) -> Dict[str, Any]:
    if not database_url.startswith("sqlite"):
        return {"echo": False, "pool_pre_ping": True}
    options: Dict[str, Any] = {
        "echo": False,
        "connect_args": {"check_same_thread": False},
    }
    if database_url == IN_MEMORY_URL:
        # A single shared connection keeps the in-memory schema alive across sessions.
        options["poolclass"] = StaticPool
    return options


def get_engine() -> Engine:
    """Return the engine for ``DATABASE_URL``, rebuilding it when the URL changes."""
    global _engine, _engine_url
    database_url = _database_url()
    if _engine is None or database_url != _engine_url:
        _engine = create_engine(database_url, **_engine_options(database_url))
        if database_url.startswith("sqlite"):
            event.listen(_engine, "connect", _enable_sqlite_foreign_keys)
        _engine_url = database_url
        logger.debug("Database engine created", extra={"backend": _engine.url.get_backend_name()})
    return _engine


def backend_name() -> str:
    return get_engine().url.get_backend_name()


def init_db() -> None:
    """Prepare the schema on startup.

    The in-memory database used by tests is rebuilt from scratch on every call.
    File and server databases are left to Alembic unless ``SQLMODEL_CREATE_ALL``
    is set, in which case missing tables are created.
    """
    from . import models  # noqa: F401

    engine = get_engine()
    if _database_url() == IN_MEMORY_URL:
        SQLModel.metadata.drop_all(engine)
        SQLModel.metadata.create_all(engine)
        return
    if _create_all_requested():
        SQLModel.metadata.create_all(engine)


def create_all() -> None:
    """Create every table unconditionally (used by the ``init-db`` command)."""
    from . import models  # noqa: F401

    SQLModel.metadata.create_all(get_engine())


def get_session() -> Iterator[Session]:
    """FastAPI dependency yielding one session per request."""
    with Session(get_engine()) as session:
        yield session
