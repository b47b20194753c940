"""Engine and session helpers for the local SQLite-backed record store."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.orm import Session, sessionmaker

from ..config import Settings, get_settings
from .base import Base

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker[Session]] = None


def _is_sqlite(url: URL) -> bool:
    return url.get_backend_name() == "sqlite"


def _prepare_sqlite_file(url: URL) -> None:
    database = url.database
    if not database or database == ":memory:" or database.startswith("file:"):
        return
    Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def _engine_options(settings: Settings, url: URL) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.database_echo, "pool_pre_ping": True}
    if _is_sqlite(url):
        # Worker threads share the pool; wait on the file lock instead of failing fast.
        options["connect_args"] = {"check_same_thread": False, "timeout": 30}
    return options


def _use_explicit_transactions(engine: Engine) -> None:
    """Make each session transaction a real SQLite transaction.

    pysqlite only issues BEGIN before the first DML statement, so the reads
    ahead of a write would otherwise run outside the transaction.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(connection) -> None:  # type: ignore[no-untyped-def]
        connection.exec_driver_sql("BEGIN")


def get_engine() -> Engine:
    global _engine, _session_factory
    if _engine is not None:
        return _engine

    settings = get_settings()
    if not settings.database_url:
        raise RuntimeError("SKILLLEAD_DATABASE_URL must be configured before using the record store.")
    url = make_url(settings.database_url)
    if _is_sqlite(url):
        _prepare_sqlite_file(url)

    engine = create_engine(url, **_engine_options(settings, url))
    if _is_sqlite(url):
        _use_explicit_transactions(engine)
    logger.debug("Record store engine ready (%s)", url.render_as_string(hide_password=True))

    _engine = engine
    _session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return engine


def get_session_factory() -> sessionmaker[Session]:
    if _session_factory is None:
        get_engine()
    assert _session_factory is not None
    return _session_factory


def init_db() -> Engine:
    """Create any missing record tables."""
    engine = get_engine()
    Base.metadata.create_all(engine)
    return engine


@contextmanager
def session_scope(*, commit: bool = True) -> Iterator[Session]:
    """One unit of work: committed on success unless ``commit`` is false, rolled back on error."""
    session = get_session_factory()()
    try:
        yield session
        if commit:
            session.commit()
    except Exception:  # noqa: BLE001
        session.rollback()
        raise
    finally:
        session.close()


def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


__all__ = [
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "init_db",
    "session_scope",
]
