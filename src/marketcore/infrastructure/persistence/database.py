"""Engine and session factory.

SQLite needs two adjustments to behave like a locking database:

* pysqlite's own transaction handling is switched off and every
  transaction starts with ``BEGIN IMMEDIATE``, so the write lock is taken
  up front and two writers serialize instead of deadlocking on upgrade.
* ``busy_timeout`` makes a blocked writer wait instead of failing at once.

In-memory databases share one connection (``StaticPool``) so every session
sees the same data.
"""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from marketcore.infrastructure.persistence.tables import Base


def create_db_engine(url: str, lock_timeout_seconds: float = 5.0) -> Engine:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return create_engine(url, pool_pre_ping=True)

    database = parsed.database or ""
    in_memory = database in ("", ":memory:")
    kwargs: dict = {"connect_args": {"check_same_thread": False, "timeout": lock_timeout_seconds}}
    if in_memory:
        kwargs["poolclass"] = StaticPool
    else:
        Path(database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, **kwargs)
    busy_ms = int(lock_timeout_seconds * 1000)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={busy_ms}")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


def create_schema(engine: Engine) -> None:
    Base.metadata.create_all(engine)
