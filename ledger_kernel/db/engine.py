"""
ledger_kernel.db.engine -- Engine and session factory.

Responsibility:
    The single place where a database URL becomes an Engine.  Callers get
    sessions from ``get_session_factory()`` and hand them to ``LedgerApi``,
    which owns commit and rollback.

Backends:
    - PostgreSQL (production): pooled, READ COMMITTED, row locks taken with
      ``SELECT ... FOR UPDATE`` by the schedulers.
    - SQLite (local runs, test suite): every transaction starts with
      ``BEGIN IMMEDIATE`` so writers queue on the busy timeout.  ``FOR
      UPDATE`` is ignored there; the file-level write lock covers it.

Failure modes:
    - RuntimeError when the engine is used before ``init_engine_from_url``.
"""

import atexit

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ledger_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

SQLITE_BUSY_TIMEOUT_SECONDS = 30

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _sqlite_on_connect(dbapi_connection, connection_record):
    # pysqlite's own transaction handling would break SAVEPOINT.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _sqlite_on_begin(conn):
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def _build_engine(database_url: str, echo: bool, **pool_options) -> Engine:
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=echo,
            connect_args={
                "check_same_thread": False,
                "timeout": SQLITE_BUSY_TIMEOUT_SECONDS,
            },
        )
        event.listen(engine, "connect", _sqlite_on_connect)
        event.listen(engine, "begin", _sqlite_on_begin)
        return engine

    return create_engine(
        database_url,
        echo=echo,
        isolation_level="READ COMMITTED",
        pool_pre_ping=True,
        **pool_options,
    )


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the process-wide engine and session factory.

    Pool options apply to server databases only.  Sessions do not expire
    their objects on commit, so results returned by ``LedgerApi`` stay
    readable after the operation has committed.
    """
    global _engine, _session_factory

    _engine = _build_engine(
        database_url,
        echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
    )
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "echo": echo},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Session factory bound to the engine; one session per thread."""
    if _session_factory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _session_factory


def create_tables() -> None:
    from ledger_kernel.db.base import Base
    from ledger_kernel.models import import_all_models

    import_all_models()
    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"table_count": len(Base.metadata.tables)})


def drop_tables() -> None:
    """Drop every ledger table.  Tests and local resets only."""
    from ledger_kernel.db.base import Base
    from ledger_kernel.models import import_all_models

    import_all_models()
    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


@atexit.register
def _dispose_on_exit() -> None:
    if _engine is not None:
        _engine.dispose()
