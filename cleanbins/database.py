import logging
import os
import time
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import DATABASE_URL

logger = logging.getLogger(__name__)

POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))
POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
ENABLE_QUERY_LOGGING = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))
SQLITE_BUSY_TIMEOUT_MS = int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "15000"))

# Execution option read by the "begin" hook: "IMMEDIATE" takes the write lock up front
BEGIN_MODE_OPTION = "sqlite_begin_mode"


def configure_sqlite(engine: Engine) -> Engine:
    """Let SQLAlchemy own transaction boundaries on SQLite connections.

    The pysqlite driver defers BEGIN until the first write, so a count followed by an
    insert runs its read outside any lock. With the driver's own handling disabled,
    the "begin" hook below emits BEGIN itself and honours ``sqlite_begin_mode``.
    """

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def on_begin(conn):
        mode = conn.get_execution_options().get(BEGIN_MODE_OPTION)
        conn.exec_driver_sql(f"BEGIN {mode}" if mode else "BEGIN")

    return engine


def configure_query_logging(engine: Engine) -> Engine:
    """Slow query logging for performance monitoring"""

    @event.listens_for(engine, "before_cursor_execute")
    def before_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        conn.info.setdefault("query_start_time", []).append(time.time())

    @event.listens_for(engine, "after_cursor_execute")
    def after_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        total = time.time() - conn.info["query_start_time"].pop(-1)
        if total > SLOW_QUERY_THRESHOLD:
            logger.warning(f"🐌 Slow query ({total:.2f}s): {statement[:200]}...")

    return engine


def build_engine(url: str) -> Engine:
    """Create an engine for ``url`` with the SQLite hooks applied when relevant"""
    if url.startswith("sqlite"):
        db_path = url.split("///", 1)[-1]
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        new_engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            pool_pre_ping=True,
            echo=False,
        )
        configure_sqlite(new_engine)
    else:
        new_engine = create_engine(
            url,
            pool_pre_ping=True,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT,
            echo=False,
        )

    if ENABLE_QUERY_LOGGING:
        configure_query_logging(new_engine)
    return new_engine


try:
    engine = build_engine(DATABASE_URL)
    logger.info("✅ Database engine created successfully")
except Exception as e:
    logger.error(f"❌ Failed to create database engine: {e}")
    raise

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def begin_write_transaction(db: Session) -> None:
    """
    Open a serializable write transaction on ``db``.

    Any read transaction left open by earlier queries is committed first; the next
    transaction takes the SQLite write lock immediately (BEGIN IMMEDIATE), so counts
    read inside it cannot change before the caller commits.
    """
    db.commit()
    if db.get_bind().dialect.name == "sqlite":
        db.connection(execution_options={BEGIN_MODE_OPTION: "IMMEDIATE"})
    else:
        db.connection(execution_options={"isolation_level": "SERIALIZABLE"})


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
