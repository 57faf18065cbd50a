"""Database configuration and session management.

SQLite is the default store. Every SQLite connection is configured the
same way, whether it belongs to the application engine or a test engine:

    - **WAL (Write-Ahead Logging)**: readers keep working while a
      registration transaction writes.

    - **Foreign Keys**: off by default in SQLite. Registrations reference
      both their occurrence and their participant, so they are enforced.

    - **BEGIN IMMEDIATE for writes**: pysqlite normally defers BEGIN until
      the first write, which lets two transactions read the same
      registered-count and then race to update it. The driver's own
      transaction handling is turned off and SQLAlchemy's "begin" event
      emits BEGIN itself, following the SQLAlchemy pysqlite recipe. A
      connection carrying ``WRITE_TRANSACTION`` in its execution options
      begins with BEGIN IMMEDIATE and takes the write lock up front, so
      capacity checks and counter updates are serialized. Everything else
      begins with a plain deferred BEGIN and never waits on a writer.

Other backends (e.g. PostgreSQL) rely on the ``SELECT ... FOR UPDATE``
row locks issued by the services instead.
"""

from sqlalchemy import event as sa_event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from app.core.config import settings

# Execution options for a connection that will write.
WRITE_TRANSACTION = {"sqlite_begin": "IMMEDIATE"}


def is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def configure_sqlite(engine: Engine) -> Engine:
    """Attach the SQLite connection and transaction listeners to an engine."""

    @sa_event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        """Configure SQLite pragmas on each new connection.

        These settings are connection-level, not database-level, so they must
        be set each time a new connection is established from the pool.
        """
        # Let SQLAlchemy's "begin" listener below issue BEGIN itself.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @sa_event.listens_for(engine, "begin")
    def begin_transaction(conn):
        mode = conn.get_execution_options().get("sqlite_begin", "DEFERRED")
        conn.exec_driver_sql(f"BEGIN {mode}")

    return engine


def build_engine(url: str, **kwargs) -> Engine:
    """Create an engine for ``url``, applying the SQLite setup when needed."""
    if is_sqlite(url):
        # FastAPI may hand a session to a different thread than the one that
        # opened its connection.
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        return configure_sqlite(create_engine(url, connect_args=connect_args, **kwargs))
    return create_engine(url, **kwargs)


engine = build_engine(
    settings.database_url,
    echo=settings.debug,  # Log SQL statements when DEBUG=true
)


def create_db_and_tables():
    """Create all database tables."""
    SQLModel.metadata.create_all(engine)


def get_session():
    """Dependency for getting database session."""
    with Session(engine) as session:
        yield session
