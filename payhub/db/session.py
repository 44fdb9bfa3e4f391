"""
Engine and session management.

SQLite is used for development and tests, PostgreSQL in production. SQLite
has no row locks, so its connections open every transaction with
``BEGIN IMMEDIATE``; writers then serialize on the database lock instead of
failing on a read-to-write lock upgrade.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from payhub.db.base import Base


def make_engine(url: str, echo: bool = False) -> Engine:
    # Handle Heroku-style postgres:// URLs
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)

    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_pre_ping=True)

    engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy's "begin" event control transactions
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create all tables registered on Base."""
    # Importing the models registers them on Base.metadata
    from payhub.models import card, contact, qr_code, transaction, user  # noqa: F401

    Base.metadata.create_all(engine)
