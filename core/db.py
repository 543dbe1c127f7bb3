from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool

from core.config import settings


class Base(DeclarativeBase):
    pass


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """Build an engine whose transactions can hold an exclusive order lock."""
    if url.startswith("sqlite"):
        # SQLite ignores FOR UPDATE, so each transaction takes the write lock
        # up front and waiters block for at most the busy timeout.
        engine = create_engine(
            url,
            echo=echo,
            future=True,
            connect_args={"check_same_thread": False, "timeout": settings.LOCK_TIMEOUT_SECONDS},
            poolclass=StaticPool if ":memory:" in url else None,
        )

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            # Let SQLAlchemy emit BEGIN instead of pysqlite
            dbapi_conn.isolation_level = None
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    # For PostgreSQL and other databases
    return create_engine(
        url,
        echo=echo,
        future=True,
        pool_pre_ping=True,
    )


engine = create_db_engine(settings.DATABASE_URL, echo=settings.SQLALCHEMY_ECHO)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def db_session() -> Generator:
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
