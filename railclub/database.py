# railclub/database.py
from __future__ import annotations

from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from railclub.config import DATABASE_URL

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    connect_args=_connect_args,
    pool_pre_ping=True,
    future=True,
)


def enforce_sqlite_foreign_keys(eng: Engine) -> None:
    """SQLite ignores ON DELETE rules unless each connection turns foreign keys on."""
    if eng.dialect.name != "sqlite":
        return

    @event.listens_for(eng, "connect")
    def _fk_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


enforce_sqlite_foreign_keys(engine)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
)

class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass

def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """
    Local/dev bootstrap: create every table and seed the permission rows.
    Production schemas are managed by Alembic.
    """
    import railclub.models.registry  # noqa: F401
    from railclub.services.permissions import ensure_default_permissions

    eng = bind or engine
    Base.metadata.create_all(eng)

    factory = sessionmaker(bind=eng, autoflush=False, autocommit=False, future=True)
    db = factory()
    try:
        ensure_default_permissions(db)
    finally:
        db.close()
