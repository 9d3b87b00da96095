"""Base model configuration."""
import sqlite3
from datetime import UTC, datetime
from typing import Generator

from sqlalchemy import Column, DateTime, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from woodpecker.config import settings


def _engine_kwargs(url: str) -> dict:
    """Connection arguments for the configured database URL."""
    kwargs = {"echo": settings.database.echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
    return kwargs


# Create SQLAlchemy engine
engine = create_engine(settings.database.url, **_engine_kwargs(settings.database.url))


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enforce foreign keys on SQLite connections."""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create declarative base class
Base = declarative_base()


class TimestampMixin:
    """Mixin to add timestamp columns to models."""
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create tables and load the achievement catalog."""
    # Imported here so every model is registered on Base.metadata
    from woodpecker.models import models  # noqa: F401
    from woodpecker.achievements.catalog import sync_catalog

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        sync_catalog(db)
    finally:
        db.close()
