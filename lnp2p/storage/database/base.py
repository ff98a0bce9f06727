"""Database base configuration and session management."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, MetaData, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from lnp2p.exceptions import DatabaseNotInitializedError

# Naming convention for constraints
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all database models."""

    metadata = metadata

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary."""
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}


class TimestampMixin:
    """created_at / updated_at columns shared by every table."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


# Database engine and session (configured at runtime)
engine: Engine | None = None
SessionLocal: sessionmaker[Session] | None = None


def init_db(database_url: str = "sqlite:///./lnp2p.db") -> Engine:
    """Initialize database engine and session factory, creating missing tables."""
    global engine, SessionLocal

    connect_args: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        # Writers wait for each other instead of failing immediately
        connect_args["timeout"] = 15

    engine = create_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        connect_args=connect_args,
    )

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    # Import models so their tables are registered on the metadata
    from lnp2p.trading.domain import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    return engine


def get_session() -> Session:
    """Return a new session from the configured factory."""
    if SessionLocal is None:
        raise DatabaseNotInitializedError("Database not initialized. Call init_db() first.")
    return SessionLocal()
