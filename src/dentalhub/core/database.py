"""Database connection and session management."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from dentalhub.config import Settings
from dentalhub.models.base import Base


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine with settings appropriate for the backend."""
    if database_url.startswith("sqlite"):
        # SQLite doesn't support these pool settings
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            # Share one connection so every session sees the same in-memory db
            return create_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(database_url, echo=echo)

    # PostgreSQL settings
    return create_engine(
        database_url,
        pool_size=20,
        max_overflow=40,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=echo,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Build a session factory bound to ``engine``."""
    return sessionmaker(
        bind=engine,
        class_=Session,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


@contextmanager
def get_db(factory: sessionmaker) -> Generator[Session, None, None]:
    """Get synchronous database session."""
    db = factory()
    try:
        yield db
        db.commit()
    except (DataError, IntegrityError, SQLAlchemyError):
        db.rollback()
        raise
    finally:
        db.close()


def init_db(engine: Engine) -> None:
    """Initialize database with tables."""
    Base.metadata.create_all(bind=engine)


def engine_for_settings(settings: Settings) -> Engine:
    """Engine for the database URL of ``settings``."""
    return create_db_engine(
        settings.database_url, echo=settings.environment == "development"
    )
