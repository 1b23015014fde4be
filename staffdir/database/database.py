"""Engine, sessions and units of work."""

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Generator, Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from staffdir.config.settings import get_settings
from staffdir.models.base import Base

logger = logging.getLogger(__name__)


@dataclass
class DatabaseConfig:
    """Connection parameters; the URL comes from application settings."""

    url: str
    pool_size: int = 5
    max_overflow: int = 10
    echo: bool = False

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        return cls(
            url=get_settings().database_url,
            pool_size=int(os.getenv("DB_POOL_SIZE", "5")),
            max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "10")),
            echo=os.getenv("DB_ECHO", "false").lower() == "true",
        )

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    def engine_options(self) -> Dict[str, Any]:
        """Keyword arguments for ``create_engine``; SQLite takes no pool sizing."""
        if self.is_sqlite:
            return {"echo": self.echo, "connect_args": {"check_same_thread": False}}
        return {
            "echo": self.echo,
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_pre_ping": True,
        }


# Process-wide engine and session factory, created on first use
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker[Session]] = None


def get_engine(config: Optional[DatabaseConfig] = None) -> Engine:
    global _engine

    if _engine is None:
        config = config or DatabaseConfig.from_env()
        _engine = create_engine(config.url, **config.engine_options())
        logger.info(f"Database engine created ({_engine.dialect.name})")

    return _engine


def get_session_factory(config: Optional[DatabaseConfig] = None) -> sessionmaker[Session]:
    global _session_factory

    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(config),
            autoflush=False,
            expire_on_commit=False,
        )

    return _session_factory


@contextmanager
def _transaction() -> Iterator[Session]:
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency: one session and one transaction per request.

    Commits when the endpoint returns, rolls back when it raises.
    """
    with _transaction() as session:
        yield session


def get_db_context():
    """The same per-call transaction, for scripts such as the seeder."""
    return _transaction()


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """
    Group several writes into one unit of work.

    The enclosed writes are flushed together on exit. If anything inside
    raises, the whole transaction is rolled back, so a User row is never
    committed without its Employee or with a stale email.
    """
    try:
        yield session
        session.flush()
    except Exception:
        logger.info("Rolling back unit of work after failure")
        session.rollback()
        raise


def init_db(config: Optional[DatabaseConfig] = None) -> None:
    """Create missing tables. Development and tests only."""
    import staffdir.models  # noqa: F401  registers the mappers

    Base.metadata.create_all(bind=get_engine(config))


def dispose_engine() -> None:
    """Close pooled connections and forget the engine."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
