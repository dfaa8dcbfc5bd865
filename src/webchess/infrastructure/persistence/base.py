from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from webchess.infrastructure.config import AppConfig, load_config

Base = declarative_base()


def create_engine_from_config(config: AppConfig | None = None) -> Engine:
    """Create a SQLAlchemy engine using the provided configuration."""
    cfg = config or load_config()
    engine_kwargs: dict = {"pool_pre_ping": True, "future": True}

    if cfg.database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in cfg.database_url:
            engine_kwargs["poolclass"] = StaticPool

    return create_engine(cfg.database_url, **engine_kwargs)


def create_session_factory(config: AppConfig | None = None) -> sessionmaker:
    """Produce a session factory tied to the application engine."""
    engine = create_engine_from_config(config=config)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@lru_cache(maxsize=1)
def _default_session_factory() -> sessionmaker:
    return create_session_factory()


@contextmanager
def session_scope(config: AppConfig | None = None) -> Iterator[Session]:
    """Provide a transactional session scope."""
    factory = _default_session_factory() if config is None else create_session_factory(config)
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "Base",
    "create_engine_from_config",
    "create_session_factory",
    "session_scope",
]
