from __future__ import annotations

import random

import pytest
from sqlalchemy.orm import sessionmaker

from webchess.domain.chess import SessionManager
from webchess.domain.engine.selector import MoveSelector, SearchInferenceService
from webchess.infrastructure.config import AppConfig
from webchess.infrastructure.persistence.base import (
    Base,
    create_engine_from_config,
)
from webchess.infrastructure.persistence import game_session_repository  # noqa: F401
from webchess.infrastructure.persistence.memory_repository import InMemoryGameSessionRepository
from webchess.interface.http.app import create_app


@pytest.fixture(scope="session")
def app_config() -> AppConfig:
    """Provide a configuration tuned for isolated tests."""
    return AppConfig(
        database_url="sqlite+pysqlite:///:memory:",
        flask_env="test",
        default_difficulty="easy",
        ai_think_delay_ms=0,
        ai_random_seed=7,
        additional={},
    )


@pytest.fixture(scope="session")
def engine(app_config: AppConfig):
    engine = create_engine_from_config(app_config)
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(engine):
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def app(app_config: AppConfig):
    flask_app = create_app(app_config)
    flask_app.config.update(TESTING=True)
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def inference() -> SearchInferenceService:
    return SearchInferenceService(MoveSelector(rng=random.Random(11)))


@pytest.fixture
def manager(inference: SearchInferenceService) -> SessionManager:
    return SessionManager(InMemoryGameSessionRepository(), inference)
