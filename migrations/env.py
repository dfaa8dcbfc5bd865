from __future__ import annotations

from logging.config import fileConfig

from alembic import context

from webchess.infrastructure.config import load_config
from webchess.infrastructure.persistence.base import Base, create_engine_from_config
from webchess.infrastructure.persistence import game_session_repository  # noqa: F401

alembic_config = context.config
if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name)

app_config = load_config()
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL for the game_sessions schema without a live connection."""
    context.configure(
        url=app_config.database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=app_config.database_url.startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine_from_config(app_config)
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite cannot ALTER most columns in place.
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
