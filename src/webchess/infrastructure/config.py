from __future__ import annotations

from dataclasses import dataclass, field
import os

from webchess.domain.engine.selector import DEFAULT_DIFFICULTY, resolve_difficulty


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Centralized runtime configuration for backend services."""

    database_url: str
    flask_env: str = "production"
    default_difficulty: str = DEFAULT_DIFFICULTY
    ai_think_delay_ms: int = 450
    ai_random_seed: int | None = None
    additional: dict[str, str] = field(default_factory=dict)


def load_config(prefix: str = "") -> AppConfig:
    """Load application configuration from environment variables."""

    def _get_env(key: str, default: str = "") -> str:
        env_key = f"{prefix}{key}"
        return os.getenv(env_key, default)

    def _parse_int(raw: str, fallback: int | None) -> int | None:
        try:
            return int(raw)
        except (TypeError, ValueError):
            return fallback

    database_url = _get_env("DATABASE_URL", "sqlite+pysqlite:///webchess.db")
    think_delay = _parse_int(_get_env("AI_THINK_DELAY_MS", "450"), 450)
    seed = _parse_int(_get_env("AI_RANDOM_SEED", ""), None)

    additional_keys = (
        "STRUCTLOG_LEVEL",
        "STRUCTLOG_RENDERER",
    )
    additional: dict[str, str] = {}
    for key in additional_keys:
        value = _get_env(key, "")
        if value:
            additional[key] = value

    return AppConfig(
        database_url=database_url,
        flask_env=_get_env("FLASK_ENV", "production"),
        default_difficulty=resolve_difficulty(_get_env("DEFAULT_DIFFICULTY", DEFAULT_DIFFICULTY)),
        ai_think_delay_ms=max(0, think_delay or 0),
        ai_random_seed=seed,
        additional=additional,
    )


__all__ = ["AppConfig", "load_config"]
