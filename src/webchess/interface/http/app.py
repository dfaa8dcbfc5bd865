from __future__ import annotations

from flask import Flask

from webchess.domain.chess import SessionLocks
from webchess.domain.engine.selector import SearchInferenceService, per_selection_rng
from webchess.infrastructure.config import AppConfig, load_config
from webchess.infrastructure.persistence.base import create_session_factory
from webchess.infrastructure.persistence import game_session_repository  # noqa: F401
from webchess.interface.http.engine_routes import engine_bp
from webchess.interface.http.gameplay_routes import gameplay_bp
from webchess.interface.telemetry.logging import setup_logging, get_logger


def create_app(config: AppConfig | None = None) -> Flask:
    """Instantiate Flask application with shared configuration."""
    cfg = config or load_config()

    setup_logging(
        cfg.additional.get("STRUCTLOG_LEVEL", "INFO"),
        renderer=cfg.additional.get("STRUCTLOG_RENDERER", "json"),
    )
    logger = get_logger("webchess.app")

    app = Flask(__name__)
    app.config.update(
        DATABASE_URL=cfg.database_url,
        DEFAULT_DIFFICULTY=cfg.default_difficulty,
        ENV=cfg.flask_env,
        APP_CONFIG=cfg,
    )

    app.config["SESSION_FACTORY"] = create_session_factory(cfg)

    app.extensions["inference_service"] = SearchInferenceService(
        rng_factory=per_selection_rng(cfg.ai_random_seed),
    )
    app.extensions["session_locks"] = SessionLocks()

    app.register_blueprint(engine_bp, url_prefix="/api/v1/engine")
    app.register_blueprint(gameplay_bp, url_prefix="/api/v1/sessions")

    @app.get("/healthz")
    def healthcheck():
        return {"status": "ok"}, 200

    logger.info(
        "flask_app_initialized",
        env=cfg.flask_env,
        default_difficulty=cfg.default_difficulty,
        seeded=cfg.ai_random_seed is not None,
    )
    return app


__all__ = ["create_app"]
