"""Flask application factory and global app instance."""
import logging
import os
from typing import Dict, Optional

from dotenv import load_dotenv
from flask import Flask

load_dotenv(override=True)

logger = logging.getLogger(__name__)


def _get_env(name: str, default: str = "") -> str:
    value = os.getenv(name, default)
    if value is None:
        return default
    return value.strip()


def _get_env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, value, default)
        return default


def create_app(config: Optional[Dict[str, object]] = None) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config["SECRET_KEY"] = _get_env("SECRET_KEY", "dev-secret")
    app.config["FLASK_ENV"] = _get_env("FLASK_ENV", "development")
    app.config["TRAVEL_RATE_PER_KM"] = _get_env_float("TRAVEL_RATE_PER_KM", 3.0)
    app.config["TRAVEL_USER_HEADER"] = _get_env("TRAVEL_USER_HEADER", "X-User-Id")
    if config:
        app.config.update(config)
    # TODO: Replace the trusted user header with token validation once the auth service exposes it.

    from .routes import api_bp  # pylint: disable=import-outside-toplevel

    app.register_blueprint(api_bp, url_prefix="/api")

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    return app


# Expose app for gunicorn / wsgi servers.
app = create_app()
