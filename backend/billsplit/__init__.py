from __future__ import annotations

import sys

from flask import Flask
from flask_cors import CORS
from loguru import logger

from billsplit.api.routes import api_bp
from billsplit.config import Config


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level)


def create_app() -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    configure_logging(app.config["LOG_LEVEL"])
    CORS(app)  # ok for MVP; tighten later

    app.register_blueprint(api_bp)
    return app
