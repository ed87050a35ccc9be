"""
Web trigger server — Flask app factory.

Exposes the trigger surface (manual trigger, push webhook) and
read-only status/run history as a small JSON API.  Every trigger goes
to the same coordinator as the scheduler, so the single-flight rule
holds across all of them.
"""

from __future__ import annotations

import logging

from flask import Flask

from mirrorpub.core.use_cases.publish import Publisher

logger = logging.getLogger(__name__)


def create_app(publisher: Publisher) -> Flask:
    """Create and configure the Flask application.

    Args:
        publisher: Loaded publisher whose coordinator receives triggers.

    Returns:
        Configured Flask application.
    """
    app = Flask(__name__)

    app.config["PUBLISHER"] = publisher
    app.config["PUSH_BRANCH"] = publisher.config.triggers.push_branch
    app.config["MAX_CONTENT_LENGTH"] = 1024 * 1024  # webhook payloads only

    from mirrorpub.ui.web.routes_api import api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    logger.info("Web trigger app created (group=%s)", publisher.config.group)
    return app


def run_server(
    app: Flask,
    host: str = "127.0.0.1",
    port: int = 8000,
) -> None:
    """Run the Flask server (blocking)."""
    logger.info("Serving trigger API on %s:%d", host, port)
    app.run(host=host, port=port, debug=False, use_reloader=False, threaded=True)
