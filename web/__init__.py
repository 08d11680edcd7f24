"""Flask application factory for the renewal trigger service."""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
load_dotenv()  # Load .env file if present (already gitignored)

from flask import Flask, jsonify

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

VERSION = "0.1.0"


def create_app(config: Optional[dict] = None):
    """Create and configure the Flask application."""
    from config.settings import LOG_FORMAT, LOG_LEVEL

    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = os.environ.get("FLASK_SECRET_KEY", "dev-renewal-key")
    if config:
        app.config.update(config)

    from web.routes.api import bp as api_bp

    app.register_blueprint(api_bp, url_prefix="/api/v1")

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    def server_error(e):
        return jsonify({"error": "Internal server error"}), 500

    @app.route("/health")
    def health_check():
        return jsonify({"status": "healthy", "version": VERSION}), 200

    # Start scheduler (only in non-testing mode)
    if not app.config.get("TESTING"):
        from web.scheduler import init_scheduler
        init_scheduler(app)

    return app
