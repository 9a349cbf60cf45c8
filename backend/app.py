import logging
import os

from blueprints.auth import auth_bp
from blueprints.jobs import jobs_bp
from config import Config
from flask import Flask, jsonify
from flask_cors import CORS
from utils.errors import _sanitize_error_message
from werkzeug.exceptions import HTTPException

from services.auth import Forbidden, SigningError, TokenError, Unauthenticated
from services.discovery import DiscoveryTimeoutError, StoreUnavailableError

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask) -> None:
    """Map service exceptions to HTTP responses."""

    @app.errorhandler(Unauthenticated)
    def unauthenticated_callback(error):
        return jsonify({"error": str(error), "reason": error.reason}), 401

    @app.errorhandler(Forbidden)
    def forbidden_callback(error):
        return jsonify({"error": str(error)}), 403

    @app.errorhandler(TokenError)
    def token_error_callback(error):
        if isinstance(error, SigningError):
            logger.error(f"Token signing misconfigured: {error}")
            return jsonify({"error": _sanitize_error_message(error)}), 500
        return jsonify({"error": str(error), "reason": error.reason}), 401

    @app.errorhandler(DiscoveryTimeoutError)
    def discovery_timeout_callback(error):
        return jsonify({"error": "Search timed out. Please refine your query."}), 504

    @app.errorhandler(StoreUnavailableError)
    def store_unavailable_callback(error):
        return jsonify({"error": "Search is temporarily unavailable."}), 503

    @app.errorhandler(ValueError)
    def validation_error_callback(error):
        return jsonify({"error": str(error)}), 400

    @app.errorhandler(Exception)
    def unexpected_error_callback(error):
        if isinstance(error, HTTPException):
            return jsonify({"error": error.description}), error.code
        logger.error(f"Unhandled error: {error}", exc_info=True)
        return jsonify({"error": _sanitize_error_message(error)}), 500


def create_app():
    """Application factory function."""
    app = Flask(__name__)
    app.config.from_object(Config)

    if not Config.JWT_SECRET:
        logger.warning("JWT_SECRET is not set; token issuance will fail")

    # Initialize CORS
    CORS(
        app,
        origins=Config.CORS_ORIGINS,
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization"],
    )

    register_error_handlers(app)

    # Register Blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(jobs_bp)

    return app


app = create_app()

if __name__ == "__main__":
    debug = os.getenv("ENVIRONMENT", "development") == "development"
    app.run(host="0.0.0.0", port=5000, debug=debug, use_reloader=debug)
