from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from deploy_logger.api import api_bp
from deploy_logger.logging_config import configure_logging, get_logger
from deploy_logger.models import db
from deploy_logger.store import init_store

logger = get_logger(__name__)


def _cors_origins(value):
    if not value or value == "*":
        return "*"
    return [origin.strip() for origin in value.split(",") if origin.strip()]


def register_error_handlers(app):
    """JSON bodies for anything the blueprint's own handler did not map."""

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        response = jsonify({"error": e.description})
        response.status_code = e.code
        return response

    @app.errorhandler(Exception)
    def handle_exception(e):
        logger.error("Unhandled exception", error=str(e), exc_info=True)
        db.session.rollback()
        response = jsonify({"error": "An internal error occurred"})
        response.status_code = 500
        return response


def create_app(config_class=None):
    # Import config after dotenv is loaded
    from deploy_logger.config import get_config
    from deploy_logger.db_config import configure_database

    if config_class is None:
        config_class = get_config()

    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(
        log_level=app.config.get("LOG_LEVEL", "INFO"),
        log_file=app.config.get("LOG_FILE"),
        json_logs=app.config.get("LOG_JSON", False),
    )

    configure_database(app)
    logger.info(
        "Starting deploy logger",
        environment=config_class.ENV,
        database=app.config["SQLALCHEMY_DATABASE_URI"].split("@")[-1][:60],
    )

    CORS(app,
         resources={r"/api/*": {"origins": _cors_origins(app.config.get("CORS_ORIGINS"))}},
         allow_headers=["Content-Type"],
         methods=["GET", "POST", "DELETE", "OPTIONS"])

    db.init_app(app)
    if app.config.get("AUTO_CREATE_TABLES"):
        with app.app_context():
            db.create_all()

    init_store(app)
    app.register_blueprint(api_bp, url_prefix="/api")
    register_error_handlers(app)

    return app
