# Package
from flask import Blueprint

api_bp = Blueprint("api", __name__)

# Routes register themselves on api_bp
from deploy_logger.api import routes  # noqa: E402,F401
