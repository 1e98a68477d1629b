"""
HTTP routes for the deploy logger.

Thin marshalling layer: parse the request, call one store operation, return
JSON. Domain errors are mapped to status codes by the blueprint's error
handler.
"""
from flask import jsonify, request

from deploy_logger.api import api_bp
from deploy_logger.entities import RequestDeploy, RequestEvent, RequestProject, parse_max_deploys
from deploy_logger.errors import DeployLoggerError, InternalFailure, ValidationError
from deploy_logger.logging_config import get_logger
from deploy_logger.store import get_deploy_store

logger = get_logger(__name__)


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationError("Request body must be valid JSON")
    return data


@api_bp.errorhandler(DeployLoggerError)
def handle_deploy_logger_error(exc):
    if isinstance(exc, InternalFailure):
        logger.error("Internal failure", path=request.path, error=exc.message)
    else:
        logger.info("Request rejected", path=request.path, status_code=exc.status_code, error=exc.message)
    return jsonify(exc.to_dict()), exc.status_code


@api_bp.route("/ping", methods=["GET"])
def ping():
    return "pong", 200, {"Content-Type": "text/plain; charset=utf-8"}


@api_bp.route("/projects", methods=["GET"])
def list_projects():
    """Return all projects, most recently created first."""
    projects = get_deploy_store().list_projects()
    return jsonify([project.to_dict() for project in projects]), 200


@api_bp.route("/project", methods=["POST"])
def create_project():
    body = RequestProject.from_payload(_json_body())
    project = get_deploy_store().create_project(
        body.name, description=body.description, repository_url=body.repository_url
    )
    return jsonify(project.to_dict()), 200


@api_bp.route("/project/<name>", methods=["GET"])
def get_project(name):
    """Return a project with its deploys, newest first."""
    project = get_deploy_store().get_project(name)
    return jsonify(project.to_dict(include_deploys=True)), 200


@api_bp.route("/project/<name>", methods=["DELETE"])
def delete_project(name):
    """Delete a project and everything recorded under it; return the removed project."""
    snapshot = get_deploy_store().delete_project(name)
    return jsonify(snapshot), 200


@api_bp.route("/project/<name>/deploy", methods=["POST"])
def add_deploy(name):
    body = RequestDeploy.from_payload(_json_body())
    deploy = get_deploy_store().add_deploy(name, body)
    return jsonify(deploy.to_dict()), 200


@api_bp.route("/project/<name>/deploys", methods=["GET"])
def list_deploys(name):
    """Return the most recent deploys; `max` defaults to DEFAULT_MAX_DEPLOYS."""
    store = get_deploy_store()
    max_deploys = parse_max_deploys(request.args.get("max"), store.default_max_deploys)
    deploys = store.list_deploys(name, max_deploys)
    return jsonify([deploy.to_dict() for deploy in deploys]), 200


@api_bp.route("/project/<name>/clients", methods=["GET"])
def list_clients(name):
    return jsonify(get_deploy_store().list_clients(name)), 200


@api_bp.route("/project/<name>/deploy/<deploy_id>/event", methods=["POST"])
def add_event(name, deploy_id):
    body = RequestEvent.from_payload(_json_body())
    event = get_deploy_store().add_event(name, deploy_id, body.status, body.description)
    return jsonify(event.to_dict()), 200


@api_bp.route("/project/<name>/deploy/<deploy_id>", methods=["GET"])
def get_deploy(name, deploy_id):
    deploy = get_deploy_store().get_deploy(name, deploy_id)
    return jsonify(deploy.to_dict()), 200


@api_bp.route("/project/<name>/client/<path:client_name>", methods=["GET"])
def get_modules(name, client_name):
    """Return the modules currently installed for a client (optionally as of a deploy)."""
    as_of = request.args.get("as_of") or None
    modules = get_deploy_store().get_modules(name, client_name, as_of=as_of)
    return jsonify([module.to_dict() for module in modules]), 200
