"""
Command-line client used by build pipelines to record deploys.

Usage:
    python -m deploy_logger.scripts.deploy_script new-project malamute --description "Deploy Logger" \
        --repository-url https://example.org/malamute
    python -m deploy_logger.scripts.deploy_script projects
    python -m deploy_logger.scripts.deploy_script deploy --project malamute --version v0.1 --client acme \
        --module core:v0.1:ADD
    python -m deploy_logger.scripts.deploy_script event --project malamute --deploy-id <id> --status SUCCESS

The `deploy` subcommand prints the new deploy id so later `event` calls can
reference it. Nothing is remembered between invocations.
"""
import argparse
import json
import os
import subprocess
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import quote

import requests
from dotenv import load_dotenv

load_dotenv()

DEFAULT_URL = "http://localhost:8000/api/"


def _segment(value: str) -> str:
    """Percent-encode one URL path segment; project names may contain ?, # or %."""
    return quote(value, safe="")


class DeployLoggerClientError(Exception):
    """Raised when the deploy logger API returns an error response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class DeploySession:
    """Project and deploy the caller is currently working with."""
    project_name: Optional[str] = None
    last_deploy_id: Optional[str] = None

    def require_project(self) -> str:
        if not self.project_name:
            raise ValueError("No project selected; create or open a project first")
        return self.project_name

    def require_deploy(self) -> str:
        if not self.last_deploy_id:
            raise ValueError("No deploy recorded in this session")
        return self.last_deploy_id


def read_git_info(cwd: Optional[str] = None) -> Dict[str, Optional[str]]:
    """Read user name, branch and commit hash from the git checkout at `cwd`."""

    def git(*args) -> Optional[str]:
        try:
            result = subprocess.run(
                ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
            )
        except (OSError, subprocess.CalledProcessError):
            return None
        return result.stdout.strip() or None

    return {
        "user": git("config", "--get", "user.name"),
        "branch": git("rev-parse", "--abbrev-ref", "HEAD"),
        "hash": git("rev-parse", "HEAD"),
    }


class DeployLoggerClient:
    """Deploy logger API connection layer over a requests session."""

    def __init__(self, base_url: str = DEFAULT_URL, timeout: float = 10, session: Optional[requests.Session] = None):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    def _request(self, method: str, endpoint: str, **kwargs):
        url = f"{self.base_url}{endpoint}"
        r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        if not r.ok:
            try:
                message = r.json().get("error", r.text)
            except (ValueError, AttributeError):
                message = r.text
            raise DeployLoggerClientError(f"{r.status_code} from deploy logger: {message}", status_code=r.status_code)
        return r.json() if r.text else None

    def new_project(self, session: DeploySession, name: str, description: str = "", repository_url: str = "") -> dict:
        project = self._request("POST", "project", json={
            "name": name,
            "description": description,
            "repository_url": repository_url,
        })
        session.project_name = name
        return project

    def get_projects(self) -> List[dict]:
        return self._request("GET", "projects")

    def open_project(self, session: DeploySession, name: str) -> dict:
        project = self._request("GET", f"project/{_segment(name)}")
        session.project_name = name
        return project

    def add_deploy(
        self,
        session: DeploySession,
        version: str,
        client: str,
        description: str = "",
        changelog_url: str = "",
        automatic: bool = False,
        modules: Optional[List[dict]] = None,
        configuration: Optional[str] = None,
        user: Optional[str] = None,
        branch: Optional[str] = None,
        commit_hash: Optional[str] = None,
    ) -> dict:
        """Record a deploy for the session's project; git details fill in anything not given."""
        project_name = session.require_project()

        if not all([user, branch, commit_hash]):
            git_info = read_git_info()
            user = user or git_info["user"]
            branch = branch or git_info["branch"]
            commit_hash = commit_hash or git_info["hash"]

        deploy = self._request("POST", f"project/{_segment(project_name)}/deploy", json={
            "user": user,
            "commit": {"branch": branch, "hash": commit_hash},
            "description": description,
            "changelog_url": changelog_url,
            "version": version,
            "automatic": automatic,
            "client": client,
            "modules": modules or [],
            "configuration": configuration,
        })
        session.last_deploy_id = deploy["id"]
        return deploy

    def add_deploy_event(self, session: DeploySession, status: str, description: str = "") -> dict:
        project_name = session.require_project()
        deploy_id = session.require_deploy()
        return self._request("POST", f"project/{_segment(project_name)}/deploy/{_segment(deploy_id)}/event", json={
            "status": status,
            "description": description,
        })


def parse_module_arg(value: str) -> dict:
    """Parse NAME:VERSION:STATUS into a module-change payload."""
    parts = value.rsplit(":", 2)
    if len(parts) != 3 or not all(parts):
        raise argparse.ArgumentTypeError(f"Module must look like NAME:VERSION:STATUS, got '{value}'")
    name, version, status = parts
    return {"name": name, "version": version, "status": status.upper()}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Record deploys in the deploy logger")
    parser.add_argument(
        "--url",
        default=os.environ.get("DEPLOY_LOGGER_URL", DEFAULT_URL),
        help="Base URL of the deploy logger API (default: DEPLOY_LOGGER_URL or %(default)s)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    new_project = subparsers.add_parser("new-project", help="Create a project")
    new_project.add_argument("name")
    new_project.add_argument("--description", default="")
    new_project.add_argument("--repository-url", default="")

    subparsers.add_parser("projects", help="List projects")

    open_project = subparsers.add_parser("open-project", help="Show a project and its deploys")
    open_project.add_argument("name")

    deploy = subparsers.add_parser("deploy", help="Record a deploy")
    deploy.add_argument("--project", required=True)
    deploy.add_argument("--version", required=True)
    deploy.add_argument("--client", required=True)
    deploy.add_argument("--description", default="")
    deploy.add_argument("--changelog-url", default="")
    deploy.add_argument("--automatic", action="store_true")
    deploy.add_argument("--module", dest="modules", action="append", type=parse_module_arg, default=[],
                        help="Module change as NAME:VERSION:STATUS (repeatable)")
    deploy.add_argument("--config-file", help="File whose contents are stored as the deploy configuration")
    deploy.add_argument("--user")
    deploy.add_argument("--branch")
    deploy.add_argument("--hash", dest="commit_hash")

    event = subparsers.add_parser("event", help="Append an event to a deploy")
    event.add_argument("--project", required=True)
    event.add_argument("--deploy-id", required=True)
    event.add_argument("--status", required=True, help="STARTED, SKIPPED, FAILED, SUCCESS or LOG")
    event.add_argument("--description", default="")

    return parser


def run(args, client: DeployLoggerClient):
    session = DeploySession()

    if args.command == "new-project":
        return client.new_project(session, args.name, args.description, args.repository_url)
    if args.command == "projects":
        return client.get_projects()
    if args.command == "open-project":
        return client.open_project(session, args.name)
    if args.command == "deploy":
        session.project_name = args.project
        configuration = None
        if args.config_file:
            with open(args.config_file, encoding="utf-8") as f:
                configuration = f.read()
        deploy = client.add_deploy(
            session,
            version=args.version,
            client=args.client,
            description=args.description,
            changelog_url=args.changelog_url,
            automatic=args.automatic,
            modules=args.modules,
            configuration=configuration,
            user=args.user,
            branch=args.branch,
            commit_hash=args.commit_hash,
        )
        return deploy
    if args.command == "event":
        session.project_name = args.project
        session.last_deploy_id = args.deploy_id
        return client.add_deploy_event(session, args.status.upper(), args.description)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    client = DeployLoggerClient(args.url)

    try:
        result = run(args, client)
    except (DeployLoggerClientError, requests.RequestException, ValueError, OSError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    if args.command == "deploy":
        print(result["id"])
    else:
        print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
