"""
Service layer for deploys and their events.

Deploys are appended to a project and never edited afterwards; the only
thing that grows is each deploy's event sequence. Callers own the
transaction: these methods flush but never commit.
"""
import uuid
from typing import List, Optional

from deploy_logger.datetime_utils import utcnow
from deploy_logger.entities import RequestDeploy, RequestEvent, ResponseModule
from deploy_logger.errors import NotFound
from deploy_logger.logging_config import get_logger
from deploy_logger.models import Deploy, DeployStatus, Event, ModuleChange, Project, db
from deploy_logger.services.module_state import ModuleStateReducer
from deploy_logger.services.project_registry import ProjectRegistry

logger = get_logger(__name__)

STARTED_EVENT_DESCRIPTION = "Deploy started"


class DeployLedger:
    """Append and query deploys and events."""

    @staticmethod
    def add_deploy(project_name: str, request: RequestDeploy) -> Deploy:
        """
        Record a new deploy for a project.

        The deploy gets a fresh UUID and exactly one STARTED event before any
        caller-supplied event.

        Raises:
            NotFound: If the project does not exist
        """
        project = ProjectRegistry.get(project_name)
        now = utcnow()

        deploy = Deploy(
            deploy_id=str(uuid.uuid4()),
            project=project,
            user=request.user,
            commit_branch=request.commit.branch,
            commit_hash=request.commit.hash,
            description=request.description,
            changelog_url=request.changelog_url,
            version=request.version,
            automatic=request.automatic,
            client=request.client,
            configuration=request.configuration,
            timestamp=now,
        )
        deploy.modules = [
            ModuleChange(position=position, name=module.name, version=module.version, status=module.status)
            for position, module in enumerate(request.modules)
        ]
        deploy.events = [
            Event(status=DeployStatus.STARTED, description=STARTED_EVENT_DESCRIPTION, timestamp=now)
        ]

        db.session.add(deploy)
        db.session.flush()

        logger.info(
            "Deploy recorded",
            project=project_name,
            deploy_id=deploy.deploy_id,
            client=request.client,
            version=request.version,
            module_changes=len(request.modules),
        )
        return deploy

    @staticmethod
    def find_deploy(project: Project, deploy_id: str) -> Optional[Deploy]:
        return Deploy.query.filter_by(project_id=project.id, deploy_id=deploy_id).first()

    @staticmethod
    def get_deploy(project_name: str, deploy_id: str) -> Deploy:
        """
        Raises:
            NotFound: If the project, or the deploy within that project, does not exist
        """
        project = ProjectRegistry.get(project_name)
        deploy = DeployLedger.find_deploy(project, deploy_id)
        if deploy is None:
            raise NotFound(f"Deploy '{deploy_id}' not found in project '{project_name}'")
        return deploy

    @staticmethod
    def add_event(project_name: str, deploy_id: str, request: RequestEvent) -> Event:
        """
        Append a status event to a deploy.

        Raises:
            NotFound: If the project or deploy does not exist
        """
        deploy = DeployLedger.get_deploy(project_name, deploy_id)

        event = Event(deploy=deploy, status=request.status, description=request.description, timestamp=utcnow())
        db.session.add(event)
        db.session.flush()

        logger.info(
            "Deploy event appended",
            project=project_name,
            deploy_id=deploy_id,
            status=request.status.value,
        )
        return event

    @staticmethod
    def list_deploys(project_name: str, max_deploys: int) -> List[Deploy]:
        """
        The `max_deploys` most recent deploys, newest first.

        Raises:
            NotFound: If the project does not exist
        """
        project = ProjectRegistry.get(project_name)
        if max_deploys <= 0:
            return []
        return (
            Deploy.query.filter_by(project_id=project.id)
            .order_by(Deploy.id.desc())
            .limit(max_deploys)
            .all()
        )

    @staticmethod
    def list_clients(project_name: str) -> List[str]:
        """
        Distinct client names across all of a project's deploys, sorted.

        Raises:
            NotFound: If the project does not exist
        """
        project = ProjectRegistry.get(project_name)
        rows = (
            db.session.query(Deploy.client)
            .filter(Deploy.project_id == project.id)
            .distinct()
            .order_by(Deploy.client)
            .all()
        )
        return [row[0] for row in rows]

    @staticmethod
    def get_modules(project_name: str, client_name: str, as_of: Optional[str] = None) -> List[ResponseModule]:
        """
        Current module inventory for a client, or the inventory as of a deploy.

        An unknown client yields an empty list.

        Raises:
            NotFound: If the project, or the `as_of` deploy, does not exist
        """
        project = ProjectRegistry.get(project_name)

        query = Deploy.query.filter_by(project_id=project.id, client=client_name)
        if as_of is not None:
            cutoff = DeployLedger.find_deploy(project, as_of)
            if cutoff is None:
                raise NotFound(f"Deploy '{as_of}' not found in project '{project_name}'")
            query = query.filter(Deploy.id <= cutoff.id)

        deploys = query.order_by(Deploy.id.asc()).all()
        return ModuleStateReducer.inventory(deploys, client_name)
