from typing import List, Optional

from deploy_logger.datetime_utils import utcnow
from deploy_logger.entities import RequestProject
from deploy_logger.errors import DuplicateEntity, NotFound
from deploy_logger.logging_config import get_logger
from deploy_logger.models import Project, db

logger = get_logger(__name__)


class ProjectRegistry:
    """Create, read and delete projects. Callers own the transaction."""

    @staticmethod
    def find(name: str) -> Optional[Project]:
        return Project.query.filter_by(name=name).first()

    @staticmethod
    def get(name: str) -> Project:
        """
        Fetch a project by exact name.

        Raises:
            NotFound: If no project has that name
        """
        project = ProjectRegistry.find(name)
        if project is None:
            raise NotFound(f"Project '{name}' not found")
        return project

    @staticmethod
    def list() -> List[Project]:
        """All projects, most recently created first."""
        return Project.query.order_by(Project.created_at.desc(), Project.id.desc()).all()

    @staticmethod
    def create(request: RequestProject) -> Project:
        """
        Insert a new project with an empty deploy sequence.

        Raises:
            DuplicateEntity: If a project with the same name exists
        """
        if ProjectRegistry.find(request.name) is not None:
            logger.info("Duplicate project rejected", project=request.name)
            raise DuplicateEntity(f"Project '{request.name}' already exists")

        project = Project(
            name=request.name,
            description=request.description,
            repository_url=request.repository_url,
            created_at=utcnow(),
        )
        db.session.add(project)
        db.session.flush()
        return project

    @staticmethod
    def delete(name: str) -> dict:
        """
        Remove a project together with its deploys, events and module changes.

        Returns:
            Serialized snapshot of the project as it was before removal

        Raises:
            NotFound: If no project has that name
        """
        project = ProjectRegistry.get(name)
        snapshot = project.to_dict(include_deploys=True)
        db.session.delete(project)
        db.session.flush()
        return snapshot
