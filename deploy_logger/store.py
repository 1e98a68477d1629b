"""
Aggregate store for projects, deploys and events.

Every mutation runs under the store's WriteLockManager and inside a single
database transaction: the existence/uniqueness check and the write it guards
happen in the same critical section, and a failed mutation is rolled back
completely. Reads skip the lock and see the latest committed state.
"""
from contextlib import contextmanager
from typing import List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from deploy_logger.entities import (
    RequestDeploy,
    RequestEvent,
    RequestProject,
    ResponseModule,
    parse_deploy_status,
)
from deploy_logger.errors import DeployLoggerError, DuplicateEntity, InternalFailure
from deploy_logger.logging_config import StoreOperationContext, get_logger
from deploy_logger.models import Deploy, Event, Project, db
from deploy_logger.services.deploy_ledger import DeployLedger
from deploy_logger.services.project_registry import ProjectRegistry
from deploy_logger.write_lock import WriteLockManager, serialized_write

logger = get_logger(__name__)

EXTENSION_KEY = "deploy_store"


class DeployStore:
    """Single serialization point for all writes against one database."""

    def __init__(self, write_lock: Optional[WriteLockManager] = None, default_max_deploys: int = 10):
        self.write_lock = write_lock or WriteLockManager()
        self.default_max_deploys = default_max_deploys

    @contextmanager
    def _transaction(self, operation_type: str, duplicate_message: Optional[str] = None, **context):
        """
        Run a mutation as one transaction.

        Every failure rolls back. Domain errors propagate unchanged.
        IntegrityError becomes DuplicateEntity when `duplicate_message` is
        given; anything else becomes InternalFailure.
        """
        with StoreOperationContext(operation_type, **context):
            try:
                yield
                db.session.commit()
            except DeployLoggerError:
                db.session.rollback()
                raise
            except IntegrityError as exc:
                db.session.rollback()
                if duplicate_message:
                    raise DuplicateEntity(duplicate_message) from exc
                logger.error("Integrity error in store", operation=operation_type, error=str(exc), exc_info=True)
                raise InternalFailure(f"{operation_type} failed: integrity error") from exc
            except SQLAlchemyError as exc:
                db.session.rollback()
                logger.error("Storage error in store", operation=operation_type, error=str(exc), exc_info=True)
                raise InternalFailure(f"{operation_type} failed: storage error") from exc
            except Exception as exc:
                # Flushed rows must not survive into the next commit on this session
                db.session.rollback()
                logger.error("Unexpected error in store", operation=operation_type, error=str(exc), exc_info=True)
                raise InternalFailure(f"{operation_type} failed: unexpected error") from exc

    @contextmanager
    def _read(self, operation_type: str):
        try:
            yield
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.error("Storage error in store read", operation=operation_type, error=str(exc), exc_info=True)
            raise InternalFailure(f"{operation_type} failed: storage error") from exc

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @serialized_write("create_project")
    def create_project(self, name: str, description: str = "", repository_url: str = "") -> Project:
        request = RequestProject.from_payload(
            {"name": name, "description": description, "repository_url": repository_url}
        )
        with self._transaction(
            "create_project",
            duplicate_message=f"Project '{name}' already exists",
            project=name,
        ):
            project = ProjectRegistry.create(request)
        return project

    @serialized_write("delete_project")
    def delete_project(self, name: str) -> dict:
        with self._transaction("delete_project", project=name):
            snapshot = ProjectRegistry.delete(name)
        return snapshot

    @serialized_write("add_deploy")
    def add_deploy(self, project_name: str, deploy: RequestDeploy) -> Deploy:
        with self._transaction("add_deploy", project=project_name, client=deploy.client):
            created = DeployLedger.add_deploy(project_name, deploy)
        return created

    @serialized_write("add_event")
    def add_event(self, project_name: str, deploy_id: str, status, description: str = "") -> Event:
        request = RequestEvent(status=parse_deploy_status(status), description=description or "")
        with self._transaction("add_event", project=project_name, deploy_id=deploy_id):
            event = DeployLedger.add_event(project_name, deploy_id, request)
        return event

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_projects(self) -> List[Project]:
        with self._read("list_projects"):
            return ProjectRegistry.list()

    def get_project(self, name: str) -> Project:
        with self._read("get_project"):
            return ProjectRegistry.get(name)

    def get_deploy(self, project_name: str, deploy_id: str) -> Deploy:
        with self._read("get_deploy"):
            return DeployLedger.get_deploy(project_name, deploy_id)

    def list_deploys(self, project_name: str, max_deploys: Optional[int] = None) -> List[Deploy]:
        if max_deploys is None:
            max_deploys = self.default_max_deploys
        with self._read("list_deploys"):
            return DeployLedger.list_deploys(project_name, max_deploys)

    def list_clients(self, project_name: str) -> List[str]:
        with self._read("list_clients"):
            return DeployLedger.list_clients(project_name)

    def get_modules(self, project_name: str, client_name: str, as_of: Optional[str] = None) -> List[ResponseModule]:
        with self._read("get_modules"):
            return DeployLedger.get_modules(project_name, client_name, as_of=as_of)


def init_store(app) -> DeployStore:
    """Create the application's store and register it as a Flask extension."""
    store = DeployStore(
        write_lock=WriteLockManager(timeout_seconds=app.config.get("WRITE_LOCK_TIMEOUT_SECONDS", 5)),
        default_max_deploys=app.config.get("DEFAULT_MAX_DEPLOYS", 10),
    )
    app.extensions[EXTENSION_KEY] = store
    return store


def get_deploy_store() -> DeployStore:
    """Return the store bound to the current Flask application."""
    return current_app.extensions[EXTENSION_KEY]
