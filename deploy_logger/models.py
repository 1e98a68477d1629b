from enum import Enum

from flask_sqlalchemy import SQLAlchemy

from deploy_logger.datetime_utils import format_datetime_iso, utcnow

db = SQLAlchemy()


class DeployStatus(Enum):
    STARTED = "STARTED"
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"
    SUCCESS = "SUCCESS"
    LOG = "LOG"


class ModuleStatus(Enum):
    ADD = "ADD"
    REMOVE = "REMOVE"


class Project(db.Model):
    """A deployable software project, identified by its unique name."""
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, nullable=False, default="")
    repository_url = db.Column(db.String(512), nullable=False, default="")
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    # Newest first; surrogate key order is insertion order
    deploys = db.relationship(
        "Deploy",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Deploy.id.desc()",
    )

    def __repr__(self):
        return f"<Project {self.name}>"

    def to_dict(self, include_deploys=False):
        data = {
            'name': self.name,
            'description': self.description,
            'repository_url': self.repository_url,
            'created_at': format_datetime_iso(self.created_at),
        }
        if include_deploys:
            data['deploys'] = [deploy.to_dict() for deploy in self.deploys]
        return data


class Deploy(db.Model):
    """One recorded deployment of a project to a client."""
    __tablename__ = "deploys"

    id = db.Column(db.Integer, primary_key=True)
    deploy_id = db.Column(db.String(36), unique=True, nullable=False, index=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )

    user = db.Column(db.String(128), nullable=False)
    commit_branch = db.Column(db.String(256), nullable=False)
    commit_hash = db.Column(db.String(64), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    changelog_url = db.Column(db.String(512), nullable=False, default="")
    version = db.Column(db.String(64), nullable=False)
    automatic = db.Column(db.Boolean, nullable=False, default=False)
    client = db.Column(db.String(128), nullable=False, index=True)
    configuration = db.Column(db.Text, nullable=True)
    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow)

    project = db.relationship("Project", back_populates="deploys")
    events = db.relationship(
        "Event",
        back_populates="deploy",
        cascade="all, delete-orphan",
        order_by="Event.id",
    )
    modules = db.relationship(
        "ModuleChange",
        back_populates="deploy",
        cascade="all, delete-orphan",
        order_by="ModuleChange.position",
    )

    def __repr__(self):
        return f"<Deploy {self.deploy_id} - {self.version} - {self.client}>"

    def to_dict(self):
        return {
            'id': self.deploy_id,
            'project_name': self.project.name if self.project else None,
            'user': self.user,
            'commit': {
                'branch': self.commit_branch,
                'hash': self.commit_hash,
            },
            'description': self.description,
            'changelog_url': self.changelog_url,
            'version': self.version,
            'automatic': self.automatic,
            'client': self.client,
            'modules': [module.to_dict() for module in self.modules],
            'events': [event.to_dict() for event in self.events],
            'configuration': self.configuration,
            'timestamp': format_datetime_iso(self.timestamp),
        }


class Event(db.Model):
    """Append-only status update attached to a deploy."""
    __tablename__ = "events"

    id = db.Column(db.Integer, primary_key=True)
    deploy_pk = db.Column(
        db.Integer, db.ForeignKey("deploys.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = db.Column(db.Enum(DeployStatus), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow)

    deploy = db.relationship("Deploy", back_populates="events")

    def __repr__(self):
        return f"<Event {self.status.value} - {self.description[:50]}>"

    def to_dict(self):
        return {
            'status': self.status.value,
            'description': self.description,
            'timestamp': format_datetime_iso(self.timestamp),
        }


class ModuleChange(db.Model):
    """A module added or removed at a given version as part of a deploy."""
    __tablename__ = "module_changes"

    id = db.Column(db.Integer, primary_key=True)
    deploy_pk = db.Column(
        db.Integer, db.ForeignKey("deploys.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = db.Column(db.Integer, nullable=False)
    name = db.Column(db.String(256), nullable=False)
    version = db.Column(db.String(64), nullable=False)
    status = db.Column(db.Enum(ModuleStatus), nullable=False)

    deploy = db.relationship("Deploy", back_populates="modules")

    __table_args__ = (
        db.Index('idx_module_change_deploy_position', 'deploy_pk', 'position'),
    )

    def __repr__(self):
        return f"<ModuleChange {self.status.value} {self.name} {self.version}>"

    def to_dict(self):
        return {
            'name': self.name,
            'version': self.version,
            'status': self.status.value,
        }
