"""
Shared fixtures: an application on in-memory SQLite, its test client and store.
"""
import pytest

from deploy_logger import create_app
from deploy_logger.config import TestingConfig
from deploy_logger.entities import Commit, RequestDeploy, RequestModule
from deploy_logger.models import ModuleStatus, db
from deploy_logger.store import get_deploy_store


@pytest.fixture
def app():
    """Create Flask application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def store(app):
    return get_deploy_store()


def make_deploy(client="Cliente", modules=None, version="1.1.1", user="testUser"):
    """Build a deploy request like the ones a build pipeline sends."""
    if modules is None:
        modules = [("ModuleX", "v0.1", ModuleStatus.ADD)]
    return RequestDeploy(
        user=user,
        commit=Commit(branch="master", hash="abc124ada"),
        version=version,
        client=client,
        description="testestess",
        changelog_url="http://google.com/",
        automatic=False,
        modules=[RequestModule(name=n, version=v, status=s) for n, v, s in modules],
        configuration="This config",
    )


@pytest.fixture
def deploy_factory():
    return make_deploy
