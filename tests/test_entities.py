"""
Tests for request parsing and boundary validation.
"""
import pytest

from deploy_logger.entities import (
    RequestDeploy,
    RequestEvent,
    RequestProject,
    parse_deploy_status,
    parse_max_deploys,
    parse_module_status,
)
from deploy_logger.errors import ValidationError
from deploy_logger.models import DeployStatus, ModuleStatus


def deploy_payload(**overrides):
    payload = {
        "user": "testUser",
        "commit": {"branch": "master", "hash": "abc124ada"},
        "description": "testestess",
        "changelog_url": "http://google.com/",
        "version": "1.1.1",
        "automatic": False,
        "client": "Cliente",
        "modules": [{"name": "ModuleX", "version": "v0.1", "status": "ADD"}],
        "configuration": "This config",
    }
    payload.update(overrides)
    return payload


# ==============================================================================
# STATUS ENUMS
# ==============================================================================

def test_parse_deploy_status_accepts_every_status():
    for status in ["STARTED", "SKIPPED", "FAILED", "SUCCESS", "LOG"]:
        assert parse_deploy_status(status) == DeployStatus(status)


def test_parse_deploy_status_is_case_insensitive():
    assert parse_deploy_status("success") == DeployStatus.SUCCESS


def test_parse_deploy_status_rejects_unknown_value():
    with pytest.raises(ValidationError) as excinfo:
        parse_deploy_status("DONE")
    assert "must be one of" in excinfo.value.message


def test_parse_deploy_status_rejects_missing_value():
    with pytest.raises(ValidationError):
        parse_deploy_status(None)


def test_parse_module_status_rejects_unknown_value():
    with pytest.raises(ValidationError):
        parse_module_status("UPGRADE")


def test_parse_module_status_passes_enum_through():
    assert parse_module_status(ModuleStatus.REMOVE) is ModuleStatus.REMOVE


# ==============================================================================
# MAX PARAMETER
# ==============================================================================

def test_parse_max_defaults_when_missing():
    assert parse_max_deploys(None, 10) == 10
    assert parse_max_deploys("", 10) == 10


def test_parse_max_accepts_string_integer():
    assert parse_max_deploys("1", 10) == 1


def test_parse_max_accepts_zero():
    assert parse_max_deploys("0", 10) == 0


@pytest.mark.parametrize("value", ["-1", "abc", "1.5", True])
def test_parse_max_rejects_invalid(value):
    with pytest.raises(ValidationError):
        parse_max_deploys(value, 10)


# ==============================================================================
# REQUEST BODIES
# ==============================================================================

class TestRequestProject:

    def test_parses_full_body(self):
        project = RequestProject.from_payload({
            "name": "TestProj",
            "description": "Proj Description Test",
            "repository_url": "http://bitbucket.com/abc",
        })
        assert project.name == "TestProj"
        assert project.repository_url == "http://bitbucket.com/abc"

    def test_optional_fields_default_to_empty(self):
        project = RequestProject.from_payload({"name": "TestProj"})
        assert project.description == ""
        assert project.repository_url == ""

    def test_name_is_kept_verbatim(self):
        assert RequestProject.from_payload({"name": "TestProj "}).name == "TestProj "

    @pytest.mark.parametrize("body", [{}, {"name": ""}, {"name": "   "}, {"name": 12}, {"name": "a/b"}, []])
    def test_rejects_bad_name(self, body):
        with pytest.raises(ValidationError):
            RequestProject.from_payload(body)


class TestRequestDeploy:

    def test_parses_full_body(self):
        deploy = RequestDeploy.from_payload(deploy_payload())
        assert deploy.user == "testUser"
        assert deploy.commit.branch == "master"
        assert deploy.commit.hash == "abc124ada"
        assert deploy.modules[0].status == ModuleStatus.ADD
        assert deploy.configuration == "This config"

    def test_modules_default_to_empty_list(self):
        payload = deploy_payload()
        del payload["modules"]
        assert RequestDeploy.from_payload(payload).modules == []

    def test_configuration_is_optional(self):
        payload = deploy_payload()
        del payload["configuration"]
        assert RequestDeploy.from_payload(payload).configuration is None

    def test_rejects_missing_commit(self):
        payload = deploy_payload()
        del payload["commit"]
        with pytest.raises(ValidationError):
            RequestDeploy.from_payload(payload)

    def test_rejects_unknown_module_status(self):
        payload = deploy_payload(modules=[{"name": "ModuleX", "version": "v0.1", "status": "UPGRADE"}])
        with pytest.raises(ValidationError):
            RequestDeploy.from_payload(payload)

    def test_rejects_non_boolean_automatic(self):
        with pytest.raises(ValidationError):
            RequestDeploy.from_payload(deploy_payload(automatic="yes"))

    def test_rejects_missing_client(self):
        with pytest.raises(ValidationError):
            RequestDeploy.from_payload(deploy_payload(client=""))


class TestRequestEvent:

    def test_parses_body(self):
        event = RequestEvent.from_payload({"status": "SUCCESS", "description": "done"})
        assert event.status == DeployStatus.SUCCESS
        assert event.description == "done"

    def test_rejects_unknown_status(self):
        with pytest.raises(ValidationError):
            RequestEvent.from_payload({"status": "WHATEVER"})
