"""
Tests for the pure module-inventory reducer.
These run without a database - deploys and changes are plain Mock objects.
"""
from unittest.mock import Mock

from deploy_logger.entities import ResponseModule
from deploy_logger.models import ModuleStatus
from deploy_logger.services.module_state import ModuleStateReducer

ADD = ModuleStatus.ADD
REMOVE = ModuleStatus.REMOVE


def make_change(name, version, status):
    change = Mock()
    change.name = name
    change.version = version
    change.status = status
    return change


def make_deploy(deploy_id, client, *changes):
    deploy = Mock()
    deploy.deploy_id = deploy_id
    deploy.client = client
    deploy.modules = [make_change(*c) for c in changes]
    return deploy


class TestFold:

    def test_empty_history_yields_empty_inventory(self):
        assert ModuleStateReducer.fold([]) == []

    def test_add_remove_add_keeps_latest_version(self):
        changes = [
            make_change("ModuleX", "v0.1", ADD),
            make_change("ModuleX", "v0.1", REMOVE),
            make_change("ModuleX", "v0.2", ADD),
        ]
        assert ModuleStateReducer.fold(changes) == [ResponseModule("ModuleX", "v0.2", ADD)]

    def test_later_add_supersedes_older_version(self):
        changes = [
            make_change("ModuleX", "v0.1", ADD),
            make_change("ModuleX", "v0.3", ADD),
        ]
        assert ModuleStateReducer.fold(changes) == [ResponseModule("ModuleX", "v0.3", ADD)]

    def test_remove_of_different_version_still_removes_name(self):
        changes = [
            make_change("ModuleX", "v0.1", ADD),
            make_change("ModuleX", "v9.9", REMOVE),
        ]
        assert ModuleStateReducer.fold(changes) == []

    def test_remove_without_prior_add_is_excluded(self):
        assert ModuleStateReducer.fold([make_change("Ghost", "v1", REMOVE)]) == []

    def test_result_keeps_first_seen_order(self):
        changes = [
            make_change("B", "1", ADD),
            make_change("A", "1", ADD),
            make_change("B", "2", ADD),
        ]
        result = ModuleStateReducer.fold(changes)
        assert [m.name for m in result] == ["B", "A"]
        assert result[0].version == "2"

    def test_fold_is_repeatable(self):
        changes = [make_change("A", "1", ADD), make_change("B", "1", ADD)]
        assert ModuleStateReducer.fold(changes) == ModuleStateReducer.fold(changes)


class TestCollectChanges:

    def test_filters_by_client(self):
        deploys = [
            make_deploy("d1", "acme", ("A", "1", ADD)),
            make_deploy("d2", "other", ("B", "1", ADD)),
        ]
        changes = ModuleStateReducer.collect_changes(deploys, "acme")
        assert [c.name for c in changes] == ["A"]

    def test_client_match_is_exact(self):
        deploys = [make_deploy("d1", "Acme", ("A", "1", ADD))]
        assert ModuleStateReducer.collect_changes(deploys, "acme") == []


def test_response_module_serializes_status_value():
    assert ResponseModule("ModuleX", "v0.2").to_dict() == {
        "name": "ModuleX",
        "version": "v0.2",
        "status": "ADD",
    }
