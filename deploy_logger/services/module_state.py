"""
Pure module-inventory reducer.

Folds a client's chronological module-change history into the set of
modules currently installed. Contains no database dependencies - works
with any objects exposing the attributes below, so the same history can be
re-folded at will.
"""
from typing import Dict, Iterable, List, Sequence, Tuple

from deploy_logger.entities import ResponseModule
from deploy_logger.models import ModuleStatus


class ModuleStateReducer:
    """Derives module inventories from module-change history."""

    @staticmethod
    def collect_changes(deploys: Sequence, client: str) -> List:
        """
        Gather the module changes that apply to one client, oldest first.

        Args:
            deploys: Deploy-like objects (``client``, ``modules``) ordered
                oldest first; callers truncate history before passing it in
            client: Client name to filter on (exact match)

        Returns:
            Module-change objects in the order they must be applied
        """
        changes = []
        for deploy in deploys:
            if deploy.client == client:
                changes.extend(deploy.modules)
        return changes

    @staticmethod
    def fold(changes: Iterable) -> List[ResponseModule]:
        """
        Apply changes in order and return the surviving inventory.

        The key is the module name alone: a later change for a name replaces
        whatever was recorded before, whatever its version. Names whose last
        change is REMOVE are dropped.
        """
        latest: Dict[str, Tuple[str, ModuleStatus]] = {}
        for change in changes:
            latest[change.name] = (change.version, change.status)

        return [
            ResponseModule(name=name, version=version, status=ModuleStatus.ADD)
            for name, (version, status) in latest.items()
            if status == ModuleStatus.ADD
        ]

    @staticmethod
    def inventory(deploys: Sequence, client: str) -> List[ResponseModule]:
        """Collect and fold in one step."""
        changes = ModuleStateReducer.collect_changes(deploys, client)
        return ModuleStateReducer.fold(changes)
