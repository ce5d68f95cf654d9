"""
Event filters deciding which watch events lead to a reconcile
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from nonadmin_operator.config import NONADMIN_BACKUP, VELERO_BACKUP, ResourceKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreateEvent:
    object: Dict[str, Any]


@dataclass(frozen=True)
class UpdateEvent:
    object_old: Dict[str, Any]
    object_new: Dict[str, Any]

    @property
    def object(self) -> Dict[str, Any]:
        return self.object_new


@dataclass(frozen=True)
class DeleteEvent:
    object: Dict[str, Any]


def _describe(obj: Dict[str, Any]) -> str:
    metadata = obj.get('metadata') or {}
    return f"{obj.get('kind', 'object')} {metadata.get('namespace')}/{metadata.get('name')}"


def _generation(obj: Dict[str, Any]) -> Optional[int]:
    return (obj.get('metadata') or {}).get('generation')


class NonAdminBackupPredicate:
    """
    Filter for NonAdminBackup events

    Status writes bump resourceVersion but not generation, so dropping
    updates with an unchanged generation keeps the operator from reacting to
    its own status updates.

    kopf hands update handlers the stored diff base, which keeps the spec
    but not metadata.generation; without generations on both sides the spec
    itself is compared.
    """

    def create(self, event: CreateEvent) -> bool:
        logger.debug(f"Accepted Create event for {_describe(event.object)}")
        return True

    def update(self, event: UpdateEvent) -> bool:
        old_generation = _generation(event.object_old)
        new_generation = _generation(event.object_new)
        if old_generation is None or new_generation is None:
            changed = event.object_old.get('spec') != event.object_new.get('spec')
        else:
            changed = old_generation != new_generation

        if changed:
            logger.debug(f"Accepted Update event for {_describe(event.object_new)}")
            return True

        logger.debug(f"Rejected Update event for {_describe(event.object_new)}")
        return False

    def delete(self, event: DeleteEvent) -> bool:
        logger.debug(f"Accepted Delete event for {_describe(event.object)}")
        return True


class VeleroBackupPredicate:
    """Filter for Velero Backup events: only the OADP namespace counts"""

    def __init__(self, oadp_namespace: str):
        self.oadp_namespace = oadp_namespace

    def _in_oadp_namespace(self, obj: Dict[str, Any], kind: str) -> bool:
        namespace = (obj.get('metadata') or {}).get('namespace')
        if namespace == self.oadp_namespace:
            logger.debug(f"Accepted {kind} event for {_describe(obj)}")
            return True

        logger.debug(f"Rejected {kind} event for {_describe(obj)}")
        return False

    def create(self, event: CreateEvent) -> bool:
        return self._in_oadp_namespace(event.object, 'Create')

    def update(self, event: UpdateEvent) -> bool:
        return self._in_oadp_namespace(event.object_new, 'Update')

    def delete(self, event: DeleteEvent) -> bool:
        return self._in_oadp_namespace(event.object, 'Delete')


class CompositePredicate:
    """Applies the predicate matching the event object's kind"""

    def __init__(self, nonadmin_backup_predicate: NonAdminBackupPredicate,
                 velero_backup_predicate: VeleroBackupPredicate):
        self.nonadmin_backup_predicate = nonadmin_backup_predicate
        self.velero_backup_predicate = velero_backup_predicate

    def _predicate_for(self, obj: Dict[str, Any]):
        if _is_kind(obj, NONADMIN_BACKUP):
            return self.nonadmin_backup_predicate
        if _is_kind(obj, VELERO_BACKUP):
            return self.velero_backup_predicate
        logger.debug(f"Rejected event for unwatched {_describe(obj)}")
        return None

    def create(self, event: CreateEvent) -> bool:
        predicate = self._predicate_for(event.object)
        return predicate is not None and predicate.create(event)

    def update(self, event: UpdateEvent) -> bool:
        predicate = self._predicate_for(event.object_new)
        return predicate is not None and predicate.update(event)

    def delete(self, event: DeleteEvent) -> bool:
        predicate = self._predicate_for(event.object)
        return predicate is not None and predicate.delete(event)

    def accepts(self, event) -> bool:
        if isinstance(event, CreateEvent):
            return self.create(event)
        if isinstance(event, UpdateEvent):
            return self.update(event)
        if isinstance(event, DeleteEvent):
            return self.delete(event)
        return False


def _is_kind(obj: Dict[str, Any], resource: ResourceKind) -> bool:
    return obj.get('apiVersion') == resource.api_version and obj.get('kind') == resource.kind
