"""
Routing of Velero Backup events to the NonAdminBackup that requested them
"""

import logging
from typing import Any, Dict, Optional

from nonadmin_operator.naming import ObjectKey, get_origin_key
from nonadmin_operator.predicates import CreateEvent, DeleteEvent, UpdateEvent

logger = logging.getLogger(__name__)


class VeleroBackupHandler:
    """
    Maps Velero Backup events onto the NonAdminBackup to reconcile

    The origin is read from the trace annotations and kept in an index keyed
    by the Velero Backup. A Backup seen once with valid annotations keeps
    routing to its origin through the index if the annotations are later
    stripped or mangled. Deletions evict the index entry and route nothing;
    recreating a Backup somebody removed is not wanted.
    """

    def __init__(self):
        self._origins: Dict[ObjectKey, ObjectKey] = {}

    def __len__(self) -> int:
        return len(self._origins)

    def lookup(self, velero_key: ObjectKey) -> Optional[ObjectKey]:
        return self._origins.get(velero_key)

    def create(self, event: CreateEvent) -> Optional[ObjectKey]:
        return self._route(event.object)

    def update(self, event: UpdateEvent) -> Optional[ObjectKey]:
        return self._route(event.object_new)

    def delete(self, event: DeleteEvent) -> Optional[ObjectKey]:
        velero_key = ObjectKey.from_object(event.object)
        origin = self._origins.pop(velero_key, None) or _annotated_origin(event.object)
        if origin is None:
            logger.debug(f"VeleroBackup {velero_key} deleted, no NonAdminBackup origin")
        else:
            logger.info(f"VeleroBackup {velero_key} deleted, "
                        f"NonAdminBackup {origin} keeps its last mirrored status")
        return None

    def handle(self, event) -> Optional[ObjectKey]:
        if isinstance(event, CreateEvent):
            return self.create(event)
        if isinstance(event, UpdateEvent):
            return self.update(event)
        if isinstance(event, DeleteEvent):
            return self.delete(event)
        return None

    def _route(self, obj: Dict[str, Any]) -> Optional[ObjectKey]:
        velero_key = ObjectKey.from_object(obj)
        origin = _annotated_origin(obj)
        if origin is not None:
            self._origins[velero_key] = origin
            logger.debug(f"VeleroBackup {velero_key} event routed to NonAdminBackup {origin}")
            return origin

        origin = self._origins.get(velero_key)
        if origin is None:
            logger.debug(f"VeleroBackup {velero_key} has no valid NonAdminBackup origin, ignoring")
            return None

        logger.warning(f"VeleroBackup {velero_key} lost its origin annotations, "
                       f"routing to indexed NonAdminBackup {origin}")
        return origin


def _annotated_origin(obj: Dict[str, Any]) -> Optional[ObjectKey]:
    return get_origin_key((obj.get('metadata') or {}).get('annotations'))
