"""
Object store access for NonAdminBackups and Velero Backups
"""

import logging
from typing import Any, Dict, Optional

import kubernetes

from nonadmin_operator.config import NONADMIN_BACKUP, VELERO_BACKUP

logger = logging.getLogger(__name__)


class KubernetesObjectStore:
    """
    Thin wrapper over the custom objects API

    Reads return None for objects that do not exist; every other API error
    propagates to the caller.
    """

    def __init__(self, api: Optional[kubernetes.client.CustomObjectsApi] = None):
        self._api = api

    @property
    def api(self) -> kubernetes.client.CustomObjectsApi:
        if self._api is None:
            self._api = kubernetes.client.CustomObjectsApi()
        return self._api

    def get_nonadmin_backup(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        return self._get(NONADMIN_BACKUP, namespace, name)

    def update_nonadmin_backup_status(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Replace the status subresource

        The body carries metadata.resourceVersion, so a concurrent write
        makes the API server answer 409 Conflict instead of overwriting it.
        """
        metadata = body['metadata']
        return self.api.replace_namespaced_custom_object_status(
            group=NONADMIN_BACKUP.group,
            version=NONADMIN_BACKUP.version,
            namespace=metadata['namespace'],
            plural=NONADMIN_BACKUP.plural,
            name=metadata['name'],
            body=body
        )

    def get_velero_backup(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        return self._get(VELERO_BACKUP, namespace, name)

    def create_velero_backup(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return self.api.create_namespaced_custom_object(
            group=VELERO_BACKUP.group,
            version=VELERO_BACKUP.version,
            namespace=body['metadata']['namespace'],
            plural=VELERO_BACKUP.plural,
            body=body
        )

    def _get(self, resource, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        try:
            return self.api.get_namespaced_custom_object(
                group=resource.group,
                version=resource.version,
                namespace=namespace,
                plural=resource.plural,
                name=name
            )
        except kubernetes.client.exceptions.ApiException as e:
            if e.status == 404:
                logger.debug(f"{resource.kind} {namespace}/{name} not found")
                return None
            raise
