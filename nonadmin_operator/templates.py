import copy
from typing import Dict, Any
from nonadmin_operator.config import VELERO_BACKUP
from nonadmin_operator.naming import get_nonadmin_backup_annotations, get_nonadmin_labels


class ManifestTemplates:
    """
    Templates for Kubernetes manifests used by the operator
    """

    @staticmethod
    def backup_spec(nonadmin_backup: Dict[str, Any]) -> Dict[str, Any]:
        """
        Copy of the tenant backup spec narrowed to the tenant namespace
        """
        namespace = nonadmin_backup['metadata']['namespace']
        spec = copy.deepcopy((nonadmin_backup.get('spec') or {}).get('backupSpec') or {})

        # The Backup may only ever see the namespace it was requested from
        spec['includedNamespaces'] = [namespace]
        return spec

    @staticmethod
    def velero_backup_manifest(
        nonadmin_backup: Dict[str, Any],
        name: str,
        namespace: str
    ) -> Dict[str, Any]:
        """
        Generate Velero Backup manifest for a NonAdminBackup
        """
        origin = nonadmin_backup['metadata']

        return {
            'apiVersion': VELERO_BACKUP.api_version,
            'kind': VELERO_BACKUP.kind,
            'metadata': {
                'name': name,
                'namespace': namespace,
                'labels': get_nonadmin_labels(),
                'annotations': get_nonadmin_backup_annotations(
                    namespace=origin['namespace'],
                    name=origin['name']
                )
            },
            'spec': ManifestTemplates.backup_spec(nonadmin_backup)
        }
