"""
Validation of the backup spec embedded in a NonAdminBackup
"""

from typing import Any, Mapping, Optional

import kopf

from nonadmin_operator.config import SpecPolicyConfig


class InvalidBackupSpec(kopf.PermanentError):
    """Raised when a NonAdminBackup spec violates the tenant policy"""


def validate_backup_spec(nonadmin_backup: Mapping[str, Any],
                         policy: Optional[SpecPolicyConfig] = None) -> None:
    """
    Validate the backup spec of a NonAdminBackup

    Only the structure of the object is inspected; it is never modified.
    Other namespaces listed in includedNamespaces are not an error, the
    Velero Backup is narrowed to the request namespace when it is built.

    Raises:
        InvalidBackupSpec: If the spec is missing or sets a restricted field
    """
    policy = policy or SpecPolicyConfig()

    backup_spec = (nonadmin_backup.get('spec') or {}).get('backupSpec')
    if backup_spec is None:
        raise InvalidBackupSpec("BackupSpec is not defined")
    if not isinstance(backup_spec, Mapping):
        raise InvalidBackupSpec("spec.backupSpec must be an object")

    included = backup_spec.get('includedNamespaces')
    if included is not None and (
            not isinstance(included, list) or not all(isinstance(ns, str) for ns in included)):
        raise InvalidBackupSpec(
            "spec.backupSpec.includedNamespaces must be a list of namespace names"
        )

    for field_name in policy.forbidden_fields:
        if backup_spec.get(field_name):
            raise InvalidBackupSpec(
                f"spec.backupSpec.{field_name} is restricted for NonAdminBackup"
            )

    if backup_spec.get('includeClusterResources') and not policy.allow_cluster_resources:
        raise InvalidBackupSpec(
            "spec.backupSpec.includeClusterResources can not be enabled for NonAdminBackup"
        )
