"""
Naming, label and annotation helpers for Velero Backups owned by the operator
"""

import hashlib
import re
from typing import Dict, Mapping, NamedTuple, Optional

import kopf

# Kubernetes object names are DNS-1123 subdomains
MAX_OBJECT_NAME_LENGTH = 253
NAME_HASH_LENGTH = 14

OADP_LABEL = 'openshift.io/oadp'
OADP_LABEL_VALUE = 'True'
MANAGED_BY_LABEL = 'app.kubernetes.io/managed-by'
MANAGED_BY_LABEL_VALUE = 'oadp-nac-controller'

NAB_ORIGIN_NAMESPACE_ANNOTATION = 'openshift.io/oadp-nab-origin-namespace'
NAB_ORIGIN_NAME_ANNOTATION = 'openshift.io/oadp-nab-origin-name'

_DNS1123_LABEL = re.compile(r'^[a-z0-9]([-a-z0-9]*[a-z0-9])?$')
_DNS1123_SUBDOMAIN = re.compile(
    r'^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$'
)


class NamingError(kopf.PermanentError):
    """Raised when a Velero Backup name cannot be derived"""


class ObjectKey(NamedTuple):
    """Namespaced identity of a Kubernetes object"""
    namespace: str
    name: str

    def __str__(self) -> str:
        return f'{self.namespace}/{self.name}'

    @classmethod
    def from_object(cls, obj: Mapping) -> 'ObjectKey':
        metadata = obj.get('metadata') or {}
        return cls(metadata.get('namespace', ''), metadata.get('name', ''))


def generate_velero_backup_name(namespace: str, name: str) -> str:
    """
    Derive the Velero Backup name for a NonAdminBackup

    The name is the tenant namespace followed by a hash of the full
    ``namespace/name`` pair, so two requests never share a Backup and the
    result does not depend on anything but its inputs.

    Raises:
        NamingError: If namespace or name is empty
    """
    if not namespace or not name:
        raise NamingError(
            f"Unable to generate Velero Backup name for {namespace!r}/{name!r}"
        )

    digest = hashlib.sha256(f'{namespace}/{name}'.encode('utf-8')).hexdigest()
    name_hash = digest[:NAME_HASH_LENGTH]

    max_namespace_length = MAX_OBJECT_NAME_LENGTH - NAME_HASH_LENGTH - 1
    return f'{namespace[:max_namespace_length]}-{name_hash}'


def get_nonadmin_labels() -> Dict[str, str]:
    """Labels marking a Velero Backup as managed by this operator"""
    return {
        OADP_LABEL: OADP_LABEL_VALUE,
        MANAGED_BY_LABEL: MANAGED_BY_LABEL_VALUE,
    }


def get_nonadmin_backup_annotations(namespace: str, name: str) -> Dict[str, str]:
    """Annotations tracing a Velero Backup back to its NonAdminBackup"""
    return {
        NAB_ORIGIN_NAMESPACE_ANNOTATION: namespace,
        NAB_ORIGIN_NAME_ANNOTATION: name,
    }


def get_origin_key(annotations: Optional[Mapping[str, str]]) -> Optional[ObjectKey]:
    """
    Read the originating NonAdminBackup key from trace annotations

    Returns None when the annotations are missing or malformed.
    """
    if not annotations:
        return None

    namespace = annotations.get(NAB_ORIGIN_NAMESPACE_ANNOTATION)
    name = annotations.get(NAB_ORIGIN_NAME_ANNOTATION)
    if not isinstance(namespace, str) or not isinstance(name, str):
        return None

    if len(namespace) > 63 or not _DNS1123_LABEL.match(namespace):
        return None
    if len(name) > MAX_OBJECT_NAME_LENGTH or not _DNS1123_SUBDOMAIN.match(name):
        return None

    return ObjectKey(namespace, name)
