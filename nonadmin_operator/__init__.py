"""
NonAdminBackup Operator for Kubernetes

This operator lets tenants request Velero backups of their own namespace by
creating NonAdminBackup custom resources. Each accepted request is turned into
a Velero Backup in the privileged OADP namespace, and the Backup's status is
mirrored back onto the request.
"""

__version__ = "0.1.0"

# Import main components for easier access
from nonadmin_operator.reconciler import NonAdminBackupReconciler, ReconcileResult
from nonadmin_operator.predicates import (
    CompositePredicate,
    NonAdminBackupPredicate,
    VeleroBackupPredicate,
)
from nonadmin_operator.routing import VeleroBackupHandler
from nonadmin_operator.templates import ManifestTemplates
from nonadmin_operator.config import OperatorConfig

__all__ = [
    'NonAdminBackupReconciler',
    'ReconcileResult',
    'CompositePredicate',
    'NonAdminBackupPredicate',
    'VeleroBackupPredicate',
    'VeleroBackupHandler',
    'ManifestTemplates',
    'OperatorConfig',
]
