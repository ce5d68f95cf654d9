"""Shared fixtures: an in-memory object store and NonAdminBackup factories."""

import copy
from typing import Any, Dict, List, Tuple

import pytest
from kubernetes.client.exceptions import ApiException

from nonadmin_operator.config import OperatorConfig
from nonadmin_operator.reconciler import NonAdminBackupReconciler

OADP_NAMESPACE = 'openshift-adp'
NOW = '2026-10-19T08:30:00Z'


class FakeObjectStore:
    """Stores objects as plain dicts and mimics API server versioning."""

    def __init__(self):
        self.nonadmin_backups: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.velero_backups: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.status_updates: List[Dict[str, Any]] = []
        self.creates: List[Dict[str, Any]] = []
        self.errors: Dict[str, ApiException] = {}
        self._resource_version = 1

    def _bump(self) -> str:
        self._resource_version += 1
        return str(self._resource_version)

    def fail_next(self, method: str, status: int, reason: str = '') -> None:
        self.errors[method] = ApiException(status=status, reason=reason)

    def _maybe_fail(self, method: str) -> None:
        error = self.errors.pop(method, None)
        if error is not None:
            raise error

    def add_nonadmin_backup(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        obj = copy.deepcopy(obj)
        obj['metadata'].setdefault('generation', 1)
        obj['metadata']['resourceVersion'] = self._bump()
        key = (obj['metadata']['namespace'], obj['metadata']['name'])
        self.nonadmin_backups[key] = obj
        return obj

    def get_nonadmin_backup(self, namespace, name):
        self._maybe_fail('get_nonadmin_backup')
        obj = self.nonadmin_backups.get((namespace, name))
        return copy.deepcopy(obj) if obj is not None else None

    def update_nonadmin_backup_status(self, body):
        self._maybe_fail('update_nonadmin_backup_status')
        key = (body['metadata']['namespace'], body['metadata']['name'])
        stored = self.nonadmin_backups.get(key)
        if stored is None:
            raise ApiException(status=404, reason='Not Found')
        if stored['metadata']['resourceVersion'] != body['metadata'].get('resourceVersion'):
            raise ApiException(status=409, reason='Conflict')
        stored['status'] = copy.deepcopy(body.get('status'))
        stored['metadata']['resourceVersion'] = self._bump()
        self.status_updates.append(copy.deepcopy(stored))
        return copy.deepcopy(stored)

    def get_velero_backup(self, namespace, name):
        self._maybe_fail('get_velero_backup')
        obj = self.velero_backups.get((namespace, name))
        return copy.deepcopy(obj) if obj is not None else None

    def create_velero_backup(self, body):
        self._maybe_fail('create_velero_backup')
        key = (body['metadata']['namespace'], body['metadata']['name'])
        if key in self.velero_backups:
            raise ApiException(status=409, reason='AlreadyExists')
        obj = copy.deepcopy(body)
        obj['metadata']['resourceVersion'] = self._bump()
        self.velero_backups[key] = obj
        self.creates.append(copy.deepcopy(obj))
        return copy.deepcopy(obj)

    def set_velero_backup_status(self, namespace, name, status):
        obj = self.velero_backups[(namespace, name)]
        obj['status'] = copy.deepcopy(status)
        obj['metadata']['resourceVersion'] = self._bump()


def make_nonadmin_backup(name='r1', namespace='ns1', backup_spec=None, generation=1, status=None):
    obj = {
        'apiVersion': 'nac.oadp.openshift.io/v1alpha1',
        'kind': 'NonAdminBackup',
        'metadata': {'name': name, 'namespace': namespace, 'generation': generation},
        'spec': {'backupSpec': backup_spec if backup_spec is not None else {'defaultVolumesToFsBackup': True}},
    }
    if status is not None:
        obj['status'] = status
    return obj


def make_velero_backup(name='ns1-abc', namespace=OADP_NAMESPACE, annotations=None):
    return {
        'apiVersion': 'velero.io/v1',
        'kind': 'Backup',
        'metadata': {'name': name, 'namespace': namespace, 'annotations': annotations or {}},
        'spec': {},
    }


@pytest.fixture
def config():
    return OperatorConfig(oadp_namespace=OADP_NAMESPACE)


@pytest.fixture
def store():
    return FakeObjectStore()


@pytest.fixture
def reconciler(store, config):
    return NonAdminBackupReconciler(store, config, now_fn=lambda: NOW)
