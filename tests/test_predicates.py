"""Tests for watch event filters."""

import copy

import pytest

from conftest import OADP_NAMESPACE, make_nonadmin_backup, make_velero_backup
from nonadmin_operator.predicates import (
    CompositePredicate,
    CreateEvent,
    DeleteEvent,
    NonAdminBackupPredicate,
    UpdateEvent,
    VeleroBackupPredicate,
)


@pytest.fixture
def composite():
    return CompositePredicate(NonAdminBackupPredicate(), VeleroBackupPredicate(OADP_NAMESPACE))


class TestNonAdminBackupPredicate:

    def test_create_and_delete_are_accepted(self):
        predicate = NonAdminBackupPredicate()
        nab = make_nonadmin_backup()
        assert predicate.create(CreateEvent(nab))
        assert predicate.delete(DeleteEvent(nab))

    def test_spec_change_is_accepted(self):
        old = make_nonadmin_backup(generation=1)
        new = make_nonadmin_backup(generation=2)
        assert NonAdminBackupPredicate().update(UpdateEvent(old, new))

    def test_status_only_update_is_rejected(self):
        old = make_nonadmin_backup(generation=3)
        new = copy.deepcopy(old)
        new['status'] = {'phase': 'New'}
        new['metadata']['resourceVersion'] = '42'
        assert not NonAdminBackupPredicate().update(UpdateEvent(old, new))

    def test_diff_base_without_generation_compares_spec(self):
        old = {'spec': {'backupSpec': {}}, 'metadata': {'labels': {'a': 'b'}}}
        relabelled = {'spec': {'backupSpec': {}}, 'metadata': {'labels': {'a': 'c'}}}
        edited = {'spec': {'backupSpec': {'ttl': '1h'}}, 'metadata': {'labels': {'a': 'b'}}}

        predicate = NonAdminBackupPredicate()
        assert not predicate.update(UpdateEvent(old, relabelled))
        assert predicate.update(UpdateEvent(old, edited))


class TestVeleroBackupPredicate:

    def test_oadp_namespace_events_are_accepted(self):
        predicate = VeleroBackupPredicate(OADP_NAMESPACE)
        backup = make_velero_backup()
        assert predicate.create(CreateEvent(backup))
        assert predicate.update(UpdateEvent(backup, backup))
        assert predicate.delete(DeleteEvent(backup))

    def test_other_namespaces_are_rejected(self):
        predicate = VeleroBackupPredicate(OADP_NAMESPACE)
        backup = make_velero_backup(namespace='ns1')
        assert not predicate.create(CreateEvent(backup))
        assert not predicate.update(UpdateEvent(backup, backup))
        assert not predicate.delete(DeleteEvent(backup))


class TestCompositePredicate:

    def test_dispatches_by_kind(self, composite):
        old = make_nonadmin_backup(generation=1)
        assert not composite.accepts(UpdateEvent(old, copy.deepcopy(old)))
        assert composite.accepts(UpdateEvent(old, make_nonadmin_backup(generation=2)))

        assert composite.accepts(CreateEvent(make_velero_backup()))
        assert not composite.accepts(CreateEvent(make_velero_backup(namespace='elsewhere')))

    def test_nonadmin_backup_namespace_is_not_restricted(self, composite):
        assert composite.accepts(CreateEvent(make_nonadmin_backup(namespace='tenant')))

    def test_unknown_kinds_are_rejected(self, composite):
        pod = {'apiVersion': 'v1', 'kind': 'Pod', 'metadata': {'namespace': OADP_NAMESPACE, 'name': 'p'}}
        assert not composite.accepts(CreateEvent(pod))
        assert not composite.accepts(DeleteEvent(pod))
        assert not composite.accepts(object())
