"""Tests for routing Velero Backup events to their NonAdminBackup."""

import logging

from conftest import make_velero_backup
from nonadmin_operator.naming import (
    NAB_ORIGIN_NAME_ANNOTATION,
    NAB_ORIGIN_NAMESPACE_ANNOTATION,
    ObjectKey,
    get_nonadmin_backup_annotations,
)
from nonadmin_operator.predicates import CreateEvent, DeleteEvent, UpdateEvent
from nonadmin_operator.routing import VeleroBackupHandler

ORIGIN = ObjectKey('ns1', 'r1')
VELERO_KEY = ObjectKey('openshift-adp', 'ns1-abc')


def _traced_backup(name='ns1-abc'):
    return make_velero_backup(name=name, annotations=get_nonadmin_backup_annotations('ns1', 'r1'))


def test_update_routes_to_origin():
    handler = VeleroBackupHandler()
    backup = _traced_backup()

    assert handler.update(UpdateEvent(backup, backup)) == ORIGIN


def test_create_routes_to_origin_and_indexes_it():
    handler = VeleroBackupHandler()

    assert handler.create(CreateEvent(_traced_backup())) == ORIGIN
    assert handler.lookup(VELERO_KEY) == ORIGIN


def test_unannotated_backup_is_dropped():
    handler = VeleroBackupHandler()

    assert handler.handle(CreateEvent(make_velero_backup())) is None
    assert len(handler) == 0


def test_stripped_annotations_route_through_index():
    handler = VeleroBackupHandler()
    backup = _traced_backup()
    handler.handle(CreateEvent(backup))

    stripped = make_velero_backup(name='ns1-abc')
    assert handler.handle(UpdateEvent(backup, stripped)) == ORIGIN

    mangled = make_velero_backup(name='ns1-abc', annotations={
        NAB_ORIGIN_NAMESPACE_ANNOTATION: 'NOT A NAMESPACE',
        NAB_ORIGIN_NAME_ANNOTATION: 'r1',
    })
    assert handler.handle(UpdateEvent(stripped, mangled)) == ORIGIN


def test_stripped_annotations_without_index_entry_are_dropped():
    handler = VeleroBackupHandler()
    stripped = make_velero_backup(name='ns1-abc')

    assert handler.handle(UpdateEvent(stripped, stripped)) is None


def test_delete_evicts_and_routes_nothing(caplog):
    handler = VeleroBackupHandler()
    backup = _traced_backup()
    handler.handle(CreateEvent(backup))

    with caplog.at_level(logging.INFO, logger='nonadmin_operator.routing'):
        assert handler.handle(DeleteEvent(backup)) is None

    assert handler.lookup(VELERO_KEY) is None
    assert any(record.levelno == logging.INFO and 'ns1/r1' in record.getMessage()
               for record in caplog.records)


def test_delete_after_eviction_no_longer_routes_updates():
    handler = VeleroBackupHandler()
    backup = _traced_backup()
    handler.handle(CreateEvent(backup))
    handler.handle(DeleteEvent(backup))

    stripped = make_velero_backup(name='ns1-abc')
    assert handler.handle(UpdateEvent(stripped, stripped)) is None
