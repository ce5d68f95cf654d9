"""Tests for the custom objects API wrapper."""

from unittest import mock

import pytest
from kubernetes.client.exceptions import ApiException

from conftest import OADP_NAMESPACE, make_nonadmin_backup, make_velero_backup
from nonadmin_operator.store import KubernetesObjectStore


@pytest.fixture
def api():
    return mock.Mock()


def test_get_returns_object(api):
    api.get_namespaced_custom_object.return_value = {'metadata': {'name': 'r1'}}
    store = KubernetesObjectStore(api)

    assert store.get_nonadmin_backup('ns1', 'r1') == {'metadata': {'name': 'r1'}}
    api.get_namespaced_custom_object.assert_called_once_with(
        group='nac.oadp.openshift.io', version='v1alpha1', namespace='ns1',
        plural='nonadminbackups', name='r1'
    )


def test_not_found_is_none(api):
    api.get_namespaced_custom_object.side_effect = ApiException(status=404)
    store = KubernetesObjectStore(api)

    assert store.get_velero_backup(OADP_NAMESPACE, 'missing') is None


def test_other_errors_propagate(api):
    api.get_namespaced_custom_object.side_effect = ApiException(status=403)
    store = KubernetesObjectStore(api)

    with pytest.raises(ApiException):
        store.get_velero_backup(OADP_NAMESPACE, 'forbidden')


def test_status_update_uses_status_subresource(api):
    store = KubernetesObjectStore(api)
    body = make_nonadmin_backup()

    store.update_nonadmin_backup_status(body)

    api.replace_namespaced_custom_object_status.assert_called_once_with(
        group='nac.oadp.openshift.io', version='v1alpha1', namespace='ns1',
        plural='nonadminbackups', name='r1', body=body
    )


def test_create_velero_backup(api):
    store = KubernetesObjectStore(api)
    body = make_velero_backup()

    store.create_velero_backup(body)

    api.create_namespaced_custom_object.assert_called_once_with(
        group='velero.io', version='v1', namespace=OADP_NAMESPACE, plural='backups', body=body
    )
