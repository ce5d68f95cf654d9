"""
Phase, condition and Velero Backup reference bookkeeping for NonAdminBackup status
"""

import copy
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class NonAdminBackupPhase(str, Enum):
    """Coarse lifecycle stage of a NonAdminBackup"""

    NEW = 'New'
    BACKING_OFF = 'BackingOff'
    CREATED = 'Created'


class NonAdminCondition(str, Enum):
    """Condition types recorded on a NonAdminBackup"""

    ACCEPTED = 'Accepted'
    QUEUED = 'Queued'


class ConditionStatus(str, Enum):
    """Status values of a metav1.Condition"""

    TRUE = 'True'
    FALSE = 'False'
    UNKNOWN = 'Unknown'


# Velero Backup status fields mirrored into status.veleroBackup.status
SCALAR_STATUS_FIELDS = (
    'version',
    'formatVersion',
    'expiration',
    'phase',
    'startTimestamp',
    'completionTimestamp',
    'volumeSnapshotsAttempted',
    'volumeSnapshotsCompleted',
    'failureReason',
    'warnings',
    'errors',
    'csiVolumeSnapshotsAttempted',
    'csiVolumeSnapshotsCompleted',
    'backupItemOperationsAttempted',
    'backupItemOperationsCompleted',
    'backupItemOperationsFailed',
)
LIST_STATUS_FIELDS = ('validationErrors',)
NESTED_STATUS_FIELDS = {
    'progress': ('totalItems', 'itemsBackedUp'),
    'hookStatus': ('hooksAttempted', 'hooksFailed'),
}


def utc_now_rfc3339() -> str:
    """Current UTC time in the format Kubernetes uses for condition timestamps"""
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


def update_phase(status: Dict[str, Any], phase: NonAdminBackupPhase) -> bool:
    """
    Set status.phase and return True if it changed

    A phase is never cleared, and once set it never moves back to New.
    """
    if not phase:
        return False

    current = status.get('phase') or ''
    new = NonAdminBackupPhase(phase).value
    if current == new:
        return False
    if current and new == NonAdminBackupPhase.NEW.value:
        return False

    status['phase'] = new
    return True


def find_status_condition(conditions: Optional[List[Dict[str, Any]]],
                          condition_type: str) -> Optional[Dict[str, Any]]:
    for condition in conditions or []:
        if condition.get('type') == condition_type:
            return condition
    return None


def is_status_condition_true(conditions: Optional[List[Dict[str, Any]]],
                             condition_type: str) -> bool:
    condition = find_status_condition(conditions, condition_type)
    return condition is not None and condition.get('status') == ConditionStatus.TRUE.value


def set_status_condition(
    conditions: List[Dict[str, Any]],
    condition_type: str,
    condition_status: str,
    reason: str,
    message: str,
    now: str,
    observed_generation: Optional[int] = None,
) -> bool:
    """
    Insert or update a condition keyed by its type

    lastTransitionTime only moves when the condition status flips.

    Returns:
        bool: True if the conditions list was modified
    """
    condition_type = str(getattr(condition_type, 'value', condition_type))
    condition_status = str(getattr(condition_status, 'value', condition_status))

    existing = find_status_condition(conditions, condition_type)
    if existing is None:
        condition = {
            'type': condition_type,
            'status': condition_status,
            'reason': reason,
            'message': message,
            'lastTransitionTime': now,
        }
        if observed_generation is not None:
            condition['observedGeneration'] = observed_generation
        conditions.append(condition)
        return True

    changed = False
    if existing.get('status') != condition_status:
        existing['status'] = condition_status
        existing['lastTransitionTime'] = now
        changed = True
    if existing.get('reason') != reason:
        existing['reason'] = reason
        changed = True
    if existing.get('message') != message:
        existing['message'] = message
        changed = True
    if observed_generation is not None and existing.get('observedGeneration') != observed_generation:
        existing['observedGeneration'] = observed_generation
        changed = True
    return changed


def update_velero_backup_reference(status: Dict[str, Any], velero_backup: Mapping[str, Any]) -> bool:
    """Record the Velero Backup identity in status.veleroBackup"""
    metadata = velero_backup.get('metadata') or {}
    name = metadata.get('name')
    namespace = metadata.get('namespace')

    reference = status.get('veleroBackup')
    if reference is None:
        status['veleroBackup'] = {'name': name, 'namespace': namespace}
        return True
    if reference.get('name') != name or reference.get('namespace') != namespace:
        reference['name'] = name
        reference['namespace'] = namespace
        return True
    return False


def has_velero_backup_reference(status: Mapping[str, Any], velero_backup: Mapping[str, Any]) -> bool:
    reference = status.get('veleroBackup') or {}
    metadata = velero_backup.get('metadata') or {}
    return (
        reference.get('name') == metadata.get('name')
        and reference.get('namespace') == metadata.get('namespace')
    )


def snapshot_velero_backup_status(live: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Deep-copied projection of the mirrored Velero Backup status fields"""
    live = live or {}
    snapshot: Dict[str, Any] = {}

    for name in SCALAR_STATUS_FIELDS:
        if live.get(name) is not None:
            snapshot[name] = copy.deepcopy(live[name])

    for name in LIST_STATUS_FIELDS:
        if live.get(name):
            snapshot[name] = list(live[name])

    for name, subfields in NESTED_STATUS_FIELDS.items():
        nested = live.get(name) or {}
        projected = {sub: nested[sub] for sub in subfields if nested.get(sub) is not None}
        if projected:
            snapshot[name] = projected

    return snapshot


def velero_backup_status_equal(left: Optional[Mapping[str, Any]],
                               right: Optional[Mapping[str, Any]]) -> bool:
    """
    Compare two Velero Backup statuses over the mirrored fields

    Missing keys, None and empty collections are treated as the same value.
    Fields outside the mirrored set are ignored.
    """
    left = left or {}
    right = right or {}

    for name in SCALAR_STATUS_FIELDS:
        if left.get(name) != right.get(name):
            return False

    for name in LIST_STATUS_FIELDS:
        if list(left.get(name) or []) != list(right.get(name) or []):
            return False

    for name, subfields in NESTED_STATUS_FIELDS.items():
        left_nested = left.get(name) or {}
        right_nested = right.get(name) or {}
        for sub in subfields:
            if left_nested.get(sub) != right_nested.get(sub):
                return False

    return True


def update_velero_backup_status(status: Dict[str, Any], velero_backup: Mapping[str, Any]) -> bool:
    """Copy drifted Velero Backup status into status.veleroBackup.status"""
    live = velero_backup.get('status')
    reference = status.get('veleroBackup')

    if reference is None:
        status['veleroBackup'] = {'status': snapshot_velero_backup_status(live)}
        return True

    stored = reference.get('status')
    if stored is not None and velero_backup_status_equal(stored, live):
        return False
    if stored is None and not snapshot_velero_backup_status(live):
        return False

    reference['status'] = snapshot_velero_backup_status(live)
    return True
