"""
Reconciliation of NonAdminBackup objects into Velero Backups

A reconcile loads the NonAdminBackup fresh from the store and runs an ordered
list of steps over it. Each step returns True when it persisted a status
change and the object must be reloaded before going further; failures are
raised. Nothing is remembered between invocations, so any step can be re-run
from any stored state.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from nonadmin_operator.config import OperatorConfig
from nonadmin_operator.naming import ObjectKey, generate_velero_backup_name
from nonadmin_operator.status import (
    ConditionStatus,
    NonAdminBackupPhase,
    NonAdminCondition,
    has_velero_backup_reference,
    is_status_condition_true,
    set_status_condition,
    update_phase,
    update_velero_backup_reference,
    update_velero_backup_status,
    utc_now_rfc3339,
)
from nonadmin_operator.templates import ManifestTemplates
from nonadmin_operator.validation import InvalidBackupSpec, validate_backup_spec

logger = logging.getLogger(__name__)

StepFunction = Callable[[Dict[str, Any], logging.Logger], bool]


class ReconcileResult(Enum):
    DONE = 'done'
    REQUEUE = 'requeue'


class NonAdminBackupReconciler:
    """
    Drives a NonAdminBackup through New, validation and Velero Backup creation

    Args:
        store: Object store with get/create/update-status operations
        config: Operator configuration; only the OADP namespace, the spec
            policy and requeue_after_create are read
        now_fn: Clock used for condition transition times
    """

    def __init__(self, store, config: OperatorConfig,
                 now_fn: Callable[[], str] = utc_now_rfc3339):
        self.store = store
        self.config = config
        self.now_fn = now_fn

    @property
    def steps(self) -> List[StepFunction]:
        return [
            self.init,
            self.validate_spec,
            self.sync_velero_backup,
        ]

    def reconcile(self, key: ObjectKey, log: Optional[logging.Logger] = None) -> ReconcileResult:
        """
        Move the NonAdminBackup identified by key one pass closer to its desired state

        Returns:
            ReconcileResult: REQUEUE when a step asked for a fresh pass
        Raises:
            InvalidBackupSpec: The spec can not be accepted; do not retry
            NamingError: No Velero Backup name could be derived; do not retry
            ApiException: Transient store failure; retry with backoff
        """
        log = log or logger
        log.debug(f"NonAdminBackup {key} reconcile start")

        nonadmin_backup = self.store.get_nonadmin_backup(key.namespace, key.name)
        if nonadmin_backup is None:
            log.debug(f"NonAdminBackup {key} not found, nothing to do")
            return ReconcileResult.DONE

        for step in self.steps:
            if step(nonadmin_backup, log):
                return ReconcileResult.REQUEUE

        log.debug(f"NonAdminBackup {key} reconcile exit")
        return ReconcileResult.DONE

    def init(self, nonadmin_backup: Dict[str, Any], log: logging.Logger) -> bool:
        """Set phase New on first sight"""
        status = _status(nonadmin_backup)
        if not status.get('phase'):
            if update_phase(status, NonAdminBackupPhase.NEW):
                self._update_status(nonadmin_backup, log)
                log.debug("NonAdminBackup - Requeue after Phase Update")
                return True

        log.debug("NonAdminBackup Phase already initialized")
        return False

    def validate_spec(self, nonadmin_backup: Dict[str, Any], log: logging.Logger) -> bool:
        """
        Record whether the backup spec is accepted

        An invalid spec moves the phase to BackingOff and raises
        InvalidBackupSpec, which the caller must not retry until the spec
        changes.
        """
        status = _status(nonadmin_backup)
        conditions = status.setdefault('conditions', [])
        generation = nonadmin_backup['metadata'].get('generation')

        try:
            validate_backup_spec(nonadmin_backup, self.config.policy)
        except InvalidBackupSpec as e:
            updated_phase = update_phase(status, NonAdminBackupPhase.BACKING_OFF)
            updated_condition = set_status_condition(
                conditions,
                NonAdminCondition.ACCEPTED,
                ConditionStatus.FALSE,
                reason='InvalidBackupSpec',
                message=str(e),
                now=self.now_fn(),
                observed_generation=generation
            )
            if updated_phase or updated_condition:
                self._update_status(nonadmin_backup, log)

            log.error(f"NonAdminBackup Spec is not valid: {e}")
            raise

        updated = set_status_condition(
            conditions,
            NonAdminCondition.ACCEPTED,
            ConditionStatus.TRUE,
            reason='BackupAccepted',
            message='backup accepted',
            now=self.now_fn(),
            observed_generation=generation
        )
        if updated:
            self._update_status(nonadmin_backup, log)
            log.debug("NonAdminBackup - Requeue after Condition Update")
            return True

        log.debug("NonAdminBackup Spec already validated")
        return False

    def sync_velero_backup(self, nonadmin_backup: Dict[str, Any], log: logging.Logger) -> bool:
        """
        Create the Velero Backup once and keep its status mirrored

        Three cases: the Backup is missing and gets created; it exists but
        the phase, Queued condition or reference were never recorded; or
        bookkeeping is complete and only status drift is copied over.
        """
        metadata = nonadmin_backup['metadata']
        velero_backup_name = generate_velero_backup_name(metadata['namespace'], metadata['name'])
        oadp_namespace = self.config.oadp_namespace
        velero_key = ObjectKey(oadp_namespace, velero_backup_name)

        created = False
        velero_backup = self.store.get_velero_backup(oadp_namespace, velero_backup_name)
        if velero_backup is None:
            log.info(f"VeleroBackup {velero_key} not found")
            manifest = ManifestTemplates.velero_backup_manifest(
                nonadmin_backup,
                name=velero_backup_name,
                namespace=oadp_namespace
            )
            try:
                velero_backup = self.store.create_velero_backup(manifest)
            except Exception as e:
                log.error(f"Failed to create VeleroBackup {velero_key}: {e}")
                raise
            created = True
            log.info(f"VeleroBackup {velero_key} successfully created")

        status = _status(nonadmin_backup)
        conditions = status.setdefault('conditions', [])

        if created or not self._bookkeeping_complete(status, velero_backup):
            updated_phase = update_phase(status, NonAdminBackupPhase.CREATED)
            updated_condition = set_status_condition(
                conditions,
                NonAdminCondition.QUEUED,
                ConditionStatus.TRUE,
                reason='BackupScheduled',
                message='Created Velero Backup object',
                now=self.now_fn(),
                observed_generation=metadata.get('generation')
            )
            updated_reference = update_velero_backup_reference(status, velero_backup)
            if updated_phase or updated_condition or updated_reference:
                self._update_status(nonadmin_backup, log)
                log.debug("NonAdminBackup - Exit after Status Update")
                return created and self.config.requeue_after_create

        log.debug(f"VeleroBackup {velero_key} already exists, verifying if NonAdminBackup Status requires update")
        if update_velero_backup_status(status, velero_backup):
            self._update_status(nonadmin_backup, log)
            log.debug("NonAdminBackup Status updated successfully")

        return False

    @staticmethod
    def _bookkeeping_complete(status: Dict[str, Any], velero_backup: Dict[str, Any]) -> bool:
        return (
            status.get('phase') == NonAdminBackupPhase.CREATED.value
            and is_status_condition_true(status.get('conditions'), NonAdminCondition.QUEUED.value)
            and has_velero_backup_reference(status, velero_backup)
        )

    def _update_status(self, nonadmin_backup: Dict[str, Any], log: logging.Logger) -> None:
        try:
            updated = self.store.update_nonadmin_backup_status(nonadmin_backup)
        except Exception as e:
            log.error(f"Failed to update NonAdminBackup Status: {e}")
            raise

        resource_version = ((updated or {}).get('metadata') or {}).get('resourceVersion')
        if resource_version:
            nonadmin_backup['metadata']['resourceVersion'] = resource_version


def _status(nonadmin_backup: Dict[str, Any]) -> Dict[str, Any]:
    if nonadmin_backup.get('status') is None:
        nonadmin_backup['status'] = {}
    return nonadmin_backup['status']
