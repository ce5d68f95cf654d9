import copy
import logging
import kopf
from typing import Any, Dict
from nonadmin_operator.config import NONADMIN_BACKUP, VELERO_BACKUP, get_config
from nonadmin_operator.controller import Controller
from nonadmin_operator.naming import ObjectKey
from nonadmin_operator.predicates import (
    CompositePredicate,
    CreateEvent,
    DeleteEvent,
    NonAdminBackupPredicate,
    UpdateEvent,
    VeleroBackupPredicate,
)
from nonadmin_operator.reconciler import NonAdminBackupReconciler
from nonadmin_operator.routing import VeleroBackupHandler
from nonadmin_operator.store import KubernetesObjectStore

REQUEST_PREDICATE = NonAdminBackupPredicate()


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, memo: kopf.Memo, logger, **_):
    """
    Configure operator on startup
    """
    config = get_config()

    # Keep kopf's bookkeeping out of the status the operator owns
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
        prefix=NONADMIN_BACKUP.group
    )
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(
        prefix=NONADMIN_BACKUP.group
    )
    settings.posting.level = logging.getLevelName(config.log_level.upper())
    settings.execution.max_workers = config.max_concurrent_reconciles

    memo.controller = build_controller(config)

    logger.info(f"Starting {config.name} v{config.version}")
    logger.info(f"Velero Backups are created in namespace: {config.oadp_namespace}")
    logger.info(f"Reconcile workers: {config.max_concurrent_reconciles}")


def spec_changed(old, new, **_) -> bool:
    """
    Let only spec edits through to the update handler

    Status writes never reach it, kopf leaves status out of its diff base.
    """
    return REQUEST_PREDICATE.update(UpdateEvent(old or {}, new or {}))


@kopf.on.resume(NONADMIN_BACKUP.group, NONADMIN_BACKUP.version, NONADMIN_BACKUP.plural)
@kopf.on.create(NONADMIN_BACKUP.group, NONADMIN_BACKUP.version, NONADMIN_BACKUP.plural)
@kopf.on.update(NONADMIN_BACKUP.group, NONADMIN_BACKUP.version, NONADMIN_BACKUP.plural,
                when=spec_changed)
def reconcile_nonadmin_backup(name, namespace, retry, memo: kopf.Memo, logger, **_):
    """
    Handler called when a NonAdminBackup is created, edited or found on startup
    """
    logger.info(f"Reconciling NonAdminBackup {namespace}/{name}")
    memo.controller.reconcile(ObjectKey(namespace, name), retry=retry, log=logger)


@kopf.timer(NONADMIN_BACKUP.group, NONADMIN_BACKUP.version, NONADMIN_BACKUP.plural, interval=300)
def resync_nonadmin_backup(name, namespace, retry, memo: kopf.Memo, logger, **_):
    """
    Periodic resync catching Backup events whose reconcile failed
    """
    memo.controller.reconcile(ObjectKey(namespace, name), retry=retry, log=logger)


@kopf.on.event(VELERO_BACKUP.group, VELERO_BACKUP.version, VELERO_BACKUP.plural)
def velero_backup_event(event: Dict[str, Any], memo: kopf.Memo, logger, **_):
    """
    Handler called for every watch event on a Velero Backup
    """
    watch_event = to_watch_event(event, memo)
    origin = memo.controller.velero_backup_event(watch_event, log=logger)
    if origin is not None:
        logger.debug(f"Reconciled NonAdminBackup {origin} for {type(watch_event).__name__}")


def build_controller(config) -> Controller:
    reconciler = NonAdminBackupReconciler(KubernetesObjectStore(), config)
    predicate = CompositePredicate(
        REQUEST_PREDICATE,
        VeleroBackupPredicate(config.oadp_namespace)
    )
    return Controller(reconciler, predicate, VeleroBackupHandler(), retry=config.retry)


def to_watch_event(event: Dict[str, Any], memo: kopf.Memo):
    """
    Translate a raw kopf watch event into a filterable event

    The per-object memo remembers the last seen body so MODIFIED events can
    be compared against it. Events from the initial listing (type None) and
    MODIFIED events without a previous body count as creations.
    """
    obj = dict(event['object'])
    event_type = event.get('type')
    previous = memo.get('last_seen')

    if event_type == 'DELETED':
        memo.pop('last_seen', None)
        return DeleteEvent(obj)

    memo['last_seen'] = copy.deepcopy(obj)
    if event_type == 'MODIFIED' and previous is not None:
        return UpdateEvent(previous, obj)
    return CreateEvent(obj)
