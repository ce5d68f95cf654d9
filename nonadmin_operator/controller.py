"""
Controller connecting kopf handlers, event filters and the reconciler
"""

import logging
from typing import Optional

import kopf
from kubernetes.client.exceptions import ApiException

from nonadmin_operator.config import RetryConfig
from nonadmin_operator.naming import ObjectKey
from nonadmin_operator.predicates import CompositePredicate
from nonadmin_operator.reconciler import NonAdminBackupReconciler, ReconcileResult
from nonadmin_operator.routing import VeleroBackupHandler

logger = logging.getLogger(__name__)


class Controller:
    """
    Runs reconciles on behalf of the kopf handlers

    Retries are left to kopf: transient API failures are raised as
    kopf.TemporaryError with an exponentially growing delay, and permanent
    errors are passed through so kopf stops retrying the request.

    A reconcile asking for a requeue is run again straight away, since every
    pass reloads the request. After max_passes the remaining work is handed
    back to kopf as a retry.
    """

    def __init__(self, reconciler: NonAdminBackupReconciler, predicate: CompositePredicate,
                 handler: VeleroBackupHandler, retry: Optional[RetryConfig] = None,
                 max_passes: int = 10):
        self.reconciler = reconciler
        self.predicate = predicate
        self.handler = handler
        self.retry = retry or RetryConfig()
        self.max_passes = max_passes

    def retry_delay(self, retry: int) -> float:
        return min(self.retry.base_delay * 2 ** retry, self.retry.max_delay)

    def settle(self, key: ObjectKey, log=None) -> ReconcileResult:
        """Reconcile until done or out of passes"""
        for _ in range(self.max_passes):
            if self.reconciler.reconcile(key, log) is ReconcileResult.DONE:
                return ReconcileResult.DONE
        return ReconcileResult.REQUEUE

    def reconcile(self, key: ObjectKey, retry: int = 0, log=None) -> None:
        """
        Reconcile a NonAdminBackup from a kopf change handler

        Raises:
            kopf.TemporaryError: If the API failed or work is still pending
            kopf.PermanentError: If the request can never succeed as written
        """
        log = log or logger
        try:
            result = self.settle(key, log)
        except ApiException as e:
            delay = self.retry_delay(retry)
            log.warning(f"Reconcile of {key} failed, retrying in {delay}s: {e.reason}")
            raise kopf.TemporaryError(f"Reconcile of {key} failed: {e.reason}", delay=delay) from e

        if result is ReconcileResult.REQUEUE:
            raise kopf.TemporaryError(
                f"NonAdminBackup {key} still pending after {self.max_passes} passes",
                delay=self.retry.base_delay
            )

    def velero_backup_event(self, event, log=None) -> Optional[ObjectKey]:
        """
        Filter and route a Velero Backup watch event, then reconcile its origin

        Returns:
            The originating NonAdminBackup key, or None when the event was dropped
        """
        if not self.predicate.accepts(event):
            return None

        origin = self.handler.handle(event)
        if origin is not None:
            self.settle(origin, log)
        return origin
