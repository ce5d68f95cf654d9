"""
Configuration management for the NonAdminBackup Operator
"""

import os
from typing import List, Optional
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ResourceKind:
    """Group/version/plural triple of a watched custom resource"""
    group: str
    version: str
    plural: str
    kind: str

    @property
    def api_version(self) -> str:
        return f'{self.group}/{self.version}'


LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

NONADMIN_BACKUP = ResourceKind(
    group='nac.oadp.openshift.io',
    version='v1alpha1',
    plural='nonadminbackups',
    kind='NonAdminBackup',
)

VELERO_BACKUP = ResourceKind(
    group='velero.io',
    version='v1',
    plural='backups',
    kind='Backup',
)


@dataclass
class SpecPolicyConfig:
    """Fields a tenant may not set in an embedded backup spec"""
    forbidden_fields: List[str] = field(default_factory=lambda: [
        'excludedNamespaces',
        'includedClusterScopedResources',
        'excludedClusterScopedResources',
    ])
    allow_cluster_resources: bool = False


@dataclass
class RetryConfig:
    """Backoff handed to kopf as the delay of retried reconciles"""
    base_delay: float = 1.0
    max_delay: float = 300.0


@dataclass
class OperatorConfig:
    """Main operator configuration"""

    # Operator metadata
    name: str = 'oadp-nac-controller'
    version: str = '0.1.0'

    # Privileged namespace where Velero Backups are created
    oadp_namespace: str = ''

    # Component configurations
    policy: SpecPolicyConfig = field(default_factory=SpecPolicyConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)

    # Operator behavior
    max_concurrent_reconciles: int = 1
    requeue_after_create: bool = False

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv('LOG_LEVEL', 'INFO'))

    @classmethod
    def from_env(cls) -> 'OperatorConfig':
        """
        Create configuration from environment variables

        Environment variables:
        - OADP_NAMESPACE: Privileged namespace for Velero Backups (required)
        - LOG_LEVEL: Logging level (default: INFO)
        - MAX_CONCURRENT_RECONCILES: Threads kopf runs handlers in (default: 1)
        - RETRY_BASE_DELAY: First retry delay in seconds (default: 1)
        - RETRY_MAX_DELAY: Retry delay cap in seconds (default: 300)
        - REQUEUE_AFTER_CREATE: Requeue right after creating a Backup (default: false)
        - ALLOW_CLUSTER_RESOURCES: Let tenants set includeClusterResources (default: false)
        """
        config = cls()

        if namespace := os.getenv('OADP_NAMESPACE'):
            config.oadp_namespace = namespace

        if workers := os.getenv('MAX_CONCURRENT_RECONCILES'):
            config.max_concurrent_reconciles = _parse(int, 'MAX_CONCURRENT_RECONCILES', workers)

        if base_delay := os.getenv('RETRY_BASE_DELAY'):
            config.retry.base_delay = _parse(float, 'RETRY_BASE_DELAY', base_delay)

        if max_delay := os.getenv('RETRY_MAX_DELAY'):
            config.retry.max_delay = _parse(float, 'RETRY_MAX_DELAY', max_delay)

        config.requeue_after_create = _flag('REQUEUE_AFTER_CREATE')
        config.policy.allow_cluster_resources = _flag('ALLOW_CLUSTER_RESOURCES')

        return config

    def validate(self) -> None:
        """
        Validate configuration

        Raises:
            ValueError: If configuration is invalid
        """
        if not self.oadp_namespace:
            raise ValueError("OADP namespace must be set (OADP_NAMESPACE)")

        if self.max_concurrent_reconciles < 1:
            raise ValueError("At least one reconcile worker is required")

        if self.retry.base_delay <= 0:
            raise ValueError("Retry base delay must be positive")

        if self.retry.max_delay < self.retry.base_delay:
            raise ValueError("Retry max delay must not be lower than the base delay")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")


def _flag(variable: str) -> bool:
    return os.getenv(variable, 'false').lower() == 'true'


def _parse(kind, variable: str, value: str):
    try:
        return kind(value)
    except ValueError:
        raise ValueError(f"Invalid value for {variable}: {value!r}") from None


# Global configuration instance
_config: Optional[OperatorConfig] = None


def get_config() -> OperatorConfig:
    """
    Get the global configuration instance (singleton pattern)

    Returns:
        OperatorConfig: The global configuration
    """
    global _config
    if _config is None:
        _config = OperatorConfig.from_env()
        _config.validate()
    return _config


def set_config(config: OperatorConfig) -> None:
    """
    Set the global configuration instance

    Args:
        config: New configuration instance
    """
    global _config
    config.validate()
    _config = config
