"""
Node join orchestration.

Adds machines to an existing kubeadm cluster through salt:

- TokenBroker: caches the join command and regenerates it when stale
- NodeResolver: turns a name list or pattern into responsive minions
- NodeProvisioner: runs the ordered join steps on one node
- JoinOrchestrator: ties the above together for many nodes in parallel
"""
from datetime import timedelta
from typing import Optional

from kubicd.config import ClusterConfigReader, Settings, get_settings
from kubicd.modules.executor import RemoteExecutor, SaltExecutor
from .models import (
    AggregateResult, JoinToken, NodeOutcome, NodeRecord, NodeRequest, NodeRole, StatusEvent,
)
from .orchestrator import JoinOrchestrator
from .provisioner import STEPS, NodeProvisioner, ProvisioningStep
from .resolver import NodeResolver
from .status import StatusStream
from .token import TokenBroker

__all__ = [
    'AggregateResult',
    'JoinToken',
    'NodeOutcome',
    'NodeRecord',
    'NodeRequest',
    'NodeRole',
    'StatusEvent',
    'JoinOrchestrator',
    'NodeProvisioner',
    'ProvisioningStep',
    'STEPS',
    'NodeResolver',
    'StatusStream',
    'TokenBroker',
    'build_orchestrator',
]


def build_orchestrator(
    settings: Optional[Settings] = None,
    executor: Optional[RemoteExecutor] = None,
    broker: Optional[TokenBroker] = None,
) -> JoinOrchestrator:
    """Wire a JoinOrchestrator from settings.

    Pass ``broker`` to share one token cache between orchestrators.
    """
    settings = settings or get_settings()
    if executor is None:
        executor = SaltExecutor(settings.salt.binary, timeout=settings.salt.command_timeout)
    if broker is None:
        broker = TokenBroker(executor, max_age=timedelta(hours=settings.join.token_max_age_hours))
    return JoinOrchestrator(
        config=ClusterConfigReader(settings.join.config_dir),
        broker=broker,
        resolver=NodeResolver(executor),
        provisioner=NodeProvisioner(executor),
        max_workers=settings.join.max_parallel_nodes,
    )
