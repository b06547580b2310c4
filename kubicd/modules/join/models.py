"""Data models for joining nodes to a cluster."""
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import List, Optional


class NodeRole(str, Enum):
    """Role a machine takes when it joins the cluster."""
    WORKER = 'worker'
    CONTROL_PLANE = 'master'

    @classmethod
    def parse(cls, value: Optional[str]) -> 'NodeRole':
        """Map a user supplied role name to a NodeRole.

        Empty values default to worker. ``master`` and ``control-plane`` are
        both accepted for the control-plane role, case-insensitively.
        """
        if not value:
            return cls.WORKER
        name = value.strip().lower()
        if name in ('master', 'control-plane', 'controlplane'):
            return cls.CONTROL_PLANE
        if name == 'worker':
            return cls.WORKER
        raise ValueError(f"Unknown node role: {value}")

    @property
    def marker(self) -> str:
        """Grain value tagging a node with its role."""
        return f"kubic-{self.value}-node"


@dataclass(frozen=True)
class JoinToken:
    """Snapshot of the cached join command.

    ``value`` never carries the control-plane suffix; it is added by
    :meth:`join_command` when a certificate key is attached.
    """
    value: str
    issued_at: datetime
    control_plane_cert_key: Optional[str] = None

    def with_cert_key(self, key: str) -> 'JoinToken':
        return replace(self, control_plane_cert_key=key)

    def join_command(self) -> str:
        if self.control_plane_cert_key:
            return f"{self.value} --control-plane --certificate-key {self.control_plane_cert_key}"
        return self.value


@dataclass(frozen=True)
class NodeRequest:
    """A request to add one or more machines to the cluster."""
    names: str
    role: NodeRole = NodeRole.WORKER


@dataclass(frozen=True)
class NodeRecord:
    """A resolved, responsive machine."""
    name: str
    role: NodeRole = NodeRole.WORKER


@dataclass
class NodeOutcome:
    """Result of provisioning a single node."""
    name: str
    succeeded: bool
    message: str = ''
    failed_step: Optional[str] = None
    completed_steps: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class StatusEvent:
    """A progress message pushed to the caller."""
    subject: str
    succeeded: bool
    message: str

    GLOBAL = 'global'

    def to_dict(self) -> dict:
        return {'subject': self.subject, 'success': self.succeeded, 'message': self.message}


@dataclass
class AggregateResult:
    """Outcome of one add-nodes request."""
    attempted: int = 0
    failed: int = 0
    error: Optional[str] = None
    outcomes: List[NodeOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.failed == 0

    def to_dict(self) -> dict:
        return {
            'attempted': self.attempted,
            'failed': self.failed,
            'success': self.succeeded,
            'error': self.error,
        }
