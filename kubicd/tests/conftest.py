"""
Shared pytest fixtures for kubicd tests.

FakeExecutor stands in for salt: every call is recorded and answered from
a list of rules, first match wins.
"""
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Union

import pytest

from kubicd.config import ClusterConfigReader
from kubicd.modules.executor import ExecResult, TargetType
from kubicd.modules.join import (
    JoinOrchestrator, NodeProvisioner, NodeResolver, StatusEvent, TokenBroker,
)

JOIN_OUTPUT = "master1: kubeadm join 10.0.0.1:6443 --token abc.def --discovery-token-ca-cert-hash sha256:1234\n"
JOIN_COMMAND = "kubeadm join 10.0.0.1:6443 --token abc.def --discovery-token-ca-cert-hash sha256:1234"
UPLOAD_OUTPUT = "master1: [upload-certs] Storing the certificates\n[upload-certs] Using certificate key:\nCERTKEY42\n"


@dataclass
class Call:
    target: str
    function: str
    args: Tuple[str, ...]
    target_type: TargetType
    output: Optional[str]

    @property
    def command(self) -> str:
        return " ".join((self.function,) + self.args)


Response = Union[ExecResult, Callable[[Call], ExecResult]]


class FakeExecutor:
    def __init__(self):
        self.calls: List[Call] = []
        self.rules: List[Tuple[Callable[[Call], bool], Response]] = []
        self._lock = threading.Lock()

    def on(self, function: str, contains: str = "", target: Optional[str] = None,
           result: Response = ExecResult(True, "")) -> "FakeExecutor":
        def match(call: Call) -> bool:
            return (call.function == function
                    and contains in " ".join(call.args)
                    and (target is None or call.target == target))
        self.rules.append((match, result))
        return self

    def fail(self, function: str, contains: str = "", target: Optional[str] = None,
             message: str = "boom") -> "FakeExecutor":
        return self.on(function, contains, target, ExecResult(False, message))

    def execute(self, target, function, *args, target_type=TargetType.GLOB, output=None):
        call = Call(target, function, tuple(args), target_type, output)
        with self._lock:
            self.calls.append(call)
        for match, response in self.rules:
            if match(call):
                return response(call) if callable(response) else response
        return ExecResult(True, "")

    def calls_for(self, target: str) -> List[Call]:
        return [c for c in self.calls if c.target == target]

    def count(self, function: str, contains: str = "") -> int:
        return sum(1 for c in self.calls if c.function == function and contains in " ".join(c.args))


class Collector:
    """Thread-safe status sink recording every event."""

    def __init__(self):
        self.events: List[StatusEvent] = []
        self._lock = threading.Lock()

    def __call__(self, event: StatusEvent) -> None:
        with self._lock:
            self.events.append(event)

    def for_subject(self, subject: str) -> List[str]:
        return [e.message for e in self.events if e.subject == subject]

    @property
    def failures(self) -> List[StatusEvent]:
        return [e for e in self.events if not e.succeeded]


def ping_output(*lines: str) -> ExecResult:
    return ExecResult(True, "\n".join(lines) + "\n")


@pytest.fixture
def executor():
    fake = FakeExecutor()
    fake.on("cmd.run", "token create", result=ExecResult(True, JOIN_OUTPUT))
    fake.on("cmd.run", "upload-certs", result=ExecResult(True, UPLOAD_OUTPUT))
    return fake


@pytest.fixture
def collector():
    return Collector()


@pytest.fixture
def cluster_config(tmp_path):
    (tmp_path / "control-plane.conf").write_text("master: master1\n")
    return tmp_path


@pytest.fixture
def make_orchestrator(executor, cluster_config):
    def factory(max_workers: int = 10, config_dir=None) -> JoinOrchestrator:
        return JoinOrchestrator(
            config=ClusterConfigReader(config_dir or cluster_config),
            broker=TokenBroker(executor),
            resolver=NodeResolver(executor),
            provisioner=NodeProvisioner(executor),
            max_workers=max_workers,
        )
    return factory
