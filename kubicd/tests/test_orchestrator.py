import threading
import time

from kubicd.modules.executor import ExecResult
from kubicd.modules.join import NodeRequest, NodeRole
from kubicd.errors import SinkClosed
from .conftest import JOIN_COMMAND, ping_output

GLOBAL_FAILURE = "An error occurred during adding node(s)"


def test_two_workers_join(executor, collector, make_orchestrator):
    executor.on("test.ping", result=ping_output("n1: True", "n2: True"))
    result = make_orchestrator().add_nodes(NodeRequest("n1,n2", NodeRole.WORKER), collector)

    assert (result.attempted, result.failed) == (2, 0)
    assert result.succeeded
    for name in ("n1", "n2"):
        assert collector.for_subject(name) == [
            f"{name}: adding node...",
            f"{name}: joining cluster...",
            f"{name}: node successfully added",
        ]
    assert collector.failures == []
    assert GLOBAL_FAILURE not in collector.for_subject("global")


def test_default_role_is_worker(executor, collector, make_orchestrator):
    executor.on("test.ping", result=ping_output("n1: True"))
    make_orchestrator().add_nodes(NodeRequest("n1"), collector)

    assert executor.count("cmd.run", f'"{JOIN_COMMAND}"') == 1
    assert executor.count("cmd.run", "--control-plane") == 0
    assert executor.count("cmd.run", "upload-certs") == 0
    assert executor.count("grains.append", "kubic-worker-node") == 1


def test_control_plane_with_loadbalancer(executor, collector, make_orchestrator, cluster_config):
    (cluster_config / "control-plane.conf").write_text("master: master1\nloadbalancer_salt: haproxy1\n")
    executor.on("test.ping", result=ping_output("cp1: True"))

    result = make_orchestrator().add_nodes(NodeRequest("cp1", NodeRole.CONTROL_PLANE), collector)

    assert result.succeeded
    assert executor.count("cmd.run", f'"{JOIN_COMMAND} --control-plane --certificate-key CERTKEY42"') == 1
    assert executor.calls_for("haproxy1")[0].command == "cmd.run haproxycfg server add cp1"


def test_control_plane_without_loadbalancer(executor, collector, make_orchestrator):
    executor.on("test.ping", result=ping_output("cp1: True"))
    result = make_orchestrator().add_nodes(NodeRequest("cp1", NodeRole.CONTROL_PLANE), collector)

    assert result.succeeded
    assert executor.count("cmd.run", "haproxycfg") == 0


def test_worker_ignores_configured_loadbalancer(executor, collector, make_orchestrator, cluster_config):
    (cluster_config / "control-plane.conf").write_text("master: master1\nloadbalancer_salt: haproxy1\n")
    executor.on("test.ping", result=ping_output("n1: True"))
    make_orchestrator().add_nodes(NodeRequest("n1"), collector)

    assert executor.calls_for("haproxy1") == []


def test_one_failing_node_does_not_stop_others(executor, collector, make_orchestrator):
    executor.on("test.ping", result=ping_output("n1: True", "n2: True", "n3: True"))
    executor.fail("service.start", "kubelet", target="n2", message="kubelet missing")

    result = make_orchestrator().add_nodes(NodeRequest("n[1-3]"), collector)

    assert (result.attempted, result.failed) == (3, 1)
    assert not result.succeeded
    failed = [o for o in result.outcomes if not o.succeeded]
    assert failed[0].name == "n2"
    assert failed[0].failed_step == "start kubelet"
    assert collector.for_subject("n1")[-1] == "n1: node successfully added"
    assert collector.for_subject("n3")[-1] == "n3: node successfully added"
    assert collector.for_subject("n2")[-1] == "n2: kubelet missing"
    assert collector.events[-1].message == GLOBAL_FAILURE
    assert not collector.events[-1].succeeded


def test_missing_master_configuration(executor, collector, make_orchestrator, tmp_path):
    empty = tmp_path / "empty"
    empty.mkdir()
    result = make_orchestrator(config_dir=empty).add_nodes(NodeRequest("n1"), collector)

    assert result.attempted == 0
    assert result.error
    assert executor.calls == []
    assert len(collector.failures) == 1
    assert collector.failures[0].subject == "global"


def test_token_failure_attempts_no_nodes(collector, make_orchestrator, executor):
    executor.rules.clear()
    executor.fail("cmd.run", "token create", message="kubeadm not found")

    result = make_orchestrator().add_nodes(NodeRequest("n1"), collector)

    assert result.attempted == 0
    assert result.error == "kubeadm not found"
    assert executor.count("test.ping") == 0
    assert [e.message for e in collector.failures] == ["kubeadm not found"]


def test_resolution_failure(executor, collector, make_orchestrator):
    executor.fail("test.ping", message="salt master unreachable")
    result = make_orchestrator().add_nodes(NodeRequest("n1,n2"), collector)

    assert result.attempted == 0
    assert not result.succeeded
    assert [e.message for e in collector.failures] == ["salt master unreachable"]


def test_no_responsive_nodes(executor, collector, make_orchestrator):
    executor.on("test.ping", result=ping_output("n1: False"))
    result = make_orchestrator().add_nodes(NodeRequest("n1"), collector)

    assert (result.attempted, result.failed) == (0, 0)
    assert result.error is None
    assert collector.failures == []


def test_parallelism_is_bounded(executor, collector, make_orchestrator):
    names = [f"n{i}" for i in range(8)]
    executor.on("test.ping", result=ping_output(*(f"{n}: True" for n in names)))
    lock = threading.Lock()
    state = {"active": 0, "peak": 0}

    def slow_start(call):
        with lock:
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
        time.sleep(0.02)
        with lock:
            state["active"] -= 1
        return ExecResult(True, "")

    executor.on("service.start", "crio", result=slow_start)
    result = make_orchestrator(max_workers=3).add_nodes(NodeRequest(",".join(names)), collector)

    assert (result.attempted, result.failed) == (8, 0)
    assert state["peak"] <= 3


def test_closed_sink_does_not_change_outcome(executor, make_orchestrator):
    executor.on("test.ping", result=ping_output("n1: True", "n2: True"))
    received = []

    def sink(event):
        if len(received) == 2:
            raise SinkClosed("caller disconnected")
        received.append(event)

    result = make_orchestrator().add_nodes(NodeRequest("n1,n2"), sink)

    assert (result.attempted, result.failed) == (2, 0)
    assert len(received) == 2
    assert executor.count("grains.append") == 2


def test_unexpected_executor_error_becomes_global_failure(executor, collector, make_orchestrator):
    def broken(call):
        raise RuntimeError("salt api crashed")

    executor.on("test.ping", result=broken)
    result = make_orchestrator().add_nodes(NodeRequest("n1"), collector)

    assert result.attempted == 0
    assert result.error == "salt api crashed"
    assert [(e.subject, e.message) for e in collector.failures] == [("global", "salt api crashed")]
