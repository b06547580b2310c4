"""End-to-end "add node(s)" operation."""
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Optional

from kubicd.config import ClusterConfigReader
from kubicd.errors import ConfigurationError, KubicdError
from .models import AggregateResult, NodeOutcome, NodeRecord, NodeRequest, NodeRole, StatusEvent
from .provisioner import NodeProvisioner
from .resolver import NodeResolver
from .status import Sink, StatusStream
from .token import TokenBroker

logger = logging.getLogger("kubicd.join.orchestrator")

CONTROL_PLANE_SECTION = 'control-plane'
MASTER_KEY = 'master'
LOADBALANCER_KEY = 'loadbalancer_salt'


class JoinOrchestrator:
    """Add nodes to the cluster.

    Resolves the nodes once, fetches the join command once, then provisions
    every node on a bounded thread pool. All status events pass through one
    :class:`StatusStream` per request.
    """

    def __init__(
        self,
        config: ClusterConfigReader,
        broker: TokenBroker,
        resolver: NodeResolver,
        provisioner: NodeProvisioner,
        max_workers: int = 10,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.config = config
        self.broker = broker
        self.resolver = resolver
        self.provisioner = provisioner
        self.max_workers = max_workers

    def _targets(self, role: NodeRole):
        master = self.config.read(CONTROL_PLANE_SECTION, MASTER_KEY)
        if not master:
            raise ConfigurationError(
                f"'{MASTER_KEY}' is not set in {CONTROL_PLANE_SECTION} configuration"
            )
        loadbalancer = None
        if role == NodeRole.CONTROL_PLANE:
            loadbalancer = self.config.read(CONTROL_PLANE_SECTION, LOADBALANCER_KEY) or None
        return master, loadbalancer

    def add_nodes(self, request: NodeRequest, sink: Sink) -> AggregateResult:
        """Join every responsive node named by ``request`` to the cluster.

        Configuration, token and resolution errors abort the request with one
        global failure event. A failing node never stops its siblings.
        """
        with StatusStream(sink) as stream:
            return self._add_nodes(request, stream.emit)

    def _add_nodes(self, request: NodeRequest, emit: Callable[[StatusEvent], None]) -> AggregateResult:
        start_time = time.time()
        try:
            master, loadbalancer = self._targets(request.role)
            token = self.broker.get_join_command(master, request.role, emit=emit)
            nodes = self.resolver.resolve(request.names, request.role)
        except KubicdError as e:
            logger.error("Adding node(s) '%s' aborted: %s", request.names, e)
            emit(StatusEvent(StatusEvent.GLOBAL, False, str(e)))
            return AggregateResult(error=str(e))
        except Exception as e:
            logger.error("Unexpected error adding node(s) '%s': %s", request.names, e, exc_info=True)
            emit(StatusEvent(StatusEvent.GLOBAL, False, str(e)))
            return AggregateResult(error=str(e))

        result = AggregateResult(attempted=len(nodes))
        if not nodes:
            logger.warning("No responsive nodes found for '%s'", request.names)
            return result

        join_command = token.join_command()
        logger.info("Adding %d node(s) as %s with up to %d in parallel",
                    len(nodes), request.role.value, self.max_workers)

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(nodes)),
                                thread_name_prefix="node_join") as executor:
            future_to_node = {
                executor.submit(self._provision, node, join_command, emit, loadbalancer): node
                for node in nodes
            }
            for future in as_completed(future_to_node):
                result.outcomes.append(future.result())

        result.failed = sum(1 for outcome in result.outcomes if not outcome.succeeded)
        logger.info("Added %d of %d node(s) in %.1fs",
                    result.attempted - result.failed, result.attempted, time.time() - start_time)
        if result.failed > 0:
            emit(StatusEvent(StatusEvent.GLOBAL, False, "An error occurred during adding node(s)"))
        return result

    def _provision(self, node: NodeRecord, join_command: str, emit, loadbalancer: Optional[str]) -> NodeOutcome:
        try:
            return self.provisioner.provision(node, join_command, emit, loadbalancer=loadbalancer)
        except Exception as e:
            logger.error("Unexpected error provisioning %s: %s", node.name, e, exc_info=True)
            emit(StatusEvent(node.name, False, f"{node.name}: {e}"))
            return NodeOutcome(name=node.name, succeeded=False, message=str(e))
