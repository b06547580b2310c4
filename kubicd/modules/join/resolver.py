"""Expand a node name specification into the set of responsive minions."""
import logging
from typing import List

from kubicd.modules.executor import RemoteExecutor, TargetType
from kubicd.errors import ResolutionError
from .models import NodeRecord, NodeRole
from .parsing import is_list_target, parse_ping_response

logger = logging.getLogger("kubicd.join.resolver")


class NodeResolver:
    """Ping the addressed minions and keep the ones that answered."""

    def __init__(self, executor: RemoteExecutor):
        self.executor = executor

    def resolve(self, names: str, role: NodeRole = NodeRole.WORKER) -> List[NodeRecord]:
        """Resolve ``names`` to responsive nodes.

        ``names`` is either an explicit list (``a,b,c``) or a single target
        expression (``node[1,2]``, ``node*``, ``node1``). Minions that do not
        answer ``True`` are dropped silently; an empty result is not an error.

        Raises:
            ResolutionError: If the ping command itself failed
        """
        target_type = TargetType.LIST if is_list_target(names) else TargetType.GLOB
        success, output = self.executor.execute(
            names, 'test.ping', target_type=target_type, output='txt'
        )
        if not success:
            raise ResolutionError(output)

        nodes = [NodeRecord(name=name, role=role) for name in parse_ping_response(output)]
        logger.info("Resolved '%s' to %d responsive node(s)", names, len(nodes))
        return nodes
