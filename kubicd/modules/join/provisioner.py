"""Per-node provisioning sequence."""
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from kubicd.modules.executor import RemoteExecutor
from .models import NodeOutcome, NodeRecord, StatusEvent

logger = logging.getLogger("kubicd.join.provisioner")

Emit = Callable[[StatusEvent], None]

CONTAINER_RUNTIME = 'crio'
KUBELET = 'kubelet'
ROLE_GRAIN = 'kubicd'
REBOOT_CONFIG = '/etc/transactional-update.conf'
REBOOT_METHOD = 'REBOOT_METHOD=kured'

SET_REBOOT_METHOD_CMD = (
    f"if [ -f {REBOOT_CONFIG} ]; then "
    f"grep -q ^REBOOT_METHOD= {REBOOT_CONFIG} && "
    f"sed -i -e 's|REBOOT_METHOD=.*|{REBOOT_METHOD}|g' {REBOOT_CONFIG} || "
    f"echo {REBOOT_METHOD} >> {REBOOT_CONFIG} ; "
    f"else echo {REBOOT_METHOD} > {REBOOT_CONFIG} ; fi"
)


@dataclass(frozen=True)
class StepContext:
    node: NodeRecord
    join_command: str
    loadbalancer: Optional[str] = None


# (target, salt function, args)
Invocation = Tuple[str, str, Tuple[str, ...]]


@dataclass(frozen=True)
class ProvisioningStep:
    """A named remote command. ``build`` returns what to run for a node."""
    name: str
    build: Callable[[StepContext], Invocation]
    notice: Optional[str] = None
    applies: Callable[[StepContext], bool] = lambda ctx: True


STEPS: List[ProvisioningStep] = [
    ProvisioningStep(
        'start runtime',
        lambda ctx: (ctx.node.name, 'service.start', (CONTAINER_RUNTIME,)),
    ),
    ProvisioningStep(
        'enable runtime',
        lambda ctx: (ctx.node.name, 'service.enable', (CONTAINER_RUNTIME,)),
    ),
    ProvisioningStep(
        'start kubelet',
        lambda ctx: (ctx.node.name, 'service.start', (KUBELET,)),
    ),
    ProvisioningStep(
        'enable kubelet',
        lambda ctx: (ctx.node.name, 'service.enable', (KUBELET,)),
    ),
    ProvisioningStep(
        'join cluster',
        lambda ctx: (ctx.node.name, 'cmd.run', (f'"{ctx.join_command}"',)),
        notice='joining cluster...',
    ),
    ProvisioningStep(
        'label role',
        lambda ctx: (ctx.node.name, 'grains.append', (ROLE_GRAIN, ctx.node.role.marker)),
    ),
    ProvisioningStep(
        'configure reboot policy',
        lambda ctx: (ctx.node.name, 'cmd.run', (SET_REBOOT_METHOD_CMD,)),
    ),
    ProvisioningStep(
        'register with load balancer',
        lambda ctx: (ctx.loadbalancer, 'cmd.run', (f'haproxycfg server add {ctx.node.name}',)),
        notice='adding node to haproxy loadbalancer...',
        applies=lambda ctx: bool(ctx.loadbalancer),
    ),
]


class NodeProvisioner:
    """Run the ordered provisioning steps for one node at a time."""

    def __init__(self, executor: RemoteExecutor, steps: Optional[List[ProvisioningStep]] = None):
        self.executor = executor
        self.steps = steps if steps is not None else STEPS

    def provision(
        self,
        node: NodeRecord,
        join_command: str,
        emit: Emit,
        loadbalancer: Optional[str] = None,
    ) -> NodeOutcome:
        """Provision ``node`` and report every notice through ``emit``.

        The first failing step stops the sequence for this node. Completed
        steps are not rolled back.
        """
        ctx = StepContext(node=node, join_command=join_command, loadbalancer=loadbalancer)
        outcome = NodeOutcome(name=node.name, succeeded=False)
        start_time = time.time()

        def notify(success: bool, message: str) -> None:
            emit(StatusEvent(node.name, success, f"{node.name}: {message}"))

        notify(True, "adding node...")
        for step in self.steps:
            if not step.applies(ctx):
                continue
            if step.notice:
                notify(True, step.notice)

            target, function, args = step.build(ctx)
            logger.debug("[%s] [%s] %s %s", node.name, step.name, function, ' '.join(args))
            success, message = self.executor.execute(target, function, *args)
            if not success:
                logger.error("[%s] step '%s' failed after %.1fs: %s",
                             node.name, step.name, time.time() - start_time, message)
                outcome.failed_step = step.name
                outcome.message = message
                notify(False, message)
                return outcome
            outcome.completed_steps.append(step.name)

        outcome.succeeded = True
        outcome.message = "node successfully added"
        logger.info("[%s] joined as %s in %.1fs", node.name, node.role.value, time.time() - start_time)
        notify(True, outcome.message)
        return outcome
