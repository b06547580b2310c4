"""
Remote command execution through salt.

Commands are addressed to a minion name, a glob/bracket pattern or an explicit
comma separated list, and run synchronously with one result per command.
"""
import logging
import subprocess
import time
from enum import Enum
from typing import List, NamedTuple, Optional, Protocol

logger = logging.getLogger("kubicd.executor")


class TargetType(str, Enum):
    """How salt should interpret the target expression."""
    GLOB = 'glob'
    LIST = 'list'


class ExecResult(NamedTuple):
    success: bool
    output: str


class RemoteExecutor(Protocol):
    """Anything able to run a salt function against a target."""

    def execute(
        self,
        target: str,
        function: str,
        *args: str,
        target_type: TargetType = TargetType.GLOB,
        output: Optional[str] = None,
    ) -> ExecResult:
        ...


class SaltExecutor:
    """Run salt functions with the ``salt`` command line client."""

    def __init__(self, binary: str = 'salt', timeout: int = 600):
        """Initialize the executor.

        Args:
            binary: Path or name of the salt client
            timeout: Timeout in seconds applied to every command
        """
        self.binary = binary
        self.timeout = timeout

    def build_command(
        self,
        target: str,
        function: str,
        *args: str,
        target_type: TargetType = TargetType.GLOB,
        output: Optional[str] = None,
    ) -> List[str]:
        cmd = [self.binary, '--module-executors=direct_call']
        if output:
            cmd.append(f'--out={output}')
        if target_type == TargetType.LIST:
            cmd.append('-L')
        cmd.extend([target, function])
        cmd.extend(args)
        return cmd

    def execute(
        self,
        target: str,
        function: str,
        *args: str,
        target_type: TargetType = TargetType.GLOB,
        output: Optional[str] = None,
    ) -> ExecResult:
        """Run a salt function and capture its output.

        Failures are returned, never raised: a non-zero exit status, a timeout
        or a missing salt binary all give ``ExecResult(False, <error text>)``.
        """
        cmd = self.build_command(target, function, *args, target_type=target_type, output=output)
        logger.debug("Running: %s", ' '.join(cmd))

        start_time = time.time()
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired:
            elapsed = time.time() - start_time
            logger.error("%s %s on %s timed out after %.1fs", self.binary, function, target, elapsed)
            return ExecResult(False, f"Command timed out after {elapsed:.1f}s")
        except OSError as e:
            logger.error("Error invoking %s: %s", self.binary, e)
            return ExecResult(False, f"Error invoking {self.binary}: {e}")

        if result.returncode != 0:
            stderr = result.stderr.strip()
            logger.error("Error invoking %s: exit status %d\n%s", self.binary, result.returncode, stderr)
            return ExecResult(
                False,
                f"Error invoking {self.binary}: exit status {result.returncode} \n({stderr})"
            )

        logger.debug("%s %s on %s finished in %.1fs", self.binary, function, target, time.time() - start_time)
        return ExecResult(True, result.stdout)
