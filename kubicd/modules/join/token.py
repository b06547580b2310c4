"""Join token lifecycle."""
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from kubicd.modules.executor import RemoteExecutor
from kubicd.errors import TokenError
from .models import JoinToken, NodeRole, StatusEvent
from .parsing import parse_certificate_key, parse_join_command

logger = logging.getLogger("kubicd.join.token")

Emit = Callable[[StatusEvent], None]

TOKEN_CREATE_CMD = 'kubeadm token create --print-join-command'
UPLOAD_CERTS_CMD = 'kubeadm init phase upload-certs --upload-certs'


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenBroker:
    """Owns the cached join command and regenerates it when it gets stale.

    The read-check-refresh sequence runs under a lock, so callers that find
    the cache stale at the same time trigger a single ``kubeadm token create``
    and all of them get its result.
    """

    def __init__(
        self,
        executor: RemoteExecutor,
        max_age: timedelta = timedelta(hours=23),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.executor = executor
        self.max_age = max_age
        self.clock = clock
        self._token: Optional[JoinToken] = None
        self._lock = threading.Lock()

    @property
    def cached(self) -> Optional[JoinToken]:
        with self._lock:
            return self._token

    def _is_fresh(self, token: Optional[JoinToken]) -> bool:
        return token is not None and self.clock() - token.issued_at <= self.max_age

    def _refresh(self, target: str, emit: Optional[Emit]) -> JoinToken:
        if emit:
            emit(StatusEvent(StatusEvent.GLOBAL, True, "Generate new token ..."))
        logger.info("Token to join nodes too old, creating new one")

        success, output = self.executor.execute(target, 'cmd.run', TOKEN_CREATE_CMD, output='txt')
        if not success:
            raise TokenError(output)
        try:
            value = parse_join_command(output)
        except ValueError as e:
            raise TokenError(f"Cannot parse join command: {e}") from e
        return JoinToken(value=value, issued_at=self.clock())

    def _upload_certs(self, target: str, emit: Optional[Emit]) -> str:
        if emit:
            emit(StatusEvent(StatusEvent.GLOBAL, True, "Upload certificates ..."))
        logger.info("Uploading control-plane certificates via %s", target)

        success, output = self.executor.execute(target, 'cmd.run', UPLOAD_CERTS_CMD, output='txt')
        if not success:
            raise TokenError(output)
        try:
            return parse_certificate_key(output)
        except ValueError as e:
            raise TokenError(f"Cannot find certificate key: {e}") from e

    def get_join_command(
        self,
        control_plane_target: str,
        role: NodeRole = NodeRole.WORKER,
        emit: Optional[Emit] = None,
    ) -> JoinToken:
        """Return a snapshot of a valid join token.

        For the control-plane role the certificates are uploaded on every call
        and the resulting key is attached to the returned snapshot only; the
        cached token never carries a key.

        Raises:
            TokenError: If token creation or the certificate upload fails
        """
        with self._lock:
            if not self._is_fresh(self._token):
                self._token = self._refresh(control_plane_target, emit)
            token = self._token

        if role == NodeRole.CONTROL_PLANE:
            token = token.with_cert_key(self._upload_certs(control_plane_target, emit))
        return token
