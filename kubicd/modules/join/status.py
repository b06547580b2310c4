"""Serialized delivery of status events to a single sink."""
import logging
import queue
import threading
from typing import Callable, Optional

from kubicd.errors import SinkClosed
from .models import StatusEvent

logger = logging.getLogger("kubicd.join.status")

Sink = Callable[[StatusEvent], None]

_STOP = object()


class StatusStream:
    """Funnel events from many producer threads into one sink.

    Producers call :meth:`emit`, which only enqueues. A single writer thread
    drains the queue in FIFO order and calls the sink, so events from one
    producer reach the sink in the order they were emitted. If the sink raises,
    the failure is logged and further events are dropped; producers are never
    affected.
    """

    def __init__(self, sink: Sink, name: str = "status-writer"):
        self.sink = sink
        self.closed = False
        self.delivered = 0
        self.dropped = 0
        self._queue: "queue.Queue" = queue.Queue()
        self._thread = threading.Thread(target=self._drain, name=name, daemon=True)
        self._thread.start()

    def __enter__(self) -> 'StatusStream':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def emit(self, event: StatusEvent) -> None:
        self._queue.put(event)

    def close(self, timeout: Optional[float] = None) -> None:
        """Flush pending events and stop the writer thread."""
        self._queue.put(_STOP)
        self._thread.join(timeout)

    def _drain(self) -> None:
        while True:
            event = self._queue.get()
            if event is _STOP:
                return
            if self.closed:
                self.dropped += 1
                continue
            try:
                self.sink(event)
                self.delivered += 1
            except SinkClosed as e:
                logger.warning("Status receiver went away, dropping further events: %s", e)
                self.closed = True
                self.dropped += 1
            except Exception as e:
                logger.error("Send message failed: %s", e)
                self.closed = True
                self.dropped += 1
