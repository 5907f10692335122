"""LogFollower - reads a step's log stream on a producer thread."""

import logging
import queue
import threading
from typing import Callable, Iterable, Optional, Protocol

from .models import FollowedStream

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100
DEFAULT_POLL_TIMEOUT = 0.25


class LogStreamSource(Protocol):
    def stream_step_log(self, pipeline_id: str, step_id: str) -> Iterable[str]: ...


class LogFollower:
    """Streams one step's log through a bounded queue.

    A producer thread pushes lines onto a data queue and, when the
    stream ends, puts ``None`` or the raised exception onto a completion
    queue. The consumer polls both with short timeouts so it never blocks
    indefinitely on either and can notice cancellation between lines.
    """

    def __init__(
        self,
        client: LogStreamSource,
        cancel_event: Optional[threading.Event] = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        poll_timeout: float = DEFAULT_POLL_TIMEOUT,
    ):
        self._client = client
        self._cancel_event = cancel_event or threading.Event()
        self._queue_size = queue_size
        self._poll_timeout = poll_timeout

    def _produce(
        self,
        pipeline_id: str,
        step_id: str,
        lines: queue.Queue,
        done: queue.Queue,
        stop: threading.Event,
    ) -> None:
        error: Optional[BaseException] = None
        try:
            for line in self._client.stream_step_log(pipeline_id, step_id):
                while not stop.is_set():
                    try:
                        lines.put(line, timeout=self._poll_timeout)
                        break
                    except queue.Full:
                        continue
                if stop.is_set():
                    return
        except Exception as e:
            # Forwarded to the consumer, which decides how to report it
            error = e
        finally:
            done.put(error)

    def follow(
        self,
        pipeline_id: str,
        step_id: str,
        on_line: Optional[Callable[[str], None]] = None,
    ) -> FollowedStream:
        """Consume a step's stream until it closes, fails or is cancelled.

        Args:
            pipeline_id: Canonical pipeline id.
            step_id: Step UUID.
            on_line: Called with each line as soon as it arrives.

        Returns:
            FollowedStream with every line received, in order.
        """
        lines: queue.Queue = queue.Queue(maxsize=self._queue_size)
        done: queue.Queue = queue.Queue(maxsize=1)
        stop = threading.Event()
        received: list[str] = []

        def accept(line: str) -> None:
            received.append(line)
            if on_line is not None:
                on_line(line)

        producer = threading.Thread(
            target=self._produce,
            args=(pipeline_id, step_id, lines, done, stop),
            name=f"log-stream-{step_id}",
            daemon=True,
        )
        producer.start()

        try:
            while True:
                if self._cancel_event.is_set():
                    logger.info("Stopped following step %s after %d lines", step_id, len(received))
                    return FollowedStream(step_id=step_id, lines=received, cancelled=True)
                try:
                    accept(lines.get(timeout=self._poll_timeout))
                    continue
                except queue.Empty:
                    pass

                try:
                    error = done.get_nowait()
                except queue.Empty:
                    continue

                # The producer queues every line before signalling completion
                while True:
                    try:
                        accept(lines.get_nowait())
                    except queue.Empty:
                        break

                if error is not None:
                    logger.warning("Log stream for step %s failed: %s", step_id, error)
                    return FollowedStream(step_id=step_id, lines=received, error=str(error))
                logger.debug("Log stream for step %s closed after %d lines", step_id, len(received))
                return FollowedStream(step_id=step_id, lines=received)
        finally:
            stop.set()
