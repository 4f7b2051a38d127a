"""
Task event notifications for plugintools.

The scheduler tool publishes a TaskEvent after every create/update/delete.
Publishing is a non-blocking hand-off onto a bounded queue; a single
background worker thread drains the queue and delivers each event to the
configured sinks.

Guarantees:
    - publish() never blocks and never raises for delivery problems
    - A full queue drops the event (logged at WARNING)
    - A failing sink is logged and skipped; other sinks still run
    - Sinks run on the worker thread, never while the store lock is held

Sinks:
    - LoggingSink: logs every event (always installed)
    - WebhookSink: POSTs the event as JSON to a URL using httpx
"""

import logging
import queue
import threading
import time
from collections.abc import Callable, Sequence

import httpx

from plugintools.schema import SchedulerConfig, TaskEvent

logger = logging.getLogger(__name__)

# A sink receives one event; exceptions it raises are logged and ignored
NotificationSink = Callable[[TaskEvent], None]

_STOP = object()


class LoggingSink:
    """Sink that writes each event to the log."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def __call__(self, event: TaskEvent) -> None:
        self._log.info(
            "Notification: %s - Task %s (%s)",
            event.event.value,
            event.task.id,
            event.task.title,
        )


class WebhookSink:
    """
    Sink that POSTs each event as JSON to a webhook URL.

    Non-2xx responses and transport errors raise, which the notifier
    logs; they never reach the scheduler caller.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self._client = client or httpx.Client(timeout=timeout)

    def __call__(self, event: TaskEvent) -> None:
        response = self._client.post(self.url, json=event.model_dump(mode="json"))
        response.raise_for_status()

    def close(self) -> None:
        self._client.close()


class Notifier:
    """
    Bounded hand-off from mutating operations to a notification worker.

    Usage:
        notifier = Notifier([LoggingSink()], max_queue_size=100)
        notifier.start()
        notifier.publish(event)   # returns immediately
        notifier.stop()

    Attributes:
        sinks: Callables receiving each event, in order
        dropped: Count of events dropped because the queue was full
    """

    def __init__(
        self,
        sinks: Sequence[NotificationSink] = (),
        max_queue_size: int = 100,
    ) -> None:
        self.sinks = list(sinks)
        self.dropped = 0
        self._queue: queue.Queue = queue.Queue(maxsize=max_queue_size)
        self._thread: threading.Thread | None = None
        self._abandon: threading.Event | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        """Whether the worker thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the worker thread (idempotent)."""
        with self._lock:
            if self.running:
                return
            self._abandon = threading.Event()
            self._thread = threading.Thread(
                target=self._worker,
                args=(self._abandon,),
                name="plugintools-notifier",
                daemon=True,
            )
            self._thread.start()

    def publish(self, event: TaskEvent) -> bool:
        """
        Hand an event to the worker without blocking.

        Returns:
            True if queued, False if it was dropped because the queue is full
        """
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            with self._lock:
                self.dropped += 1
            logger.warning(
                "Notification queue full, dropping %s for task %s",
                event.event.value,
                event.task.id,
            )
            return False
        return True

    def join(self) -> None:
        """Block until every queued event has been delivered (or failed)."""
        self._queue.join()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the worker after it drains the events already queued.

        Returns within roughly timeout seconds. If the worker is still busy
        by then it is abandoned: it exits after the event in hand and the
        remaining queued events are discarded. Sinks exposing close() are
        closed afterwards.
        """
        with self._lock:
            thread, abandon = self._thread, self._abandon
            self._thread = self._abandon = None
        if thread is not None and thread.is_alive():
            deadline = None if timeout is None else time.monotonic() + timeout
            try:
                self._queue.put(_STOP, timeout=timeout)
            except queue.Full:
                pass
            thread.join(None if deadline is None else max(deadline - time.monotonic(), 0))
            if thread.is_alive() and abandon is not None:
                abandon.set()
                logger.warning(
                    "Notification worker still busy after %ss, abandoning %d queued events",
                    timeout,
                    self._queue.qsize(),
                )

        for sink in self.sinks:
            close = getattr(sink, "close", None)
            if callable(close):
                close()

    def _worker(self, abandon: threading.Event) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP or abandon.is_set():
                    return
                self._deliver(item)
            finally:
                self._queue.task_done()

    def _deliver(self, event: TaskEvent) -> None:
        for sink in self.sinks:
            try:
                sink(event)
            except Exception:
                logger.exception(
                    "Notification sink %r failed for %s (task %s)",
                    sink,
                    event.event.value,
                    event.task.id,
                )


def build_notifier(config: SchedulerConfig) -> Notifier:
    """Create a notifier with the sinks the scheduler configuration asks for."""
    sinks: list[NotificationSink] = [LoggingSink()]
    if config.notification_webhook_url:
        sinks.append(WebhookSink(config.notification_webhook_url))
    return Notifier(sinks, max_queue_size=config.notification_queue_size)
