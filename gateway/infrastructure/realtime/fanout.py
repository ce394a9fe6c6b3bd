"""
Change fan-out.

Delivers ChangeEvents to the WebSocket connections subscribed to the
event's topic (one topic per collection).

Architecture:
    use case ──publish()──▶  ChangeFanout
                                 │  snapshot under lock
                                 ▼
                    ┌──── per-connection mailbox ────┐
                    │ bounded asyncio.Queue          │
                    │ dispatcher task (send_json)    │
                    └────────────────────────────────┘

`publish` never awaits a subscriber: it copies the topic's subscribers
under the registry lock, then enqueues one message per mailbox outside
the lock. Each mailbox's dispatcher sends in order, abandons a delivery
that exceeds `delivery_timeout`, and closes the connection's
subscriptions when a send fails.

Publishing is safe from any thread. Sync route handlers run in a worker
thread, so their messages are handed to the mailbox's loop with
`call_soon_threadsafe`.
"""

import asyncio
import logging
import threading
from collections import deque
from typing import Any, Protocol

from fastapi.encoders import jsonable_encoder

from gateway.domain.backend.entities import ChangeEvent
from gateway.domain.backend.ports import ChangePublisherPort

logger = logging.getLogger(__name__)


class Connection(Protocol):
    """Anything that can receive a JSON message (a Starlette WebSocket)."""

    async def send_json(self, data: Any) -> None: ...


def event_message(event: ChangeEvent) -> dict[str, Any]:
    """Wire form of a ChangeEvent: a named event wrapping its fields."""
    return {
        "event": event.operation_kind.event_name,
        "data": jsonable_encoder(event.to_dict()),
        "timestamp": event.timestamp,
    }


class _Mailbox:
    """Ordered, bounded outbox of one connection, drained by one task."""

    def __init__(
        self,
        connection: Connection,
        loop: asyncio.AbstractEventLoop,
        max_queue_size: int,
        delivery_timeout: float,
        on_failure,
    ) -> None:
        self.connection = connection
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue_size)
        self._delivery_timeout = delivery_timeout
        self._on_failure = on_failure
        self.delivered = 0
        self.dropped = 0
        self._task = loop.create_task(self._run())

    def offer(self, message: dict[str, Any]) -> bool:
        """Enqueue without blocking. Returns False if the loop is gone."""
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            self._put(message)
            return True
        try:
            self._loop.call_soon_threadsafe(self._put, message)
        except RuntimeError:
            logger.warning("Mailbox loop is closed; message dropped")
            return False
        return True

    def _put(self, message: dict[str, Any]) -> None:
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Subscriber mailbox full (%d); dropping %s",
                self._queue.maxsize,
                message.get("event"),
            )

    async def _run(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                await asyncio.wait_for(
                    self.connection.send_json(message),
                    timeout=self._delivery_timeout,
                )
                self.delivered += 1
            except asyncio.TimeoutError:
                self.dropped += 1
                logger.warning(
                    "Delivery of %s abandoned after %.1fs",
                    message.get("event"),
                    self._delivery_timeout,
                )
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                logger.warning(
                    "Delivery of %s failed; closing subscriber",
                    message.get("event"),
                    exc_info=True,
                )
                self._on_failure(self.connection)
                return

    def close(self) -> None:
        if self._loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._task.cancel()
        else:
            self._loop.call_soon_threadsafe(self._task.cancel)


class ChangeFanout(ChangePublisherPort):
    """Topic-based pub/sub between document mutations and WebSocket clients.

    The topic registry is the only shared mutable state and is owned by
    this class. Subscribing and publishing may happen concurrently from
    the event loop and from worker threads.

    Args:
        max_queue_size: Capacity of each connection's mailbox.
        delivery_timeout: Seconds one send may take before it is abandoned.
        max_history: Number of recent events kept for the status endpoint.
    """

    def __init__(
        self,
        max_queue_size: int = 100,
        delivery_timeout: float = 5.0,
        max_history: int = 500,
    ) -> None:
        self._lock = threading.Lock()
        self._topics: dict[str, set[Connection]] = {}
        self._mailboxes: dict[Connection, _Mailbox] = {}
        self._max_queue_size = max_queue_size
        self._delivery_timeout = delivery_timeout
        self._history: deque[ChangeEvent] = deque(maxlen=max_history)
        self._stats = {
            "totalConnections": 0,
            "totalEventsPublished": 0,
            "totalMessagesEnqueued": 0,
        }

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, connection: Connection, topic: str) -> bool:
        """Register `connection` under `topic`.

        Idempotent. Must be called from the event loop that owns the
        connection, since the connection's mailbox is bound to it.

        Returns:
            True if a new subscription was created.
        """
        with self._lock:
            self._ensure_mailbox(connection)
            subscribers = self._topics.setdefault(topic, set())
            if connection in subscribers:
                return False
            subscribers.add(connection)
        logger.info("Connection %s subscribed to %s", _label(connection), topic)
        return True

    def unsubscribe(self, connection: Connection, topic: str) -> bool:
        """Remove the subscription. A no-op if it does not exist.

        Returns:
            True if a subscription was removed.
        """
        with self._lock:
            subscribers = self._topics.get(topic)
            if not subscribers or connection not in subscribers:
                return False
            subscribers.discard(connection)
            if not subscribers:
                del self._topics[topic]
        logger.info("Connection %s unsubscribed from %s", _label(connection), topic)
        return True

    def on_connection_closed(self, connection: Connection) -> None:
        """Drop every subscription and the mailbox of a connection.

        Safe to call more than once.
        """
        with self._lock:
            mailbox = self._mailboxes.pop(connection, None)
            for topic in [t for t, subs in self._topics.items() if connection in subs]:
                subs = self._topics[topic]
                subs.discard(connection)
                if not subs:
                    del self._topics[topic]
        if mailbox is not None:
            mailbox.close()
            logger.info(
                "Connection %s closed. Active: %d",
                _label(connection),
                self.active_connections,
            )

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def publish(self, event: ChangeEvent) -> int:
        """Hand `event` to the subscribers of its topic at this moment.

        Never blocks on subscriber I/O and never raises.

        Returns:
            Number of mailboxes the event was enqueued to.
        """
        try:
            message = event_message(event)
            with self._lock:
                targets = [
                    self._mailboxes[c]
                    for c in self._topics.get(event.topic, ())
                    if c in self._mailboxes
                ]
                self._history.append(event)
                self._stats["totalEventsPublished"] += 1

            enqueued = sum(1 for mailbox in targets if mailbox.offer(message))
            with self._lock:
                self._stats["totalMessagesEnqueued"] += enqueued
            logger.debug(
                "Published %s %s/%s to %d subscriber(s)",
                event.operation_kind.value,
                event.topic,
                event.resource_id,
                enqueued,
            )
            return enqueued
        except Exception:  # noqa: BLE001
            logger.exception("Publishing %s on %s failed", event.resource_id, event.topic)
            return 0

    def send(self, connection: Connection, message: dict[str, Any]) -> bool:
        """Enqueue a direct message (acknowledgement, pong) for one connection.

        Goes through the connection's mailbox so it is ordered with
        broadcast events. Must be called from the connection's event loop.
        """
        with self._lock:
            mailbox = self._ensure_mailbox(connection)
        return mailbox.offer(message)

    def close(self) -> None:
        """Cancel every dispatcher and forget all subscriptions."""
        with self._lock:
            mailboxes = list(self._mailboxes.values())
            self._mailboxes.clear()
            self._topics.clear()
        for mailbox in mailboxes:
            mailbox.close()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def active_connections(self) -> int:
        return len(self._mailboxes)

    @property
    def topics(self) -> dict[str, int]:
        with self._lock:
            return {topic: len(subs) for topic, subs in self._topics.items()}

    @property
    def stats(self) -> dict:
        with self._lock:
            return {
                **self._stats,
                "activeConnections": len(self._mailboxes),
                "activeTopics": len(self._topics),
            }

    def subscriptions(self, connection: Connection) -> set[str]:
        with self._lock:
            return {t for t, subs in self._topics.items() if connection in subs}

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._topics.get(topic, ()))

    def get_recent_events(self, limit: int = 50, topic: str | None = None) -> list[dict]:
        """Return recent events, optionally filtered by topic."""
        with self._lock:
            events = list(self._history)
        if topic:
            events = [e for e in events if e.topic == topic]
        return [event_message(e) for e in events[-limit:]]

    # ------------------------------------------------------------------

    def _ensure_mailbox(self, connection: Connection) -> _Mailbox:
        # Caller holds the lock.
        mailbox = self._mailboxes.get(connection)
        if mailbox is None:
            mailbox = _Mailbox(
                connection,
                loop=asyncio.get_running_loop(),
                max_queue_size=self._max_queue_size,
                delivery_timeout=self._delivery_timeout,
                on_failure=self.on_connection_closed,
            )
            self._mailboxes[connection] = mailbox
            self._stats["totalConnections"] += 1
        return mailbox


def _label(connection: Any) -> str:
    client = getattr(connection, "client", None)
    if client is not None:
        return f"{client.host}:{client.port}"
    return hex(id(connection))
