"""Event stream for background workflow outcomes.

Workflow units publish events into a bounded FIFO queue; exactly one
consumer drains it and hands each event to a transport-provided `send`
callable. A failed delivery puts the event back from a helper thread so a
later read can retry it. That event may then come after newer ones.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from config import DEFAULT_EVENT_QUEUE_SIZE, DEFAULT_POLL_INTERVAL

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    INFO = 'INFO'
    ERROR = 'ERROR'


@dataclass(frozen=True)
class Event:
    """One workflow outcome."""
    event_type: EventType
    summary: str
    details: str = ''

    def to_dict(self) -> dict:
        return {
            'event_type': self.event_type.value,
            'summary': self.summary,
            'details': self.details,
        }

    @classmethod
    def info(cls, summary: str, details: str = '') -> 'Event':
        return cls(EventType.INFO, summary, details)

    @classmethod
    def error(cls, summary: str, details: str = '') -> 'Event':
        return cls(EventType.ERROR, summary, details)


class StreamError(Exception):
    """Delivering an event to the consumer failed."""


class EventStream:
    """Bounded single-consumer event queue.

    publish() blocks while the queue is full. The consumer blocks in next()
    until an event arrives or the timeout passes.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_EVENT_QUEUE_SIZE,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.capacity = capacity
        self.poll_interval = poll_interval
        self._queue: queue.Queue = queue.Queue(maxsize=capacity)

    def __len__(self) -> int:
        return self._queue.qsize()

    def publish(self, event: Event) -> None:
        """Enqueue an event, waiting for room if the queue is full."""
        logger.debug(f"Publishing event: {event.event_type.value} {event.summary}")
        self._queue.put(event)

    def next(self, timeout: Optional[float] = None) -> Optional[Event]:
        """Return the oldest event, or None if none arrives within timeout."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def requeue(self, event: Event) -> threading.Thread:
        """Put an undelivered event back without blocking the caller."""
        thread = threading.Thread(
            target=self._queue.put, args=(event,), name='event-requeue', daemon=True,
        )
        thread.start()
        return thread

    def deliver(self, send: Callable[[Event], None], timeout: Optional[float] = None) -> bool:
        """Hand at most one event to ``send``.

        Returns:
            True if an event was delivered, False if none was waiting

        Raises:
            StreamError: If send failed; the event has been requeued
        """
        event = self.next(timeout=timeout)
        if event is None:
            return False
        logger.debug(f"Sending event: {event.summary}")
        try:
            send(event)
        except Exception as e:
            self.requeue(event)
            err = StreamError(f"unable to send event: {e}")
            logger.error(err)
            raise err from e
        return True

    def stream(self, send: Callable[[Event], None], stop: Optional[threading.Event] = None) -> None:
        """Deliver events to ``send`` until ``stop`` is set or a send fails."""
        logger.debug("Waiting on event stream...")
        while stop is None or not stop.is_set():
            self.deliver(send, timeout=self.poll_interval)
