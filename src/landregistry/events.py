"""
Append-only notification log.

Committed operations publish their events here in order. Each event is
chained to the previous one by hash so an exported log can be checked with
``verify_hash_chain``. Subscribers (the PostgreSQL audit sink, indexers) are
called after the event is appended; their failures are logged, never raised.
"""
import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .crypto import GENESIS, compute_event_hash, verify_hash_chain
from .models import Event

logger = logging.getLogger(__name__)

Subscriber = Callable[[Event], Any]


class EventLog:
    """Ordered, hash-chained record of committed state changes."""

    def __init__(self):
        self._events: List[Event] = []
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._events)

    @property
    def head(self) -> str:
        return self._events[-1].hash if self._events else GENESIS

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def append(
        self,
        name: str,
        actor: str,
        data: Optional[Dict[str, Any]] = None,
        reason: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> Event:
        with self._lock:
            fields = {
                'index': len(self._events),
                'name': name,
                'actor': actor,
                'data': dict(data or {}),
                'reason': reason,
                'timestamp': (timestamp or datetime.now()).isoformat(),
            }
            prev_hash = self.head
            event = Event(**fields, prev_hash=prev_hash, hash=compute_event_hash(fields, prev_hash))
            self._events.append(event)

        self._notify(event)
        return event

    def publish(
        self,
        pending: Iterable[Tuple[str, str, Dict[str, Any], Optional[str]]],
        timestamp: Optional[datetime] = None,
    ) -> List[Event]:
        """Append the events one committed operation raised."""
        return [self.append(name, actor, data, reason, timestamp) for name, actor, data, reason in pending]

    def _notify(self, event: Event) -> None:
        for subscriber in self._subscribers:
            try:
                subscriber(event)
            except Exception as e:
                # Don't fail the committed operation if a subscriber fails, but note it
                logger.error("Event subscriber failed on %s #%s: %s", event.name, event.index, e)

    def events(self, limit: Optional[int] = None, offset: int = 0) -> List[Event]:
        selected = self._events[offset:]
        if limit is not None:
            selected = selected[:limit]
        return [event.model_copy(deep=True) for event in selected]

    def verify(self):
        """Returns (is_valid, list_of_errors) for the whole log."""
        return verify_hash_chain(self._events)
