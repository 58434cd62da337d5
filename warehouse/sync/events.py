"""In-process event bus for inventory change notifications.

There is one publish point (``EventBus.publish``) and one subscriber contract:
a callable taking the event. Events carry the storage revision of the write
that caused them, which subscribers use to drop duplicates.
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from warehouse.models.base import utcnow
from warehouse.storage import StorageChange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InventoryChanged:
    source: str  # stock-in, stock-out, adjustment, storage-service, ...
    revision: int
    order_id: str | None = None
    material_ids: tuple[str, ...] = ()
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class CollectionUpdated:
    collection: str
    record_id: str
    revision: int
    timestamp: datetime = field(default_factory=utcnow)


Handler = Callable[[object], None]


class EventBus:
    def __init__(self):
        self._handlers: dict[type, list[Handler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_type: type, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``event_type``. Returns an unsubscribe callable."""
        with self._lock:
            self._handlers[event_type].append(handler)

        def unsubscribe():
            with self._lock:
                if handler in self._handlers[event_type]:
                    self._handlers[event_type].remove(handler)

        return unsubscribe

    def publish(self, event) -> None:
        with self._lock:
            handlers = list(self._handlers[type(event)])
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Subscriber %r failed handling %s", handler, type(event).__name__)


__all__ = ["CollectionUpdated", "EventBus", "InventoryChanged", "StorageChange"]
