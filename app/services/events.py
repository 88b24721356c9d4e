"""
In-process event bus for inventory side effects.

Subscribers run after the triggering write, each inside its own savepoint and
with its own retry budget. A failing subscriber is logged and never fails the
write that published the event.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemCostChanged:
    business_id: Optional[UUID]  # None when a shared item's default cost changed
    item_id: UUID
    old_cost: Decimal
    new_cost: Decimal


class EventBus:
    def __init__(self, max_attempts: int = None):
        self.max_attempts = max_attempts or settings.COST_CASCADE_MAX_ATTEMPTS
        self._subscribers = defaultdict(list)

    def subscribe(self, event_type: type, handler: Callable[[Session, object], None]):
        if handler not in self._subscribers[event_type]:
            self._subscribers[event_type].append(handler)

    def unsubscribe(self, event_type: type, handler: Callable[[Session, object], None]):
        if handler in self._subscribers[event_type]:
            self._subscribers[event_type].remove(handler)

    def publish(self, db: Session, event) -> int:
        """Deliver ``event`` to every subscriber. Returns how many succeeded."""
        delivered = 0
        for handler in list(self._subscribers[type(event)]):
            if self._deliver(db, handler, event):
                delivered += 1
        return delivered

    def _deliver(self, db: Session, handler, event) -> bool:
        name = getattr(handler, "__qualname__", repr(handler))
        for attempt in range(1, self.max_attempts + 1):
            try:
                with db.begin_nested():
                    handler(db, event)
                return True
            except Exception:
                logger.exception(
                    "Subscriber %s failed for %s (attempt %d/%d)",
                    name, type(event).__name__, attempt, self.max_attempts,
                )
        logger.error("Giving up on %s for %r", name, event)
        return False


event_bus = EventBus()
