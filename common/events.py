from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")

_ids = itertools.count(1)


@dataclass(frozen=True)
class Subscription:
    """Handle returned by Publisher.subscribe; pass it back to unsubscribe."""
    id: int
    topic: str


class Publisher(Generic[T]):
    """
    Synchronous fan-out to handlers, in subscription order.

    A handler that raises is logged and skipped; the producer's state and the
    remaining handlers are unaffected. Subscription changes made by a handler
    take effect from the next publish.
    """

    def __init__(self, topic: str, logger: Optional[logging.Logger] = None):
        self.topic = topic
        self._log = logger or logging.getLogger(f"events.{topic}")
        self._handlers: List[Tuple[Subscription, Callable[[T], None]]] = []

    def subscribe(self, handler: Callable[[T], None]) -> Subscription:
        sub = Subscription(id=next(_ids), topic=self.topic)
        self._handlers.append((sub, handler))
        return sub

    def unsubscribe(self, sub: Subscription) -> bool:
        for i, (s, _) in enumerate(self._handlers):
            if s == sub:
                del self._handlers[i]
                return True
        return False

    def __len__(self) -> int:
        return len(self._handlers)

    def publish(self, item: T) -> int:
        """Deliver `item` to every handler; returns how many failed."""
        failures = 0
        for sub, handler in list(self._handlers):
            try:
                handler(item)
            except Exception:
                failures += 1
                self._log.exception(
                    "Subscriber raised; isolated",
                    extra={"extra": {"topic": self.topic, "subscription": sub.id}},
                )
        return failures
