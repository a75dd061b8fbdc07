"""
    One-shot notifications between client components.
"""
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
import inspect
import logging

log = logging.getLogger(__name__)

GALLERY_REFRESH = "gallery.refresh"

@dataclass(frozen=True)
class Event:
    topic: str
    owner_id: Optional[str] = None
    payload: Any = None

Subscriber = Callable[[Event], Union[None, Awaitable[None]]]

class EventChannel:
    def __init__(self):
        self._subscribers: Dict[str, List[Subscriber]] = defaultdict(list)

    def subscribe(self, topic: str, callback: Subscriber) -> Callable[[], None]:
        """Registers a callback; returns a function that unsubscribes it."""
        self._subscribers[topic].append(callback)

        def unsubscribe():
            if callback in self._subscribers[topic]:
                self._subscribers[topic].remove(callback)

        return unsubscribe

    async def publish(self, event: Event) -> int:
        """Delivers to every subscriber in order. Returns the number of deliveries."""
        delivered = 0
        for callback in list(self._subscribers[event.topic]):
            # a failing subscriber must not stop delivery to the rest
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception:
                log.exception("Subscriber for %s failed", event.topic)
        return delivered
