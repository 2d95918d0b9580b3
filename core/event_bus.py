"""
Event bus for FieldOps domain events.

Synchronous in-process pub/sub. Handlers execute immediately in the same
thread as the publisher, after the publishing service has committed. Handler
errors are logged but never propagate.

Subscribing to a category class (e.g. EstimateEvent) receives every event
of that category; subscribing to a concrete class receives only that event.
"""

import logging
from typing import Callable, Dict, List

from core.events import FieldOpsEvent

logger = logging.getLogger(__name__)


class EventBus:
    """
    In-process event bus for domain events.

    Subscribe by event class (or its name), publish by event instance.
    Handlers for the most specific class run first, then handlers for each
    parent category, in subscription order within a class.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}

    @staticmethod
    def _key(event_type: type | str) -> str:
        return event_type if isinstance(event_type, str) else event_type.__name__

    def subscribe(self, event_type: type | str, callback: Callable) -> None:
        """
        Subscribe to events of a type or category.

        Args:
            event_type: Event class or class name (e.g. EstimateConverted, 'EstimateEvent')
            callback: Function to call with the event
        """
        self._subscribers.setdefault(self._key(event_type), []).append(callback)

    def unsubscribe(self, event_type: type | str, callback: Callable) -> bool:
        """Remove a subscription. Returns False if it was not registered."""
        callbacks = self._subscribers.get(self._key(event_type), [])
        if callback not in callbacks:
            return False
        callbacks.remove(callback)
        return True

    def publish(self, event: FieldOpsEvent) -> int:
        """
        Publish an event to subscribers of its class and of its parent categories.

        Args:
            event: FieldOpsEvent instance to publish

        Returns:
            Number of handlers invoked (including ones that failed)
        """
        invoked = 0
        for cls in type(event).__mro__:
            if cls is object:
                break
            for callback in self._subscribers.get(cls.__name__, []):
                invoked += 1
                try:
                    callback(event)
                except Exception:
                    logger.exception(
                        "Handler %s failed for %s (event_id=%s)",
                        getattr(callback, "__name__", repr(callback)),
                        type(event).__name__,
                        event.event_id,
                    )
        return invoked
