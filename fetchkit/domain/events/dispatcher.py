"""Synchronous in-process event dispatcher.

Handlers are registered per event class and invoked in registration order.
A failing handler is logged and skipped so that publishing never interrupts
the caller's control flow.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, List, Type, TypeVar

from fetchkit.domain.events.api_events import DomainEvent

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=DomainEvent)
EventHandler = Callable[[DomainEvent], None]


class EventDispatcher:
    """Observer registry for domain events."""

    def __init__(self):
        self._handlers: Dict[Type[DomainEvent], List[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> Callable[[], None]:
        """Registers a handler for an event type (and its subclasses).

        Args:
            event_type: The DomainEvent subclass to listen for.
            handler: Callable receiving the event instance.

        Returns:
            A zero-argument callable that removes the subscription.
        """
        self._handlers[event_type].append(handler)
        logger.debug(f"Subscribed {getattr(handler, '__name__', handler)!r} to {event_type.__name__}")

        def unsubscribe() -> None:
            self.unsubscribe(event_type, handler)

        return unsubscribe

    def unsubscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: DomainEvent) -> int:
        """Delivers an event to every matching handler.

        Returns:
            The number of handlers that were invoked.
        """
        logger.debug(f"EVENT: {event}")
        delivered = 0
        for event_type, handlers in list(self._handlers.items()):
            if not isinstance(event, event_type):
                continue
            for handler in list(handlers):
                delivered += 1
                try:
                    handler(event)
                except Exception as e:
                    logger.error(f"Event handler for {type(event).__name__} failed: {e}", exc_info=True)
        return delivered
