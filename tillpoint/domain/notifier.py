"""Notification surface for domain events.

Components that produce user-visible outcomes receive a ``Notifier`` at
construction time and hand it every event they emit. The front end (or
the HTTP layer) subscribes to an ``EventBus`` to turn events into toasts,
persistence or audit records.
"""

from collections import defaultdict
from collections.abc import Callable
from typing import Protocol

import structlog

from tillpoint.domain.base import DomainEvent

logger = structlog.get_logger()

EventHandler = Callable[[DomainEvent], None]

# Subscribing with this event type receives every event.
ALL_EVENTS = "*"


class Notifier(Protocol):
    """Anything that accepts domain events."""

    def notify(self, event: DomainEvent) -> None:
        """Deliver an event."""
        ...


class NullNotifier:
    """Notifier that drops every event."""

    def notify(self, event: DomainEvent) -> None:
        """Ignore the event."""
        return None


class EventBus:
    """Synchronous in-process publish/subscribe notifier.

    Handlers run in subscription order on the caller's thread. A failing
    handler is logged and does not stop delivery to the others, nor does
    it undo the mutation that produced the event.

    Example usage:
        bus = EventBus()
        bus.subscribe("cart.line_added", lambda e: print(e.product_name))
        engine = CartEngine(notifier=bus)
    """

    def __init__(self) -> None:
        """Initialize bus with no subscribers."""
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: str, handler: EventHandler) -> Callable[[], None]:
        """Register a handler for an event type.

        Args:
            event_type: Event type string, or ``ALL_EVENTS``.
            handler: Callable receiving the event.

        Returns:
            Function that removes the subscription.
        """
        self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event_type]:
                self._handlers[event_type].remove(handler)

        return unsubscribe

    def notify(self, event: DomainEvent) -> None:
        """Deliver an event to its subscribers.

        Args:
            event: Event to deliver.
        """
        handlers = [*self._handlers.get(event.event_type, []), *self._handlers.get(ALL_EVENTS, [])]
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Event handler failed",
                    event_type=event.event_type,
                    event_id=str(event.event_id),
                )
