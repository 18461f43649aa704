"""
In-process notification bus

Committed events are announced to subscribers (indexers, notifiers,
audit sinks) through this bus. Delivery is synchronous and
fire-and-forget: a failing subscriber is logged and skipped, it never
rolls back or blocks the engine.
"""

from collections import defaultdict
from typing import Callable

from simple_dao.kernel.events import Event
from simple_dao.kernel.logging import get_logger

logger = get_logger(__name__)

EventHandler = Callable[[Event], None]

# Subscribe to this pseudo event type to receive every event
ALL_EVENTS = "*"


class EventBus:
    """
    Simple synchronous publish/subscribe bus

    Handlers run in registration order; wildcard subscribers run after the
    handlers registered for the specific event type.
    """

    def __init__(self) -> None:
        self._event_handlers: defaultdict[str, list[EventHandler]] = defaultdict(list)
        logger.debug("EventBus initialized")

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """
        Register a handler (several handlers per event type are allowed)

        Args:
            event_type: Event type to receive (e.g. "VoteCast"), or "*"
            handler: Callable receiving the committed event
        """
        self._event_handlers[event_type].append(handler)
        logger.debug(
            "Event handler registered",
            event_type=event_type,
            total_handlers=len(self._event_handlers[event_type]),
        )

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        """Remove a previously registered handler; unknown handlers are ignored"""
        handlers = self._event_handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish_event(self, event: Event) -> None:
        """
        Deliver an event to its subscribers

        Handler exceptions are caught and logged so one broken subscriber
        cannot affect other subscribers or the caller.
        """
        handlers = self._event_handlers.get(event.event_type, []) + self._event_handlers.get(
            ALL_EVENTS, []
        )

        if not handlers:
            logger.debug(
                "No handlers registered for event type",
                event_type=event.event_type,
                event_id=event.event_id,
            )
            return

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    "Event handler failed",
                    event_type=event.event_type,
                    event_id=event.event_id,
                    stream_id=event.stream_id,
                    error=str(e),
                    exc_info=True,
                )

    def publish_events(self, events: list[Event]) -> None:
        """Publish events in order"""
        for event in events:
            self.publish_event(event)

