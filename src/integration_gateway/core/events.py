"""
Observer registration for integration events.

Circuit breakers, clients and the manager each own their listeners; there is no
process-wide event bus. Listeners are plain callables invoked synchronously, in
registration order, with an IntegrationEvent.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Events emitted by breakers, clients and the manager."""
    STATE_CHANGE = "state_change"
    CIRCUIT_OPEN = "circuit_open"
    RESET = "reset"
    INTEGRATION_ERROR = "integration_error"
    INTEGRATION_ALERT = "integration_alert"


@dataclass(frozen=True)
class IntegrationEvent:
    event_type: EventType
    payload: Dict[str, Any] = field(default_factory=dict)


EventListener = Callable[[IntegrationEvent], None]


class EventEmitter:
    """Mixin giving a component its own listener registry."""

    def __init__(self) -> None:
        self._listeners: Dict[EventType, List[EventListener]] = {}
        self._forwarders: Dict[int, EventListener] = {}

    def add_listener(self, event_type: EventType, listener: EventListener) -> None:
        self._listeners.setdefault(EventType(event_type), []).append(listener)

    def remove_listener(self, event_type: EventType, listener: EventListener) -> bool:
        """
        Remove a previously registered listener.

        Returns:
            True if the listener was registered, False otherwise
        """
        listeners = self._listeners.get(EventType(event_type), [])
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def emit(self, event_type: EventType, payload: Dict[str, Any]) -> IntegrationEvent:
        """
        Deliver an event to every listener registered for its type.

        A failing listener is logged and skipped so that one broken subscriber
        can't interrupt the call that produced the event.
        """
        event = IntegrationEvent(event_type=EventType(event_type), payload=payload)
        for listener in list(self._listeners.get(event.event_type, [])):
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "Event listener failed",
                    extra={
                        "event_type": event.event_type.value,
                        "listener": getattr(listener, "__name__", repr(listener))
                    }
                )
        return event

    def forward_to(self, target: "EventEmitter") -> None:
        """Re-emit every event of this emitter on ``target``"""
        if id(target) in self._forwarders:
            return

        def forward(event: IntegrationEvent) -> None:
            target.emit(event.event_type, event.payload)

        self._forwarders[id(target)] = forward
        for event_type in EventType:
            self.add_listener(event_type, forward)

    def stop_forwarding_to(self, target: "EventEmitter") -> bool:
        """
        Undo a previous ``forward_to(target)``.

        Returns:
            True if events were being forwarded to ``target``, False otherwise
        """
        forward = self._forwarders.pop(id(target), None)
        if forward is None:
            return False
        for event_type in EventType:
            self.remove_listener(event_type, forward)
        return True
