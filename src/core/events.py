"""In-process publish/subscribe channel for change broadcasts between UI regions."""
import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

E = TypeVar("E")


@dataclass(frozen=True)
class SettingsChanged:
    """Shared settings were replaced; `changed_fields` may be empty on a no-op reload."""

    settings: Any
    changed_fields: frozenset[str] = field(default_factory=frozenset)

    def touches(self, *field_names: str) -> bool:
        """Check whether any of the given fields changed."""
        return bool(self.changed_fields.intersection(field_names))


@dataclass(frozen=True)
class UserChanged:
    """Cached user profile was replaced."""

    user: Any


class EventBus:
    """
    Typed publish/subscribe channel.

    Subscribers register per event class and receive the event instance, so they
    can react to the specific fields that changed instead of re-reading
    everything. Delivery is synchronous and unordered across subscribers; a
    failing subscriber is logged and does not affect the others or the publisher.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Callable[[Any], None]]] = defaultdict(list)

    def subscribe(self, event_type: type[E], callback: Callable[[E], None]) -> Callable[[], None]:
        """Register a callback; returns a function that removes it again."""
        self._subscribers[event_type].append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(event_type, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def publish(self, event: object) -> None:
        """Deliver an event to every subscriber of its type."""
        # Copy so subscribers may unsubscribe while being notified
        for callback in list(self._subscribers.get(type(event), [])):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "event_subscriber_failed",
                    extra={"event": type(event).__name__},
                )

    def subscriber_count(self, event_type: type) -> int:
        """Number of callbacks registered for an event type."""
        return len(self._subscribers.get(event_type, []))
