"""
Post-commit notifications.

The vault emits one event per committed operation, after its lock is
released, so listeners may call back into the vault. A failing listener is
logged and skipped; it can never undo or block the operation that fired it.
"""
from collections import defaultdict
from typing import Any, Callable, Dict, List, Union
import logging

from ...protocol.types.common import EventType

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventBus:
    def __init__(self):
        self._listeners: Dict[EventType, List[Listener]] = defaultdict(list)

    def subscribe(self, event: Union[EventType, str], listener: Listener) -> None:
        """
        Registers `listener` for one vault event. It is called with the event
        fields as keyword arguments.

        Raises:
            ValueError: If `event` names no vault event.
        """
        self._listeners[EventType(event)].append(listener)

    def unsubscribe(self, event: Union[EventType, str], listener: Listener) -> bool:
        listeners = self._listeners.get(EventType(event), [])
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def emit(self, event: EventType, **fields: Any) -> int:
        """Delivers `event` to its listeners in subscription order. Returns how many succeeded."""
        delivered = 0
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(**fields)
                delivered += 1
            except Exception as e:
                logger.error(f"Listener {listener!r} failed on {event.value}: {e}", exc_info=True)
        return delivered
