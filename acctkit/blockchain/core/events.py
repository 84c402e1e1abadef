# MIT License
# Copyright (c) 2025 Hashborn

"""
Event system for account lifecycle events.

Events emitted by SmartAccount:
- tx_validated  (account, tx_hash, verdict)
- tx_executed   (account, tx_hash, path)
- tx_failed     (account, tx_hash, op, error)
- fee_paid      (account, tx_hash, amount, recipient)
- owner_changed (account, old_owner, new_owner)

tx_validated and tx_executed fire as each step completes, inside the
operation's atomic scope. If the operation later rolls back, tx_failed
follows for the same tx_hash and supersedes them.
"""
from typing import Any, Callable, Dict, List
import logging

logger = logging.getLogger(__name__)

TX_VALIDATED = "tx_validated"
TX_EXECUTED = "tx_executed"
TX_FAILED = "tx_failed"
FEE_PAID = "fee_paid"
OWNER_CHANGED = "owner_changed"


class EventBus:
    """
    Simple synchronous pub/sub. Listener errors are logged and do not
    affect the emitting operation or other listeners.
    """

    def __init__(self):
        self.listeners: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: str, callback: Callable) -> None:
        self.listeners.setdefault(event_type, []).append(callback)
        logger.debug(f"Subscribed to event: {event_type}")

    def unsubscribe(self, event_type: str, callback: Callable) -> None:
        if event_type in self.listeners:
            try:
                self.listeners[event_type].remove(callback)
                logger.debug(f"Unsubscribed from event: {event_type}")
            except ValueError:
                logger.warning(f"Callback not found for event: {event_type}")

    def emit(self, event_type: str, **data: Any) -> None:
        listeners = list(self.listeners.get(event_type, []))
        if not listeners:
            return

        logger.debug(f"Emitting event: {event_type} to {len(listeners)} listener(s)")
        for callback in listeners:
            try:
                callback(**data)
            except Exception as e:
                logger.error(f"Error in event callback for {event_type}: {e}", exc_info=True)

    def clear(self, event_type: str = None) -> None:
        if event_type:
            self.listeners.pop(event_type, None)
        else:
            self.listeners.clear()


# Global event bus instance
event_bus = EventBus()
