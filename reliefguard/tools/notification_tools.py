"""Best-effort notifications for block/review decisions"""

from typing import Any, Dict
from reliefguard.constants import NotificationEvent
from reliefguard.utils.logging import get_logger

logger = get_logger(__name__)


class Notifier:
    """Notification sink. The default implementation writes events to the log."""

    def emit(self, event: NotificationEvent, payload: Dict[str, Any]) -> None:
        logger.info(f"Notification: {event.value}", event=event.value, **payload)


def notify(notifier: Notifier, event: NotificationEvent, payload: Dict[str, Any]) -> bool:
    """
    Deliver an event without letting delivery failures affect the decision.

    Returns:
        True if the notifier accepted the event
    """
    try:
        notifier.emit(event, payload)
        return True
    except Exception as e:
        logger.warning(f"Notification delivery failed: {e}", event=event.value)
        return False
