"""
Notification service for work request status changes.
Delivery mechanics live outside the engine; failures never affect a transition.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from lostfound.models.common import RequestStatus, RequestType

logger = logging.getLogger(__name__)


class StatusChangeEvent(BaseModel):
    """Emitted after a work request transition has been persisted."""
    request_id: str
    request_type: RequestType
    action: str = Field(..., description="Audit action that produced the event")
    old_status: Optional[RequestStatus] = None
    new_status: RequestStatus
    actor_id: Optional[str] = None
    recipient_ids: List[str] = Field(default_factory=list, description="Users who should hear about it")
    message: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)


class LoggingNotifier:
    """
    Notifier that writes each event to the application log.
    Used when no delivery channel is configured.
    """

    def __init__(self):
        self.sent: List[StatusChangeEvent] = []

    def notify(self, event: StatusChangeEvent) -> None:
        self.sent.append(event)
        logger.info(
            f"Work request {event.request_id} {event.action}: "
            f"{event.old_status.value if event.old_status else '-'} -> {event.new_status.value}"
        )


def dispatch(notifier: Any, event: StatusChangeEvent) -> Dict[str, Any]:
    """
    Hand an event to a notifier without letting delivery errors escape.

    Args:
        notifier: Object with a notify(event) method, or None.
        event: The status change to announce.

    Returns:
        Dict with status, timestamp, and any error details.
    """
    if notifier is None:
        return {"status": "skipped", "timestamp": datetime.now().isoformat()}

    try:
        notifier.notify(event)
        return {
            "status": "sent",
            "request_id": event.request_id,
            "timestamp": datetime.now().isoformat(),
        }
    except Exception as e:
        logger.error(f"Failed to notify for work request {event.request_id}: {e}")
        return {
            "status": "error",
            "error": str(e),
            "timestamp": datetime.now().isoformat(),
        }
