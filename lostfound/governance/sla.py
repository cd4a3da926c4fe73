"""
SLA Tracker
Derives due dates and urgency from the request type table
Overdue is always computed on read and never written back
"""

from datetime import datetime, timedelta
from typing import List, Optional

from lostfound.governance.request_type_registry import RequestTypeRegistry
from lostfound.models.common import RequestPriority, RequestType
from lostfound.models.work_request import WorkRequest


class SlaTracker:
    """Advisory SLA calculations; never blocks an operation"""

    def __init__(self, registry: RequestTypeRegistry):
        self.registry = registry

    def due_date_for(
        self,
        request_type: RequestType,
        priority: RequestPriority,
        created_at: datetime,
    ) -> datetime:
        hours = self.registry.sla_hours_for(request_type, priority)
        return created_at + timedelta(hours=hours)

    def window_hours(self, request: WorkRequest) -> float:
        return (request.due_date - request.created_at).total_seconds() / 3600.0

    def is_overdue(self, request: WorkRequest, now: Optional[datetime] = None) -> bool:
        return request.is_overdue(now)

    def hours_until_due(self, request: WorkRequest, now: Optional[datetime] = None) -> float:
        return request.hours_until_due(now)

    def is_approaching_breach(self, request: WorkRequest, now: Optional[datetime] = None) -> bool:
        """Open and less than the warning fraction of the window left, but not yet overdue"""
        if request.is_terminal():
            return False
        window = self.window_hours(request)
        if window <= 0:
            return False
        remaining = request.hours_until_due(now) / window
        return 0 < remaining < self.registry.sla_warning_fraction()

    def overdue(self, requests: List[WorkRequest], now: Optional[datetime] = None) -> List[WorkRequest]:
        """Overdue requests, oldest first"""
        return sorted(
            (r for r in requests if r.is_overdue(now)),
            key=lambda r: r.created_at,
        )

    def approaching_breach(self, requests: List[WorkRequest], now: Optional[datetime] = None) -> List[WorkRequest]:
        """Requests close to breach, least time remaining first"""
        return sorted(
            (r for r in requests if self.is_approaching_breach(r, now)),
            key=lambda r: r.hours_until_due(now),
        )
