"""Routing rules, SLA tracking and the request type registry."""

from lostfound.governance.request_type_registry import RequestTypeRegistry
from lostfound.governance.routing import RoutingResolver
from lostfound.governance.sla import SlaTracker

__all__ = ["RequestTypeRegistry", "RoutingResolver", "SlaTracker"]
