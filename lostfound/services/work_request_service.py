"""
Work request service.
Single entry point for UI and API callers; every dependency is passed in explicitly.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from lostfound.config.settings import EngineSettings, get_settings
from lostfound.daos.item_dao import InMemoryItemDAO, ItemDAO
from lostfound.daos.work_request_dao import InMemoryWorkRequestDAO, WorkRequestDAO
from lostfound.disputes.panel import DisputePanel
from lostfound.errors import NotFound
from lostfound.governance.request_type_registry import RequestTypeRegistry
from lostfound.governance.routing import RoutingResolver, as_role
from lostfound.governance.sla import SlaTracker
from lostfound.models.common import RequestPriority, Role
from lostfound.models.work_request import NewWorkRequest, WorkRequest
from lostfound.services.collaborators import (
    IdentityDirectory,
    InMemoryIdentityDirectory,
    MatchSuggestionProvider,
    Notifier,
)
from lostfound.services.notification_service import LoggingNotifier
from lostfound.workflow.lifecycle import LifecycleEngine
from lostfound.workflow.locking import RequestLocks

logger = logging.getLogger(__name__)

PRIORITY_RANK = {
    RequestPriority.URGENT: 0,
    RequestPriority.HIGH: 1,
    RequestPriority.NORMAL: 2,
    RequestPriority.LOW: 3,
}


class WorkRequestService:
    """Façade over the lifecycle engine, dispute panel, routing and SLA tracker."""

    def __init__(
        self,
        dao: Optional[WorkRequestDAO] = None,
        directory: Optional[IdentityDirectory] = None,
        item_dao: Optional[ItemDAO] = None,
        matcher: Optional[MatchSuggestionProvider] = None,
        notifier: Optional[Notifier] = None,
        registry: Optional[RequestTypeRegistry] = None,
        settings: Optional[EngineSettings] = None,
        clock=None,
    ):
        """
        Initialize the service.

        Args:
            dao: Work request storage (in-memory if None)
            directory: Identity directory (empty in-memory directory if None)
            item_dao: Item storage for approval side effects (in-memory if None)
            matcher: Optional similarity match feed
            notifier: Status change notifier (logging notifier if None)
            registry: Request type registry (loaded from settings if None)
            settings: Engine settings (from the environment if None)
            clock: Callable returning the current datetime
        """
        self.settings = settings or get_settings()
        self.registry = registry or RequestTypeRegistry(self.settings.request_types_path)
        self.dao = dao or InMemoryWorkRequestDAO()
        self.directory = directory or InMemoryIdentityDirectory()
        self.item_dao = item_dao or InMemoryItemDAO()
        self.notifier = notifier or LoggingNotifier()

        self.routing = RoutingResolver(self.registry)
        self.sla = SlaTracker(self.registry)
        self.locks = RequestLocks()
        self.disputes = DisputePanel(
            self.registry, self.dao, self.directory,
            locks=self.locks, notifier=self.notifier, settings=self.settings, clock=clock,
        )
        self.lifecycle = LifecycleEngine(
            self.registry, self.dao, self.directory,
            routing=self.routing,
            sla=self.sla,
            disputes=self.disputes,
            item_dao=self.item_dao,
            matcher=matcher,
            locks=self.locks,
            notifier=self.notifier,
            settings=self.settings,
            clock=clock,
        )

    # Creation and lookup

    def create_request(self, payload: Union[NewWorkRequest, Dict[str, Any]]) -> str:
        """
        Create a work request.

        Returns:
            The new request id, or the dispute id a competing claim was folded into
        """
        return self.lifecycle.create(payload)

    def get_request_by_id(self, request_id: str) -> WorkRequest:
        request = self.dao.get(request_id)
        if request is None:
            raise NotFound("Work request not found", request_id=request_id)
        return request

    def get_requests_for_role(self, role: Union[Role, str], org_id: Optional[str]) -> List[WorkRequest]:
        """
        Get the work queue for a role within an organization.

        Args:
            role: Role of the caller
            org_id: Caller's organization; ignored for cross-organization roles

        Returns:
            Open requests awaiting this role, most urgent first
        """
        visible = self.routing.filter_for_role(self.dao.list(), as_role(role), org_id)
        return sorted(visible, key=lambda r: (PRIORITY_RANK[r.priority], r.due_date))

    # Transitions

    def assign_request(self, request_id: str, actor_id: str) -> bool:
        self.lifecycle.assign(request_id, actor_id)
        return True

    def approve_request(self, request_id: str, actor_id: str) -> bool:
        self.lifecycle.approve(request_id, actor_id)
        return True

    def reject_request(self, request_id: str, actor_id: str, reason: str) -> bool:
        self.lifecycle.reject(request_id, actor_id, reason)
        return True

    def close_request(self, request_id: str, actor_id: str, reason: str) -> bool:
        self.lifecycle.close(request_id, actor_id, reason)
        return True

    # Disputes

    def get_disputes_requiring_police(self) -> List[WorkRequest]:
        return self.disputes.disputes_requiring_police()

    def record_police_findings_for_dispute(
        self,
        request_id: str,
        actor_id: str,
        actor_name: Optional[str],
        report_number: str,
        findings: str,
    ) -> bool:
        self.disputes.record_police_findings(request_id, actor_id, actor_name, report_number, findings)
        return True

    def record_dispute_vote(
        self,
        request_id: str,
        actor_id: str,
        actor_name: Optional[str],
        actor_role: Optional[Union[Role, str]],
        claimant_id: str,
        reason: str,
    ) -> bool:
        self.disputes.record_vote(request_id, actor_id, actor_name, actor_role, claimant_id, reason)
        return True

    def resolve_dispute(
        self,
        request_id: str,
        claimant_id: str,
        reason: str,
        resolver_label: str,
        resolver_id: Optional[str] = None,
    ) -> bool:
        self.disputes.resolve_dispute(request_id, claimant_id, reason, resolver_label, resolver_id)
        return True

    def escalate_to_legal_system(self, request_id: str, reason: Optional[str] = None) -> bool:
        self.disputes.escalate_to_legal_system(request_id, reason)
        return True

    def add_dispute_evidence(self, request_id: str, submitter_id: str, evidence_type: str, description: str) -> str:
        return self.disputes.add_evidence(request_id, submitter_id, evidence_type, description)

    def verify_dispute_evidence(self, request_id: str, evidence_id: str, verifier_id: str, is_valid: bool) -> bool:
        self.disputes.verify_evidence(request_id, evidence_id, verifier_id, is_valid)
        return True

    # SLA and reporting

    def get_overdue_requests(self) -> List[WorkRequest]:
        return self.sla.overdue(self.dao.list(), self.lifecycle.clock())

    def get_approaching_sla_requests(self) -> List[WorkRequest]:
        return self.sla.approaching_breach(self.dao.list(), self.lifecycle.clock())

    def get_statistics(self) -> Dict[str, Any]:
        stats = self.lifecycle.statistics()
        stats["approaching_sla"] = len(self.get_approaching_sla_requests())
        stats["registry_version"] = self.registry.get_version()
        return stats


_work_request_service: Optional[WorkRequestService] = None


def get_work_request_service() -> WorkRequestService:
    """Get or create the shared work request service."""
    global _work_request_service
    if _work_request_service is None:
        _work_request_service = WorkRequestService()
        logger.info("Work request service initialized")
    return _work_request_service


def set_work_request_service(service: Optional[WorkRequestService]) -> None:
    """Replace the shared service, e.g. to inject configured collaborators at startup."""
    global _work_request_service
    _work_request_service = service
