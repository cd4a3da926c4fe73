"""
Shared plumbing for components that change work requests
Loading, actor resolution, versioned persistence and post-commit notification
"""

from datetime import datetime
from typing import Callable, List, Optional

import structlog

from lostfound.config.settings import EngineSettings, get_settings
from lostfound.daos.work_request_dao import WorkRequestDAO
from lostfound.errors import InvalidState, NotFound, Unauthorized
from lostfound.governance.request_type_registry import RequestTypeRegistry
from lostfound.models.common import Actor, RequestStatus, Role
from lostfound.models.dispute import DisputeResolution
from lostfound.models.work_request import WorkRequest
from lostfound.services.collaborators import IdentityDirectory, Notifier
from lostfound.services.notification_service import StatusChangeEvent, dispatch
from lostfound.workflow.locking import RequestLocks

logger = structlog.get_logger()


class WorkflowComponent:
    """
    Base for the lifecycle engine and the dispute panel
    Every transition reads a copy, mutates it, and writes it back under a version check
    """

    def __init__(
        self,
        registry: RequestTypeRegistry,
        dao: WorkRequestDAO,
        directory: IdentityDirectory,
        locks: Optional[RequestLocks] = None,
        notifier: Optional[Notifier] = None,
        settings: Optional[EngineSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.registry = registry
        self.dao = dao
        self.directory = directory
        self.locks = locks if locks is not None else RequestLocks()
        self.notifier = notifier
        self.settings = settings or get_settings()
        self.clock = clock or datetime.now

    def _now(self) -> datetime:
        return self.clock()

    def _load(self, request_id: str) -> WorkRequest:
        request = self.dao.get(request_id)
        if request is None:
            raise NotFound("Work request not found", request_id=request_id)
        return request

    @staticmethod
    def _ensure_open(request: WorkRequest) -> None:
        if request.is_terminal():
            raise InvalidState(f"Request is already {request.status.value}", request_id=request.request_id)

    @staticmethod
    def _ensure_dispute(request: WorkRequest) -> DisputeResolution:
        if not isinstance(request.payload, DisputeResolution):
            raise InvalidState(
                f"{request.request_type.value} is not a dispute",
                request_id=request.request_id,
            )
        return request.payload

    def _resolve_actor(self, actor_id: str, request_id: Optional[str] = None) -> Actor:
        actor = self.directory.resolve(actor_id) if actor_id else None
        if actor is None:
            logger.warning("Unknown actor", actor_id=actor_id, request_id=request_id)
            raise Unauthorized(f"Unknown actor {actor_id}", request_id=request_id)
        return actor

    def _has_role(self, actor: Actor, roles: List[Role]) -> bool:
        return actor.role in set(roles)

    def _persist(self, request: WorkRequest, expected_version: int) -> WorkRequest:
        return self.dao.update(request, expected_version)

    def _announce(
        self,
        request: WorkRequest,
        action: str,
        old_status: Optional[RequestStatus],
        actor_id: Optional[str] = None,
        message: str = "",
    ) -> None:
        """Best-effort notification after a transition has been committed"""
        recipients = {request.requester_id}
        if request.current_handler_id:
            recipients.add(request.current_handler_id)
        if isinstance(request.payload, DisputeResolution):
            recipients.update(c.claimant_id for c in request.payload.claimants)
        recipients.discard(actor_id)

        event = StatusChangeEvent(
            request_id=request.request_id,
            request_type=request.request_type,
            action=action,
            old_status=old_status,
            new_status=request.status,
            actor_id=actor_id,
            recipient_ids=sorted(r for r in recipients if r),
            message=message or request.summary,
            timestamp=self._now(),
        )
        result = dispatch(self.notifier, event)
        if result["status"] == "error":
            logger.warning("Notification failed", request_id=request.request_id, error=result["error"])
