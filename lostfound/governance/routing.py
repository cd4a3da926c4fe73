"""
Routing Resolver
Decides which requests await a role's action and whether an actor may act on a step
"""

from typing import Iterable, List, Optional, Union

import structlog

from lostfound.errors import InvalidState, Unauthorized, ValidationError
from lostfound.governance.request_type_registry import RequestTypeRegistry
from lostfound.models.common import Actor, ApproverScope, ApproverStep, Role
from lostfound.models.dispute import DisputeResolution
from lostfound.models.work_request import WorkRequest

logger = structlog.get_logger()


def as_role(role: Union[Role, str]) -> Role:
    """Coerce a role name; unknown names raise ValidationError"""
    try:
        return Role(role)
    except ValueError:
        raise ValidationError([f"Unknown role {role}"]) from None


class RoutingResolver:
    """
    Table-driven role routing
    The single place where role and organization scope are compared
    """

    def __init__(self, registry: RequestTypeRegistry):
        self.registry = registry
        self._cross_org_roles = frozenset(registry.cross_org_roles())

    def has_cross_org_visibility(self, role: Role) -> bool:
        return as_role(role) in self._cross_org_roles

    @staticmethod
    def step_organization_id(request: WorkRequest, step: ApproverStep) -> Optional[str]:
        """Organization an approver for this step must belong to, None when unrestricted"""
        if step.scope == ApproverScope.REQUESTING_ORG:
            return request.requesting_organization_id
        if step.scope == ApproverScope.TARGET_ORG:
            return request.target_organization_id
        return None

    def _org_matches(self, request: WorkRequest, step: ApproverStep, role: Role, org_id: Optional[str]) -> bool:
        if step.scope == ApproverScope.ANY_ORG or self.has_cross_org_visibility(role):
            return True
        required = self.step_organization_id(request, step)
        return required is not None and required == org_id

    def can_process(self, request: WorkRequest, actor: Actor) -> bool:
        """Open request whose current step matches the actor's role and organization"""
        if request.is_terminal():
            return False
        step = request.next_required_step()
        if step is None or step.role != actor.role:
            return False
        return self._org_matches(request, step, actor.role, actor.organization_id)

    def authorize_step(self, request: WorkRequest, actor: Actor) -> ApproverStep:
        """
        Check that an actor may act on the current step

        Returns:
            The current ApproverStep

        Raises:
            InvalidState: request is terminal or its chain is exhausted
            Unauthorized: role or organization mismatch
        """
        if request.is_terminal():
            raise InvalidState(f"Request is {request.status.value}", request_id=request.request_id)
        step = request.next_required_step()
        if step is None:
            raise InvalidState("Approver chain already complete", request_id=request.request_id)
        if not self.can_process(request, actor):
            logger.warning(
                "Actor not authorized for step",
                request_id=request.request_id,
                actor_id=actor.user_id,
                actor_role=actor.role.value,
                required_role=step.role.value,
                scope=step.scope.value,
            )
            raise Unauthorized(
                f"{actor.role.value} in {actor.organization_id} cannot act on step "
                f"{request.approval_step} ({step.role.value}, {step.scope.value})",
                request_id=request.request_id,
            )
        return step

    def _panel_visible(self, request: WorkRequest, role: Role, org_id: Optional[str]) -> bool:
        if not isinstance(request.payload, DisputeResolution):
            return False
        for member in request.payload.panel_members:
            if member.has_voted or member.role != role:
                continue
            if self.has_cross_org_visibility(role) or (member.organization_id and member.organization_id == org_id):
                return True
        return False

    def is_visible(self, request: WorkRequest, role: Role, org_id: Optional[str]) -> bool:
        """True if the request sits in this role's work queue for org_id"""
        if request.is_terminal():
            return False
        role = as_role(role)
        step = request.next_required_step()
        if step is not None and step.role == role and self._org_matches(request, step, role, org_id):
            return True
        return self._panel_visible(request, role, org_id)

    def filter_for_role(
        self,
        requests: Iterable[WorkRequest],
        role: Role,
        org_id: Optional[str],
    ) -> List[WorkRequest]:
        return [request for request in requests if self.is_visible(request, role, org_id)]
