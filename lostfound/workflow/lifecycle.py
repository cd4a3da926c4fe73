"""
Lifecycle Engine
Creates work requests and drives them through assign, approve, reject and close
Dispute voting and awards are delegated to the dispute panel
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from lostfound.daos.item_dao import ItemDAO, ItemStatus
from lostfound.disputes.panel import DisputePanel
from lostfound.errors import InvalidState, ValidationError
from lostfound.governance.routing import RoutingResolver
from lostfound.governance.sla import SlaTracker
from lostfound.models.audit import AuditAction
from lostfound.models.common import Actor, RequestPriority, RequestStatus, RequestType
from lostfound.models.dispute import Claimant, DisputeResolution
from lostfound.models.payloads import (
    AirportToUniversityTransferPayload,
    CrossCampusTransferPayload,
    EmergencyTransferPayload,
    ItemClaimPayload,
    PoliceEvidencePayload,
    TransitToUniversityTransferPayload,
)
from lostfound.models.work_request import ApprovalRecord, NewWorkRequest, WorkRequest
from lostfound.services.collaborators import MatchCandidate, MatchSuggestionProvider
from lostfound.workflow.base import WorkflowComponent

logger = structlog.get_logger()

SECURE_AREA_NOTES_MIN_LENGTH = 20

# Payloads that move a found item to its owner and can carry a matched lost report
HANDOVER_PAYLOADS = (
    ItemClaimPayload,
    CrossCampusTransferPayload,
    TransitToUniversityTransferPayload,
    AirportToUniversityTransferPayload,
)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def _field_value(source: Any, path: str) -> Any:
    """Follow a dotted path such as 'payload.item_id'"""
    value = source
    for part in path.split('.'):
        value = getattr(value, part, None)
        if value is None:
            return None
    return value


def _format_pydantic_errors(error: PydanticValidationError) -> List[str]:
    return [
        f"{'.'.join(str(part) for part in err['loc']) or 'request'}: {err['msg']}"
        for err in error.errors()
    ]


class LifecycleEngine(WorkflowComponent):
    """
    State machine for non-dispute transitions
    PENDING -> IN_PROGRESS -> APPROVED, with REJECTED and CLOSED reachable from any open state
    """

    def __init__(
        self,
        registry,
        dao,
        directory,
        routing: Optional[RoutingResolver] = None,
        sla: Optional[SlaTracker] = None,
        disputes: Optional[DisputePanel] = None,
        item_dao: Optional[ItemDAO] = None,
        matcher: Optional[MatchSuggestionProvider] = None,
        locks=None,
        notifier=None,
        settings=None,
        clock=None,
    ):
        """
        Initialize the lifecycle engine

        Args:
            registry: RequestTypeRegistry with chains, priorities and SLA windows
            dao: WorkRequestDAO used for every read and write
            directory: IdentityDirectory resolving actor ids
            routing: RoutingResolver (built from the registry if None)
            sla: SlaTracker (built from the registry if None)
            disputes: DisputePanel sharing this engine's locks (built if None)
            item_dao: Optional ItemDAO for approval side effects
            matcher: Optional similarity feed for pre-populating lost item ids
        """
        super().__init__(registry, dao, directory, locks=locks, notifier=notifier, settings=settings, clock=clock)
        self.routing = routing or RoutingResolver(registry)
        self.sla = sla or SlaTracker(registry)
        self.disputes = disputes or DisputePanel(
            registry, dao, directory,
            locks=self.locks, notifier=notifier, settings=self.settings, clock=self.clock,
        )
        self.item_dao = item_dao
        self.matcher = matcher

    # Creation

    def create(self, new: Union[NewWorkRequest, Dict[str, Any]]) -> str:
        """
        Validate and persist a new work request

        Args:
            new: NewWorkRequest or an equivalent dict

        Returns:
            Id of the created request. For a competing item claim this is the id
            of the dispute the claim was folded into.

        Raises:
            ValidationError: listing every missing or invalid field
        """
        new = self._coerce(new).model_copy(deep=True)
        requester = self.directory.resolve(new.requester_id) if new.requester_id else None
        self._fill_requester(new, requester)

        errors = self._validate(new)
        if errors:
            logger.warning(
                "Work request rejected at creation",
                request_type=new.request_type.value,
                requester_id=new.requester_id,
                errors=errors,
            )
            raise ValidationError(errors)

        if (
            isinstance(new.payload, ItemClaimPayload)
            and self.settings.detect_duplicate_claims
            and new.payload.item_id
        ):
            with self.locks.hold(f"item:{new.payload.item_id}"):
                existing = self._route_competing_claim(new, requester)
                if existing is not None:
                    return existing
                return self._insert(new, requester).request_id

        return self._insert(new, requester).request_id

    @staticmethod
    def _coerce(new: Union[NewWorkRequest, Dict[str, Any]]) -> NewWorkRequest:
        if isinstance(new, NewWorkRequest):
            return new
        try:
            return NewWorkRequest.model_validate(new)
        except PydanticValidationError as e:
            raise ValidationError(_format_pydantic_errors(e)) from e

    def _validate(self, new: NewWorkRequest) -> List[str]:
        errors = [
            f"{path} is required"
            for path in self.registry.required_fields_for(new.request_type)
            if _is_blank(_field_value(new, path))
        ]

        match new.payload:
            case AirportToUniversityTransferPayload(was_in_secure_area=True, security_notes=notes):
                if len((notes or "").strip()) < SECURE_AREA_NOTES_MIN_LENGTH:
                    errors.append(
                        f"payload.security_notes must have at least {SECURE_AREA_NOTES_MIN_LENGTH} "
                        "characters for items found in a secure area"
                    )
            case DisputeResolution():
                errors.extend(self.disputes.validate_new(new.payload))

        return errors

    @staticmethod
    def _fill_requester(new: NewWorkRequest, requester: Optional[Actor]) -> None:
        if requester is None:
            return
        new.requester_name = new.requester_name or requester.name
        new.requester_email = new.requester_email or requester.email
        new.requesting_organization_id = new.requesting_organization_id or requester.organization_id
        new.requesting_enterprise_id = new.requesting_enterprise_id or requester.enterprise_id

    def _resolve_priority(self, new: NewWorkRequest, requester: Optional[Actor] = None) -> RequestPriority:
        """
        Forced by type, then caller choice, then derived from the payload, then the type default
        A NORMAL result for a requester on probation is raised to HIGH
        """
        forced = self.registry.forced_priority_for(new.request_type)
        if forced:
            return forced
        if new.priority:
            return new.priority
        priority = self._derived_priority(new.payload) or self.registry.default_priority_for(new.request_type)
        if (
            priority == RequestPriority.NORMAL
            and requester is not None
            and requester.trust_score < self.registry.probation_threshold()
        ):
            return RequestPriority.HIGH
        return priority

    def _trust_flag(self, requester: Optional[Actor]) -> Optional[str]:
        """Review note for a low-trust requester, None when the score is acceptable"""
        if requester is None:
            return None
        score = requester.trust_score
        if score < self.registry.probation_threshold():
            return f"Requester on probation, extra scrutiny required (score {score:.0f})"
        if score < self.registry.low_trust_threshold():
            return f"Low trust requester, verify carefully (score {score:.0f})"
        return None

    def _derived_priority(self, payload) -> Optional[RequestPriority]:
        threshold = self.registry.high_value_threshold()
        match payload:
            case PoliceEvidencePayload(is_stolen_check=True):
                return RequestPriority.URGENT
            case DisputeResolution(police_involved=True):
                return RequestPriority.URGENT
            case ItemClaimPayload(item_value=value) if value >= threshold:
                return RequestPriority.HIGH
            case AirportToUniversityTransferPayload(was_in_secure_area=True):
                return RequestPriority.HIGH
        return None

    def _attach_match(self, new: NewWorkRequest) -> Optional[MatchCandidate]:
        """Pre-populate lost_item_id from the best match when the caller gave none"""
        payload = new.payload
        if self.matcher is None or not isinstance(payload, HANDOVER_PAYLOADS):
            return None
        if payload.lost_item_id or not payload.item_id:
            return None

        try:
            candidates = self.matcher.suggest_matches(payload.item_id)
        except Exception as e:
            logger.warning("Match suggestions unavailable", item_id=payload.item_id, error=str(e))
            return None
        if not candidates:
            return None

        best = max(candidates, key=lambda c: c.score)
        if best.score < self.settings.auto_match_min_score:
            return None
        payload.lost_item_id = best.lost_item_id
        payload.match_score = best.score
        return best

    def _summary(self, new: NewWorkRequest) -> str:
        label = self.registry.label_for(new.request_type)
        match new.payload:
            case ItemClaimPayload(item_name=name, item_id=item_id):
                detail = f"claim for {name or item_id}"
            case CrossCampusTransferPayload(source_campus_name=source, destination_campus_name=destination):
                detail = f"{source or 'source campus'} to {destination or 'destination campus'}"
            case TransitToUniversityTransferPayload(station_name=station, university_name=university):
                detail = f"{station} to {university or 'campus'}"
            case AirportToUniversityTransferPayload(terminal=terminal, item_name=name):
                detail = f"{name or 'item'} from {terminal}"
            case PoliceEvidencePayload(is_stolen_check=True, item_name=name):
                detail = f"stolen check for {name or 'item'}"
            case PoliceEvidencePayload(item_name=name):
                detail = f"verification of {name or 'item'}"
            case EmergencyTransferPayload(document_type=document, flight_number=flight):
                detail = f"{document or 'document'} for flight {flight}"
            case DisputeResolution(claimants=claimants, item_name=name):
                detail = f"{len(claimants)} claimants for {name or 'item'}"
            case _:
                detail = new.request_type.value
        return f"{label}: {detail}"

    def _insert(self, new: NewWorkRequest, requester: Optional[Actor]) -> WorkRequest:
        now = self._now()
        request_type = new.request_type

        police_flagged = False
        if isinstance(new.payload, DisputeResolution):
            police_flagged = self.disputes.prepare(new.payload)
        matched = self._attach_match(new)
        priority = self._resolve_priority(new, requester)
        trust_flag = self._trust_flag(requester)

        request = WorkRequest(
            request_id=str(uuid.uuid4()),
            request_type=request_type,
            status=RequestStatus.PENDING,
            priority=priority,
            requester_id=new.requester_id,
            requester_name=new.requester_name,
            requester_email=new.requester_email,
            requesting_organization_id=new.requesting_organization_id,
            requesting_enterprise_id=new.requesting_enterprise_id,
            target_organization_id=new.target_organization_id,
            target_enterprise_id=new.target_enterprise_id,
            created_at=now,
            updated_at=now,
            due_date=self.sla.due_date_for(request_type, priority, now),
            approver_chain=self.registry.approver_chain_for(request_type),
            summary=self._summary(new),
            description=new.description,
            notes=new.notes,
            payload=new.payload,
        )
        request.record(
            AuditAction.REQUEST_CREATED,
            f"{self.registry.label_for(request_type)} submitted",
            now,
            actor=requester,
            requester_id=new.requester_id,
            priority=priority.value,
        )
        if matched is not None:
            request.record(
                AuditAction.MATCH_ATTACHED,
                f"Matched lost item {matched.lost_item_id}",
                now,
                lost_item_id=matched.lost_item_id,
                score=matched.score,
            )
        if police_flagged:
            request.record(AuditAction.POLICE_FLAGGED, "Police involvement required", now)
        if trust_flag:
            request.add_note(f"LOW TRUST SCORE: {trust_flag}", now)
            request.record(
                AuditAction.LOW_TRUST_FLAGGED,
                trust_flag,
                now,
                requester_id=new.requester_id,
                trust_score=requester.trust_score,
            )
            logger.warning(
                "Low trust requester flagged",
                requester_id=new.requester_id,
                trust_score=requester.trust_score,
            )

        stored = self.dao.create(request)
        logger.info(
            "Work request created",
            request_id=stored.request_id,
            request_type=request_type.value,
            priority=priority.value,
            due_date=stored.due_date.isoformat(),
        )
        self._announce(stored, AuditAction.REQUEST_CREATED.value, None, actor_id=new.requester_id)
        return stored

    # Competing claims

    def _claimant_for(
        self,
        requester_id: str,
        name: Optional[str],
        email: Optional[str],
        organization_id: Optional[str],
        enterprise_id: Optional[str],
        payload: ItemClaimPayload,
        submitted_at: datetime,
    ) -> Claimant:
        actor = self.directory.resolve(requester_id)
        return Claimant(
            claimant_id=requester_id,
            name=name or (actor.name if actor else requester_id),
            email=email,
            enterprise_id=enterprise_id,
            organization_id=organization_id,
            trust_score=actor.trust_score if actor else self.settings.default_trust_score,
            claim_description=payload.claim_details,
            proof_description=payload.proof_description,
            submitted_at=submitted_at,
        )

    def _route_competing_claim(self, new: NewWorkRequest, requester: Optional[Actor]) -> Optional[str]:
        """
        Fold a claim into a dispute when the item is already contested

        Returns:
            Id of the request the claim was routed to, or None to create it normally
        """
        payload: ItemClaimPayload = new.payload
        item_id = payload.item_id
        now = self._now()
        claimant = self._claimant_for(
            new.requester_id, new.requester_name, new.requester_email,
            new.requesting_organization_id, new.requesting_enterprise_id, payload, now,
        )

        disputes = self.dao.list(
            lambda r: r.is_dispute() and not r.is_terminal() and r.payload.item_id == item_id
        )
        if disputes:
            dispute = min(disputes, key=lambda r: r.created_at)
            self.disputes.add_claimant(dispute.request_id, claimant)
            return dispute.request_id

        rivals = sorted(
            self.dao.list(
                lambda r: r.request_type == RequestType.ITEM_CLAIM
                and not r.is_terminal()
                and r.payload.item_id == item_id
            ),
            key=lambda r: r.created_at,
        )
        for claim in rivals:
            if claim.requester_id == new.requester_id:
                logger.info("Repeat claim ignored", request_id=claim.request_id, requester_id=new.requester_id)
                return claim.request_id
        if not rivals:
            return None

        claimants: List[Claimant] = []
        for claim in rivals:
            if any(c.claimant_id == claim.requester_id for c in claimants):
                continue
            claimants.append(self._claimant_for(
                claim.requester_id, claim.requester_name, claim.requester_email,
                claim.requesting_organization_id, claim.requesting_enterprise_id,
                claim.payload, claim.created_at,
            ))
        claimants.append(claimant)

        dispute_input = NewWorkRequest(
            request_type=RequestType.MULTI_ENTERPRISE_DISPUTE,
            requester_id=new.requester_id,
            requester_name=new.requester_name,
            requester_email=new.requester_email,
            requesting_organization_id=new.requesting_organization_id,
            requesting_enterprise_id=new.requesting_enterprise_id,
            description=f"Competing ownership claims for item {item_id}",
            payload=DisputeResolution(
                item_id=item_id,
                item_name=payload.item_name,
                item_category=payload.item_category,
                estimated_value=max([payload.item_value] + [c.payload.item_value for c in rivals]),
                holding_enterprise_name=payload.holding_enterprise_name,
                dispute_reason=f"{len(claimants)} competing ownership claims",
                claimants=claimants,
            ),
        )
        dispute = self._insert(dispute_input, requester)
        logger.info(
            "Competing claims converted to dispute",
            dispute_id=dispute.request_id,
            item_id=item_id,
            claim_ids=[c.request_id for c in rivals],
        )
        for claim in rivals:
            self._close_for_dispute(claim.request_id, dispute.request_id)
        return dispute.request_id

    def _close_for_dispute(self, claim_id: str, dispute_id: str) -> None:
        with self.locks.hold(claim_id):
            claim = self._load(claim_id)
            if claim.is_terminal():
                logger.warning("Claim finished before dispute link", request_id=claim_id, dispute_id=dispute_id)
                return
            expected, old_status = claim.version, claim.status
            now = self._now()
            claim.status = RequestStatus.CLOSED
            claim.closed_by = "system"
            claim.closure_reason = f"Superseded by dispute {dispute_id}"
            claim.completed_at = now
            claim.payload.linked_dispute_id = dispute_id
            claim.add_note(f"Competing claim received; moved to dispute {dispute_id}", now)
            claim.record(AuditAction.REQUEST_CLOSED, claim.closure_reason, now, dispute_id=dispute_id)
            stored = self._persist(claim, expected)
        self._announce(stored, AuditAction.REQUEST_CLOSED.value, old_status)

    # Transitions

    def assign(self, request_id: str, actor_id: str) -> WorkRequest:
        """
        Take a request: PENDING -> IN_PROGRESS, or hand it to another approver of the same step

        Raises:
            NotFound, InvalidState, Unauthorized
        """
        with self.locks.hold(request_id):
            request = self._load(request_id)
            self._ensure_open(request)
            if request.is_dispute():
                raise InvalidState("Disputes are decided by the voting panel and cannot be assigned", request_id)
            actor = self._resolve_actor(actor_id, request_id)
            self.routing.authorize_step(request, actor)

            expected, old_status = request.version, request.status
            now = self._now()
            request.status = RequestStatus.IN_PROGRESS
            request.current_handler_id = actor.user_id
            request.record(
                AuditAction.REQUEST_ASSIGNED,
                f"Assigned to {actor.name}",
                now,
                actor=actor,
                step=request.approval_step,
            )
            stored = self._persist(request, expected)

        logger.info("Work request assigned", request_id=request_id, actor_id=actor.user_id)
        self._announce(stored, AuditAction.REQUEST_ASSIGNED.value, old_status, actor_id=actor.user_id)
        return stored

    def approve(self, request_id: str, actor_id: str) -> WorkRequest:
        """
        Approve the current step; the last step moves the request to APPROVED

        Raises:
            NotFound, InvalidState, Unauthorized
        """
        with self.locks.hold(request_id):
            request = self._load(request_id)
            self._ensure_open(request)
            if request.is_dispute():
                raise InvalidState("Disputes are resolved by vote or decision, not approval", request_id)
            actor = self._resolve_actor(actor_id, request_id)
            step = self.routing.authorize_step(request, actor)

            expected, old_status = request.version, request.status
            now = self._now()
            request.approvals.append(ApprovalRecord(
                step=request.approval_step,
                role=step.role,
                approver_id=actor.user_id,
                approver_name=actor.name,
                approved_at=now,
            ))
            request.approval_step += 1

            next_step = request.next_required_step()
            if next_step is None:
                request.status = RequestStatus.APPROVED
                request.completed_at = now
                request.record(AuditAction.REQUEST_APPROVED, f"Approved by {actor.name}", now, actor=actor)
                action = AuditAction.REQUEST_APPROVED
            else:
                request.status = RequestStatus.IN_PROGRESS
                request.current_handler_id = None
                request.record(
                    AuditAction.STEP_APPROVED,
                    f"Step {request.approval_step} approved by {actor.name}",
                    now,
                    actor=actor,
                    next_role=next_step.role.value,
                )
                action = AuditAction.STEP_APPROVED
            stored = self._persist(request, expected)

        logger.info(
            "Work request approval recorded",
            request_id=request_id,
            actor_id=actor.user_id,
            status=stored.status.value,
        )
        if stored.status == RequestStatus.APPROVED:
            self._apply_side_effects(stored)
        self._announce(stored, action.value, old_status, actor_id=actor.user_id)
        return stored

    def reject(self, request_id: str, actor_id: str, reason: str) -> WorkRequest:
        """
        Reject an open request

        Raises:
            NotFound, InvalidState, ValidationError (empty reason), Unauthorized
        """
        with self.locks.hold(request_id):
            request = self._load(request_id)
            self._ensure_open(request)
            if _is_blank(reason):
                raise ValidationError(["reason is required"], request_id=request_id)
            actor = self._resolve_actor(actor_id, request_id)
            self.routing.authorize_step(request, actor)

            expected, old_status = request.version, request.status
            now = self._now()
            request.status = RequestStatus.REJECTED
            request.rejected_by = actor.user_id
            request.rejection_reason = reason.strip()
            request.completed_at = now
            if isinstance(request.payload, DisputeResolution):
                request.payload.add_note(f"Dispute rejected by {actor.name}: {request.rejection_reason}", now)
            request.record(AuditAction.REQUEST_REJECTED, f"Rejected by {actor.name}", now, actor=actor, reason=reason)
            stored = self._persist(request, expected)

        logger.info("Work request rejected", request_id=request_id, actor_id=actor.user_id)
        self._announce(stored, AuditAction.REQUEST_REJECTED.value, old_status, actor_id=actor.user_id)
        return stored

    def close(self, request_id: str, actor_id: str, reason: str) -> WorkRequest:
        """
        Administrative closure by the approver of the current step

        Raises:
            NotFound, InvalidState, ValidationError (empty reason), Unauthorized
        """
        with self.locks.hold(request_id):
            request = self._load(request_id)
            self._ensure_open(request)
            if request.is_dispute():
                raise InvalidState("Disputes end by resolution or escalation", request_id)
            if _is_blank(reason):
                raise ValidationError(["reason is required"], request_id=request_id)
            actor = self._resolve_actor(actor_id, request_id)
            self.routing.authorize_step(request, actor)

            expected, old_status = request.version, request.status
            now = self._now()
            request.status = RequestStatus.CLOSED
            request.closed_by = actor.user_id
            request.closure_reason = reason.strip()
            request.completed_at = now
            request.record(AuditAction.REQUEST_CLOSED, f"Closed by {actor.name}", now, actor=actor, reason=reason)
            stored = self._persist(request, expected)

        logger.info("Work request closed", request_id=request_id, actor_id=actor.user_id)
        self._announce(stored, AuditAction.REQUEST_CLOSED.value, old_status, actor_id=actor.user_id)
        return stored

    # Side effects

    def _apply_side_effects(self, request: WorkRequest) -> None:
        """Move item records after approval; failures are logged, the approval stands"""
        if self.item_dao is None:
            return
        payload = request.payload
        try:
            match payload:
                case (
                    ItemClaimPayload()
                    | CrossCampusTransferPayload()
                    | TransitToUniversityTransferPayload()
                    | AirportToUniversityTransferPayload()
                ):
                    self._set_item_status(request, payload.item_id, ItemStatus.CLAIMED)
                    self._set_item_status(request, payload.lost_item_id, ItemStatus.CLOSED)
                case EmergencyTransferPayload():
                    self._set_item_status(request, payload.item_id, ItemStatus.PENDING_CLAIM)
        except Exception as e:
            logger.error(
                "Item status update failed after approval",
                request_id=request.request_id,
                error=str(e),
            )

    def _set_item_status(self, request: WorkRequest, item_id: Optional[str], status: ItemStatus) -> None:
        if not item_id:
            return
        if self.item_dao.update_status(item_id, status) is None:
            logger.warning("Item not found for status update", request_id=request.request_id, item_id=item_id)
            return
        logger.info("Item status updated", request_id=request.request_id, item_id=item_id, status=status.value)

    # Statistics

    def statistics(self) -> Dict[str, Any]:
        """Counts by status, type and priority plus open and overdue totals"""
        requests = self.dao.list()
        now = self._now()
        by_status = {status.value: 0 for status in RequestStatus}
        by_type = {request_type.value: 0 for request_type in RequestType}
        by_priority = {priority.value: 0 for priority in RequestPriority}
        for request in requests:
            by_status[request.status.value] += 1
            by_type[request.request_type.value] += 1
            by_priority[request.priority.value] += 1
        return {
            "total": len(requests),
            "open": sum(1 for r in requests if not r.is_terminal()),
            "overdue": sum(1 for r in requests if r.is_overdue(now)),
            "by_status": by_status,
            "by_type": by_type,
            "by_priority": by_priority,
        }
