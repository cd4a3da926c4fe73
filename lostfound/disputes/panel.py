"""
Dispute Panel
Runs multi-claimant ownership disputes: claimant registry, panel voting,
police findings, evidence and the final award
Quorum, panel roles and police thresholds come from the request type registry
"""

import uuid
from datetime import datetime, timedelta
from typing import List, Optional

import structlog

from lostfound.errors import DuplicateVote, InvalidState, Unauthorized, ValidationError
from lostfound.models.audit import AuditAction
from lostfound.models.common import RequestPriority, RequestStatus, RequestType, Role
from lostfound.models.dispute import (
    Claimant,
    ClaimStatus,
    DisputeResolution,
    EvidenceItem,
    PanelMember,
    ResolutionDecision,
)
from lostfound.models.work_request import WorkRequest
from lostfound.workflow.base import WorkflowComponent

logger = structlog.get_logger()


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class DisputePanel(WorkflowComponent):
    """
    Dispute resolution subsystem
    PENDING -> UNDER_REVIEW -> RESOLVED | ESCALATED
    A vote is write-once; a tie at quorum is handed to police
    """

    # Creation

    def validate_new(self, dispute: DisputeResolution) -> List[str]:
        """
        Check claimant and panel input for a new dispute

        Returns:
            List of error messages, empty when valid
        """
        errors = []
        min_claimants = self.registry.min_claimants()
        if len(dispute.claimants) < min_claimants:
            errors.append(f"payload.claimants must list at least {min_claimants} claimants")

        seen = set()
        for claimant in dispute.claimants:
            if claimant.claimant_id in seen:
                errors.append(f"payload.claimants has duplicate claimant {claimant.claimant_id}")
            seen.add(claimant.claimant_id)

        members = set()
        for member in dispute.panel_members:
            if member.member_id in members:
                errors.append(f"payload.panel_members has duplicate member {member.member_id}")
            members.add(member.member_id)
            if member.has_voted:
                errors.append(f"payload.panel_members member {member.member_id} cannot start with a vote")
        return errors

    def prepare(self, dispute: DisputeResolution) -> bool:
        """
        Fill creation defaults on a validated dispute payload

        Returns:
            True if the dispute needs police involvement from the start
        """
        if dispute.panel_votes_required is None:
            dispute.panel_votes_required = self.registry.default_panel_votes_required()
        dispute.panel_votes_received = 0

        if (
            dispute.estimated_value >= self.registry.high_value_threshold()
            or len(dispute.claimants) >= self.registry.police_claimant_threshold()
        ):
            dispute.police_involved = True
        return dispute.police_involved

    def add_claimant(self, request_id: str, claimant: Claimant) -> WorkRequest:
        """
        Register another claimant on an open dispute
        A claimant already on the dispute is left unchanged

        Raises:
            NotFound, InvalidState
        """
        with self.locks.hold(request_id):
            request = self._load(request_id)
            self._ensure_open(request)
            dispute = self._ensure_dispute(request)
            if dispute.find_claimant(claimant.claimant_id) is not None:
                return request

            expected, old_status = request.version, request.status
            now = self._now()
            dispute.claimants.append(claimant)
            dispute.add_note(f"Claimant {claimant.name} joined the dispute", now)
            request.record(
                AuditAction.CLAIMANT_ADDED,
                f"Claimant {claimant.name} added",
                now,
                claimant_id=claimant.claimant_id,
            )
            if len(dispute.claimants) >= self.registry.police_claimant_threshold():
                self._flag_police(request, f"{len(dispute.claimants)} claimants", now)
                if request.priority != RequestPriority.URGENT:
                    request.priority = RequestPriority.URGENT
                    urgent_due = self._sla_due(request, RequestPriority.URGENT)
                    request.due_date = min(request.due_date, urgent_due)
            stored = self._persist(request, expected)

        logger.info(
            "Claimant added to dispute",
            request_id=request_id,
            claimant_id=claimant.claimant_id,
            claimants=len(stored.payload.claimants),
        )
        self._announce(stored, AuditAction.CLAIMANT_ADDED.value, old_status, actor_id=claimant.claimant_id)
        return stored

    def _sla_due(self, request: WorkRequest, priority: RequestPriority) -> datetime:
        hours = self.registry.sla_hours_for(request.request_type, priority)
        return request.created_at + timedelta(hours=hours)

    # Police

    def record_police_findings(
        self,
        request_id: str,
        actor_id: str,
        actor_name: Optional[str],
        report_number: str,
        findings: str,
    ) -> WorkRequest:
        """
        Attach a police report to an open dispute
        Findings inform the panel; they are not a vote

        Raises:
            NotFound, InvalidState, ValidationError, Unauthorized
        """
        with self.locks.hold(request_id):
            request = self._load(request_id)
            self._ensure_open(request)
            dispute = self._ensure_dispute(request)
            errors = []
            if _blank(report_number):
                errors.append("report_number is required")
            if _blank(findings):
                errors.append("findings is required")
            if errors:
                raise ValidationError(errors, request_id=request_id)
            actor = self._resolve_actor(actor_id, request_id)
            if actor.role != Role.POLICE_EVIDENCE_CUSTODIAN:
                raise Unauthorized(f"{actor.role.value} cannot record police findings", request_id=request_id)

            expected, old_status = request.version, request.status
            now = self._now()
            dispute.police_involved = True
            dispute.police_officer_id = actor.user_id
            dispute.police_officer_name = actor_name or actor.name
            dispute.police_report_number = report_number.strip()
            dispute.police_findings = findings.strip()
            dispute.police_findings_at = now
            request.record(
                AuditAction.POLICE_FINDINGS_RECORDED,
                f"Police report {dispute.police_report_number} attached",
                now,
                actor=actor,
                report_number=dispute.police_report_number,
            )
            self._start_review(request, now)
            stored = self._persist(request, expected)

        logger.info("Police findings recorded", request_id=request_id, officer_id=actor.user_id)
        self._announce(stored, AuditAction.POLICE_FINDINGS_RECORDED.value, old_status, actor_id=actor.user_id)
        return stored

    def disputes_requiring_police(self) -> List[WorkRequest]:
        """Open disputes flagged for police involvement, oldest first"""
        disputes = self.dao.list(
            lambda r: r.request_type == RequestType.MULTI_ENTERPRISE_DISPUTE
            and not r.is_terminal()
            and r.payload.police_involved
        )
        return sorted(disputes, key=lambda r: r.created_at)

    # Voting

    def record_vote(
        self,
        request_id: str,
        voter_id: str,
        voter_name: Optional[str],
        voter_role: Optional[Role],
        claimant_id: str,
        reason: str,
    ) -> WorkRequest:
        """
        Record one panel vote

        The first vote moves the dispute to UNDER_REVIEW. Once votes received
        reach the quorum a unique plurality winner is awarded the item; a tie
        flags police involvement and leaves the dispute under review.

        Raises:
            NotFound, InvalidState, DuplicateVote, ValidationError, Unauthorized
        """
        with self.locks.hold(request_id):
            request = self._load(request_id)
            self._ensure_open(request)
            dispute = self._ensure_dispute(request)

            member = dispute.find_panel_member(voter_id)
            if member is not None and member.has_voted:
                raise DuplicateVote(f"Panel member {voter_id} has already voted", request_id=request_id)

            errors = []
            if dispute.find_claimant(claimant_id) is None:
                errors.append(f"Unknown claimant {claimant_id}")
            if _blank(reason):
                errors.append("reason is required")
            if errors:
                raise ValidationError(errors, request_id=request_id)

            actor = self._resolve_actor(voter_id, request_id)
            if voter_role is not None:
                try:
                    claimed_role = Role(voter_role)
                except ValueError:
                    raise Unauthorized(f"Unknown role {voter_role}", request_id=request_id)
                if claimed_role != actor.role:
                    raise Unauthorized(f"{voter_id} does not hold role {claimed_role.value}", request_id=request_id)
            if dispute.find_claimant(actor.user_id) is not None:
                raise Unauthorized("Claimants cannot vote on their own dispute", request_id=request_id)

            expected, old_status = request.version, request.status
            now = self._now()
            if member is None:
                if not self._has_role(actor, self.registry.panel_roles()):
                    raise Unauthorized(f"{actor.role.value} cannot sit on a dispute panel", request_id=request_id)
                member = PanelMember(
                    member_id=actor.user_id,
                    name=voter_name or actor.name,
                    role=actor.role,
                    organization_id=actor.organization_id,
                )
                dispute.panel_members.append(member)

            member.has_voted = True
            member.voted_for_claimant_id = claimant_id
            member.vote_reason = reason.strip()
            member.voted_at = now
            dispute.panel_votes_received += 1
            request.record(
                AuditAction.VOTE_RECORDED,
                f"{member.name or member.member_id} voted",
                now,
                actor=actor,
                claimant_id=claimant_id,
                votes=dispute.panel_votes_received,
            )
            self._start_review(request, now)

            action = AuditAction.VOTE_RECORDED
            if dispute.has_quorum():
                winner = dispute.plurality_winner()
                if winner is not None:
                    counts = dispute.vote_counts()
                    self._award(
                        request,
                        winner,
                        f"Panel vote {counts[winner]} of {dispute.panel_votes_received}",
                        ResolutionDecision.AWARDED_BY_PANEL,
                        "Voting panel",
                        now,
                    )
                    action = AuditAction.DISPUTE_RESOLVED
                else:
                    self._flag_police(request, "Panel tied at quorum", now)
            stored = self._persist(request, expected)

        logger.info(
            "Dispute vote recorded",
            request_id=request_id,
            voter_id=voter_id,
            votes=stored.payload.panel_votes_received,
            required=stored.payload.panel_votes_required,
            status=stored.status.value,
        )
        self._announce(stored, action.value, old_status, actor_id=voter_id)
        return stored

    # Resolution

    def resolve_dispute(
        self,
        request_id: str,
        claimant_id: str,
        reason: str,
        resolver_label: str,
        resolver_id: Optional[str] = None,
    ) -> WorkRequest:
        """
        Award the item to a claimant regardless of quorum

        Args:
            resolver_label: Recorded as resolved_by
            resolver_id: When given, must resolve to an authorized resolver role

        Raises:
            NotFound, InvalidState, ValidationError, Unauthorized
        """
        with self.locks.hold(request_id):
            request = self._load(request_id)
            self._ensure_open(request)
            dispute = self._ensure_dispute(request)
            errors = []
            if dispute.find_claimant(claimant_id) is None:
                errors.append(f"Unknown claimant {claimant_id}")
            if _blank(reason):
                errors.append("reason is required")
            if _blank(resolver_label):
                errors.append("resolver_label is required")
            if errors:
                raise ValidationError(errors, request_id=request_id)

            actor = None
            if resolver_id is not None:
                actor = self._resolve_actor(resolver_id, request_id)
                if not self._has_role(actor, self.registry.resolver_roles()):
                    raise Unauthorized(f"{actor.role.value} cannot resolve disputes", request_id=request_id)

            expected, old_status = request.version, request.status
            now = self._now()
            self._award(request, claimant_id, reason.strip(), ResolutionDecision.ADMIN_DECISION, resolver_label, now, actor)
            stored = self._persist(request, expected)

        logger.info("Dispute resolved by decision", request_id=request_id, winner=claimant_id, resolver=resolver_label)
        self._announce(stored, AuditAction.DISPUTE_RESOLVED.value, old_status, actor_id=resolver_id)
        return stored

    def escalate_to_legal_system(self, request_id: str, reason: Optional[str] = None) -> WorkRequest:
        """
        Hand an open dispute to the legal system; ESCALATED is terminal

        Raises:
            NotFound, InvalidState
        """
        with self.locks.hold(request_id):
            request = self._load(request_id)
            self._ensure_open(request)
            dispute = self._ensure_dispute(request)

            expected, old_status = request.version, request.status
            now = self._now()
            request.status = RequestStatus.ESCALATED
            request.completed_at = now
            dispute.resolution_decision = ResolutionDecision.ESCALATED_TO_LEGAL
            dispute.escalated_at = now
            dispute.add_note(f"Escalated to legal system: {reason or 'no reason given'}", now)
            request.record(AuditAction.DISPUTE_ESCALATED, "Escalated to legal system", now, reason=reason)
            stored = self._persist(request, expected)

        logger.warning("Dispute escalated to legal system", request_id=request_id, reason=reason)
        self._announce(stored, AuditAction.DISPUTE_ESCALATED.value, old_status)
        return stored

    # Evidence

    def add_evidence(
        self,
        request_id: str,
        submitter_id: str,
        evidence_type: str,
        description: str,
    ) -> str:
        """
        Attach evidence to an open dispute

        Returns:
            The new evidence id

        Raises:
            NotFound, InvalidState, ValidationError, Unauthorized
        """
        with self.locks.hold(request_id):
            request = self._load(request_id)
            self._ensure_open(request)
            dispute = self._ensure_dispute(request)
            errors = []
            if _blank(evidence_type):
                errors.append("evidence_type is required")
            if _blank(description):
                errors.append("description is required")
            if errors:
                raise ValidationError(errors, request_id=request_id)
            actor = self._resolve_actor(submitter_id, request_id)

            expected = request.version
            now = self._now()
            evidence = EvidenceItem(
                evidence_id=str(uuid.uuid4()),
                submitted_by_id=actor.user_id,
                submitted_by_name=actor.name,
                evidence_type=evidence_type.strip().upper(),
                description=description.strip(),
                submitted_at=now,
            )
            dispute.evidence_items.append(evidence)
            request.record(
                AuditAction.EVIDENCE_ADDED,
                f"{evidence.evidence_type} evidence from {actor.name}",
                now,
                actor=actor,
                evidence_id=evidence.evidence_id,
            )
            self._persist(request, expected)

        logger.info("Dispute evidence added", request_id=request_id, evidence_id=evidence.evidence_id)
        return evidence.evidence_id

    def verify_evidence(
        self,
        request_id: str,
        evidence_id: str,
        verifier_id: str,
        is_valid: bool,
    ) -> WorkRequest:
        """
        Mark evidence VALID or INVALID; only police and resolver roles verify

        Raises:
            NotFound, InvalidState, ValidationError, Unauthorized
        """
        with self.locks.hold(request_id):
            request = self._load(request_id)
            self._ensure_open(request)
            dispute = self._ensure_dispute(request)
            evidence = dispute.find_evidence(evidence_id)
            if evidence is None:
                raise ValidationError([f"Unknown evidence {evidence_id}"], request_id=request_id)
            if evidence.verified:
                raise InvalidState(f"Evidence {evidence_id} is already verified", request_id=request_id)
            actor = self._resolve_actor(verifier_id, request_id)
            verifier_roles = [Role.POLICE_EVIDENCE_CUSTODIAN] + self.registry.resolver_roles()
            if not self._has_role(actor, verifier_roles):
                raise Unauthorized(f"{actor.role.value} cannot verify evidence", request_id=request_id)

            expected = request.version
            now = self._now()
            evidence.verified = True
            evidence.verified_by_id = actor.user_id
            evidence.verification_result = "VALID" if is_valid else "INVALID"
            evidence.verified_at = now
            request.record(
                AuditAction.EVIDENCE_VERIFIED,
                f"Evidence {evidence_id} marked {evidence.verification_result}",
                now,
                actor=actor,
                evidence_id=evidence_id,
            )
            stored = self._persist(request, expected)

        logger.info("Dispute evidence verified", request_id=request_id, evidence_id=evidence_id, valid=is_valid)
        return stored

    # Helpers

    def _start_review(self, request: WorkRequest, now: datetime) -> None:
        if request.status != RequestStatus.PENDING:
            return
        request.status = RequestStatus.UNDER_REVIEW
        request.payload.under_review_at = now
        request.record(AuditAction.DISPUTE_UNDER_REVIEW, "Dispute under review", now)

    def _flag_police(self, request: WorkRequest, reason: str, now: datetime) -> None:
        dispute: DisputeResolution = request.payload
        dispute.add_note(f"Police involvement required: {reason}", now)
        if dispute.police_involved:
            return
        dispute.police_involved = True
        request.record(AuditAction.POLICE_FLAGGED, f"Police involvement required: {reason}", now)
        logger.warning("Dispute flagged for police", request_id=request.request_id, reason=reason)

    def _award(
        self,
        request: WorkRequest,
        claimant_id: str,
        reason: str,
        decision: ResolutionDecision,
        resolved_by: str,
        now: datetime,
        actor=None,
    ) -> None:
        dispute: DisputeResolution = request.payload
        winner = dispute.find_claimant(claimant_id)
        for claimant in dispute.claimants:
            claimant.claim_status = (
                ClaimStatus.APPROVED if claimant.claimant_id == claimant_id else ClaimStatus.REJECTED
            )
        dispute.winning_claimant_id = winner.claimant_id
        dispute.winning_claimant_name = winner.name
        dispute.award_reason = reason
        dispute.resolution_decision = decision
        dispute.resolved_by = resolved_by
        dispute.resolved_at = now
        dispute.add_note(f"Awarded to {winner.name} by {resolved_by}: {reason}", now)
        request.status = RequestStatus.RESOLVED
        request.completed_at = now
        request.record(
            AuditAction.DISPUTE_RESOLVED,
            f"Awarded to {winner.name}",
            now,
            actor=actor,
            claimant_id=claimant_id,
            decision=decision.value,
        )
