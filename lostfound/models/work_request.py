"""
Work request envelope
Common fields for every request type plus a type-tagged payload
"""

from datetime import datetime
from typing import Annotated, Optional, List, Union
from pydantic import BaseModel, Field, model_validator

from lostfound.models.audit import AuditAction, AuditEntry
from lostfound.models.common import (
    Actor,
    ApproverStep,
    RequestPriority,
    RequestStatus,
    RequestType,
    Role,
)
from lostfound.models.dispute import DisputeResolution
from lostfound.models.payloads import (
    AirportToUniversityTransferPayload,
    CrossCampusTransferPayload,
    EmergencyTransferPayload,
    ItemClaimPayload,
    PoliceEvidencePayload,
    TransitToUniversityTransferPayload,
)


RequestPayload = Annotated[
    Union[
        ItemClaimPayload,
        CrossCampusTransferPayload,
        TransitToUniversityTransferPayload,
        AirportToUniversityTransferPayload,
        PoliceEvidencePayload,
        EmergencyTransferPayload,
        DisputeResolution,
    ],
    Field(discriminator="kind"),
]


class NewWorkRequest(BaseModel):
    """
    Caller input for creating a work request
    Required fields per type are checked against the request type registry
    """
    request_type: RequestType
    requester_id: Optional[str] = None
    requester_name: Optional[str] = None
    requester_email: Optional[str] = None
    requesting_organization_id: Optional[str] = None
    requesting_enterprise_id: Optional[str] = None
    target_organization_id: Optional[str] = None
    target_enterprise_id: Optional[str] = None
    priority: Optional[RequestPriority] = Field(None, description="Caller preference; may be overridden")
    description: Optional[str] = None
    notes: Optional[str] = None
    payload: RequestPayload

    @model_validator(mode="after")
    def check_payload_kind(self) -> "NewWorkRequest":
        if self.payload.kind != self.request_type.value:
            raise ValueError(
                f"Payload kind {self.payload.kind} does not match request type {self.request_type.value}"
            )
        return self


class ApprovalRecord(BaseModel):
    """One completed step of the approver chain"""
    step: int = Field(..., ge=0)
    role: Role
    approver_id: str
    approver_name: Optional[str] = None
    approved_at: datetime = Field(default_factory=datetime.now)


class WorkRequest(BaseModel):
    """
    Persisted work request
    The approver chain is fixed at creation from the request type
    """
    request_id: str = Field(..., description="Unique request identifier")
    request_type: RequestType
    status: RequestStatus = Field(default=RequestStatus.PENDING)
    priority: RequestPriority = Field(default=RequestPriority.NORMAL)

    # Requester context
    requester_id: str
    requester_name: Optional[str] = None
    requester_email: Optional[str] = None
    requesting_organization_id: Optional[str] = None
    requesting_enterprise_id: Optional[str] = None

    # Where the request is sent to
    target_organization_id: Optional[str] = None
    target_enterprise_id: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    due_date: datetime
    completed_at: Optional[datetime] = None

    # Approval tracking
    approver_chain: List[ApproverStep] = Field(default_factory=list)
    approval_step: int = Field(default=0, ge=0, description="Index of the current unresolved step")
    approvals: List[ApprovalRecord] = Field(default_factory=list)
    current_handler_id: Optional[str] = Field(None, description="Actor who took the request via assign")
    rejected_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    closed_by: Optional[str] = None
    closure_reason: Optional[str] = None

    summary: str = Field(default="", description="Human-readable one-liner")
    description: Optional[str] = None
    notes: Optional[str] = None

    history: List[AuditEntry] = Field(default_factory=list)
    version: int = Field(default=0, ge=0, description="Optimistic concurrency version")

    payload: RequestPayload

    @model_validator(mode="after")
    def check_payload_kind(self) -> "WorkRequest":
        if self.payload.kind != self.request_type.value:
            raise ValueError(
                f"Payload kind {self.payload.kind} does not match request type {self.request_type.value}"
            )
        return self

    # Approval chain queries

    def next_required_step(self) -> Optional[ApproverStep]:
        """Step awaiting action, or None once the chain is exhausted"""
        if self.approval_step >= len(self.approver_chain):
            return None
        return self.approver_chain[self.approval_step]

    def needs_approval_from_role(self, role: Union[Role, str]) -> bool:
        """True iff role is the unresolved head of the approver chain"""
        if self.is_terminal():
            return False
        step = self.next_required_step()
        return step is not None and step.role == role

    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def is_pending(self) -> bool:
        return not self.is_terminal()

    def is_dispute(self) -> bool:
        return isinstance(self.payload, DisputeResolution)

    # SLA

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        """Overdue iff now is past the due date and the request is still open"""
        if self.is_terminal():
            return False
        return (now or datetime.now()) > self.due_date

    def hours_until_due(self, now: Optional[datetime] = None) -> float:
        """Signed hours to the due date; negative means overdue"""
        return (self.due_date - (now or datetime.now())).total_seconds() / 3600.0

    # Bookkeeping

    def add_note(self, note: str, at: Optional[datetime] = None) -> None:
        stamp = (at or datetime.now()).isoformat(timespec="seconds")
        line = f"[{stamp}] {note}"
        self.notes = line if not self.notes else f"{self.notes}\n{line}"

    def record(
        self,
        action: AuditAction,
        description: str,
        at: datetime,
        actor: Optional[Actor] = None,
        **details,
    ) -> None:
        """Append an audit entry and bump the update timestamp"""
        self.history.append(AuditEntry(
            timestamp=at,
            action=action,
            actor_id=actor.user_id if actor else None,
            actor_name=actor.name if actor else None,
            description=description,
            details=details,
        ))
        self.updated_at = at
