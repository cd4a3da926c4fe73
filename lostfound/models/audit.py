"""
Audit trail models
Every state change on a work request leaves an entry
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field


class AuditAction(str, Enum):
    """Types of actions that are audited"""
    # Request lifecycle
    REQUEST_CREATED = "request_created"
    REQUEST_ASSIGNED = "request_assigned"
    STEP_APPROVED = "step_approved"
    REQUEST_APPROVED = "request_approved"
    REQUEST_REJECTED = "request_rejected"
    REQUEST_CLOSED = "request_closed"
    MATCH_ATTACHED = "match_attached"
    LOW_TRUST_FLAGGED = "low_trust_flagged"

    # Dispute operations
    CLAIMANT_ADDED = "claimant_added"
    VOTE_RECORDED = "vote_recorded"
    POLICE_FINDINGS_RECORDED = "police_findings_recorded"
    EVIDENCE_ADDED = "evidence_added"
    EVIDENCE_VERIFIED = "evidence_verified"
    DISPUTE_UNDER_REVIEW = "dispute_under_review"
    DISPUTE_RESOLVED = "dispute_resolved"
    DISPUTE_ESCALATED = "dispute_escalated"
    POLICE_FLAGGED = "police_flagged"


class AuditEntry(BaseModel):
    """
    Individual audit entry on a work request
    Written once, never edited
    """
    timestamp: datetime = Field(default_factory=datetime.now)
    action: AuditAction
    actor_id: Optional[str] = Field(None, description="User who performed the action (if any)")
    actor_name: Optional[str] = None
    description: str = Field(..., description="Human-readable description of the action")
    details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Structured details about the action"
    )
