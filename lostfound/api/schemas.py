"""
Request and response bodies for the work request API.
"""

from typing import Optional
from pydantic import BaseModel, Field

from lostfound.models.common import Role


class ActorAction(BaseModel):
    """Body for assign and approve."""
    actor_id: str = Field(..., description="User performing the action")


class ReasonedAction(BaseModel):
    """Body for reject and close."""
    actor_id: str = Field(..., description="User performing the action")
    reason: str = Field(..., description="Why the request is rejected or closed")


class CreatedResponse(BaseModel):
    request_id: str = Field(..., description="Id of the created request, or the dispute a claim joined")


class PoliceFindingsBody(BaseModel):
    actor_id: str
    actor_name: Optional[str] = None
    report_number: str
    findings: str


class VoteBody(BaseModel):
    actor_id: str
    actor_name: Optional[str] = None
    actor_role: Optional[Role] = None
    claimant_id: str
    reason: str


class ResolveBody(BaseModel):
    claimant_id: str
    reason: str
    resolver_label: str = Field(..., description="Recorded as the resolver of the dispute")
    resolver_id: Optional[str] = Field(None, description="Checked against resolver roles when given")


class EscalateBody(BaseModel):
    reason: Optional[str] = None


class EvidenceBody(BaseModel):
    submitter_id: str
    evidence_type: str = Field(..., description="RECEIPT, PHOTO, SERIAL_MATCH, STATEMENT, ...")
    description: str


class EvidenceCreatedResponse(BaseModel):
    evidence_id: str


class EvidenceVerifyBody(BaseModel):
    verifier_id: str
    is_valid: bool
