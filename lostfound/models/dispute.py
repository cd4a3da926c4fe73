"""
Dispute resolution data models
Represents a multi-claimant ownership dispute, its voting panel and police findings
"""

from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Literal
from pydantic import BaseModel, Field

from lostfound.models.common import Role


class ClaimStatus(str, Enum):
    """Status of an individual claimant's claim"""
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"  # Awarded the item
    REJECTED = "REJECTED"


class ResolutionDecision(str, Enum):
    """How a dispute was closed out"""
    AWARDED_BY_PANEL = "AWARDED_BY_PANEL"  # Quorum reached with a plurality winner
    ADMIN_DECISION = "ADMIN_DECISION"  # Manual override
    ESCALATED_TO_LEGAL = "ESCALATED_TO_LEGAL"


class Claimant(BaseModel):
    """A party asserting ownership of the disputed item"""
    claimant_id: str = Field(..., description="User id of the claimant")
    name: str
    email: Optional[str] = None
    enterprise_id: Optional[str] = None
    enterprise_name: Optional[str] = None
    organization_id: Optional[str] = None
    trust_score: float = Field(default=50.0, ge=0, le=100)
    claim_description: Optional[str] = Field(None, description="Why they believe it is theirs")
    proof_description: Optional[str] = Field(None, description="What proof they can provide")
    claim_status: ClaimStatus = Field(default=ClaimStatus.SUBMITTED)
    submitted_at: datetime = Field(default_factory=datetime.now)


class PanelMember(BaseModel):
    """
    A cross-enterprise representative who votes on the dispute
    A vote, once cast, is never changed
    """
    member_id: str
    name: Optional[str] = None
    role: Role
    organization_id: Optional[str] = None
    has_voted: bool = False
    voted_for_claimant_id: Optional[str] = None
    vote_reason: Optional[str] = None
    voted_at: Optional[datetime] = None


class EvidenceItem(BaseModel):
    """Evidence submitted in support of a claim"""
    evidence_id: str
    submitted_by_id: str
    submitted_by_name: Optional[str] = None
    evidence_type: str = Field(..., description="RECEIPT, PHOTO, SERIAL_MATCH, STATEMENT, ...")
    description: str
    submitted_at: datetime = Field(default_factory=datetime.now)
    verified: bool = False
    verified_by_id: Optional[str] = None
    verification_result: Optional[str] = Field(None, description="VALID or INVALID")
    verified_at: Optional[datetime] = None


class DisputeResolution(BaseModel):
    """
    Payload of a MULTI_ENTERPRISE_DISPUTE request
    Tracks claimants, the voting panel, police findings and the final award
    """
    kind: Literal["MULTI_ENTERPRISE_DISPUTE"] = "MULTI_ENTERPRISE_DISPUTE"

    # Disputed item
    item_id: Optional[str] = None
    item_name: Optional[str] = None
    item_category: Optional[str] = None
    estimated_value: float = Field(default=0.0, ge=0)
    holding_enterprise_name: Optional[str] = None

    dispute_type: str = Field(default="OWNERSHIP", description="OWNERSHIP, PRIORITY, AUTHENTICITY")
    dispute_reason: Optional[str] = None

    claimants: List[Claimant] = Field(default_factory=list)

    # Voting panel
    panel_members: List[PanelMember] = Field(default_factory=list)
    panel_votes_required: Optional[int] = Field(None, ge=1, description="Quorum; config default when unset")
    panel_votes_received: int = Field(default=0, ge=0)

    evidence_items: List[EvidenceItem] = Field(default_factory=list)

    # Police involvement
    police_involved: bool = False
    police_officer_id: Optional[str] = None
    police_officer_name: Optional[str] = None
    police_report_number: Optional[str] = None
    police_findings: Optional[str] = None

    # Resolution
    resolution_decision: Optional[ResolutionDecision] = None
    resolution_notes: Optional[str] = None
    winning_claimant_id: Optional[str] = None
    winning_claimant_name: Optional[str] = None
    award_reason: Optional[str] = None
    resolved_by: Optional[str] = None

    # State change timestamps
    under_review_at: Optional[datetime] = None
    police_findings_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    escalated_at: Optional[datetime] = None

    def find_claimant(self, claimant_id: str) -> Optional[Claimant]:
        for claimant in self.claimants:
            if claimant.claimant_id == claimant_id:
                return claimant
        return None

    def find_panel_member(self, member_id: str) -> Optional[PanelMember]:
        for member in self.panel_members:
            if member.member_id == member_id:
                return member
        return None

    def find_evidence(self, evidence_id: str) -> Optional[EvidenceItem]:
        for evidence in self.evidence_items:
            if evidence.evidence_id == evidence_id:
                return evidence
        return None

    def vote_counts(self) -> Dict[str, int]:
        """Votes per claimant id, from panel members who have voted"""
        counts: Dict[str, int] = {}
        for member in self.panel_members:
            if member.has_voted and member.voted_for_claimant_id:
                counts[member.voted_for_claimant_id] = counts.get(member.voted_for_claimant_id, 0) + 1
        return counts

    def plurality_winner(self) -> Optional[str]:
        """
        Claimant id with strictly the most votes

        Returns:
            The winner's id, or None on a tie or when no votes exist
        """
        counts = self.vote_counts()
        if not counts:
            return None
        top = max(counts.values())
        leaders = [claimant_id for claimant_id, votes in counts.items() if votes == top]
        return leaders[0] if len(leaders) == 1 else None

    def has_quorum(self) -> bool:
        return self.panel_votes_required is not None and self.panel_votes_received >= self.panel_votes_required

    def add_note(self, note: str, at: Optional[datetime] = None) -> None:
        """Append a timestamped line to the resolution notes"""
        stamp = (at or datetime.now()).isoformat(timespec="seconds")
        line = f"[{stamp}] {note}"
        self.resolution_notes = line if not self.resolution_notes else f"{self.resolution_notes}\n{line}"

    def get_status_summary(self) -> str:
        decision = self.resolution_decision.value if self.resolution_decision else "Pending"
        return (
            f"Claimants: {len(self.claimants)} | "
            f"Panel Votes: {self.panel_votes_received}/{self.panel_votes_required} | "
            f"Resolution: {decision}"
        )
