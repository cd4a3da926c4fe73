"""
Shared enums and identity models
Request types, statuses, priorities, roles and the acting user
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class RequestType(str, Enum):
    """Kinds of work request that need cross-role approval"""
    ITEM_CLAIM = "ITEM_CLAIM"  # Student claiming a found item
    CROSS_CAMPUS_TRANSFER = "CROSS_CAMPUS_TRANSFER"
    TRANSIT_TO_UNIVERSITY_TRANSFER = "TRANSIT_TO_UNIVERSITY_TRANSFER"
    AIRPORT_TO_UNIVERSITY_TRANSFER = "AIRPORT_TO_UNIVERSITY_TRANSFER"
    POLICE_EVIDENCE_REQUEST = "POLICE_EVIDENCE_REQUEST"
    MBTA_TO_AIRPORT_EMERGENCY = "MBTA_TO_AIRPORT_EMERGENCY"
    MULTI_ENTERPRISE_DISPUTE = "MULTI_ENTERPRISE_DISPUTE"


class RequestStatus(str, Enum):
    """Current status of a work request"""
    PENDING = "PENDING"  # Created, waiting for first action
    IN_PROGRESS = "IN_PROGRESS"  # Assigned or partially approved
    UNDER_REVIEW = "UNDER_REVIEW"  # Dispute panel or police reviewing
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    RESOLVED = "RESOLVED"  # Dispute awarded
    ESCALATED = "ESCALATED"  # Dispute handed to the legal system
    CLOSED = "CLOSED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    RequestStatus.APPROVED,
    RequestStatus.REJECTED,
    RequestStatus.RESOLVED,
    RequestStatus.ESCALATED,
    RequestStatus.CLOSED,
})


class RequestPriority(str, Enum):
    """Processing priority, drives the SLA window"""
    URGENT = "URGENT"
    HIGH = "HIGH"
    NORMAL = "NORMAL"
    LOW = "LOW"


class Role(str, Enum):
    """Organizational roles known to the engine"""
    STUDENT = "STUDENT"
    CAMPUS_COORDINATOR = "CAMPUS_COORDINATOR"
    UNIVERSITY_SECURITY = "UNIVERSITY_SECURITY"
    STATION_MANAGER = "STATION_MANAGER"
    TRANSIT_SECURITY_INSPECTOR = "TRANSIT_SECURITY_INSPECTOR"
    AIRPORT_LOST_FOUND_SPECIALIST = "AIRPORT_LOST_FOUND_SPECIALIST"
    TSA_SECURITY_COORDINATOR = "TSA_SECURITY_COORDINATOR"
    POLICE_EVIDENCE_CUSTODIAN = "POLICE_EVIDENCE_CUSTODIAN"
    PUBLIC_TRAVELER = "PUBLIC_TRAVELER"
    ENTERPRISE_ADMIN = "ENTERPRISE_ADMIN"


class ApproverScope(str, Enum):
    """Which organization an approver step must come from"""
    REQUESTING_ORG = "requesting_org"
    TARGET_ORG = "target_org"
    ANY_ORG = "any_org"


class ApproverStep(BaseModel):
    """One entry of an approver chain"""
    role: Role
    scope: ApproverScope = Field(default=ApproverScope.ANY_ORG)


class Actor(BaseModel):
    """A user acting on a request, as resolved by the identity directory"""
    user_id: str
    name: str
    role: Role
    organization_id: Optional[str] = None
    enterprise_id: Optional[str] = None
    email: Optional[str] = None
    trust_score: float = Field(default=50.0, ge=0, le=100)
