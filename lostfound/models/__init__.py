"""
Data models for the lost & found work request engine
"""

from .common import (
    Actor,
    ApproverScope,
    ApproverStep,
    RequestPriority,
    RequestStatus,
    RequestType,
    Role,
    TERMINAL_STATUSES,
)
from .dispute import Claimant, ClaimStatus, DisputeResolution, EvidenceItem, PanelMember, ResolutionDecision
from .payloads import (
    AirportToUniversityTransferPayload,
    CrossCampusTransferPayload,
    EmergencyTransferPayload,
    ItemClaimPayload,
    PoliceEvidencePayload,
    TransitToUniversityTransferPayload,
)
from .work_request import ApprovalRecord, NewWorkRequest, WorkRequest
from .audit import AuditAction, AuditEntry

__all__ = [
    "Actor",
    "ApproverScope",
    "ApproverStep",
    "RequestPriority",
    "RequestStatus",
    "RequestType",
    "Role",
    "TERMINAL_STATUSES",
    "Claimant",
    "ClaimStatus",
    "DisputeResolution",
    "EvidenceItem",
    "PanelMember",
    "ResolutionDecision",
    "AirportToUniversityTransferPayload",
    "CrossCampusTransferPayload",
    "EmergencyTransferPayload",
    "ItemClaimPayload",
    "PoliceEvidencePayload",
    "TransitToUniversityTransferPayload",
    "ApprovalRecord",
    "NewWorkRequest",
    "WorkRequest",
    "AuditAction",
    "AuditEntry",
]
