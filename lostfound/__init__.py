"""
Lost & found work request orchestration engine
Typed cross-organization approval workflows with SLA tracking and dispute resolution
"""

from lostfound.errors import (
    ConcurrencyConflict,
    DuplicateVote,
    InvalidState,
    NotFound,
    Unauthorized,
    ValidationError,
    WorkflowError,
)
from lostfound.services.work_request_service import WorkRequestService, get_work_request_service

__version__ = "1.0.0"

__all__ = [
    "ConcurrencyConflict",
    "DuplicateVote",
    "InvalidState",
    "NotFound",
    "Unauthorized",
    "ValidationError",
    "WorkflowError",
    "WorkRequestService",
    "get_work_request_service",
]
