"""
Typed errors raised by the work request engine
Every failed operation surfaces one of these to the caller
"""

from typing import List, Optional


class WorkflowError(Exception):
    """Base class for all engine errors"""

    def __init__(self, message: str, request_id: Optional[str] = None):
        self.request_id = request_id
        super().__init__(message + (f" (request: {request_id})" if request_id else ""))


class NotFound(WorkflowError):
    """Unknown request id"""


class Unauthorized(WorkflowError):
    """Actor role or organization does not match the required step"""


class InvalidState(WorkflowError):
    """Operation attempted on a terminal or wrong-stage request"""


class DuplicateVote(InvalidState):
    """A panel member tried to vote a second time"""


class ConcurrencyConflict(WorkflowError):
    """Stale read detected during a guarded write"""

    def __init__(self, request_id: str, expected_version: int, actual_version: int):
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Version conflict: expected {expected_version}, found {actual_version}",
            request_id=request_id,
        )


class ValidationError(WorkflowError):
    """Missing or invalid required input"""

    def __init__(self, errors: List[str], request_id: Optional[str] = None):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors), request_id=request_id)
