"""
Data Access Object for work requests.
Storage is a collaborator; the in-memory DAO backs tests and single-process deployments.
"""

import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from lostfound.errors import ConcurrencyConflict, NotFound
from lostfound.models.work_request import WorkRequest


class WorkRequestDAO(ABC):
    """Persistence contract for work requests (including disputes)."""

    @abstractmethod
    def create(self, request: WorkRequest) -> WorkRequest:
        """Insert a new request at version 0."""

    @abstractmethod
    def get(self, request_id: str) -> Optional[WorkRequest]:
        """Fetch a request by id, None if unknown."""

    @abstractmethod
    def update(self, request: WorkRequest, expected_version: int) -> WorkRequest:
        """Replace a request if the stored version still equals expected_version."""

    @abstractmethod
    def list(self, predicate: Optional[Callable[[WorkRequest], bool]] = None) -> List[WorkRequest]:
        """All requests matching predicate, in creation order."""


class InMemoryWorkRequestDAO(WorkRequestDAO):
    """Handles work request storage in process memory."""

    def __init__(self):
        """
        Initialize InMemoryWorkRequestDAO.

        Stored objects are deep copies, so callers never share mutable state with the store.
        """
        self._rows: Dict[str, WorkRequest] = {}
        self._lock = threading.Lock()

    def create(self, request: WorkRequest) -> WorkRequest:
        """
        Create a new work request record.

        Args:
            request: WorkRequest to insert

        Returns:
            WorkRequest: The stored record

        Raises:
            ValueError: If a request with the same id already exists
        """
        with self._lock:
            if request.request_id in self._rows:
                raise ValueError(f"Work request {request.request_id} already exists")
            stored = request.model_copy(deep=True)
            stored.version = 0
            self._rows[stored.request_id] = stored
            return stored.model_copy(deep=True)

    def get(self, request_id: str) -> Optional[WorkRequest]:
        """
        Retrieve a work request by id.

        Args:
            request_id: The request identifier

        Returns:
            WorkRequest if found, None otherwise
        """
        with self._lock:
            stored = self._rows.get(request_id)
            return stored.model_copy(deep=True) if stored else None

    def update(self, request: WorkRequest, expected_version: int) -> WorkRequest:
        """
        Update a work request with an optimistic version check.

        Args:
            request: The modified request
            expected_version: Version the caller read before modifying

        Returns:
            WorkRequest: The stored record with its new version

        Raises:
            NotFound: If the request does not exist
            ConcurrencyConflict: If another writer updated the request first
        """
        with self._lock:
            current = self._rows.get(request.request_id)
            if current is None:
                raise NotFound("Work request not found", request_id=request.request_id)
            if current.version != expected_version:
                raise ConcurrencyConflict(request.request_id, expected_version, current.version)
            stored = request.model_copy(deep=True)
            stored.version = expected_version + 1
            self._rows[stored.request_id] = stored
            return stored.model_copy(deep=True)

    def list(self, predicate: Optional[Callable[[WorkRequest], bool]] = None) -> List[WorkRequest]:
        """
        List work requests.

        Args:
            predicate: Optional filter applied to each request

        Returns:
            List of matching WorkRequest copies
        """
        with self._lock:
            rows = [row.model_copy(deep=True) for row in self._rows.values()]
        if predicate is None:
            return rows
        return [row for row in rows if predicate(row)]
