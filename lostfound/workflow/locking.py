"""
Per-request lock table
Operations on the same request id run one at a time; different ids never block each other
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List


class RequestLocks:
    """
    Process-local table of one lock per request id
    An entry lives only while some caller holds or waits on it
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._users: Dict[str, int] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def lock_for(self, request_id: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(request_id, threading.Lock())

    def _checkout(self, request_ids: List[str]) -> List[threading.Lock]:
        with self._guard:
            locks = []
            for request_id in request_ids:
                locks.append(self._locks.setdefault(request_id, threading.Lock()))
                self._users[request_id] = self._users.get(request_id, 0) + 1
            return locks

    def _checkin(self, request_ids: List[str]) -> None:
        with self._guard:
            for request_id in request_ids:
                remaining = self._users[request_id] - 1
                if remaining:
                    self._users[request_id] = remaining
                else:
                    del self._users[request_id]
                    self._locks.pop(request_id, None)

    @contextmanager
    def hold(self, *request_ids: str) -> Iterator[None]:
        """
        Hold the locks for several ids at once
        Ids are locked in sorted order so two callers can never deadlock
        """
        ids = sorted(set(request_ids))
        locks = self._checkout(ids)
        acquired = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            self._checkin(ids)
