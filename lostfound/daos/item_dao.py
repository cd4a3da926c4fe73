"""
Data Access Object for lost and found item records.
The engine only reads items and moves their status on approval side effects.
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class ItemStatus(str, Enum):
    """Item record status values."""
    OPEN = "OPEN"
    PENDING_CLAIM = "PENDING_CLAIM"
    CLAIMED = "CLAIMED"
    CLOSED = "CLOSED"


class ItemRecord(BaseModel):
    """Engine-side view of a lost or found item."""
    item_id: str = Field(..., description="Item identifier")
    name: Optional[str] = None
    is_lost_report: bool = Field(default=False, description="True for a lost report, False for a found item")
    status: ItemStatus = Field(default=ItemStatus.OPEN)
    resolved_at: Optional[datetime] = None


class ItemDAO(ABC):
    """Persistence contract for item records."""

    @abstractmethod
    def get(self, item_id: str) -> Optional[ItemRecord]:
        """Fetch an item by id, None if unknown."""

    @abstractmethod
    def update_status(self, item_id: str, status: ItemStatus) -> Optional[ItemRecord]:
        """Set an item's status; returns None if the item is unknown."""


class InMemoryItemDAO(ItemDAO):
    """Handles item storage in process memory."""

    def __init__(self):
        self._items: Dict[str, ItemRecord] = {}
        self._lock = threading.Lock()

    def add(self, item: ItemRecord) -> ItemRecord:
        with self._lock:
            self._items[item.item_id] = item.model_copy()
            return item

    def get(self, item_id: str) -> Optional[ItemRecord]:
        with self._lock:
            item = self._items.get(item_id)
            return item.model_copy() if item else None

    def update_status(self, item_id: str, status: ItemStatus) -> Optional[ItemRecord]:
        """
        Update an item's status.

        Args:
            item_id: The item identifier
            status: New status; CLAIMED and CLOSED also stamp resolved_at

        Returns:
            ItemRecord if updated, None if not found
        """
        with self._lock:
            item = self._items.get(item_id)
            if item is None:
                return None
            item.status = status
            if status in (ItemStatus.CLAIMED, ItemStatus.CLOSED):
                item.resolved_at = datetime.now()
            return item.model_copy()
