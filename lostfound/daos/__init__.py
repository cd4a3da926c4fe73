"""Data Access Objects (DAOs) for work request and item storage."""

from lostfound.daos.work_request_dao import WorkRequestDAO, InMemoryWorkRequestDAO
from lostfound.daos.item_dao import ItemDAO, InMemoryItemDAO, ItemRecord, ItemStatus

__all__ = [
    "WorkRequestDAO",
    "InMemoryWorkRequestDAO",
    "ItemDAO",
    "InMemoryItemDAO",
    "ItemRecord",
    "ItemStatus",
]
