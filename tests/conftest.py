"""
Shared fixtures for the work request engine tests
"""

from datetime import datetime, timedelta

import pytest

from lostfound.config.settings import EngineSettings
from lostfound.daos.item_dao import InMemoryItemDAO, ItemRecord
from lostfound.daos.work_request_dao import InMemoryWorkRequestDAO
from lostfound.governance.request_type_registry import RequestTypeRegistry
from lostfound.models.common import Actor, Role
from lostfound.services.collaborators import InMemoryIdentityDirectory, StaticMatchSuggestionProvider
from lostfound.services.notification_service import LoggingNotifier
from lostfound.services.work_request_service import WorkRequestService


class FakeClock:
    """Controllable time source"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, hours: float) -> None:
        self.now = self.now + timedelta(hours=hours)


ACTORS = [
    Actor(user_id="student-neu", name="Alice Chen", role=Role.STUDENT, organization_id="neu", enterprise_id="neu-ent"),
    Actor(user_id="student-bu", name="Ben Ortiz", role=Role.STUDENT, organization_id="bu", enterprise_id="bu-ent"),
    Actor(user_id="student-mit", name="Cara Singh", role=Role.STUDENT, organization_id="mit", enterprise_id="mit-ent"),
    Actor(user_id="coord-neu", name="Dana Lee", role=Role.CAMPUS_COORDINATOR, organization_id="neu"),
    Actor(user_id="coord-bu", name="Eli Park", role=Role.CAMPUS_COORDINATOR, organization_id="bu"),
    Actor(user_id="station-park", name="Finn Walsh", role=Role.STATION_MANAGER, organization_id="mbta-park"),
    Actor(user_id="airport-spec", name="Gia Russo", role=Role.AIRPORT_LOST_FOUND_SPECIALIST, organization_id="logan"),
    Actor(user_id="police-1", name="Officer Hale", role=Role.POLICE_EVIDENCE_CUSTODIAN, organization_id="bpd"),
    Actor(user_id="security-neu", name="Ivan Cole", role=Role.UNIVERSITY_SECURITY, organization_id="neu"),
    Actor(user_id="admin-neu", name="Jo Admin", role=Role.ENTERPRISE_ADMIN, organization_id="neu"),
    Actor(user_id="tsa-1", name="Kim Tran", role=Role.TSA_SECURITY_COORDINATOR, organization_id="logan"),
]


@pytest.fixture
def registry():
    return RequestTypeRegistry()


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 4, 9, 0, 0))


@pytest.fixture
def directory():
    return InMemoryIdentityDirectory(ACTORS)


@pytest.fixture
def item_dao():
    dao = InMemoryItemDAO()
    for item_id, is_lost in [
        ("found-laptop", False),
        ("lost-laptop", True),
        ("found-phone", False),
        ("found-passport", False),
        ("found-watch", False),
    ]:
        dao.add(ItemRecord(item_id=item_id, is_lost_report=is_lost))
    return dao


@pytest.fixture
def matcher():
    return StaticMatchSuggestionProvider()


@pytest.fixture
def notifier():
    return LoggingNotifier()


@pytest.fixture
def settings():
    return EngineSettings()


@pytest.fixture
def service(registry, clock, directory, item_dao, matcher, notifier, settings):
    return WorkRequestService(
        dao=InMemoryWorkRequestDAO(),
        directory=directory,
        item_dao=item_dao,
        matcher=matcher,
        notifier=notifier,
        registry=registry,
        settings=settings,
        clock=clock,
    )


def item_claim(requester_id="student-neu", org_id="neu", item_id="found-laptop", **payload):
    body = {
        "kind": "ITEM_CLAIM",
        "item_id": item_id,
        "item_name": "Silver laptop",
        "claim_details": "Lost it in the library on Monday",
        "identifying_features": "Sticker of a red fox on the lid",
    }
    body.update(payload)
    return {
        "request_type": "ITEM_CLAIM",
        "requester_id": requester_id,
        "requesting_organization_id": org_id,
        "payload": body,
    }


def cross_campus_transfer(**payload):
    body = {
        "kind": "CROSS_CAMPUS_TRANSFER",
        "item_id": "found-laptop",
        "lost_item_id": "lost-laptop",
        "source_campus_name": "Boston University",
        "source_coordinator_id": "coord-bu",
        "destination_campus_name": "Northeastern",
        "student_id": "student-neu",
        "student_name": "Alice Chen",
        "pickup_location": "Curry Student Center",
    }
    body.update(payload)
    return {
        "request_type": "CROSS_CAMPUS_TRANSFER",
        "requester_id": "coord-bu",
        "requesting_organization_id": "bu",
        "target_organization_id": "neu",
        "payload": body,
    }


def transit_transfer(**payload):
    body = {
        "kind": "TRANSIT_TO_UNIVERSITY_TRANSFER",
        "item_id": "found-phone",
        "station_name": "Park Street",
        "student_id": "student-neu",
        "campus_pickup_location": "Curry Student Center",
    }
    body.update(payload)
    return {
        "request_type": "TRANSIT_TO_UNIVERSITY_TRANSFER",
        "requester_id": "station-park",
        "requesting_organization_id": "mbta-park",
        "target_organization_id": "neu",
        "payload": body,
    }


def airport_transfer(**payload):
    body = {
        "kind": "AIRPORT_TO_UNIVERSITY_TRANSFER",
        "item_id": "found-laptop",
        "terminal": "Terminal B",
        "airport_incident_number": "LOG-2024-118",
        "student_id": "student-neu",
        "campus_pickup_location": "Curry Student Center",
    }
    body.update(payload)
    return {
        "request_type": "AIRPORT_TO_UNIVERSITY_TRANSFER",
        "requester_id": "airport-spec",
        "requesting_organization_id": "logan",
        "target_organization_id": "neu",
        "payload": body,
    }


def police_evidence(**payload):
    body = {
        "kind": "POLICE_EVIDENCE_REQUEST",
        "item_id": "found-phone",
        "item_name": "Phone",
        "serial_number": "SN-4481",
        "verification_reason": "Serial number check before release",
    }
    body.update(payload)
    return {
        "request_type": "POLICE_EVIDENCE_REQUEST",
        "requester_id": "coord-neu",
        "requesting_organization_id": "neu",
        "payload": body,
    }


def emergency_transfer(priority=None, **payload):
    body = {
        "kind": "MBTA_TO_AIRPORT_EMERGENCY",
        "item_id": "found-passport",
        "document_type": "PASSPORT",
        "station_name": "Airport Station",
        "flight_number": "BA212",
    }
    body.update(payload)
    request = {
        "request_type": "MBTA_TO_AIRPORT_EMERGENCY",
        "requester_id": "station-park",
        "requesting_organization_id": "mbta-park",
        "target_organization_id": "logan",
        "payload": body,
    }
    if priority:
        request["priority"] = priority
    return request


def dispute(claimant_ids=("student-neu", "student-bu"), estimated_value=120.0, **payload):
    body = {
        "kind": "MULTI_ENTERPRISE_DISPUTE",
        "item_id": "found-watch",
        "item_name": "Wristwatch",
        "estimated_value": estimated_value,
        "dispute_reason": "Two students describe the same watch",
        "claimants": [
            {"claimant_id": claimant_id, "name": claimant_id.replace("-", " ").title()}
            for claimant_id in claimant_ids
        ],
    }
    body.update(payload)
    return {
        "request_type": "MULTI_ENTERPRISE_DISPUTE",
        "requester_id": "coord-neu",
        "requesting_organization_id": "neu",
        "payload": body,
    }
