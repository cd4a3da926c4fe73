"""
Tests for the work request lifecycle: creation, transitions and side effects
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from conftest import (
    airport_transfer,
    cross_campus_transfer,
    dispute,
    emergency_transfer,
    item_claim,
    police_evidence,
    transit_transfer,
)
from lostfound.config.settings import EngineSettings
from lostfound.daos.item_dao import ItemStatus
from lostfound.daos.work_request_dao import InMemoryWorkRequestDAO
from lostfound.errors import InvalidState, NotFound, Unauthorized, ValidationError
from lostfound.models.audit import AuditAction
from lostfound.models.common import Actor, ApproverScope, RequestPriority, RequestStatus, RequestType, Role
from lostfound.services.work_request_service import WorkRequestService


class TestCreateRequest:
    """Test request creation"""

    def test_create_and_get_round_trip(self, service, clock):
        request_id = service.create_request(item_claim())
        request = service.get_request_by_id(request_id)

        assert request.request_id == request_id
        assert request.request_type == RequestType.ITEM_CLAIM
        assert request.status == RequestStatus.PENDING
        assert request.priority == RequestPriority.NORMAL
        assert request.created_at == clock()
        assert request.due_date == clock() + timedelta(hours=72)
        assert request.approval_step == 0
        assert [step.role for step in request.approver_chain] == [Role.CAMPUS_COORDINATOR]
        assert request.approver_chain[0].scope == ApproverScope.REQUESTING_ORG
        assert request.payload.item_name == "Silver laptop"
        assert request.summary.startswith("Item Claim")
        assert request.history[0].action == AuditAction.REQUEST_CREATED
        assert request.version == 0

    def test_requester_details_filled_from_directory(self, service):
        request = service.get_request_by_id(service.create_request(item_claim()))
        assert request.requester_name == "Alice Chen"
        assert request.requesting_enterprise_id == "neu-ent"

    def test_requesting_org_filled_before_validation(self, service):
        body = item_claim()
        del body["requesting_organization_id"]
        request_id = service.create_request(body)

        request = service.get_request_by_id(request_id)
        assert request.requesting_organization_id == "neu"
        assert [r.request_id for r in service.get_requests_for_role(Role.CAMPUS_COORDINATOR, "neu")] == [request_id]
        assert service.get_requests_for_role(Role.CAMPUS_COORDINATOR, "bu") == []

    def test_missing_org_for_unknown_requester(self, service):
        body = item_claim(requester_id="walk-in")
        del body["requesting_organization_id"]
        with pytest.raises(ValidationError) as exc:
            service.create_request(body)
        assert exc.value.errors == ["requesting_organization_id is required"]

    def test_missing_fields_are_all_reported(self, service):
        body = item_claim(claim_details="  ", identifying_features=None)
        with pytest.raises(ValidationError) as exc:
            service.create_request(body)
        assert "payload.claim_details is required" in exc.value.errors
        assert "payload.identifying_features is required" in exc.value.errors
        assert service.get_statistics()["total"] == 0

    def test_missing_target_org(self, service):
        body = cross_campus_transfer()
        del body["target_organization_id"]
        with pytest.raises(ValidationError) as exc:
            service.create_request(body)
        assert exc.value.errors == ["target_organization_id is required"]

    def test_malformed_input(self, service):
        body = item_claim()
        body["payload"]["kind"] = "CROSS_CAMPUS_TRANSFER"
        with pytest.raises(ValidationError):
            service.create_request(body)

    def test_unknown_request_type(self, service):
        body = item_claim()
        body["request_type"] = "LOST_UMBRELLA"
        with pytest.raises(ValidationError):
            service.create_request(body)

    def test_secure_area_needs_security_notes(self, service):
        with pytest.raises(ValidationError) as exc:
            service.create_request(airport_transfer(was_in_secure_area=True, security_notes="Gate B4"))
        assert any("security_notes" in error for error in exc.value.errors)

        request_id = service.create_request(airport_transfer(
            was_in_secure_area=True,
            security_notes="Recovered past the checkpoint at gate B4, cleared by TSA",
        ))
        assert service.get_request_by_id(request_id).priority == RequestPriority.HIGH

    def test_emergency_forced_urgent(self, service, clock):
        request = service.get_request_by_id(service.create_request(emergency_transfer(priority="LOW")))
        assert request.priority == RequestPriority.URGENT
        assert request.due_date == clock() + timedelta(hours=2)

    def test_stolen_check_is_urgent(self, service):
        request = service.get_request_by_id(service.create_request(police_evidence(is_stolen_check=True)))
        assert request.priority == RequestPriority.URGENT

    def test_high_value_claim_is_high(self, service, clock):
        request = service.get_request_by_id(service.create_request(item_claim(item_value=800.0)))
        assert request.priority == RequestPriority.HIGH
        assert request.due_date == clock() + timedelta(hours=24)

    def test_caller_priority_beats_derived(self, service):
        body = item_claim(item_value=800.0)
        body["priority"] = "LOW"
        request = service.get_request_by_id(service.create_request(body))
        assert request.priority == RequestPriority.LOW

    def test_matcher_prepopulates_lost_item(self, service, matcher):
        matcher.add("found-laptop", "lost-other", 0.6)
        matcher.add("found-laptop", "lost-laptop", 0.92)
        request = service.get_request_by_id(service.create_request(item_claim()))
        assert request.payload.lost_item_id == "lost-laptop"
        assert request.payload.match_score == pytest.approx(0.92)
        assert AuditAction.MATCH_ATTACHED in [entry.action for entry in request.history]

    def test_matcher_below_threshold_ignored(self, service, matcher):
        matcher.add("found-laptop", "lost-laptop", 0.5)
        request = service.get_request_by_id(service.create_request(item_claim()))
        assert request.payload.lost_item_id is None

    def test_caller_lost_item_kept(self, service, matcher):
        matcher.add("found-laptop", "lost-other", 0.99)
        request = service.get_request_by_id(service.create_request(cross_campus_transfer()))
        assert request.payload.lost_item_id == "lost-laptop"

    def test_matcher_failure_does_not_block_creation(self, registry, directory, clock, settings):
        failing = MagicMock()
        failing.suggest_matches.side_effect = RuntimeError("index offline")
        service = WorkRequestService(
            directory=directory, matcher=failing, registry=registry, settings=settings, clock=clock
        )
        request = service.get_request_by_id(service.create_request(item_claim()))
        assert request.payload.lost_item_id is None

    def test_dispute_needs_two_distinct_claimants(self, service):
        with pytest.raises(ValidationError):
            service.create_request(dispute(claimant_ids=("student-neu",)))
        with pytest.raises(ValidationError):
            service.create_request(dispute(claimant_ids=("student-neu", "student-neu")))

    def test_notification_sent_on_create(self, service, notifier):
        request_id = service.create_request(cross_campus_transfer())
        event = notifier.sent[-1]
        assert event.request_id == request_id
        assert event.new_status == RequestStatus.PENDING


class TestRequesterTrust:
    """Test low-trust requester flags at creation"""

    @pytest.fixture
    def low_trust(self, directory):
        def register(user_id, score):
            directory.register(Actor(
                user_id=user_id, name="Lou Reyes", role=Role.STUDENT, organization_id="neu", trust_score=score
            ))
            return user_id
        return register

    def test_probation_raises_normal_to_high(self, service, low_trust, clock):
        requester_id = low_trust("student-probation", 20)
        request = service.get_request_by_id(service.create_request(item_claim(requester_id=requester_id)))

        assert request.priority == RequestPriority.HIGH
        assert request.due_date == clock() + timedelta(hours=24)
        assert "LOW TRUST SCORE: Requester on probation" in request.notes
        entry = next(e for e in request.history if e.action == AuditAction.LOW_TRUST_FLAGGED)
        assert entry.details["trust_score"] == 20

    def test_low_trust_flagged_without_priority_change(self, service, low_trust):
        requester_id = low_trust("student-low", 40)
        request = service.get_request_by_id(service.create_request(item_claim(requester_id=requester_id)))

        assert request.priority == RequestPriority.NORMAL
        assert "verify carefully" in request.notes
        assert AuditAction.LOW_TRUST_FLAGGED in [e.action for e in request.history]

    def test_caller_priority_kept_on_probation(self, service, low_trust):
        body = item_claim(requester_id=low_trust("student-probation", 10))
        body["priority"] = "LOW"
        request = service.get_request_by_id(service.create_request(body))
        assert request.priority == RequestPriority.LOW
        assert AuditAction.LOW_TRUST_FLAGGED in [e.action for e in request.history]

    def test_acceptable_score_not_flagged(self, service):
        request = service.get_request_by_id(service.create_request(item_claim()))
        assert request.notes is None
        assert AuditAction.LOW_TRUST_FLAGGED not in [e.action for e in request.history]


class TestTransitions:
    """Test assign, approve, reject and close"""

    def test_single_step_approval(self, service, clock):
        request_id = service.create_request(item_claim())
        clock.advance(2)
        assert service.approve_request(request_id, "coord-neu")

        request = service.get_request_by_id(request_id)
        assert request.status == RequestStatus.APPROVED
        assert request.completed_at == clock()
        assert request.approvals[0].approver_id == "coord-neu"
        assert request.approval_step == 1
        assert request.version == 1

    def test_two_step_approval(self, service):
        request_id = service.create_request(transit_transfer())

        with pytest.raises(Unauthorized):
            service.approve_request(request_id, "coord-neu")

        service.approve_request(request_id, "station-park")
        request = service.get_request_by_id(request_id)
        assert request.status == RequestStatus.IN_PROGRESS
        assert request.needs_approval_from_role(Role.CAMPUS_COORDINATOR)

        service.approve_request(request_id, "coord-neu")
        assert service.get_request_by_id(request_id).status == RequestStatus.APPROVED

    def test_airport_transfer_chain(self, service):
        request_id = service.create_request(airport_transfer())
        service.approve_request(request_id, "airport-spec")
        service.approve_request(request_id, "coord-neu")
        request = service.get_request_by_id(request_id)
        assert [a.role for a in request.approvals] == [Role.AIRPORT_LOST_FOUND_SPECIALIST, Role.CAMPUS_COORDINATOR]

    def test_wrong_actor_is_unauthorized(self, service):
        request_id = service.create_request(item_claim())
        for actor_id in ("coord-bu", "student-neu", "police-1", "nobody"):
            with pytest.raises(Unauthorized):
                service.approve_request(request_id, actor_id)
        request = service.get_request_by_id(request_id)
        assert request.status == RequestStatus.PENDING
        assert request.version == 0

    def test_unknown_request(self, service):
        with pytest.raises(NotFound):
            service.approve_request("missing", "coord-neu")
        with pytest.raises(NotFound):
            service.get_request_by_id("missing")

    def test_assign(self, service):
        request_id = service.create_request(item_claim())
        with pytest.raises(Unauthorized):
            service.assign_request(request_id, "coord-bu")

        assert service.assign_request(request_id, "coord-neu")
        request = service.get_request_by_id(request_id)
        assert request.status == RequestStatus.IN_PROGRESS
        assert request.current_handler_id == "coord-neu"

        service.approve_request(request_id, "coord-neu")
        assert service.get_request_by_id(request_id).status == RequestStatus.APPROVED

    def test_reject_requires_reason(self, service):
        request_id = service.create_request(item_claim())
        with pytest.raises(ValidationError):
            service.reject_request(request_id, "coord-neu", "   ")
        assert service.get_request_by_id(request_id).status == RequestStatus.PENDING

    def test_double_reject(self, service):
        request_id = service.create_request(item_claim())
        service.reject_request(request_id, "coord-neu", "Features do not match")

        request = service.get_request_by_id(request_id)
        assert request.status == RequestStatus.REJECTED
        assert request.rejected_by == "coord-neu"
        assert request.rejection_reason == "Features do not match"

        with pytest.raises(InvalidState):
            service.reject_request(request_id, "coord-neu", "Again")

    def test_terminal_is_immutable(self, service):
        request_id = service.create_request(item_claim())
        service.approve_request(request_id, "coord-neu")
        version = service.get_request_by_id(request_id).version

        with pytest.raises(InvalidState):
            service.approve_request(request_id, "coord-neu")
        with pytest.raises(InvalidState):
            service.assign_request(request_id, "coord-neu")
        with pytest.raises(InvalidState):
            service.reject_request(request_id, "coord-neu", "Too late")
        with pytest.raises(InvalidState):
            service.close_request(request_id, "coord-neu", "Too late")

        request = service.get_request_by_id(request_id)
        assert request.status == RequestStatus.APPROVED
        assert request.version == version

    def test_close(self, service):
        request_id = service.create_request(item_claim())
        with pytest.raises(Unauthorized):
            service.close_request(request_id, "coord-bu", "Duplicate report")

        service.close_request(request_id, "coord-neu", "Student picked it up in person")
        request = service.get_request_by_id(request_id)
        assert request.status == RequestStatus.CLOSED
        assert request.closed_by == "coord-neu"
        assert request.closure_reason == "Student picked it up in person"

    def test_dispute_cannot_be_approved_assigned_or_closed(self, service):
        request_id = service.create_request(dispute())
        with pytest.raises(InvalidState):
            service.approve_request(request_id, "police-1")
        with pytest.raises(InvalidState):
            service.assign_request(request_id, "police-1")
        with pytest.raises(InvalidState):
            service.close_request(request_id, "police-1", "Not needed")

    def test_police_may_reject_dispute(self, service):
        request_id = service.create_request(dispute())
        service.reject_request(request_id, "police-1", "Item already returned by court order")
        assert service.get_request_by_id(request_id).status == RequestStatus.REJECTED

    def test_statistics(self, service):
        first = service.create_request(item_claim())
        service.create_request(police_evidence())
        service.approve_request(first, "coord-neu")

        stats = service.get_statistics()
        assert stats["total"] == 2
        assert stats["open"] == 1
        assert stats["by_status"]["APPROVED"] == 1
        assert stats["by_status"]["PENDING"] == 1
        assert stats["by_type"]["POLICE_EVIDENCE_REQUEST"] == 1
        assert stats["registry_version"] == "1.0.0"


class TestApprovalSideEffects:
    """Test item status changes after approval"""

    def test_cross_campus_closes_matched_lost_item(self, service, item_dao):
        request_id = service.create_request(cross_campus_transfer())
        service.approve_request(request_id, "coord-neu")

        assert item_dao.get("found-laptop").status == ItemStatus.CLAIMED
        assert item_dao.get("lost-laptop").status == ItemStatus.CLOSED
        assert item_dao.get("found-laptop").resolved_at is not None

    def test_step_approval_has_no_side_effect(self, service, item_dao):
        request_id = service.create_request(transit_transfer())
        service.approve_request(request_id, "station-park")
        assert item_dao.get("found-phone").status == ItemStatus.OPEN

    def test_emergency_marks_pending_claim(self, service, item_dao):
        request_id = service.create_request(emergency_transfer())
        service.approve_request(request_id, "airport-spec")
        assert item_dao.get("found-passport").status == ItemStatus.PENDING_CLAIM

    def test_police_evidence_leaves_item(self, service, item_dao):
        request_id = service.create_request(police_evidence())
        service.approve_request(request_id, "police-1")
        assert item_dao.get("found-phone").status == ItemStatus.OPEN

    def test_item_store_failure_keeps_approval(self, registry, directory, clock, settings):
        item_dao = MagicMock()
        item_dao.update_status.side_effect = RuntimeError("item store down")
        service = WorkRequestService(
            directory=directory, item_dao=item_dao, registry=registry, settings=settings, clock=clock
        )
        request_id = service.create_request(item_claim())
        assert service.approve_request(request_id, "coord-neu")
        assert service.get_request_by_id(request_id).status == RequestStatus.APPROVED
        item_dao.update_status.assert_called_once_with("found-laptop", ItemStatus.CLAIMED)

    def test_notifier_failure_keeps_approval(self, registry, directory, clock, settings):
        notifier = MagicMock()
        notifier.notify.side_effect = RuntimeError("smtp down")
        service = WorkRequestService(
            directory=directory, notifier=notifier, registry=registry, settings=settings, clock=clock
        )
        request_id = service.create_request(item_claim())
        service.approve_request(request_id, "coord-neu")
        assert service.get_request_by_id(request_id).status == RequestStatus.APPROVED
        assert notifier.notify.call_count == 2

    def test_approval_notifies_requester(self, service, notifier):
        request_id = service.create_request(cross_campus_transfer())
        service.approve_request(request_id, "coord-neu")
        event = notifier.sent[-1]
        assert event.new_status == RequestStatus.APPROVED
        assert event.old_status == RequestStatus.PENDING
        assert "coord-bu" in event.recipient_ids
        assert "coord-neu" not in event.recipient_ids


class TestCompetingClaims:
    """Test duplicate claim detection"""

    def test_second_claimant_creates_dispute(self, service):
        first = service.create_request(item_claim())
        dispute_id = service.create_request(item_claim(requester_id="student-bu", org_id="bu"))
        assert dispute_id != first

        dispute_request = service.get_request_by_id(dispute_id)
        assert dispute_request.request_type == RequestType.MULTI_ENTERPRISE_DISPUTE
        assert [c.claimant_id for c in dispute_request.payload.claimants] == ["student-neu", "student-bu"]
        assert dispute_request.payload.item_id == "found-laptop"

        earlier = service.get_request_by_id(first)
        assert earlier.status == RequestStatus.CLOSED
        assert earlier.payload.linked_dispute_id == dispute_id
        assert dispute_id in earlier.notes

    def test_third_claimant_joins_dispute_and_escalates(self, service):
        service.create_request(item_claim())
        dispute_id = service.create_request(item_claim(requester_id="student-bu", org_id="bu"))
        assert service.get_request_by_id(dispute_id).payload.police_involved is False

        joined = service.create_request(item_claim(requester_id="student-mit", org_id="mit"))
        assert joined == dispute_id

        dispute_request = service.get_request_by_id(dispute_id)
        assert len(dispute_request.payload.claimants) == 3
        assert dispute_request.payload.police_involved
        assert dispute_request.priority == RequestPriority.URGENT
        assert dispute_id in [r.request_id for r in service.get_disputes_requiring_police()]

    def test_repeat_claim_by_same_requester(self, service):
        first = service.create_request(item_claim())
        assert service.create_request(item_claim(claim_details="Adding more detail")) == first
        assert service.get_statistics()["total"] == 1

    def test_detection_can_be_disabled(self, registry, directory, clock):
        service = WorkRequestService(
            dao=InMemoryWorkRequestDAO(),
            directory=directory,
            registry=registry,
            settings=EngineSettings(detect_duplicate_claims=False),
            clock=clock,
        )
        first = service.create_request(item_claim())
        second = service.create_request(item_claim(requester_id="student-bu", org_id="bu"))
        assert first != second
        assert service.get_statistics()["by_type"]["MULTI_ENTERPRISE_DISPUTE"] == 0
