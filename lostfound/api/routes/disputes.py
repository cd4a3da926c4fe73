"""
Dispute routes for police findings, panel votes, awards and evidence.
"""

from typing import List

from fastapi import APIRouter, Depends

from lostfound.api.schemas import (
    EscalateBody,
    EvidenceBody,
    EvidenceCreatedResponse,
    EvidenceVerifyBody,
    PoliceFindingsBody,
    ResolveBody,
    VoteBody,
)
from lostfound.models.work_request import WorkRequest
from lostfound.services.work_request_service import WorkRequestService, get_work_request_service

router = APIRouter()


@router.get("/disputes/police", response_model=List[WorkRequest])
async def get_disputes_for_police(service: WorkRequestService = Depends(get_work_request_service)):
    """
    Get open disputes flagged for police involvement.

    Returns:
        List of dispute WorkRequests, oldest first
    """
    return service.get_disputes_requiring_police()


@router.post("/disputes/{request_id}/police-findings", response_model=WorkRequest)
async def record_police_findings(
    request_id: str,
    body: PoliceFindingsBody,
    service: WorkRequestService = Depends(get_work_request_service),
):
    service.record_police_findings_for_dispute(
        request_id, body.actor_id, body.actor_name, body.report_number, body.findings
    )
    return service.get_request_by_id(request_id)


@router.post("/disputes/{request_id}/votes", response_model=WorkRequest)
async def record_vote(
    request_id: str,
    body: VoteBody,
    service: WorkRequestService = Depends(get_work_request_service),
):
    """
    Record a panel vote for a claimant.

    Args:
        request_id: The dispute id
        body: Voter identity, chosen claimant and reason

    Returns:
        Updated dispute; RESOLVED once quorum produces a winner
    """
    service.record_dispute_vote(
        request_id, body.actor_id, body.actor_name, body.actor_role, body.claimant_id, body.reason
    )
    return service.get_request_by_id(request_id)


@router.post("/disputes/{request_id}/resolve", response_model=WorkRequest)
async def resolve_dispute(
    request_id: str,
    body: ResolveBody,
    service: WorkRequestService = Depends(get_work_request_service),
):
    service.resolve_dispute(request_id, body.claimant_id, body.reason, body.resolver_label, body.resolver_id)
    return service.get_request_by_id(request_id)


@router.post("/disputes/{request_id}/escalate", response_model=WorkRequest)
async def escalate_dispute(
    request_id: str,
    body: EscalateBody,
    service: WorkRequestService = Depends(get_work_request_service),
):
    service.escalate_to_legal_system(request_id, body.reason)
    return service.get_request_by_id(request_id)


@router.post("/disputes/{request_id}/evidence", response_model=EvidenceCreatedResponse, status_code=201)
async def add_evidence(
    request_id: str,
    body: EvidenceBody,
    service: WorkRequestService = Depends(get_work_request_service),
):
    evidence_id = service.add_dispute_evidence(request_id, body.submitter_id, body.evidence_type, body.description)
    return EvidenceCreatedResponse(evidence_id=evidence_id)


@router.post("/disputes/{request_id}/evidence/{evidence_id}/verify", response_model=WorkRequest)
async def verify_evidence(
    request_id: str,
    evidence_id: str,
    body: EvidenceVerifyBody,
    service: WorkRequestService = Depends(get_work_request_service),
):
    service.verify_dispute_evidence(request_id, evidence_id, body.verifier_id, body.is_valid)
    return service.get_request_by_id(request_id)
