"""
Work request routes for creation, work queues and approval transitions.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends

from lostfound.api.schemas import ActorAction, CreatedResponse, ReasonedAction
from lostfound.models.common import Role
from lostfound.models.work_request import NewWorkRequest, WorkRequest
from lostfound.services.work_request_service import WorkRequestService, get_work_request_service

router = APIRouter()


@router.post("/work-requests", response_model=CreatedResponse, status_code=201)
async def create_work_request(
    body: NewWorkRequest,
    service: WorkRequestService = Depends(get_work_request_service),
):
    """
    Submit a new work request.

    Args:
        body: Request type, requester context and type-specific payload

    Returns:
        CreatedResponse with the request id
    """
    return CreatedResponse(request_id=service.create_request(body))


@router.get("/work-requests", response_model=List[WorkRequest])
async def get_work_queue(
    role: Role,
    org_id: Optional[str] = None,
    service: WorkRequestService = Depends(get_work_request_service),
):
    """
    Get open requests awaiting a role.

    Args:
        role: Role of the caller
        org_id: Caller's organization

    Returns:
        List of WorkRequest, most urgent first
    """
    return service.get_requests_for_role(role, org_id)


@router.get("/work-requests/overdue", response_model=List[WorkRequest])
async def get_overdue(service: WorkRequestService = Depends(get_work_request_service)):
    return service.get_overdue_requests()


@router.get("/work-requests/approaching-sla", response_model=List[WorkRequest])
async def get_approaching_sla(service: WorkRequestService = Depends(get_work_request_service)):
    return service.get_approaching_sla_requests()


@router.get("/work-requests/stats")
async def get_stats(service: WorkRequestService = Depends(get_work_request_service)) -> Dict[str, Any]:
    return service.get_statistics()


@router.get("/work-requests/{request_id}", response_model=WorkRequest)
async def get_work_request(
    request_id: str,
    service: WorkRequestService = Depends(get_work_request_service),
):
    """
    Get a work request by id.

    Returns:
        WorkRequest if found
    """
    return service.get_request_by_id(request_id)


@router.post("/work-requests/{request_id}/assign", response_model=WorkRequest)
async def assign_work_request(
    request_id: str,
    body: ActorAction,
    service: WorkRequestService = Depends(get_work_request_service),
):
    service.assign_request(request_id, body.actor_id)
    return service.get_request_by_id(request_id)


@router.post("/work-requests/{request_id}/approve", response_model=WorkRequest)
async def approve_work_request(
    request_id: str,
    body: ActorAction,
    service: WorkRequestService = Depends(get_work_request_service),
):
    """
    Approve the current step of a request.

    Args:
        request_id: The request id
        body: Approving actor

    Returns:
        Updated WorkRequest
    """
    service.approve_request(request_id, body.actor_id)
    return service.get_request_by_id(request_id)


@router.post("/work-requests/{request_id}/reject", response_model=WorkRequest)
async def reject_work_request(
    request_id: str,
    body: ReasonedAction,
    service: WorkRequestService = Depends(get_work_request_service),
):
    service.reject_request(request_id, body.actor_id, body.reason)
    return service.get_request_by_id(request_id)


@router.post("/work-requests/{request_id}/close", response_model=WorkRequest)
async def close_work_request(
    request_id: str,
    body: ReasonedAction,
    service: WorkRequestService = Depends(get_work_request_service),
):
    service.close_request(request_id, body.actor_id, body.reason)
    return service.get_request_by_id(request_id)
