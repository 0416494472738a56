"""Policy request intake endpoints."""
import logging

from fastapi import APIRouter, Depends

from insurechain.api.deps import request_model
from insurechain.api.models import (
    PolicyRequestCreate,
    PolicyRequestListResponse,
    PolicyRequestResponse,
)
from insurechain.orchestrator import Orchestrator, get_orchestrator

log = logging.getLogger(__name__)
router = APIRouter(prefix="/policy", tags=["policy"])


@router.post("/request", response_model=PolicyRequestResponse)
async def submit_policy_request(
    body: PolicyRequestCreate,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> PolicyRequestResponse:
    """Queue a patient's policy request for the insurer."""
    request = orchestrator.submit_policy_request(
        patient_did=body.patient_did,
        patient_address=body.patient_address,
        coverage_amount=body.coverage_amount,
        details=body.details,
    )
    return PolicyRequestResponse(request=request_model(request))


@router.get("/requests", response_model=PolicyRequestListResponse)
async def list_policy_requests(
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> PolicyRequestListResponse:
    """List every policy request in creation order."""
    requests = orchestrator.list_policy_requests()
    return PolicyRequestListResponse(requests=[request_model(r) for r in requests])
