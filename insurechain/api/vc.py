"""Verifiable credential endpoints."""
import logging

from fastapi import APIRouter, Depends

from insurechain.api.deps import warning_models
from insurechain.api.models import (
    ErrorResponse,
    GetVCResponse,
    IssueVCRequest,
    IssueVCResponse,
    VerifyVCRequest,
    VerifyVCResponse,
)
from insurechain.orchestrator import Orchestrator, get_orchestrator

log = logging.getLogger(__name__)
router = APIRouter(prefix="/vc", tags=["vc"])


@router.post("/issue", response_model=IssueVCResponse)
async def issue_vc(
    body: IssueVCRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> IssueVCResponse:
    """Sign a credential, store it, and optionally create the policy on-chain.

    A failed on-chain step still returns the VC and CID, with
    ``onchainPolicyId`` null and the reason in ``warnings``.
    """
    result = await orchestrator.issue_vc(
        credential=body.credential,
        issuer_did=body.issuer_did,
        create_onchain=body.create_onchain,
        insurer_private_key=body.insurer_private_key,
        beneficiary=body.beneficiary,
        coverage_amount=body.coverage_amount,
        request_id=body.request_id,
    )
    return IssueVCResponse(
        vc=result.vc,
        cid=result.cid,
        onchain_policy_id=result.onchain_policy_id,
        warnings=warning_models(result.warnings),
    )


@router.post("/verify", response_model=VerifyVCResponse)
async def verify_vc(
    body: VerifyVCRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> VerifyVCResponse:
    result = await orchestrator.verify_vc(body.vc_jwt)
    return VerifyVCResponse(result=result)


@router.get(
    "/{policy_id}",
    response_model=GetVCResponse,
    responses={404: {"model": ErrorResponse, "description": "No VC issued for the policy"}},
)
async def get_vc(
    policy_id: str,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> GetVCResponse:
    """Return the most recent VC issued for a policy reference."""
    issued = orchestrator.get_vc(policy_id)
    return GetVCResponse(vc=issued.vc, cid=issued.cid)
