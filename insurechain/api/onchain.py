"""On-chain endpoints: identity registration, policies and claims."""
import logging

from fastapi import APIRouter, Depends

from insurechain.api.deps import warning_models
from insurechain.api.models import (
    ClaimModel,
    ClaimResponse,
    ErrorResponse,
    InsurerActionRequest,
    InsurerActionResponse,
    IssuePolicyRequest,
    IssuePolicyResponse,
    PolicyModel,
    PolicyResponse,
    RegisterIdentityRequest,
    SubmitClaimRequest,
    SubmitClaimResponse,
    TxResponse,
)
from insurechain.orchestrator import Orchestrator, get_orchestrator

log = logging.getLogger(__name__)
router = APIRouter(prefix="/onchain", tags=["onchain"])


@router.post("/register", response_model=TxResponse)
async def register_identity(
    body: RegisterIdentityRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> TxResponse:
    """Register an account's DID and role in the IdentityRegistry."""
    tx_hash = await orchestrator.register_identity(
        private_key=body.private_key,
        account=body.account,
        did=body.did,
        role=body.role,
    )
    return TxResponse(tx_hash=tx_hash)


@router.post("/issuePolicy", response_model=IssuePolicyResponse)
async def issue_policy(
    body: IssuePolicyRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> IssuePolicyResponse:
    """Create a policy on-chain; ``policyId`` comes from the PolicyIssued event."""
    issuance = await orchestrator.issue_policy(
        private_key=body.private_key,
        beneficiary=body.beneficiary,
        coverage_amount=body.coverage_amount,
    )
    return IssuePolicyResponse(policy_id=issuance.policy_id, tx_hash=issuance.tx_hash)


@router.post("/submitClaim", response_model=SubmitClaimResponse)
async def submit_claim(
    body: SubmitClaimRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> SubmitClaimResponse:
    """Submit a claim after a best-effort check of the referenced VC."""
    submission = await orchestrator.submit_claim(
        private_key=body.private_key,
        policy_id=body.policy_id,
        beneficiary=body.beneficiary,
        insurer=body.insurer,
        evidence_hash=body.ipfs_hash,
        vc_cid=body.vc_cid,
        amount=body.amount,
    )
    return SubmitClaimResponse(
        claim_id=submission.claim_id,
        tx_hash=submission.tx_hash,
        warnings=warning_models(submission.warnings),
    )


@router.post(
    "/insurerAction",
    response_model=InsurerActionResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid action, key or missing reason"},
        404: {"model": ErrorResponse, "description": "Claim not found"},
        409: {"model": ErrorResponse, "description": "Transition not allowed or reverted"},
    },
)
async def insurer_action(
    body: InsurerActionRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> InsurerActionResponse:
    """Move a claim through review, approval or rejection, and payment."""
    result = await orchestrator.insurer_action(
        private_key=body.private_key,
        claim_id=body.claim_id,
        action=body.action,
        reason=body.reason,
    )
    return InsurerActionResponse(tx_hash=result.tx_hash, action=result.action, status=result.status.label)


@router.get(
    "/claim/{claim_id}",
    response_model=ClaimResponse,
    responses={404: {"model": ErrorResponse, "description": "Claim not found"}},
)
async def get_claim(
    claim_id: str,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> ClaimResponse:
    claim = await orchestrator.get_claim(claim_id)
    return ClaimResponse(claim=ClaimModel.model_validate(claim.to_dict()))


@router.get(
    "/policy/{policy_id}",
    response_model=PolicyResponse,
    responses={404: {"model": ErrorResponse, "description": "Policy not found"}},
)
async def get_policy(
    policy_id: str,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> PolicyResponse:
    policy = await orchestrator.get_policy(policy_id)
    return PolicyResponse(policy=PolicyModel.model_validate(policy))
