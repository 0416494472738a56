"""API models for InsureChain.

Pydantic models for API requests and responses. Field names are snake_case
in Python and camelCase on the wire.

Request fields that the orchestrator validates are Optional here so a
missing field is reported as MISSING_FIELD rather than a schema error.
"""
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Request Models
# =============================================================================


class PolicyRequestCreate(ApiModel):
    """Patient request for an insurance policy."""

    patient_did: Optional[str] = Field(None, description="Patient DID")
    patient_address: Optional[str] = Field(None, description="Patient ledger address")
    coverage_amount: Optional[Union[int, str]] = Field(None, description="Requested coverage (uint)")
    details: Optional[dict[str, Any]] = Field(None, description="Free-form request details")


class IssueVCRequest(ApiModel):
    """Request to sign a credential and optionally create an on-chain policy."""

    credential: Optional[dict[str, Any]] = Field(None, description="Unsigned credential")
    request_id: Optional[Union[int, str]] = Field(
        None, description="Build the credential from this queued policy request when no credential is given"
    )
    issuer_did: Optional[str] = Field(None, description="DID the credential is issued by")
    create_onchain: bool = Field(False, description="Also create the policy on-chain")
    insurer_private_key: Optional[str] = Field(None, description="Insurer signing key")
    beneficiary: Optional[str] = Field(None, description="Policy beneficiary address")
    coverage_amount: Optional[Union[int, str]] = Field(None, description="On-chain coverage (uint)")


class VerifyVCRequest(ApiModel):
    vc_jwt: Optional[Union[str, dict[str, Any]]] = Field(None, description="Compact JWT or VC object")


class FileUploadRequest(ApiModel):
    data: Optional[str] = Field(None, description="Base64 or raw text content")
    filename: Optional[str] = None


class RegisterIdentityRequest(ApiModel):
    private_key: Optional[str] = None
    account: Optional[str] = None
    did: Optional[str] = None
    role: Optional[Union[int, str]] = Field(None, description="0/patient, 1/insurer, 2/hospital")


class IssuePolicyRequest(ApiModel):
    private_key: Optional[str] = None
    beneficiary: Optional[str] = None
    coverage_amount: Optional[Union[int, str]] = None


class SubmitClaimRequest(ApiModel):
    private_key: Optional[str] = None
    policy_id: Optional[Union[int, str]] = None
    beneficiary: Optional[str] = None
    insurer: Optional[str] = None
    ipfs_hash: Optional[str] = Field(None, description="Blob-store id of the claim evidence")
    vc_cid: Optional[str] = Field(None, description="CID of the policy VC")
    amount: Optional[Union[int, str]] = None


class InsurerActionRequest(ApiModel):
    private_key: Optional[str] = None
    claim_id: Optional[Union[int, str]] = None
    action: Optional[str] = Field(
        None, description="setUnderReview, approveClaim, rejectClaim or markPaid"
    )
    reason: Optional[str] = Field(None, description="Required for rejectClaim")


# =============================================================================
# Response Models
# =============================================================================


class WarningModel(ApiModel):
    code: str
    message: str


class PolicyRequestModel(ApiModel):
    """A stored policy request."""

    id: int
    patient_did: str
    patient_address: str
    coverage_amount: str
    details: dict[str, Any] = Field(default_factory=dict)
    status: str
    created_at: Optional[str] = Field(None, description="Creation timestamp (ISO8601)")
    vc_cid: Optional[str] = None
    onchain_policy_id: Optional[str] = None


class PolicyRequestResponse(ApiModel):
    request: PolicyRequestModel
    success: bool = True


class PolicyRequestListResponse(ApiModel):
    requests: list[PolicyRequestModel]
    success: bool = True


class DidResponse(ApiModel):
    did: str
    success: bool = True


class IssueVCResponse(ApiModel):
    """Issued VC; ``onchain_policy_id`` is null when the on-chain step was skipped or failed."""

    vc: dict[str, Any]
    cid: str
    onchain_policy_id: Optional[str] = None
    warnings: list[WarningModel] = Field(default_factory=list)
    success: bool = True


class GetVCResponse(ApiModel):
    vc: dict[str, Any]
    cid: str
    success: bool = True


class VerifyVCResponse(ApiModel):
    result: dict[str, Any]
    success: bool = True


class FileUploadResponse(ApiModel):
    cid: str
    filename: str
    success: bool = True


class FileContentResponse(ApiModel):
    data: str
    encoding: str = Field(..., description="utf-8 or base64")
    success: bool = True


class TxResponse(ApiModel):
    tx_hash: str
    success: bool = True


class IssuePolicyResponse(ApiModel):
    policy_id: Optional[str] = None
    tx_hash: str
    success: bool = True


class SubmitClaimResponse(ApiModel):
    claim_id: Optional[str] = None
    tx_hash: str
    warnings: list[WarningModel] = Field(default_factory=list)
    success: bool = True


class InsurerActionResponse(ApiModel):
    tx_hash: str
    action: str
    status: str = Field(..., description="Claim state after the action")
    success: bool = True


class ClaimModel(ApiModel):
    claim_id: str
    policy_id: str
    beneficiary: str
    insurer: str
    ipfs_hash: str
    vc_cid: str
    amount: str
    status: str
    rejection_reason: Optional[str] = None


class ClaimResponse(ApiModel):
    claim: ClaimModel
    success: bool = True


class PolicyModel(ApiModel):
    policy_id: str
    beneficiary: str
    insurer: str
    coverage_amount: str
    active: bool


class PolicyResponse(ApiModel):
    policy: PolicyModel
    success: bool = True


class AuditEventModel(ApiModel):
    """Single audit log entry."""

    action: str
    principal: str
    resource: Optional[str] = None
    status: str
    details: Optional[dict[str, Any]] = None
    timestamp: str


class AuditEventsResponse(ApiModel):
    """Recent audit events, newest first."""

    count: int
    events: list[AuditEventModel]
    buffer_size: int
    max_buffer_size: int
    success: bool = True


class HealthResponse(ApiModel):
    """Health check response."""

    status: str = "ok"
    timestamp: str
    credential_service: str
    credential_service_error: Optional[str] = None
    success: bool = True


class ErrorResponse(BaseModel):
    """Error response."""

    error: str
    code: str
    success: bool = False
