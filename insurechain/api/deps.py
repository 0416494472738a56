"""Shared converters for API routers."""
from insurechain.api.models import PolicyRequestModel, WarningModel
from insurechain.intake import PolicyRequest
from insurechain.orchestrator import SoftWarning


def request_model(request: PolicyRequest) -> PolicyRequestModel:
    return PolicyRequestModel(
        id=request.id,
        patient_did=request.patient_did,
        patient_address=request.patient_address,
        coverage_amount=request.coverage_amount,
        details=request.details,
        status=request.status.value,
        created_at=request.created_at.isoformat() if request.created_at else None,
        vc_cid=request.vc_cid,
        onchain_policy_id=request.onchain_policy_id,
    )


def warning_models(warnings: list[SoftWarning]) -> list[WarningModel]:
    return [WarningModel(code=w.code, message=w.message) for w in warnings]
