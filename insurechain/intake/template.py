"""Unsigned policy credential built from a policy request."""
from datetime import datetime, timezone
from typing import Any, Optional

from insurechain.intake.queue import PolicyRequest

POLICY_CREDENTIAL_TYPE = "InsurancePolicyCredential"


def build_policy_credential(
    request: PolicyRequest,
    insurer_account: Optional[str],
    insurer_did: str,
) -> dict[str, Any]:
    """Build the credential an insurer issues against a policy request.

    ``credentialSubject.policyId`` carries the request id, which is what
    links the issued VC back to the request and makes it retrievable by
    policy reference. ``insurer`` is left out when no insurer account is
    known.
    """
    subject = {
        "id": request.patient_did,
        "policyId": str(request.id),
        "beneficiary": request.patient_address,
        "coverageAmount": str(request.coverage_amount),
        "details": request.details,
    }
    if insurer_account:
        subject["insurer"] = insurer_account
    return {
        "@context": ["https://www.w3.org/2018/credentials/v1"],
        "type": ["VerifiableCredential", POLICY_CREDENTIAL_TYPE],
        "issuer": {"id": insurer_did},
        "issuanceDate": datetime.now(timezone.utc).isoformat(),
        "credentialSubject": subject,
    }
