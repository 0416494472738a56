"""Policy request intake: the append-only request queue and credential index."""

from insurechain.intake.queue import (
    IssuedCredential,
    PolicyRequest,
    PolicyRequestQueue,
    RequestStatus,
    get_request_queue,
    reset_request_queue,
)
from insurechain.intake.template import POLICY_CREDENTIAL_TYPE, build_policy_credential

__all__ = [
    "IssuedCredential",
    "POLICY_CREDENTIAL_TYPE",
    "PolicyRequest",
    "PolicyRequestQueue",
    "RequestStatus",
    "build_policy_credential",
    "get_request_queue",
    "reset_request_queue",
]
