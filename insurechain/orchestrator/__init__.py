"""Policy/claim lifecycle orchestration."""

from insurechain.orchestrator.orchestrator import (
    Orchestrator,
    get_orchestrator,
    parse_role,
    parse_uint,
    policy_reference,
    reset_orchestrator,
)
from insurechain.orchestrator.results import (
    ClaimSubmission,
    InsurerActionResult,
    IssueVCResult,
    PolicyIssuance,
    SoftWarning,
)

__all__ = [
    "ClaimSubmission",
    "InsurerActionResult",
    "IssueVCResult",
    "Orchestrator",
    "PolicyIssuance",
    "SoftWarning",
    "get_orchestrator",
    "parse_role",
    "parse_uint",
    "policy_reference",
    "reset_orchestrator",
]
