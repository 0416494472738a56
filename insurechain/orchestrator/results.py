"""Results of composite operations.

Composite operations can succeed partially. Non-fatal problems are carried
as ``SoftWarning`` values next to the artifacts that were produced.
"""
from dataclasses import dataclass, field
from typing import Any, Optional

from insurechain.claims.state import ClaimStatus


@dataclass(frozen=True)
class SoftWarning:
    """A non-fatal problem encountered during a composite operation."""
    code: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


@dataclass
class IssueVCResult:
    """Signed VC and its CID, plus the on-chain policy id when one was created."""
    vc: dict[str, Any]
    cid: str
    policy_ref: str
    onchain_policy_id: Optional[str] = None
    tx_hash: Optional[str] = None
    request_id: Optional[int] = None
    warnings: list[SoftWarning] = field(default_factory=list)


@dataclass
class PolicyIssuance:
    tx_hash: str
    policy_id: Optional[str] = None


@dataclass
class ClaimSubmission:
    tx_hash: str
    claim_id: Optional[str] = None
    warnings: list[SoftWarning] = field(default_factory=list)


@dataclass
class InsurerActionResult:
    tx_hash: str
    action: str
    status: ClaimStatus
