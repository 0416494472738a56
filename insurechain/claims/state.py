r"""Claim lifecycle.

    Submitted -> UnderReview -> Approved -> Paid
                            \-> Rejected

Rejected and Paid are terminal. Every transition is an insurer action and
a distinct ledger call; the table below is checked before any transaction
is submitted.
"""
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Sequence

from insurechain.core.exceptions import InvalidTransition

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class ClaimStatus(IntEnum):
    """On-chain claim status (uint8, declaration order of the contract enum)."""
    SUBMITTED = 0
    UNDER_REVIEW = 1
    APPROVED = 2
    REJECTED = 3
    PAID = 4

    @property
    def label(self) -> str:
        return {
            ClaimStatus.SUBMITTED: "Submitted",
            ClaimStatus.UNDER_REVIEW: "UnderReview",
            ClaimStatus.APPROVED: "Approved",
            ClaimStatus.REJECTED: "Rejected",
            ClaimStatus.PAID: "Paid",
        }[self]


class ClaimAction(str, Enum):
    """Insurer actions; values are the ClaimContract method names."""
    SET_UNDER_REVIEW = "setUnderReview"
    APPROVE_CLAIM = "approveClaim"
    REJECT_CLAIM = "rejectClaim"
    MARK_PAID = "markPaid"


# action -> (required current state, resulting state)
TRANSITIONS: dict[ClaimAction, tuple[ClaimStatus, ClaimStatus]] = {
    ClaimAction.SET_UNDER_REVIEW: (ClaimStatus.SUBMITTED, ClaimStatus.UNDER_REVIEW),
    ClaimAction.APPROVE_CLAIM: (ClaimStatus.UNDER_REVIEW, ClaimStatus.APPROVED),
    ClaimAction.REJECT_CLAIM: (ClaimStatus.UNDER_REVIEW, ClaimStatus.REJECTED),
    ClaimAction.MARK_PAID: (ClaimStatus.APPROVED, ClaimStatus.PAID),
}

TERMINAL_STATES: frozenset[ClaimStatus] = frozenset({ClaimStatus.REJECTED, ClaimStatus.PAID})


def check_transition(current: ClaimStatus, action: ClaimAction) -> ClaimStatus:
    """Return the state ``action`` leads to from ``current``.

    Raises:
        InvalidTransition: ``current`` does not satisfy the action's precondition.
    """
    required, result = TRANSITIONS[action]
    if current != required:
        raise InvalidTransition(action.value, ClaimStatus(current).label)
    return result


@dataclass(frozen=True)
class ClaimRecord:
    """Claim as read from ClaimContract.getClaim."""
    claim_id: int
    policy_id: int
    beneficiary: str
    insurer: str
    evidence_hash: str
    vc_cid: str
    amount: int
    status: ClaimStatus
    rejection_reason: str = ""

    @property
    def exists(self) -> bool:
        return self.beneficiary != ZERO_ADDRESS

    @classmethod
    def from_call(cls, claim_id: int, values: Sequence[Any]) -> "ClaimRecord":
        policy_id, beneficiary, insurer, evidence_hash, vc_cid, amount, status, reason = values
        return cls(
            claim_id=int(claim_id),
            policy_id=int(policy_id),
            beneficiary=beneficiary,
            insurer=insurer,
            evidence_hash=evidence_hash,
            vc_cid=vc_cid,
            amount=int(amount),
            status=ClaimStatus(int(status)),
            rejection_reason=reason,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "claimId": str(self.claim_id),
            "policyId": str(self.policy_id),
            "beneficiary": self.beneficiary,
            "insurer": self.insurer,
            "ipfsHash": self.evidence_hash,
            "vcCid": self.vc_cid,
            "amount": str(self.amount),
            "status": self.status.label,
            "rejectionReason": self.rejection_reason or None,
        }
