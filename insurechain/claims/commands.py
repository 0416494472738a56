"""Insurer commands.

A closed set of command types, one per insurer action. Each carries only
the payload its action needs (a reason for rejection) and knows the
ClaimContract call it maps to.
"""
from dataclasses import dataclass
from typing import ClassVar, Optional, Union

from insurechain.claims.state import ClaimAction
from insurechain.core.exceptions import InvalidAction, MissingReason


@dataclass(frozen=True)
class SetUnderReview:
    action: ClassVar[ClaimAction] = ClaimAction.SET_UNDER_REVIEW

    def contract_args(self, claim_id: int) -> tuple:
        return (claim_id,)


@dataclass(frozen=True)
class ApproveClaim:
    action: ClassVar[ClaimAction] = ClaimAction.APPROVE_CLAIM

    def contract_args(self, claim_id: int) -> tuple:
        return (claim_id,)


@dataclass(frozen=True)
class RejectClaim:
    reason: str
    action: ClassVar[ClaimAction] = ClaimAction.REJECT_CLAIM

    def __post_init__(self):
        if not self.reason or not self.reason.strip():
            raise MissingReason()

    def contract_args(self, claim_id: int) -> tuple:
        return (claim_id, self.reason)


@dataclass(frozen=True)
class MarkPaid:
    action: ClassVar[ClaimAction] = ClaimAction.MARK_PAID

    def contract_args(self, claim_id: int) -> tuple:
        return (claim_id,)


InsurerCommand = Union[SetUnderReview, ApproveClaim, RejectClaim, MarkPaid]


def parse_insurer_command(action: str, reason: Optional[str] = None) -> InsurerCommand:
    """Build the command for a wire action name.

    Raises:
        InvalidAction: Unknown action name.
        MissingReason: rejectClaim without a non-empty reason.
    """
    try:
        kind = ClaimAction(action)
    except ValueError:
        raise InvalidAction(str(action))

    if kind == ClaimAction.REJECT_CLAIM:
        return RejectClaim(reason=reason or "")
    if kind == ClaimAction.SET_UNDER_REVIEW:
        return SetUnderReview()
    if kind == ClaimAction.APPROVE_CLAIM:
        return ApproveClaim()
    return MarkPaid()
