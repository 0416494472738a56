"""Claim state machine and insurer commands."""

from insurechain.claims.commands import (
    ApproveClaim,
    InsurerCommand,
    MarkPaid,
    RejectClaim,
    SetUnderReview,
    parse_insurer_command,
)
from insurechain.claims.state import (
    TERMINAL_STATES,
    TRANSITIONS,
    ZERO_ADDRESS,
    ClaimAction,
    ClaimRecord,
    ClaimStatus,
    check_transition,
)

__all__ = [
    "ApproveClaim",
    "ClaimAction",
    "ClaimRecord",
    "ClaimStatus",
    "InsurerCommand",
    "MarkPaid",
    "RejectClaim",
    "SetUnderReview",
    "TERMINAL_STATES",
    "TRANSITIONS",
    "ZERO_ADDRESS",
    "check_transition",
    "parse_insurer_command",
]
