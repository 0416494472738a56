"""Bundled ABIs for the three insurance contracts.

Only the functions and events the gateway uses are listed. A deployments
file carrying full ABIs takes precedence.
"""
from enum import IntEnum

IDENTITY_REGISTRY = "IdentityRegistry"
POLICY_CONTRACT = "PolicyContract"
CLAIM_CONTRACT = "ClaimContract"

CONTRACT_NAMES: frozenset[str] = frozenset({IDENTITY_REGISTRY, POLICY_CONTRACT, CLAIM_CONTRACT})


class IdentityRole(IntEnum):
    """Roles recorded by IdentityRegistry.register (uint8)."""
    PATIENT = 0
    INSURER = 1
    HOSPITAL = 2


def _fn(name, inputs, outputs=None, mutability="nonpayable"):
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in (outputs or [])],
    }


def _event(name, inputs):
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [{"name": n, "type": t, "indexed": i} for n, t, i in inputs],
    }


IDENTITY_REGISTRY_ABI: list[dict] = [
    _fn("register", [("account", "address"), ("did", "string"), ("role", "uint8")]),
    _fn(
        "getIdentity",
        [("account", "address")],
        [("did", "string"), ("role", "uint8"), ("registered", "bool")],
        mutability="view",
    ),
    _event("IdentityRegistered", [
        ("account", "address", True),
        ("did", "string", False),
        ("role", "uint8", False),
    ]),
]

POLICY_CONTRACT_ABI: list[dict] = [
    _fn("issuePolicy", [("beneficiary", "address"), ("coverageAmount", "uint256")], [("policyId", "uint256")]),
    _fn(
        "getPolicy",
        [("policyId", "uint256")],
        [
            ("id", "uint256"),
            ("beneficiary", "address"),
            ("insurer", "address"),
            ("coverageAmount", "uint256"),
            ("active", "bool"),
        ],
        mutability="view",
    ),
    _event("PolicyIssued", [
        ("policyId", "uint256", True),
        ("beneficiary", "address", True),
        ("insurer", "address", True),
        ("coverageAmount", "uint256", False),
    ]),
]

CLAIM_CONTRACT_ABI: list[dict] = [
    _fn(
        "submitClaim",
        [
            ("policyId", "uint256"),
            ("beneficiary", "address"),
            ("insurer", "address"),
            ("ipfsHash", "string"),
            ("vcCid", "string"),
            ("amount", "uint256"),
        ],
        [("claimId", "uint256")],
    ),
    _fn("setUnderReview", [("claimId", "uint256")]),
    _fn("approveClaim", [("claimId", "uint256")]),
    _fn("rejectClaim", [("claimId", "uint256"), ("reason", "string")]),
    _fn("markPaid", [("claimId", "uint256")]),
    _fn(
        "getClaim",
        [("claimId", "uint256")],
        [
            ("policyId", "uint256"),
            ("beneficiary", "address"),
            ("insurer", "address"),
            ("ipfsHash", "string"),
            ("vcCid", "string"),
            ("amount", "uint256"),
            ("status", "uint8"),
            ("rejectionReason", "string"),
        ],
        mutability="view",
    ),
    _event("ClaimSubmitted", [
        ("claimId", "uint256", True),
        ("policyId", "uint256", True),
        ("beneficiary", "address", True),
        ("amount", "uint256", False),
    ]),
    _event("ClaimStatusChanged", [
        ("claimId", "uint256", True),
        ("status", "uint8", False),
    ]),
]

BUNDLED_ABIS: dict[str, list[dict]] = {
    IDENTITY_REGISTRY: IDENTITY_REGISTRY_ABI,
    POLICY_CONTRACT: POLICY_CONTRACT_ABI,
    CLAIM_CONTRACT: CLAIM_CONTRACT_ABI,
}
