"""Ledger gateway for the IdentityRegistry, PolicyContract and ClaimContract."""

from insurechain.ledger.abi import (
    CLAIM_CONTRACT,
    CONTRACT_NAMES,
    IDENTITY_REGISTRY,
    POLICY_CONTRACT,
    IdentityRole,
)
from insurechain.ledger.contracts import ContractDeployment, ContractRegistry
from insurechain.ledger.events import EventFound, EventLookup, EventNotFound
from insurechain.ledger.gateway import (
    ContractHandle,
    LedgerGateway,
    Receipt,
    Signer,
    close_ledger_gateway,
    get_ledger_gateway,
    reset_ledger_gateway,
    to_address,
)

__all__ = [
    "CLAIM_CONTRACT",
    "CONTRACT_NAMES",
    "ContractDeployment",
    "ContractHandle",
    "ContractRegistry",
    "EventFound",
    "EventLookup",
    "EventNotFound",
    "IDENTITY_REGISTRY",
    "IdentityRole",
    "LedgerGateway",
    "POLICY_CONTRACT",
    "Receipt",
    "Signer",
    "close_ledger_gateway",
    "get_ledger_gateway",
    "reset_ledger_gateway",
    "to_address",
]
