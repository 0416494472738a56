"""Shared core utilities for InsureChain.

Contains:
- exceptions: Error hierarchy with machine-readable codes
- logging: JSON logging configuration
"""

from insurechain.core.exceptions import (
    ContractNotConfigured,
    CredentialServiceError,
    CredentialServiceFailed,
    CredentialServiceInitializing,
    CredentialVerificationFailed,
    BlobStoreError,
    DependencyUnavailable,
    DidCreationFailed,
    InsureChainError,
    InvalidAction,
    InvalidAddress,
    InvalidKey,
    InvalidTransition,
    LedgerRejected,
    LedgerUnavailable,
    MissingField,
    MissingReason,
    NotFoundError,
    TransactionReverted,
    TransactionTimeout,
    UnknownContract,
    ValidationError,
)
from insurechain.core.logging import JsonFormatter, configure_logging

__all__ = [
    "BlobStoreError",
    "ContractNotConfigured",
    "CredentialServiceError",
    "CredentialServiceFailed",
    "CredentialServiceInitializing",
    "CredentialVerificationFailed",
    "DependencyUnavailable",
    "DidCreationFailed",
    "InsureChainError",
    "InvalidAction",
    "InvalidAddress",
    "InvalidKey",
    "InvalidTransition",
    "JsonFormatter",
    "LedgerRejected",
    "LedgerUnavailable",
    "MissingField",
    "MissingReason",
    "NotFoundError",
    "TransactionReverted",
    "TransactionTimeout",
    "UnknownContract",
    "ValidationError",
    "configure_logging",
]
