"""Credential Service client and readiness handle.

DID creation and VC signing/verification are delegated to a remote
credential agent. The handle tracks its asynchronous initialization.
"""

from insurechain.credentials.agent import AgentCredentialService, CredentialService
from insurechain.credentials.readiness import (
    CredentialServiceHandle,
    ReadinessState,
    ServiceStatus,
    close_credential_handle,
    get_credential_handle,
    reset_credential_handle,
)

__all__ = [
    "AgentCredentialService",
    "CredentialService",
    "CredentialServiceHandle",
    "ReadinessState",
    "ServiceStatus",
    "close_credential_handle",
    "get_credential_handle",
    "reset_credential_handle",
]
