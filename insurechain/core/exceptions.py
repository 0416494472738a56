"""InsureChain exception hierarchy.

Every error carries a machine-readable ``code`` and an HTTP ``status_code``
so the API layer can render it without knowing the concrete type.

Categories:
- ValidationError: missing/malformed input, raised before any side effect
- NotFoundError: lookup miss
- DependencyUnavailable: credential agent, blob store or ledger not usable
  (retryable)
- LedgerRejected: the ledger (or the local transition guard) refused a
  state change
- CredentialVerificationFailed: strict-mode VC verification failure
"""


class InsureChainError(Exception):
    """Base exception for all InsureChain errors.

    Attributes:
        code: Error code string for categorization
        message: Human-readable error message
    """

    status_code: int = 500

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


# =============================================================================
# Validation Errors
# =============================================================================

class ValidationError(InsureChainError):
    """Input rejected before any network call."""

    status_code = 400

    def __init__(self, message: str = "Invalid request", code: str = "VALIDATION_ERROR"):
        super().__init__(code, message)


class MissingField(ValidationError):
    """One or more required fields are absent or empty."""

    def __init__(self, fields: list[str] | str):
        if isinstance(fields, str):
            fields = [fields]
        self.fields = list(fields)
        super().__init__(
            f"Missing required fields: {', '.join(self.fields)}",
            code="MISSING_FIELD",
        )


class MissingReason(ValidationError):
    """rejectClaim requested without a rejection reason."""

    def __init__(self):
        super().__init__("Reason required for rejection", code="MISSING_REASON")


class InvalidAction(ValidationError):
    """Insurer action name is not one of the known actions."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Invalid action: {action}", code="INVALID_ACTION")


class InvalidKey(ValidationError):
    """Private key cannot derive a ledger account."""

    def __init__(self, reason: str = "Private key cannot derive an account"):
        super().__init__(reason, code="INVALID_KEY")


class InvalidAddress(ValidationError):
    """Value is not a valid ledger address."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid address: {value}", code="INVALID_ADDRESS")


class UnknownContract(ValidationError):
    """Logical contract name is not one of the known contracts."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown contract: {name}", code="UNKNOWN_CONTRACT")


# =============================================================================
# Lookup Errors
# =============================================================================

class NotFoundError(InsureChainError):
    """Requested record does not exist."""

    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__("NOT_FOUND", message)


# =============================================================================
# Dependency Errors (retryable)
# =============================================================================

class DependencyUnavailable(InsureChainError):
    """An external collaborator is not usable right now."""

    status_code = 503

    def __init__(self, message: str, code: str = "DEPENDENCY_UNAVAILABLE"):
        super().__init__(code, message)


class CredentialServiceInitializing(DependencyUnavailable):
    """Credential agent has not finished initializing yet."""

    def __init__(
        self,
        message: str = "Credential service is still initializing. Please wait a few seconds and try again.",
    ):
        super().__init__(message, code="CREDENTIAL_SERVICE_INITIALIZING")


class CredentialServiceFailed(DependencyUnavailable):
    """Credential agent initialization failed."""

    def __init__(self, cause: str):
        self.cause = cause
        super().__init__(
            f"Credential service initialization failed: {cause}",
            code="CREDENTIAL_SERVICE_FAILED",
        )


class CredentialServiceError(DependencyUnavailable):
    """Credential agent returned an error or could not be reached."""

    status_code = 502

    def __init__(self, message: str = "Credential service request failed"):
        super().__init__(message, code="CREDENTIAL_SERVICE_ERROR")


class BlobStoreError(DependencyUnavailable):
    """Blob store put/get failed."""

    status_code = 502

    def __init__(self, message: str = "Blob store request failed"):
        super().__init__(message, code="BLOB_STORE_ERROR")


class LedgerUnavailable(DependencyUnavailable):
    """Ledger node could not be reached."""

    def __init__(self, message: str = "Ledger node unreachable"):
        super().__init__(message, code="LEDGER_UNAVAILABLE")


class ContractNotConfigured(DependencyUnavailable):
    """No usable deployed address is configured for a known contract."""

    def __init__(self, name: str, detail: str | None = None):
        self.name = name
        super().__init__(
            detail or f"No deployed address configured for contract {name}",
            code="CONTRACT_NOT_CONFIGURED",
        )


# =============================================================================
# Ledger Rejections
# =============================================================================

class LedgerRejected(InsureChainError):
    """The ledger, or the transition guard in front of it, refused a change."""

    status_code = 409

    def __init__(self, code: str, message: str):
        super().__init__(code, message)


class TransactionReverted(LedgerRejected):
    """Transaction was rejected by the ledger."""

    def __init__(self, reason: str = "Transaction reverted", tx_hash: str | None = None):
        self.reason = reason
        self.tx_hash = tx_hash
        super().__init__("TRANSACTION_REVERTED", reason)


class InvalidTransition(LedgerRejected):
    """Claim action requested from a state that does not allow it."""

    def __init__(self, action: str, current_state: str):
        self.action = action
        self.current_state = current_state
        super().__init__(
            "INVALID_TRANSITION",
            f"Cannot {action} a claim in state {current_state}",
        )


class TransactionTimeout(InsureChainError):
    """Transaction was sent but not confirmed in time."""

    status_code = 504

    def __init__(self, tx_hash: str, timeout: float):
        self.tx_hash = tx_hash
        self.timeout = timeout
        super().__init__(
            "TRANSACTION_TIMEOUT",
            f"Transaction {tx_hash} not confirmed after {timeout}s",
        )


# =============================================================================
# Operation Failures
# =============================================================================

class DidCreationFailed(InsureChainError):
    """Credential agent was ready but could not create a DID."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__("DID_CREATION_FAILED", message)


# =============================================================================
# Strict Verification
# =============================================================================

class CredentialVerificationFailed(InsureChainError):
    """VC referenced by a claim failed verification (strict mode only)."""

    status_code = 422

    def __init__(self, message: str):
        super().__init__("CREDENTIAL_VERIFICATION_FAILED", message)
