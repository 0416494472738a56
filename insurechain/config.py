"""InsureChain configuration constants.

Environment-based configuration, grouped by collaborator:
- PERSISTENCE: request queue and issued-credential index
- CREDENTIAL SERVICE: remote DID/VC agent and its readiness wait
- BLOB STORE: IPFS HTTP API
- LEDGER: JSON-RPC node, contract deployments, confirmation wait
- POLICY: implementation choices (verification strictness)
- OPERATIONAL: HTTP service settings
"""
import json
import logging
import os
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)


# =============================================================================
# PERSISTENCE CONFIGURATION
# =============================================================================

def _get_data_dir() -> Path:
    """Determine data directory based on environment.

    Priority:
    1. INSURECHAIN_DATA_DIR env var (explicit override)
    2. /data/insurechain if it exists (Docker volume mount)
    3. ~/.insurechain (local development)
    4. /tmp/insurechain (container fallback when home unavailable)
    """
    env_path = os.getenv("INSURECHAIN_DATA_DIR")
    if env_path:
        return Path(env_path)

    docker_path = Path("/data/insurechain")
    if docker_path.exists():
        return docker_path

    try:
        home_path = Path.home() / ".insurechain"
        home_path.mkdir(parents=True, exist_ok=True)
        return home_path
    except (OSError, PermissionError):
        return Path("/tmp/insurechain")


DATA_DIR: Path = _get_data_dir()

# Explicit URL takes precedence, SQLite file in DATA_DIR otherwise
DATABASE_URL: str = os.getenv("INSURECHAIN_DATABASE_URL") or f"sqlite:///{DATA_DIR}/insurechain.db"


# =============================================================================
# CREDENTIAL SERVICE CONFIGURATION
# =============================================================================

CREDENTIAL_AGENT_URL: str = os.getenv("INSURECHAIN_CREDENTIAL_AGENT_URL", "http://127.0.0.1:3332")
CREDENTIAL_AGENT_API_KEY: str | None = os.getenv("INSURECHAIN_CREDENTIAL_AGENT_API_KEY")
CREDENTIAL_AGENT_TIMEOUT_SECONDS: float = float(os.getenv("INSURECHAIN_CREDENTIAL_AGENT_TIMEOUT", "10.0"))

# DID provider and KMS used when creating identities
DID_PROVIDER: str = os.getenv("INSURECHAIN_DID_PROVIDER", "did:key")
DID_KMS: str = os.getenv("INSURECHAIN_DID_KMS", "local")

# Proof format requested from the agent
VC_PROOF_FORMAT: str = os.getenv("INSURECHAIN_VC_PROOF_FORMAT", "jwt")

# Background initialization: attempts to reach the agent before giving up
CREDENTIAL_INIT_ATTEMPTS: int = int(os.getenv("INSURECHAIN_CREDENTIAL_INIT_ATTEMPTS", "5"))
CREDENTIAL_INIT_BACKOFF_SECONDS: float = float(os.getenv("INSURECHAIN_CREDENTIAL_INIT_BACKOFF", "1.0"))

# Request-time wait for readiness (bounded, never blocks indefinitely)
CREDENTIAL_READY_TIMEOUT_SECONDS: float = min(
    float(os.getenv("INSURECHAIN_CREDENTIAL_READY_TIMEOUT", "10.0")), 10.0
)
CREDENTIAL_READY_POLL_SECONDS: float = float(os.getenv("INSURECHAIN_CREDENTIAL_READY_POLL", "0.5"))


# =============================================================================
# BLOB STORE CONFIGURATION
# =============================================================================

IPFS_API_URL: str = os.getenv("INSURECHAIN_IPFS_API_URL", "http://127.0.0.1:5001")
IPFS_TIMEOUT_SECONDS: float = float(os.getenv("INSURECHAIN_IPFS_TIMEOUT", "30.0"))
IPFS_PIN: bool = os.getenv("INSURECHAIN_IPFS_PIN", "true").lower() == "true"

# Upload size limit (matches the 50 MB JSON body limit of the HTTP surface)
MAX_UPLOAD_BYTES: int = int(os.getenv("INSURECHAIN_MAX_UPLOAD_BYTES", str(50 * 1024 * 1024)))


# =============================================================================
# LEDGER CONFIGURATION
# =============================================================================

LEDGER_RPC_URL: str = os.getenv("INSURECHAIN_LEDGER_RPC_URL", "http://127.0.0.1:8545")
LEDGER_RPC_TIMEOUT_SECONDS: float = float(os.getenv("INSURECHAIN_LEDGER_RPC_TIMEOUT", "30.0"))

# Chain id used when signing; queried from the node when unset
_chain_id = os.getenv("INSURECHAIN_CHAIN_ID")
LEDGER_CHAIN_ID: int | None = int(_chain_id) if _chain_id else None

# Confirmation wait
RECEIPT_TIMEOUT_SECONDS: float = float(os.getenv("INSURECHAIN_RECEIPT_TIMEOUT", "120.0"))
RECEIPT_POLL_SECONDS: float = float(os.getenv("INSURECHAIN_RECEIPT_POLL", "0.5"))


def _get_deployments_file() -> str:
    """Get path to the contract deployments file."""
    return os.getenv(
        "INSURECHAIN_DEPLOYMENTS_FILE",
        str(Path(__file__).parent.parent / "config" / "deployments.json")
    )


def _load_deployments(path: str) -> dict[str, Any]:
    """Load contract deployments from a JSON file.

    Accepts either ``{name: address}`` or ``{name: {address, abi}}``.
    A missing or unreadable file yields an empty mapping.
    """
    config_path = Path(path)
    if not config_path.exists():
        return {}
    try:
        data = json.loads(config_path.read_text())
    except (json.JSONDecodeError, OSError) as e:
        log.warning(f"Ignoring unreadable deployments file {path}: {e}")
        return {}
    # Hardhat-style exports nest contracts under "contracts"
    if isinstance(data, dict) and isinstance(data.get("contracts"), dict):
        data = data["contracts"]
    return data if isinstance(data, dict) else {}


DEPLOYMENTS_FILE: str = _get_deployments_file()
DEPLOYMENTS: dict[str, Any] = _load_deployments(DEPLOYMENTS_FILE)

# Per-contract address overrides (take precedence over the deployments file)
CONTRACT_ADDRESS_OVERRIDES: dict[str, str] = {
    name: value
    for name, value in (
        ("IdentityRegistry", os.getenv("INSURECHAIN_IDENTITY_REGISTRY_ADDRESS")),
        ("PolicyContract", os.getenv("INSURECHAIN_POLICY_CONTRACT_ADDRESS")),
        ("ClaimContract", os.getenv("INSURECHAIN_CLAIM_CONTRACT_ADDRESS")),
    )
    if value
}


# =============================================================================
# POLICY CONFIGURATION
# =============================================================================

# VC verification during claim submission.
# False (default): fetch/verification failures are recorded as warnings and
#   the claim is still submitted
# True: fetch/verification failures reject the claim before submission
STRICT_VC_VERIFICATION: bool = os.getenv("INSURECHAIN_STRICT_VC_VERIFICATION", "false").lower() == "true"

# Audit logging
AUDIT_ENABLED: bool = os.getenv("INSURECHAIN_AUDIT_ENABLED", "true").lower() == "true"


# =============================================================================
# OPERATIONAL
# =============================================================================

SERVICE_PORT: int = int(os.getenv("INSURECHAIN_PORT", "3001"))

CORS_ORIGINS: list[str] = [
    o.strip()
    for o in os.getenv("INSURECHAIN_CORS_ORIGINS", "*").split(",")
    if o.strip()
]
