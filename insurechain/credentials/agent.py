"""Remote credential agent client.

Talks to a credential agent exposing its methods over HTTP as
``POST {base}/agent/{method}`` with a JSON body (the remote-agent
convention used by Veramo). Only four methods are used:

- didManagerFind: liveness check during initialization
- didManagerCreate: create a DID
- createVerifiableCredential: sign a credential as an issuer DID
- verifyCredential: verify a VC (object or JWT)
"""
import asyncio
import logging
from typing import Any, Optional, Protocol

import httpx

from insurechain.config import (
    CREDENTIAL_AGENT_API_KEY,
    CREDENTIAL_AGENT_TIMEOUT_SECONDS,
    CREDENTIAL_AGENT_URL,
    CREDENTIAL_INIT_ATTEMPTS,
    CREDENTIAL_INIT_BACKOFF_SECONDS,
    DID_KMS,
    DID_PROVIDER,
    VC_PROOF_FORMAT,
)
from insurechain.core.exceptions import CredentialServiceError

log = logging.getLogger(__name__)


class CredentialService(Protocol):
    """Interface consumed by the orchestrator."""

    async def initialize(self) -> None: ...

    async def close(self) -> None: ...

    async def create_did(self) -> str: ...

    async def issue(self, credential: dict[str, Any], issuer_did: str) -> dict[str, Any]: ...

    async def verify(self, credential: dict[str, Any] | str) -> dict[str, Any]: ...


class AgentCredentialService:
    """HTTP client for a remote credential agent."""

    def __init__(
        self,
        base_url: str = CREDENTIAL_AGENT_URL,
        api_key: Optional[str] = CREDENTIAL_AGENT_API_KEY,
        timeout: float = CREDENTIAL_AGENT_TIMEOUT_SECONDS,
        init_attempts: int = CREDENTIAL_INIT_ATTEMPTS,
        init_backoff: float = CREDENTIAL_INIT_BACKOFF_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._init_attempts = max(1, init_attempts)
        self._init_backoff = init_backoff
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = client or httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            headers=headers,
        )

    async def _call(self, method: str, payload: dict[str, Any]) -> Any:
        """Invoke an agent method and return the decoded JSON result."""
        try:
            response = await self._client.post(f"/agent/{method}", json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException:
            raise CredentialServiceError(f"Credential agent timed out on {method}")
        except httpx.HTTPStatusError as e:
            detail = e.response.text[:200] if e.response.text else e.response.reason_phrase
            raise CredentialServiceError(
                f"Credential agent {method} failed: HTTP {e.response.status_code}: {detail}"
            )
        except httpx.RequestError as e:
            raise CredentialServiceError(f"Credential agent unreachable: {e}")
        except ValueError as e:
            raise CredentialServiceError(f"Credential agent returned invalid JSON for {method}: {e}")

    async def initialize(self) -> None:
        """Wait for the agent to answer a liveness check, retrying with backoff.

        Raises:
            CredentialServiceError: The agent never answered.
        """
        last_error: Optional[Exception] = None
        for attempt in range(1, self._init_attempts + 1):
            try:
                await self._call("didManagerFind", {})
                log.info(f"Credential agent ready at {self._base_url}")
                return
            except CredentialServiceError as e:
                last_error = e
                log.info(
                    f"Credential agent not ready (attempt {attempt}/{self._init_attempts}): {e.message}"
                )
                if attempt < self._init_attempts:
                    await asyncio.sleep(self._init_backoff * attempt)
        raise last_error

    async def close(self) -> None:
        await self._client.aclose()

    async def create_did(self) -> str:
        result = await self._call(
            "didManagerCreate",
            {"provider": DID_PROVIDER, "kms": DID_KMS},
        )
        did = result.get("did") if isinstance(result, dict) else None
        if not did:
            raise CredentialServiceError("Credential agent returned no DID")
        return did

    async def issue(self, credential: dict[str, Any], issuer_did: str) -> dict[str, Any]:
        """Sign ``credential`` as ``issuer_did`` and return the VC."""
        unsigned = dict(credential)
        unsigned["issuer"] = {"id": issuer_did}
        result = await self._call(
            "createVerifiableCredential",
            {"credential": unsigned, "proofFormat": VC_PROOF_FORMAT},
        )
        if not isinstance(result, dict) or "proof" not in result:
            raise CredentialServiceError("Credential agent returned a VC without proof")
        return result

    async def verify(self, credential: dict[str, Any] | str) -> dict[str, Any]:
        """Verify a VC object or compact JWT.

        Returns the agent's verification result (``verified`` plus details).
        """
        result = await self._call("verifyCredential", {"credential": credential})
        if not isinstance(result, dict):
            raise CredentialServiceError("Credential agent returned an invalid verification result")
        return result
