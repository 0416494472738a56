"""Tests for the credential agent client and its readiness handle."""
import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from insurechain.core.exceptions import (
    CredentialServiceError,
    CredentialServiceFailed,
    CredentialServiceInitializing,
)
from insurechain.credentials import AgentCredentialService, CredentialServiceHandle, ReadinessState

from tests.fakes import FakeCredentialService

AGENT_URL = "http://agent.test"


def agent_response(payload, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        json=payload,
        request=httpx.Request("POST", f"{AGENT_URL}/agent/method"),
    )


class SlowCredentialService(FakeCredentialService):
    """Initialization that only finishes when released."""

    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()

    async def initialize(self) -> None:
        await self.release.wait()
        self.initialized = True


# =============================================================================
# Readiness handle
# =============================================================================


@pytest.mark.asyncio
async def test_handle_becomes_ready():
    service = FakeCredentialService()
    handle = CredentialServiceHandle(service, ready_timeout=0.2, poll_interval=0.01)
    assert handle.status().state == ReadinessState.INITIALIZING

    await handle.start()
    assert handle.status().ready
    assert await handle.require_ready() is service


@pytest.mark.asyncio
async def test_handle_reports_initializing_after_bounded_wait():
    service = SlowCredentialService()
    handle = CredentialServiceHandle(service, ready_timeout=0.05, poll_interval=0.01)
    handle.start()

    with pytest.raises(CredentialServiceInitializing) as exc_info:
        await handle.require_ready()
    assert exc_info.value.status_code == 503

    service.release.set()
    await asyncio.sleep(0)
    await handle.wait_until_ready(timeout=0.2)
    assert await handle.require_ready() is service
    await handle.close()


@pytest.mark.asyncio
async def test_handle_waits_for_late_readiness():
    service = SlowCredentialService()
    handle = CredentialServiceHandle(service, ready_timeout=1.0, poll_interval=0.01)
    handle.start()

    async def release_soon():
        await asyncio.sleep(0.05)
        service.release.set()

    asyncio.create_task(release_soon())
    assert await handle.require_ready() is service


@pytest.mark.asyncio
async def test_handle_reports_failure():
    service = FakeCredentialService(init_error=CredentialServiceError("Credential agent unreachable"))
    handle = CredentialServiceHandle(service, ready_timeout=0.2, poll_interval=0.01)
    await handle.start()

    status = handle.status()
    assert status.state == ReadinessState.FAILED
    assert "unreachable" in status.error
    with pytest.raises(CredentialServiceFailed) as exc_info:
        await handle.require_ready()
    assert exc_info.value.code == "CREDENTIAL_SERVICE_FAILED"


@pytest.mark.asyncio
async def test_handle_start_is_idempotent():
    handle = CredentialServiceHandle(FakeCredentialService(), ready_timeout=0.2, poll_interval=0.01)
    assert handle.start() is handle.start()
    await handle.close()


@pytest.mark.asyncio
async def test_handle_close_cancels_pending_initialization():
    service = SlowCredentialService()
    handle = CredentialServiceHandle(service, ready_timeout=0.2, poll_interval=0.01)
    handle.start()
    await handle.close()
    assert service.closed


# =============================================================================
# Agent client
# =============================================================================


def _agent(client: AsyncMock, attempts: int = 2) -> AgentCredentialService:
    return AgentCredentialService(
        base_url=AGENT_URL,
        api_key="secret",
        init_attempts=attempts,
        init_backoff=0,
        client=client,
    )


@pytest.mark.asyncio
async def test_agent_create_did():
    client = AsyncMock()
    client.post.return_value = agent_response({"did": "did:key:z6MkAgent", "keys": []})
    did = await _agent(client).create_did()

    assert did == "did:key:z6MkAgent"
    path = client.post.call_args.args[0]
    assert path == "/agent/didManagerCreate"
    assert client.post.call_args.kwargs["json"] == {"provider": "did:key", "kms": "local"}


@pytest.mark.asyncio
async def test_agent_issue_sets_issuer_and_proof_format():
    client = AsyncMock()
    client.post.return_value = agent_response({"credentialSubject": {}, "proof": {"jwt": "eyJ.a.b"}})
    vc = await _agent(client).issue({"credentialSubject": {}}, "did:key:issuer")

    assert vc["proof"]["jwt"] == "eyJ.a.b"
    payload = client.post.call_args.kwargs["json"]
    assert payload["credential"]["issuer"] == {"id": "did:key:issuer"}
    assert payload["proofFormat"] == "jwt"


@pytest.mark.asyncio
async def test_agent_issue_without_proof_fails():
    client = AsyncMock()
    client.post.return_value = agent_response({"credentialSubject": {}})
    with pytest.raises(CredentialServiceError):
        await _agent(client).issue({"credentialSubject": {}}, "did:key:issuer")


@pytest.mark.asyncio
async def test_agent_verify_passes_jwt():
    client = AsyncMock()
    client.post.return_value = agent_response({"verified": True})
    result = await _agent(client).verify("eyJ.a.b")

    assert result == {"verified": True}
    assert client.post.call_args.kwargs["json"] == {"credential": "eyJ.a.b"}


@pytest.mark.asyncio
async def test_agent_http_error():
    client = AsyncMock()
    client.post.return_value = agent_response({"error": "boom"}, status_code=500)
    with pytest.raises(CredentialServiceError) as exc_info:
        await _agent(client).create_did()
    assert "HTTP 500" in exc_info.value.message


@pytest.mark.asyncio
async def test_agent_unreachable():
    client = AsyncMock()
    client.post.side_effect = httpx.ConnectError("connection refused")
    with pytest.raises(CredentialServiceError) as exc_info:
        await _agent(client).verify("eyJ.a.b")
    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_agent_initialize_retries_then_succeeds():
    client = AsyncMock()
    client.post.side_effect = [httpx.ConnectError("refused"), agent_response([])]
    await _agent(client, attempts=3).initialize()
    assert client.post.await_count == 2


@pytest.mark.asyncio
async def test_agent_initialize_gives_up():
    client = AsyncMock()
    client.post.side_effect = httpx.ConnectError("refused")
    with pytest.raises(CredentialServiceError):
        await _agent(client, attempts=2).initialize()
    assert client.post.await_count == 2
