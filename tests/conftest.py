"""Pytest fixtures for InsureChain tests."""
import os
import tempfile

# Configure before any insurechain module reads the environment
os.environ.setdefault("INSURECHAIN_DATA_DIR", tempfile.mkdtemp(prefix="insurechain-test-"))
os.environ.setdefault("INSURECHAIN_DATABASE_URL", "sqlite://")
os.environ.setdefault("INSURECHAIN_LOG_FILE", "")

from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import sessionmaker

from insurechain.audit import AuditLogger
from insurechain.credentials import CredentialServiceHandle
from insurechain.db import Base, create_db_engine
from insurechain.intake import PolicyRequestQueue
from insurechain.orchestrator import Orchestrator, get_orchestrator

from tests.fakes import FakeBlobStore, FakeCredentialService, FakeLedger


@pytest.fixture
def session_factory():
    """Session factory over a fresh in-memory SQLite database."""
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def queue(session_factory) -> PolicyRequestQueue:
    return PolicyRequestQueue(session_factory=session_factory)


@pytest.fixture
def credential_service() -> FakeCredentialService:
    return FakeCredentialService()


@pytest.fixture
async def credentials(credential_service) -> AsyncGenerator[CredentialServiceHandle, None]:
    """Handle whose service has finished initializing."""
    handle = CredentialServiceHandle(credential_service, ready_timeout=0.2, poll_interval=0.01)
    await handle.start()
    yield handle
    await handle.close()


@pytest.fixture
def blobs() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def audit() -> AuditLogger:
    return AuditLogger(enabled=True)


@pytest.fixture
def orchestrator(queue, credentials, blobs, ledger, audit) -> Orchestrator:
    return Orchestrator(
        queue=queue,
        credentials=credentials,
        blobs=blobs,
        ledger=ledger,
        audit=audit,
        strict_vc_verification=False,
    )


@pytest.fixture
async def client(orchestrator) -> AsyncGenerator[AsyncClient, None]:
    """Test client with the orchestrator wired to in-memory collaborators.

    ASGITransport does not run the lifespan, so no external service is
    contacted.
    """
    from insurechain.main import app

    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as async_client:
        yield async_client
    app.dependency_overrides.clear()
