"""Readiness tracking for the credential service.

The credential agent initializes in the background so the HTTP service can
start without it. Callers ask the handle for a ready service; the handle
polls for a bounded time and reports a distinct "initializing" or "failed"
error instead of blocking indefinitely.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from insurechain.config import CREDENTIAL_READY_POLL_SECONDS, CREDENTIAL_READY_TIMEOUT_SECONDS
from insurechain.core.exceptions import (
    CredentialServiceFailed,
    CredentialServiceInitializing,
    InsureChainError,
)
from insurechain.credentials.agent import AgentCredentialService, CredentialService

log = logging.getLogger(__name__)


class ReadinessState(str, Enum):
    """Initialization state of the credential service."""
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class ServiceStatus:
    """Snapshot of the handle's state."""
    state: ReadinessState
    error: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.state == ReadinessState.READY


class CredentialServiceHandle:
    """Owns a credential service and its asynchronous initialization."""

    def __init__(
        self,
        service: CredentialService,
        ready_timeout: float = CREDENTIAL_READY_TIMEOUT_SECONDS,
        poll_interval: float = CREDENTIAL_READY_POLL_SECONDS,
    ):
        self._service = service
        self._ready_timeout = ready_timeout
        self._poll_interval = poll_interval
        self._state = ReadinessState.INITIALIZING
        self._error: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    def status(self) -> ServiceStatus:
        return ServiceStatus(state=self._state, error=self._error)

    def start(self) -> asyncio.Task:
        """Begin initialization in the background (idempotent)."""
        if self._task is None:
            self._task = asyncio.create_task(self._initialize())
        return self._task

    async def _initialize(self) -> None:
        log.info("Initializing credential service...")
        try:
            await self._service.initialize()
        except asyncio.CancelledError:
            raise
        except InsureChainError as e:
            self._fail(e.message)
        except Exception as e:
            log.exception("Credential service initialization crashed")
            self._fail(str(e))
        else:
            self._state = ReadinessState.READY
            self._error = None
            log.info("Credential service initialization completed")

    def _fail(self, error: str) -> None:
        self._state = ReadinessState.FAILED
        self._error = error
        log.error(f"Credential service initialization failed: {error}")
        log.warning("Service is running, but DID/VC features will not work")

    async def wait_until_ready(self, timeout: Optional[float] = None) -> ServiceStatus:
        """Poll until the service is ready, has failed, or ``timeout`` elapses."""
        timeout = self._ready_timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while self._state == ReadinessState.INITIALIZING and loop.time() < deadline:
            await asyncio.sleep(self._poll_interval)
        return self.status()

    async def require_ready(self) -> CredentialService:
        """Return the service once it is ready.

        Raises:
            CredentialServiceFailed: Initialization failed.
            CredentialServiceInitializing: Still initializing after the wait.
        """
        status = self.status()
        if status.state == ReadinessState.INITIALIZING:
            log.info("Waiting for credential service to initialize...")
            status = await self.wait_until_ready()

        if status.state == ReadinessState.FAILED:
            raise CredentialServiceFailed(status.error or "unknown error")
        if status.state == ReadinessState.INITIALIZING:
            raise CredentialServiceInitializing()
        return self._service

    async def close(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        await self._service.close()


_credential_handle: Optional[CredentialServiceHandle] = None


def get_credential_handle() -> CredentialServiceHandle:
    """Get or create the credential service handle singleton."""
    global _credential_handle
    if _credential_handle is None:
        _credential_handle = CredentialServiceHandle(AgentCredentialService())
    return _credential_handle


async def close_credential_handle() -> None:
    """Close the credential service handle singleton."""
    global _credential_handle
    if _credential_handle is not None:
        await _credential_handle.close()
        _credential_handle = None


def reset_credential_handle() -> None:
    """Reset the singleton without closing (for testing)."""
    global _credential_handle
    _credential_handle = None
