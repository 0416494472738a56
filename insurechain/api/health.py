"""Health check endpoints."""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from insurechain.api.models import HealthResponse
from insurechain.orchestrator import Orchestrator, get_orchestrator

log = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(orchestrator: Orchestrator = Depends(get_orchestrator)) -> HealthResponse:
    """Health check endpoint.

    Always answers while the process is up. The credential service state is
    reported separately since the service runs without it.
    """
    status = orchestrator.credentials.status()
    if status.error:
        log.warning(f"Health check: credential service {status.state.value}: {status.error}")
    return HealthResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        credential_service=status.state.value,
        credential_service_error=status.error,
    )
