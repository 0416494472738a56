"""DID endpoints."""
import logging

from fastapi import APIRouter, Depends

from insurechain.api.models import DidResponse, ErrorResponse
from insurechain.orchestrator import Orchestrator, get_orchestrator

log = logging.getLogger(__name__)
router = APIRouter(prefix="/did", tags=["did"])


@router.post(
    "/create",
    response_model=DidResponse,
    responses={
        500: {"model": ErrorResponse, "description": "DID creation failed"},
        503: {"model": ErrorResponse, "description": "Credential service initializing or failed"},
    },
)
async def create_did(orchestrator: Orchestrator = Depends(get_orchestrator)) -> DidResponse:
    """Create a new DID with the credential agent.

    Answers 503 while the credential service is still initializing or after
    its initialization failed, and 500 when the agent fails to create one.
    """
    did = await orchestrator.create_did()
    return DidResponse(did=did)
