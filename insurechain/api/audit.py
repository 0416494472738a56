"""Audit log endpoint."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from insurechain.api.models import AuditEventModel, AuditEventsResponse
from insurechain.orchestrator import Orchestrator, get_orchestrator

log = logging.getLogger(__name__)
router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/events", response_model=AuditEventsResponse)
async def get_audit_events(
    limit: int = Query(100, ge=1, le=1000),
    action: Optional[str] = None,
    status: Optional[str] = None,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> AuditEventsResponse:
    """Recent audit events from the in-memory ring buffer.

    Query parameters:
    - limit: Max events to return (default 100)
    - action: Filter by action prefix (e.g., "claim.", "onchain.")
    - status: Filter by status ("success", "warning", "error")
    """
    audit = orchestrator.audit
    events = audit.get_recent_events(limit=limit, action_filter=action, status_filter=status)
    stats = audit.get_buffer_stats()
    return AuditEventsResponse(
        count=len(events),
        events=[AuditEventModel(**e) for e in events],
        buffer_size=stats["buffer_size"],
        max_buffer_size=stats["max_buffer_size"],
    )
