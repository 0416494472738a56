"""Audit logging for state-changing operations.

Records policy intake, credential issuance and every ledger write
(registration, policy issuance, claim submission, insurer actions),
including partial outcomes that completed with warnings.
"""

import logging
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

log = logging.getLogger("audit")


@dataclass
class AuditEvent:
    """Structured audit event."""

    action: str  # e.g., "vc.issue", "claim.approveClaim"
    principal: str = "anonymous"  # signer address or DID
    resource: str | None = None  # e.g., CID, claim id, tx hash
    status: str = "success"  # "success", "warning", "error"
    details: dict[str, Any] | None = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class AuditLogger:
    """Audit logger for lifecycle operations.

    Logs events as structured JSON via Python's logging module.
    Also maintains an in-memory ring buffer for recent event retrieval.
    """

    MAX_BUFFER_SIZE = 1000

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._buffer: deque[dict] = deque(maxlen=self.MAX_BUFFER_SIZE)

    def log(
        self,
        event: AuditEvent | None = None,
        *,
        action: str | None = None,
        principal: str | None = None,
        resource: str | None = None,
        status: str = "success",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Write an audit event to the log.

        Accepts either an AuditEvent object or keyword arguments.
        """
        if not self.enabled:
            return

        if event is None:
            event = AuditEvent(
                action=action or "unknown",
                principal=principal or "anonymous",
                resource=resource,
                status=status,
                details=details,
            )

        self._buffer.append(asdict(event))

        extra = {
            "principal": event.principal,
            "action": event.action,
            "status": event.status,
        }
        if event.resource:
            extra["resource"] = event.resource
        if event.details:
            extra["details"] = event.details

        if event.status in ("warning", "error"):
            log.warning(f"audit: {event.action} {event.status}", extra=extra)
        else:
            log.info(f"audit: {event.action} {event.status}", extra=extra)

    def get_recent_events(
        self,
        limit: int = 100,
        action_filter: str | None = None,
        status_filter: str | None = None,
    ) -> list[dict]:
        """Get recent audit events from buffer, newest first.

        Args:
            limit: Max events to return
            action_filter: Filter by action prefix (e.g., "claim.")
            status_filter: Filter by status (e.g., "warning")
        """
        events = list(self._buffer)
        events.reverse()

        if action_filter:
            events = [e for e in events if e["action"].startswith(action_filter)]
        if status_filter:
            events = [e for e in events if e["status"] == status_filter]

        return events[:limit]

    def get_buffer_stats(self) -> dict[str, int]:
        return {"buffer_size": len(self._buffer), "max_buffer_size": self.MAX_BUFFER_SIZE}


_audit_logger: AuditLogger | None = None


def get_audit_logger() -> AuditLogger:
    """Get the global audit logger instance."""
    global _audit_logger

    if _audit_logger is None:
        from insurechain.config import AUDIT_ENABLED

        _audit_logger = AuditLogger(enabled=AUDIT_ENABLED)

    return _audit_logger


def reset_audit_logger() -> None:
    """Reset the global logger (for testing)."""
    global _audit_logger
    _audit_logger = None
