"""Policy request queue.

Append-only log of patient policy requests, backed by SQLAlchemy. Requests
keep insertion order, are never deleted, and move from ``pending`` to
``issued`` at most once.

The same store indexes issued credentials by their policy reference so a
VC can be looked up after issuance.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from insurechain.core.exceptions import NotFoundError, ValidationError
from insurechain.db.models import IssuedCredentialRecord, PolicyRequestRecord
from insurechain.db.session import get_db_session

log = logging.getLogger(__name__)


class RequestStatus(str, Enum):
    """Lifecycle of a policy request."""
    PENDING = "pending"
    ISSUED = "issued"


@dataclass
class PolicyRequest:
    """A patient's request for an insurance policy."""

    id: int
    patient_did: str
    patient_address: str
    coverage_amount: str  # uint256 as decimal string
    details: dict[str, Any] = field(default_factory=dict)
    status: RequestStatus = RequestStatus.PENDING
    created_at: Optional[datetime] = None
    vc_cid: Optional[str] = None
    onchain_policy_id: Optional[str] = None

    @classmethod
    def from_record(cls, record: PolicyRequestRecord) -> "PolicyRequest":
        return cls(
            id=record.id,
            patient_did=record.patient_did,
            patient_address=record.patient_address,
            coverage_amount=record.coverage_amount,
            details=dict(record.details or {}),
            status=RequestStatus(record.status),
            created_at=record.created_at,
            vc_cid=record.vc_cid,
            onchain_policy_id=record.onchain_policy_id,
        )


@dataclass
class IssuedCredential:
    """A VC issued by the orchestrator and its blob-store address."""

    policy_ref: str
    cid: str
    vc: dict[str, Any]
    request_id: Optional[int] = None
    onchain_policy_id: Optional[str] = None
    issued_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: IssuedCredentialRecord) -> "IssuedCredential":
        return cls(
            policy_ref=record.policy_ref,
            cid=record.cid,
            vc=record.vc,
            request_id=record.request_id,
            onchain_policy_id=record.onchain_policy_id,
            issued_at=record.issued_at,
        )


class PolicyRequestQueue:
    """Append-only policy request log.

    Single-writer: no locking beyond the database's atomic insert.
    """

    def __init__(self, session_factory: sessionmaker = None):
        self._session_factory = session_factory

    def append(
        self,
        patient_did: str,
        patient_address: str,
        coverage_amount: str,
        details: Optional[dict[str, Any]] = None,
    ) -> PolicyRequest:
        """Store a new pending request and return it with its assigned id."""
        with get_db_session(self._session_factory) as db:
            record = PolicyRequestRecord(
                patient_did=patient_did,
                patient_address=patient_address,
                coverage_amount=str(coverage_amount),
                details=details or {},
                status=RequestStatus.PENDING.value,
            )
            db.add(record)
            db.flush()
            request = PolicyRequest.from_record(record)

        log.info(f"Policy request {request.id} queued for {patient_did}")
        return request

    def list(self) -> list[PolicyRequest]:
        """Return every request in creation order, unfiltered."""
        with get_db_session(self._session_factory) as db:
            records = db.scalars(
                select(PolicyRequestRecord).order_by(PolicyRequestRecord.id)
            ).all()
            return [PolicyRequest.from_record(r) for r in records]

    def get(self, request_id: int) -> Optional[PolicyRequest]:
        with get_db_session(self._session_factory) as db:
            record = db.get(PolicyRequestRecord, request_id)
            return PolicyRequest.from_record(record) if record else None

    def update_status(
        self,
        request_id: int,
        status: RequestStatus,
        vc_cid: Optional[str] = None,
        onchain_policy_id: Optional[str] = None,
    ) -> bool:
        """Move a request to ``status``.

        Returns:
            True if the request changed, False if it already had the status
            (a repeated issuance is ignored).

        Raises:
            NotFoundError: No request with this id.
            ValidationError: Attempt to move an issued request back to pending.
        """
        status = RequestStatus(status)
        with get_db_session(self._session_factory) as db:
            record = db.get(PolicyRequestRecord, request_id)
            if record is None:
                raise NotFoundError(f"Policy request not found: {request_id}")

            current = RequestStatus(record.status)
            if current == status:
                log.info(f"Policy request {request_id} already {status.value}, ignoring")
                return False
            if current == RequestStatus.ISSUED:
                raise ValidationError(
                    f"Policy request {request_id} is already issued",
                    code="REQUEST_ALREADY_ISSUED",
                )

            record.status = status.value
            if status == RequestStatus.ISSUED:
                record.issued_at = datetime.now(timezone.utc)
                record.vc_cid = vc_cid
                record.onchain_policy_id = onchain_policy_id

        log.info(f"Policy request {request_id} -> {status.value}")
        return True

    def record_credential(
        self,
        policy_ref: str,
        vc: dict[str, Any],
        cid: str,
        request_id: Optional[int] = None,
        onchain_policy_id: Optional[str] = None,
        vc_jwt: Optional[str] = None,
    ) -> IssuedCredential:
        """Index an issued VC under its policy reference."""
        with get_db_session(self._session_factory) as db:
            record = IssuedCredentialRecord(
                policy_ref=str(policy_ref),
                cid=cid,
                vc=vc,
                vc_jwt=vc_jwt,
                request_id=request_id,
                onchain_policy_id=onchain_policy_id,
            )
            db.add(record)
            db.flush()
            return IssuedCredential.from_record(record)

    def get_credential(self, policy_ref: str) -> Optional[IssuedCredential]:
        """Return the most recently issued VC for a policy reference."""
        with get_db_session(self._session_factory) as db:
            record = db.scalars(
                select(IssuedCredentialRecord)
                .where(IssuedCredentialRecord.policy_ref == str(policy_ref))
                .order_by(IssuedCredentialRecord.id.desc())
                .limit(1)
            ).first()
            return IssuedCredential.from_record(record) if record else None


_request_queue: Optional[PolicyRequestQueue] = None


def get_request_queue() -> PolicyRequestQueue:
    """Get or create the request queue singleton."""
    global _request_queue
    if _request_queue is None:
        _request_queue = PolicyRequestQueue()
    return _request_queue


def reset_request_queue() -> None:
    """Reset the singleton (for testing)."""
    global _request_queue
    _request_queue = None
