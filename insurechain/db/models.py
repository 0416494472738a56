"""SQLAlchemy ORM models.

This module defines the database schema for:
- Policy requests (append-only intake log consumed by the insurer)
- Issued credentials (VC + CID indexed by policy reference)
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class PolicyRequestRecord(Base):
    """Policy request submitted by a patient.

    Rows are appended in creation order and never deleted. The only
    mutation is the single pending -> issued transition.
    """

    __tablename__ = "policy_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    patient_did = Column(String(255), nullable=False)
    patient_address = Column(String(64), nullable=False)
    coverage_amount = Column(String(80), nullable=False)  # uint256 as decimal string
    details = Column(JSON, nullable=False, default=dict)
    status = Column(String(16), nullable=False, default="pending")
    vc_cid = Column(String(128), nullable=True)
    onchain_policy_id = Column(String(80), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    issued_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<PolicyRequestRecord(id={self.id!r}, status={self.status!r})>"


class IssuedCredentialRecord(Base):
    """Verifiable credential issued by the orchestrator.

    ``policy_ref`` is the credential's ``credentialSubject.policyId`` when
    present, otherwise the CID of the stored VC.
    """

    __tablename__ = "issued_credentials"

    id = Column(Integer, primary_key=True, autoincrement=True)
    policy_ref = Column(String(128), nullable=False, index=True)
    cid = Column(String(128), nullable=False)
    vc = Column(JSON, nullable=False)
    vc_jwt = Column(Text, nullable=True)
    request_id = Column(Integer, nullable=True)
    onchain_policy_id = Column(String(80), nullable=True)
    issued_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<IssuedCredentialRecord(policy_ref={self.policy_ref!r}, cid={self.cid!r})>"
