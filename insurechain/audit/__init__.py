"""Audit logging module for InsureChain."""

from insurechain.audit.logger import AuditEvent, AuditLogger, get_audit_logger, reset_audit_logger

__all__ = [
    "AuditLogger",
    "AuditEvent",
    "get_audit_logger",
    "reset_audit_logger",
]
