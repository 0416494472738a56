"""Database package for the policy request queue and credential index."""

from insurechain.db.models import Base, IssuedCredentialRecord, PolicyRequestRecord
from insurechain.db.session import (
    SessionLocal,
    create_db_engine,
    engine,
    get_db_session,
    init_database,
)

__all__ = [
    "Base",
    "IssuedCredentialRecord",
    "PolicyRequestRecord",
    "SessionLocal",
    "create_db_engine",
    "engine",
    "get_db_session",
    "init_database",
]
