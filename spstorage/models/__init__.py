"""SQLAlchemy models."""

from spstorage.models.credential import IDENTITY_SCOPE, GraphCredential

__all__ = [
    "GraphCredential",
    "IDENTITY_SCOPE",
]
