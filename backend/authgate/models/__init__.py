"""Database models."""

# Import all models here so Alembic can detect them
from authgate.models.mfa import MFAMethod, UserMFA
from authgate.models.user import User
from authgate.models.workspace import Workspace

__all__ = [
    "Workspace",
    "User",
    "UserMFA",
    "MFAMethod",
]
