"""Second-factor (TOTP) record model."""

import uuid
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.sql import func

from authgate.db.base import Base


class MFAMethod(str, Enum):
    """Second-factor kinds."""

    TOTP = "totp"


class UserMFA(Base):
    """One second-factor record per (user, workspace)."""

    __tablename__ = "user_mfa"
    __table_args__ = (
        UniqueConstraint("user_id", "workspace_id", name="uq_user_mfa_user_id_workspace_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    workspace_id = Column(
        Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    secret_encrypted = Column(String, nullable=False)  # Fernet-encrypted base32 secret
    is_enabled = Column(Boolean, default=False, nullable=False)
    method = Column(String(20), default=MFAMethod.TOTP.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=func.now(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
