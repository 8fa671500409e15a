"""User model."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from authgate.db.base import Base


class User(Base):
    """User model. Emails are unique per workspace, not globally."""

    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("email", "workspace_id", name="uq_users_email_workspace_id"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id = Column(
        Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=True)
    email = Column(String, nullable=False, index=True)
    password_hash = Column(String, nullable=True)  # Nullable for SSO-only users
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=func.now(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    workspace = relationship("Workspace", back_populates="users")
