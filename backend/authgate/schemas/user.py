"""User schemas."""

from datetime import datetime
from uuid import UUID

from authgate.schemas.auth import CamelModel


class UserMFAResponse(CamelModel):
    """Second-factor summary on the user."""

    is_enabled: bool
    method: str


class UserResponse(CamelModel):
    """Current user, with the MFA summary looked up explicitly."""

    id: UUID
    workspace_id: UUID
    name: str | None = None
    email: str
    last_login_at: datetime | None = None
    created_at: datetime
    mfa: UserMFAResponse | None = None


class WorkspaceResponse(CamelModel):
    """Workspace summary."""

    id: UUID
    name: str
    enforce_mfa: bool


class MeResponse(CamelModel):
    """Current user response schema."""

    user: UserResponse
    workspace: WorkspaceResponse
