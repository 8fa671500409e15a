"""FastAPI dependencies: workspace resolution, session auth, gate composition."""

from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Cookie, Depends, Header, status
from sqlalchemy.orm import Session

from authgate.core.app_exceptions import raise_app_error
from authgate.core.config import settings
from authgate.core.session import decode_session_token
from authgate.core.totp import totp_engine
from authgate.db.session import get_db
from authgate.models.user import User
from authgate.models.workspace import Workspace
from authgate.repositories.mfa_store import SQLCredentialStore
from authgate.repositories.users import UserRepo, WorkspaceRepo
from authgate.services.credentials import CredentialVerifier
from authgate.services.mfa_gate import MFAGate


@dataclass
class AuthContext:
    """The authenticated user and the workspace their session is bound to."""

    user: User
    workspace: Workspace


def _parse_uuid(value: str) -> UUID | None:
    try:
        return UUID(value)
    except (ValueError, TypeError):
        return None


def _unauthenticated(message: str = "Authentication required") -> None:
    raise_app_error(
        status_code=status.HTTP_401_UNAUTHORIZED,
        code="UNAUTHORIZED",
        message=message,
    )


def get_current_workspace(
    x_workspace_id: Annotated[str | None, Header()] = None,
    db: Session = Depends(get_db),
) -> Workspace:
    """Workspace named by X-Workspace-Id, else the default (oldest) one."""
    repo = WorkspaceRepo(db)
    if x_workspace_id:
        workspace_id = _parse_uuid(x_workspace_id)
        workspace = repo.find_by_id(workspace_id) if workspace_id else None
    else:
        workspace = repo.find_default()

    if workspace is None:
        raise_app_error(
            status_code=status.HTTP_404_NOT_FOUND,
            code="NOT_FOUND",
            message="Workspace not found",
        )
    return workspace


def get_auth_context(
    authorization: Annotated[str | None, Header()] = None,
    auth_token: Annotated[str | None, Cookie(alias=settings.AUTH_COOKIE_NAME)] = None,
    x_workspace_id: Annotated[str | None, Header()] = None,
    db: Session = Depends(get_db),
) -> AuthContext:
    """Resolve the session from the auth cookie or a Bearer header."""
    token = auth_token
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() != "bearer" or not credentials.strip():
            _unauthenticated("Invalid authorization header format. Expected: Bearer <token>")
        token = credentials.strip()

    if not token:
        _unauthenticated()

    try:
        payload = decode_session_token(token)
    except jwt.InvalidTokenError:
        _unauthenticated("Invalid or expired session")

    user_id = _parse_uuid(payload.get("sub"))
    workspace_id = _parse_uuid(payload.get("workspace_id"))
    if user_id is None or workspace_id is None:
        _unauthenticated("Invalid or expired session")

    # A session only ever acts on the workspace it was issued for
    if x_workspace_id and _parse_uuid(x_workspace_id) != workspace_id:
        _unauthenticated("Session does not belong to this workspace")

    workspace = WorkspaceRepo(db).find_by_id(workspace_id)
    user = UserRepo(db).find_by_id(user_id, workspace_id) if workspace else None
    if workspace is None or user is None or not user.is_active:
        _unauthenticated("Invalid or expired session")

    return AuthContext(user=user, workspace=workspace)


def get_current_user(ctx: AuthContext = Depends(get_auth_context)) -> User:
    """Dependency to get the current authenticated user."""
    return ctx.user


def get_mfa_gate(db: Session = Depends(get_db)) -> MFAGate:
    """Compose the gate from its collaborators for this request."""
    users = UserRepo(db)
    return MFAGate(
        store=SQLCredentialStore(db),
        totp=totp_engine,
        verifier=CredentialVerifier(users),
        users=users,
    )
