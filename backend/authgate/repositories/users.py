"""User and workspace lookups."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from authgate.models.user import User
from authgate.models.workspace import Workspace


def normalize_email(email: str) -> str:
    """Lower-case and strip an email address."""
    return email.lower().strip()


class UserRepo:
    """Workspace-scoped user queries."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_email(self, email: str, workspace_id: UUID) -> User | None:
        return self.db.execute(
            select(User).where(
                User.email == normalize_email(email),
                User.workspace_id == workspace_id,
            )
        ).scalar_one_or_none()

    def find_by_id(self, user_id: UUID, workspace_id: UUID) -> User | None:
        return self.db.execute(
            select(User).where(User.id == user_id, User.workspace_id == workspace_id)
        ).scalar_one_or_none()


class WorkspaceRepo:
    """Workspace queries."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, workspace_id: UUID) -> Workspace | None:
        return self.db.get(Workspace, workspace_id)

    def find_default(self) -> Workspace | None:
        """Oldest workspace; used when the request names none."""
        return self.db.execute(
            select(Workspace).order_by(Workspace.created_at, Workspace.id).limit(1)
        ).scalar_one_or_none()
