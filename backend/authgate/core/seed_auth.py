"""Seed a demo workspace and account for development."""

from sqlalchemy.orm import Session

from authgate.core.config import settings
from authgate.core.logging import get_logger
from authgate.core.security import hash_password
from authgate.db.session import SessionLocal
from authgate.models.user import User
from authgate.models.workspace import Workspace
from authgate.repositories.users import UserRepo, WorkspaceRepo, normalize_email

logger = get_logger(__name__)

DEMO_WORKSPACE_NAME = "Demo Workspace"
DEMO_EMAIL = "demo@example.com"
DEMO_PASSWORD = "Demo123!"


def create_workspace(db: Session, name: str, enforce_mfa: bool = False, hostname: str | None = None) -> Workspace:
    """Add a workspace (flushes, does not commit)."""
    workspace = Workspace(name=name, enforce_mfa=enforce_mfa, hostname=hostname)
    db.add(workspace)
    db.flush()
    return workspace


def create_user(db: Session, workspace: Workspace, email: str, password: str, name: str | None = None) -> User:
    """Add a password user to a workspace (flushes, does not commit)."""
    user = User(
        workspace_id=workspace.id,
        email=normalize_email(email),
        name=name,
        password_hash=hash_password(password),
        is_active=True,
    )
    db.add(user)
    db.flush()
    return user


def seed_demo_accounts() -> None:
    """Seed the demo workspace and user if enabled in dev environment."""
    if settings.ENV != "dev" or not settings.SEED_DEMO_ACCOUNTS:
        logger.info("Demo account seeding skipped (ENV != dev or SEED_DEMO_ACCOUNTS=false)")
        return

    db = SessionLocal()
    try:
        workspace = WorkspaceRepo(db).find_default()
        if workspace is None:
            workspace = create_workspace(db, DEMO_WORKSPACE_NAME)
            logger.info("Created demo workspace", extra={"workspace_id": str(workspace.id)})

        if UserRepo(db).find_by_email(DEMO_EMAIL, workspace.id):
            logger.info("Demo account already exists, skipping seed")
            db.commit()
            return

        create_user(db, workspace, DEMO_EMAIL, DEMO_PASSWORD, name="Demo User")
        db.commit()
        logger.info(f"Created demo account: {DEMO_EMAIL} / {DEMO_PASSWORD}")

    except Exception as e:
        db.rollback()
        logger.error(f"Error seeding demo accounts: {e}", exc_info=True)
        raise
    finally:
        db.close()
