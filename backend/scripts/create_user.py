#!/usr/bin/env python3
"""Create a workspace user (and the workspace, if needed) for development/testing."""

import sys
from pathlib import Path

# Add parent directory to path to import authgate modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from authgate.core.logging import get_logger
from authgate.core.seed_auth import create_user, create_workspace
from authgate.db.session import SessionLocal
from authgate.repositories.users import UserRepo, WorkspaceRepo

logger = get_logger(__name__)


def create_workspace_user(
    email: str,
    password: str,
    name: str | None = None,
    workspace_name: str = "Default Workspace",
    enforce_mfa: bool = False,
) -> None:
    """Create a user in the default workspace, creating the workspace if missing."""
    db = SessionLocal()
    try:
        workspace = WorkspaceRepo(db).find_default()
        if workspace is None:
            workspace = create_workspace(db, workspace_name, enforce_mfa=enforce_mfa)
            logger.info(f"Created workspace: {workspace_name}")
            print(f"\n✓ Workspace created: {workspace_name} ({workspace.id})")
        elif enforce_mfa and not workspace.enforce_mfa:
            workspace.enforce_mfa = True
            logger.info(f"Enabled MFA enforcement on workspace {workspace.id}")
            print(f"\n✓ MFA enforcement enabled on workspace {workspace.name}")

        if UserRepo(db).find_by_email(email, workspace.id):
            db.commit()
            logger.warning(f"User with email {email} already exists.")
            print(f"\n✓ User already exists: {email}")
            return

        create_user(db, workspace, email, password, name=name)
        db.commit()
        logger.info(f"Created user: {email}")
        print(f"\n✓ User created successfully!")
        print(f"  Email: {email}")
        print(f"  Workspace: {workspace.name} ({workspace.id})")
        print(f"  MFA enforced: {'yes' if workspace.enforce_mfa else 'no'}")

    except Exception as e:
        db.rollback()
        logger.error(f"Error creating user: {e}", exc_info=True)
        print(f"\n✗ Error creating user: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Create a workspace user for development/testing")
    parser.add_argument("--email", type=str, required=True, help="User email")
    parser.add_argument("--password", type=str, required=True, help="User password")
    parser.add_argument("--name", type=str, default=None, help="Display name")
    parser.add_argument(
        "--workspace-name",
        type=str,
        default="Default Workspace",
        help="Name used if the workspace has to be created (default: Default Workspace)",
    )
    parser.add_argument(
        "--enforce-mfa",
        action="store_true",
        help="Require every user of the workspace to enroll a second factor",
    )

    args = parser.parse_args()
    create_workspace_user(
        email=args.email,
        password=args.password,
        name=args.name,
        workspace_name=args.workspace_name,
        enforce_mfa=args.enforce_mfa,
    )
