"""Credential store: persistence of second-factor records."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from authgate.core.logging import get_logger
from authgate.core.mfa import decrypt_totp_secret, encrypt_totp_secret
from authgate.models.mfa import MFAMethod, UserMFA

logger = get_logger(__name__)


@dataclass(frozen=True)
class SecondFactorRecord:
    """Decrypted view of a user_mfa row."""

    user_id: UUID
    workspace_id: UUID
    secret: str
    is_enabled: bool
    method: str
    updated_at: datetime | None = None


class CredentialStore(Protocol):
    """Get/upsert/delete of second-factor records keyed by (user, workspace)."""

    def get(self, user_id: UUID, workspace_id: UUID) -> SecondFactorRecord | None: ...

    def upsert(
        self,
        user_id: UUID,
        workspace_id: UUID,
        secret: str,
        enabled: bool = True,
        method: str = MFAMethod.TOTP.value,
    ) -> None: ...

    def delete(self, user_id: UUID, workspace_id: UUID) -> None: ...


class SQLCredentialStore:
    """CredentialStore backed by the user_mfa table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: UUID, workspace_id: UUID) -> SecondFactorRecord | None:
        # Upserts bypass the identity map, so always refresh from the row
        row = self.db.execute(
            select(UserMFA)
            .where(
                UserMFA.user_id == user_id,
                UserMFA.workspace_id == workspace_id,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if row is None:
            return None
        return SecondFactorRecord(
            user_id=row.user_id,
            workspace_id=row.workspace_id,
            secret=decrypt_totp_secret(row.secret_encrypted),
            is_enabled=row.is_enabled,
            method=row.method,
            updated_at=row.updated_at,
        )

    def upsert(
        self,
        user_id: UUID,
        workspace_id: UUID,
        secret: str,
        enabled: bool = True,
        method: str = MFAMethod.TOTP.value,
    ) -> None:
        """Insert, or overwrite secret/flag/method on the (user, workspace) conflict."""
        now = datetime.now(timezone.utc)
        values = {
            "user_id": user_id,
            "workspace_id": workspace_id,
            "secret_encrypted": encrypt_totp_secret(secret),
            "is_enabled": enabled,
            "method": method,
            "updated_at": now,
        }

        if self.db.get_bind().dialect.name == "postgresql":
            stmt = pg_insert(UserMFA).values(values)
        else:
            stmt = sqlite_insert(UserMFA).values(values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "workspace_id"],
            set_={
                "secret_encrypted": stmt.excluded.secret_encrypted,
                "is_enabled": stmt.excluded.is_enabled,
                "method": stmt.excluded.method,
                "updated_at": stmt.excluded.updated_at,
            },
        )

        try:
            self.db.execute(stmt)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(
                "Second-factor upsert failed",
                extra={"user_id": str(user_id), "workspace_id": str(workspace_id)},
                exc_info=True,
            )
            raise

    def delete(self, user_id: UUID, workspace_id: UUID) -> None:
        """Remove the record if present; absence afterwards either way."""
        try:
            self.db.execute(
                delete(UserMFA).where(
                    UserMFA.user_id == user_id,
                    UserMFA.workspace_id == workspace_id,
                )
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(
                "Second-factor delete failed",
                extra={"user_id": str(user_id), "workspace_id": str(workspace_id)},
                exc_info=True,
            )
            raise
