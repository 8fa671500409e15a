"""Primary (email + password) credential verification."""

from uuid import UUID

from authgate.core.logging import get_logger
from authgate.core.security import burn_password_check, verify_password
from authgate.models.user import User
from authgate.repositories.users import UserRepo

logger = get_logger(__name__)


class CredentialVerifier:
    """Validates an email/password pair within one workspace.

    Unknown email, inactive account, password-less account and wrong password
    all produce ``None`` after the same amount of hashing work, so callers
    cannot tell them apart.
    """

    def __init__(self, users: UserRepo):
        self.users = users

    def validate_primary(self, email: str, password: str, workspace_id: UUID) -> User | None:
        user = self.users.find_by_email(email, workspace_id)

        if user is None or not user.password_hash or not user.is_active:
            burn_password_check(password)
            return None

        if not verify_password(password, user.password_hash):
            return None

        return user
