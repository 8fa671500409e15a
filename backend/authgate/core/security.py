"""Password hashing utilities."""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from authgate.core.logging import get_logger

logger = get_logger(__name__)

# Password hasher instance
_password_hasher = PasswordHasher()

# Real Argon2 hash of a random throwaway value. Verifying against it costs the
# same as verifying a real user's hash, so unknown emails are not faster.
_DUMMY_PASSWORD_HASH = _password_hasher.hash("dummy-password-for-timing-equalization")


def hash_password(plain_password: str) -> str:
    """Hash a plain password using Argon2."""
    return _password_hasher.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify a plain password against a hash."""
    try:
        return _password_hasher.verify(password_hash, plain_password)
    except VerifyMismatchError:
        return False
    except (VerificationError, InvalidHashError) as e:
        logger.warning("Password verification error", extra={"error": str(e)})
        return False


def burn_password_check(plain_password: str) -> None:
    """Spend one Argon2 verification on a dummy hash."""
    verify_password(plain_password, _DUMMY_PASSWORD_HASH)
