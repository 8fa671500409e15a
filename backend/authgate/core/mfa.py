"""Encryption at rest for TOTP secrets."""

from cryptography.fernet import Fernet, InvalidToken

from authgate.core.config import settings

# Fernet cipher for encrypting TOTP secrets
_fernet: Fernet | None = None


class SecretDecryptionError(RuntimeError):
    """A stored secret cannot be decrypted with the configured key."""


def get_fernet() -> Fernet:
    """Get Fernet cipher instance."""
    global _fernet
    if _fernet is None:
        if not settings.MFA_ENCRYPTION_KEY:
            raise ValueError("MFA_ENCRYPTION_KEY must be set")
        _fernet = Fernet(settings.MFA_ENCRYPTION_KEY.encode())
    return _fernet


def reset_fernet() -> None:
    """Drop the cached cipher (after a key change)."""
    global _fernet
    _fernet = None


def encrypt_totp_secret(secret: str) -> str:
    """Encrypt TOTP secret."""
    return get_fernet().encrypt(secret.encode()).decode()


def decrypt_totp_secret(encrypted_secret: str) -> str:
    """Decrypt TOTP secret."""
    try:
        return get_fernet().decrypt(encrypted_secret.encode()).decode()
    except InvalidToken as e:
        raise SecretDecryptionError("Stored TOTP secret cannot be decrypted") from e
