"""TOTP engine: secret generation, enrollment URIs and code validation."""

import base64
import binascii
import hmac
import io
import re
import time
from dataclasses import dataclass
from datetime import datetime
from urllib.parse import quote, urlencode

import pyotp
import qrcode

from authgate.core.config import settings
from authgate.core.logging import get_logger

logger = get_logger(__name__)

# 32 base32 characters encode exactly 20 bytes (160 bits)
SECRET_LENGTH = 32
ALGORITHM = "SHA1"


class TOTPSecretError(ValueError):
    """A stored or submitted secret is not valid base32."""


@dataclass(frozen=True)
class EnrollmentSecret:
    """A freshly generated secret and the URI authenticator apps consume."""

    secret: str
    otpauth_url: str


class TOTPEngine:
    """Time-based one-time passcodes (RFC 6238, SHA-1)."""

    def __init__(
        self,
        issuer: str | None = None,
        digits: int | None = None,
        period: int | None = None,
        valid_window: int | None = None,
    ):
        self.issuer = issuer or settings.MFA_TOTP_ISSUER
        self.digits = digits or settings.MFA_TOTP_DIGITS
        self.period = period or settings.MFA_TOTP_PERIOD
        self.valid_window = settings.MFA_TOTP_VALID_WINDOW if valid_window is None else valid_window
        self._code_pattern = re.compile(rf"[0-9]{{{self.digits}}}")

    def _totp(self, secret: str) -> pyotp.TOTP:
        if not isinstance(secret, str) or not secret:
            raise TOTPSecretError("TOTP secret is empty")
        try:
            # pyotp decodes lazily; decode once here so bad secrets fail early
            base64.b32decode(secret.upper() + "=" * (-len(secret) % 8), casefold=True)
        except (binascii.Error, ValueError) as e:
            raise TOTPSecretError("TOTP secret is not valid base32") from e
        return pyotp.TOTP(secret, digits=self.digits, interval=self.period)

    def generate_secret(self, account_label: str) -> EnrollmentSecret:
        """Generate a random secret and its otpauth:// enrollment URI.

        Nothing is persisted here.
        """
        secret = pyotp.random_base32(length=SECRET_LENGTH)
        return EnrollmentSecret(secret=secret, otpauth_url=self.enrollment_uri(secret, account_label))

    def enrollment_uri(self, secret: str, account_label: str) -> str:
        """Build otpauth://totp/{issuer}:{label}?secret=...&algorithm=SHA1&digits=6&period=30."""
        label = f"{quote(self.issuer, safe='')}:{quote(account_label, safe='@')}"
        query = urlencode(
            {
                "issuer": self.issuer,
                "secret": secret,
                "algorithm": ALGORITHM,
                "digits": self.digits,
                "period": self.period,
            },
            quote_via=quote,
        )
        return f"otpauth://totp/{label}?{query}"

    def current_code(self, secret: str, at: datetime | int | None = None) -> str:
        """Code for the time step containing ``at`` (default: now)."""
        totp = self._totp(secret)
        if at is None:
            return totp.now()
        return totp.at(at)

    def validate_code(self, secret: str, submitted_code: str, skew_window: int | None = None) -> bool:
        """Check a submitted code against the current step and its neighbours.

        Every candidate step is computed and compared, so a match in the first
        step costs the same as no match at all. Malformed codes are rejected
        before any computation.
        """
        window = self.valid_window if skew_window is None else skew_window
        if not isinstance(submitted_code, str) or not self._code_pattern.fullmatch(submitted_code):
            return False

        totp = self._totp(secret)
        now = int(time.time())
        matched = False
        for offset in range(-window, window + 1):
            candidate = totp.at(now, counter_offset=offset)
            matched |= hmac.compare_digest(candidate.encode(), submitted_code.encode())
        return matched


def render_qr_data_url(otpauth_url: str) -> str:
    """Render an enrollment URI as a PNG data URL."""
    img = qrcode.make(otpauth_url)
    buf = io.BytesIO()
    img.save(buf)
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


# Default engine for request handlers
totp_engine = TOTPEngine()
