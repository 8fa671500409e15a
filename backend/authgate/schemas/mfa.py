"""MFA schemas."""

from pydantic import BaseModel, Field

from authgate.schemas.auth import CamelModel


class MFAEnableRequest(BaseModel):
    """Authenticated enablement: the generated secret and a code from it."""

    secret: str = Field(..., max_length=128)
    token: str = Field(..., max_length=16)


class MFASecretResponse(CamelModel):
    """Generated secret, shown once; nothing is stored yet."""

    secret: str
    otpauth_url: str
    qr_code_data_url: str | None = None
