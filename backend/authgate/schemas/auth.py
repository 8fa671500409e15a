"""Authentication schemas."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serializes field names as camelCase (the browser client's convention)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Request schemas
class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class MFAVerifyRequest(LoginRequest):
    """Second leg of login: credentials again plus the TOTP code."""

    token: str = Field(..., max_length=16)


class MFASetupEnableRequest(LoginRequest):
    """Pre-session enablement: credentials, the generated secret and a code."""

    secret: str = Field(..., max_length=128)
    token: str = Field(..., max_length=16)


# Response schemas
class LoginMFAResponse(CamelModel):
    """Returned by login instead of a session when a second factor is involved."""

    user_has_mfa: bool
    requires_mfa_setup: bool
    is_mfa_enforced: bool


class AuthTokenResponse(CamelModel):
    """Returned when a challenge completes and the session cookie is set."""

    auth_token: str
