"""Tests for MFA endpoints."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from authgate.core.session import issue_session_token
from authgate.models.mfa import UserMFA
from tests.conftest import TEST_PASSWORD
from tests.helpers.seed import create_test_user, enroll_test_mfa, wrong_code


def _bearer(user, workspace) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_session_token(user, workspace.id)}"}


def _credentials(**extra) -> dict[str, str]:
    return {"email": "alice@acme.io", "password": TEST_PASSWORD, **extra}


# Challenge completion


@pytest.mark.asyncio
async def test_mfa_verify_valid_code_starts_session(
    async_client: AsyncClient, db: Session, test_user, workspace, totp
) -> None:
    secret = enroll_test_mfa(db, test_user, workspace, totp)

    response = await async_client.post(
        "/api/auth/mfa/verify",
        json=_credentials(token=totp.current_code(secret)),
    )

    assert response.status_code == 200
    auth_token = response.json()["authToken"]
    assert auth_token
    assert response.cookies["authToken"] == auth_token


@pytest.mark.asyncio
async def test_mfa_verify_wrong_code(async_client: AsyncClient, db: Session, test_user, workspace, totp) -> None:
    secret = enroll_test_mfa(db, test_user, workspace, totp)

    response = await async_client.post(
        "/api/auth/mfa/verify",
        json=_credentials(token=wrong_code(secret, totp)),
    )

    assert response.status_code == 401
    assert response.json()["error_code"] == "MFA_INVALID"
    assert "set-cookie" not in response.headers


@pytest.mark.asyncio
async def test_mfa_verify_malformed_code(async_client: AsyncClient, db: Session, test_user, workspace, totp) -> None:
    enroll_test_mfa(db, test_user, workspace, totp)

    response = await async_client.post("/api/auth/mfa/verify", json=_credentials(token="12ab56"))

    assert response.status_code == 401
    assert response.json()["error_code"] == "MFA_INVALID"


@pytest.mark.asyncio
async def test_mfa_verify_wrong_password(async_client: AsyncClient, db: Session, test_user, workspace, totp) -> None:
    """Knowing the code is not enough without the password."""
    secret = enroll_test_mfa(db, test_user, workspace, totp)

    response = await async_client.post(
        "/api/auth/mfa/verify",
        json={"email": "alice@acme.io", "password": "WrongPass1!", "token": totp.current_code(secret)},
    )

    assert response.status_code == 401
    assert response.json()["error_code"] == "UNAUTHORIZED"
    assert response.json()["message"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_mfa_verify_not_enabled(async_client: AsyncClient, test_user) -> None:
    response = await async_client.post("/api/auth/mfa/verify", json=_credentials(token="123456"))

    assert response.status_code == 401
    assert response.json()["error_code"] == "MFA_NOT_ENABLED"


# Pre-session setup


@pytest.mark.asyncio
async def test_setup_generate_returns_secret_and_qr(async_client: AsyncClient, db: Session, test_user) -> None:
    response = await async_client.post("/api/auth/mfa/setup/generate", json=_credentials())

    assert response.status_code == 200
    data = response.json()
    assert len(data["secret"]) == 32
    assert data["otpauthUrl"].startswith("otpauth://totp/")
    assert data["secret"] in data["otpauthUrl"]
    assert data["qrCodeDataUrl"].startswith("data:image/png;base64,")

    # Generating stores nothing
    assert db.execute(select(UserMFA)).scalars().all() == []


@pytest.mark.asyncio
async def test_setup_generate_bad_credentials(async_client: AsyncClient, test_user) -> None:
    response = await async_client.post(
        "/api/auth/mfa/setup/generate",
        json={"email": "alice@acme.io", "password": "WrongPass1!"},
    )

    assert response.status_code == 401
    assert response.json()["error_code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_setup_enable_bad_credentials(async_client: AsyncClient, test_user, totp) -> None:
    secret = totp.generate_secret("alice@acme.io").secret

    response = await async_client.post(
        "/api/auth/mfa/setup/enable",
        json={
            "email": "alice@acme.io",
            "password": "WrongPass1!",
            "secret": secret,
            "token": totp.current_code(secret),
        },
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_setup_enable_wrong_code_stores_nothing(
    async_client: AsyncClient, db: Session, test_user, store, workspace, totp
) -> None:
    secret = totp.generate_secret("alice@acme.io").secret

    response = await async_client.post(
        "/api/auth/mfa/setup/enable",
        json=_credentials(secret=secret, token=wrong_code(secret, totp)),
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "MFA_INVALID"
    assert store.get(test_user.id, workspace.id) is None


@pytest.mark.asyncio
async def test_enforced_workspace_full_flow(
    async_client: AsyncClient, db: Session, workspace, enforcing_workspace, store, totp
) -> None:
    """Setup required, enroll, get challenged, complete with a code."""
    headers = {"X-Workspace-Id": str(enforcing_workspace.id)}
    user = create_test_user(db, enforcing_workspace, email="alice@acme.io", password=TEST_PASSWORD)

    login = await async_client.post("/api/auth/login", json=_credentials(), headers=headers)
    assert login.json()["requiresMfaSetup"] is True

    generated = await async_client.post("/api/auth/mfa/setup/generate", json=_credentials(), headers=headers)
    secret = generated.json()["secret"]

    enabled = await async_client.post(
        "/api/auth/mfa/setup/enable",
        json=_credentials(secret=secret, token=totp.current_code(secret)),
        headers=headers,
    )
    assert enabled.status_code == 200
    assert enabled.json() is True
    assert "set-cookie" not in enabled.headers

    record = store.get(user.id, enforcing_workspace.id)
    assert record.secret == secret
    assert record.is_enabled is True

    second_login = await async_client.post("/api/auth/login", json=_credentials(), headers=headers)
    assert second_login.json() == {
        "userHasMfa": True,
        "requiresMfaSetup": False,
        "isMfaEnforced": True,
    }

    verified = await async_client.post(
        "/api/auth/mfa/verify",
        json=_credentials(token=totp.current_code(secret)),
        headers=headers,
    )
    assert verified.status_code == 200
    assert "authToken" in verified.cookies


# Signed-in self-service


@pytest.mark.asyncio
async def test_generate_requires_session(async_client: AsyncClient, test_user) -> None:
    response = await async_client.post("/api/auth/mfa/generate")

    assert response.status_code == 401
    assert response.json()["error_code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_generate_for_signed_in_user(async_client: AsyncClient, test_user, workspace) -> None:
    response = await async_client.post("/api/auth/mfa/generate", headers=_bearer(test_user, workspace))

    assert response.status_code == 200
    data = response.json()
    assert "alice%40acme.io" in data["otpauthUrl"] or "alice@acme.io" in data["otpauthUrl"]
    assert data["qrCodeDataUrl"].startswith("data:image/png;base64,")


@pytest.mark.asyncio
async def test_enable_and_disable(async_client: AsyncClient, test_user, workspace, store, totp) -> None:
    headers = _bearer(test_user, workspace)
    secret = (await async_client.post("/api/auth/mfa/generate", headers=headers)).json()["secret"]

    enabled = await async_client.post(
        "/api/auth/mfa/enable",
        json={"secret": secret, "token": totp.current_code(secret)},
        headers=headers,
    )
    assert enabled.status_code == 200
    assert enabled.json() is True
    assert store.get(test_user.id, workspace.id).secret == secret

    disabled = await async_client.post("/api/auth/mfa/disable", headers=headers)
    assert disabled.status_code == 200
    assert disabled.json() is True
    assert store.get(test_user.id, workspace.id) is None

    # Disabling again still succeeds
    again = await async_client.post("/api/auth/mfa/disable", headers=headers)
    assert again.status_code == 200


@pytest.mark.asyncio
async def test_enable_wrong_code_keeps_existing_factor(
    async_client: AsyncClient, db: Session, test_user, workspace, store, totp
) -> None:
    original = enroll_test_mfa(db, test_user, workspace, totp)
    replacement = totp.generate_secret("alice@acme.io").secret

    response = await async_client.post(
        "/api/auth/mfa/enable",
        json={"secret": replacement, "token": wrong_code(replacement, totp)},
        headers=_bearer(test_user, workspace),
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "MFA_INVALID"
    assert store.get(test_user.id, workspace.id).secret == original


@pytest.mark.asyncio
async def test_reenroll_replaces_secret(
    async_client: AsyncClient, db: Session, test_user, workspace, store, totp
) -> None:
    enroll_test_mfa(db, test_user, workspace, totp)
    replacement = totp.generate_secret("alice@acme.io").secret

    response = await async_client.post(
        "/api/auth/mfa/enable",
        json={"secret": replacement, "token": totp.current_code(replacement)},
        headers=_bearer(test_user, workspace),
    )

    assert response.status_code == 200
    assert store.get(test_user.id, workspace.id).secret == replacement
    assert len(db.execute(select(UserMFA)).scalars().all()) == 1


@pytest.mark.asyncio
async def test_setup_legs_cannot_replace_enabled_factor(
    async_client: AsyncClient, db: Session, test_user, workspace, store, totp
) -> None:
    """Knowing the password does not let anyone swap in their own authenticator."""
    original = enroll_test_mfa(db, test_user, workspace, totp)
    replacement = totp.generate_secret("alice@acme.io").secret

    generated = await async_client.post("/api/auth/mfa/setup/generate", json=_credentials())
    enabled = await async_client.post(
        "/api/auth/mfa/setup/enable",
        json=_credentials(secret=replacement, token=totp.current_code(replacement)),
    )

    for response in (generated, enabled):
        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"
        assert response.json()["message"] == "Invalid email or password"
    assert store.get(test_user.id, workspace.id).secret == original



@pytest.mark.asyncio
@pytest.mark.parametrize("secret", ["", "short!", "not base32 at all"])
async def test_enable_garbled_secret_is_invalid_code(
    async_client: AsyncClient, test_user, workspace, store, secret: str
) -> None:
    response = await async_client.post(
        "/api/auth/mfa/enable",
        json={"secret": secret, "token": "123456"},
        headers=_bearer(test_user, workspace),
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "MFA_INVALID"
    assert store.get(test_user.id, workspace.id) is None


@pytest.mark.asyncio
async def test_setup_enable_garbled_secret_is_invalid_code(async_client: AsyncClient, test_user) -> None:
    response = await async_client.post(
        "/api/auth/mfa/setup/enable",
        json=_credentials(secret="short!", token="123456"),
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "MFA_INVALID"
