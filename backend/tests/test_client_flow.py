"""Tests for the client-side auth flow against the app."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from authgate.client import AccountMFA, AuthFlow, AuthFlowError, FlowExpiredError, Screen
from tests.conftest import TEST_PASSWORD
from tests.helpers.seed import create_test_user, enroll_test_mfa, wrong_code


def test_password_only_login_authenticates(client: TestClient, test_user) -> None:
    flow = AuthFlow(client)

    assert flow.login("alice@acme.io", TEST_PASSWORD) is Screen.AUTHENTICATED
    assert "authToken" in client.cookies


def test_bad_credentials_raise(client: TestClient, test_user) -> None:
    flow = AuthFlow(client)

    with pytest.raises(AuthFlowError) as exc_info:
        flow.login("alice@acme.io", "WrongPass1!")

    assert exc_info.value.status_code == 401
    assert exc_info.value.error_code == "UNAUTHORIZED"
    assert exc_info.value.message == "Invalid email or password"
    assert flow.screen is Screen.LOGIN


def test_challenge_flow(client: TestClient, db: Session, test_user, workspace, totp) -> None:
    secret = enroll_test_mfa(db, test_user, workspace, totp)
    flow = AuthFlow(client)

    assert flow.login("alice@acme.io", TEST_PASSWORD) is Screen.MFA_CHALLENGE

    with pytest.raises(AuthFlowError) as exc_info:
        flow.submit_challenge(wrong_code(secret, totp))
    assert exc_info.value.error_code == "MFA_INVALID"
    # Still on the challenge screen with credentials kept for a retry
    assert flow.screen is Screen.MFA_CHALLENGE

    auth_token = flow.submit_challenge(totp.current_code(secret))
    assert auth_token
    assert flow.screen is Screen.AUTHENTICATED


def test_short_code_rejected_locally(client: TestClient, db: Session, test_user, workspace, totp) -> None:
    enroll_test_mfa(db, test_user, workspace, totp)
    flow = AuthFlow(client)
    flow.login("alice@acme.io", TEST_PASSWORD)

    with pytest.raises(AuthFlowError, match="6-digit"):
        flow.submit_challenge("123")


def test_lost_credentials_return_to_login(client: TestClient, db: Session, test_user, workspace, totp) -> None:
    """A reload mid-challenge sends the user back to the login screen."""
    secret = enroll_test_mfa(db, test_user, workspace, totp)
    flow = AuthFlow(client)
    flow.login("alice@acme.io", TEST_PASSWORD)
    flow.reset()

    with pytest.raises(FlowExpiredError):
        flow.submit_challenge(totp.current_code(secret))
    assert flow.screen is Screen.LOGIN


def test_setup_required_flow(client: TestClient, db: Session, enforcing_workspace, totp) -> None:
    create_test_user(db, enforcing_workspace, email="carol@acme.io", password=TEST_PASSWORD)
    flow = AuthFlow(client, workspace_id=str(enforcing_workspace.id))

    assert flow.login("carol@acme.io", TEST_PASSWORD) is Screen.MFA_SETUP
    assert flow.is_mfa_enforced is True

    challenge = flow.start_setup()
    assert challenge.otpauth_url.startswith("otpauth://totp/")
    assert challenge.qr_code_data_url.startswith("data:image/png;base64,")

    # Enrolling sends the user back to log in again
    assert flow.complete_setup(totp.current_code(challenge.secret)) is Screen.LOGIN
    assert flow.setup is None

    assert flow.login("carol@acme.io", TEST_PASSWORD) is Screen.MFA_CHALLENGE
    assert flow.submit_challenge(totp.current_code(challenge.secret))
    assert flow.screen is Screen.AUTHENTICATED


def test_complete_setup_needs_generated_secret(client: TestClient, db: Session, enforcing_workspace) -> None:
    create_test_user(db, enforcing_workspace, email="carol@acme.io", password=TEST_PASSWORD)
    flow = AuthFlow(client, workspace_id=str(enforcing_workspace.id))
    flow.login("carol@acme.io", TEST_PASSWORD)

    with pytest.raises(AuthFlowError):
        flow.complete_setup("123456")


def _signed_in_account(client: TestClient) -> AccountMFA:
    flow = AuthFlow(client)
    assert flow.login("alice@acme.io", TEST_PASSWORD) is Screen.AUTHENTICATED
    return AccountMFA(client, auth_token=client.cookies["authToken"])


def test_account_enable_then_disable(client: TestClient, test_user, workspace, store, totp) -> None:
    account = _signed_in_account(client)
    assert account.status() is False

    challenge = account.start_enable()
    assert challenge.qr_code_data_url.startswith("data:image/png;base64,")
    assert store.get(test_user.id, workspace.id) is None

    assert account.enable(totp.current_code(challenge.secret)) is True
    assert account.setup is None
    assert account.status() is True
    assert store.get(test_user.id, workspace.id).secret == challenge.secret

    # The next login is challenged
    assert AuthFlow(client).login("alice@acme.io", TEST_PASSWORD) is Screen.MFA_CHALLENGE

    assert account.disable() is True
    assert account.status() is False
    assert store.get(test_user.id, workspace.id) is None


def test_account_enable_wrong_code(client: TestClient, test_user, workspace, store, totp) -> None:
    account = _signed_in_account(client)
    challenge = account.start_enable()

    with pytest.raises(AuthFlowError) as exc_info:
        account.enable(wrong_code(challenge.secret, totp))

    assert exc_info.value.status_code == 400
    assert exc_info.value.error_code == "MFA_INVALID"
    # Same secret can be retried with a fresh code
    assert account.setup is challenge
    assert store.get(test_user.id, workspace.id) is None


def test_account_enable_guards(client: TestClient, test_user) -> None:
    account = _signed_in_account(client)

    with pytest.raises(AuthFlowError, match="Generate a secret"):
        account.enable("123456")

    account.start_enable()
    with pytest.raises(AuthFlowError, match="6-digit"):
        account.enable("12345")


def test_account_requires_session(client: TestClient, test_user) -> None:
    account = AccountMFA(client)

    with pytest.raises(AuthFlowError) as exc_info:
        account.status()

    assert exc_info.value.status_code == 401
