"""Client-side login flow: login, MFA challenge and MFA setup screens.

Credentials typed on the login screen are kept in memory only, because both
the challenge and the setup screens must send them again. Losing them mid-flow
(a page reload in a browser, ``reset()`` here) is not a server error: the flow
simply returns to the login screen.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from authgate.core.logging import get_logger

logger = get_logger(__name__)

CODE_LENGTH = 6


class Screen(str, Enum):
    """Screens the flow can be on."""

    LOGIN = "login"
    MFA_CHALLENGE = "mfa_challenge"
    MFA_SETUP = "mfa_setup"
    AUTHENTICATED = "authenticated"


class AuthFlowError(Exception):
    """The server refused a step (bad credentials, bad code...)."""

    def __init__(self, message: str, status_code: int | None = None, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code


class FlowExpiredError(AuthFlowError):
    """Credentials for the current step are gone; start again from login."""


def raise_for_error(response: httpx.Response) -> httpx.Response:
    """Turn an error response into ``AuthFlowError`` carrying the server message."""
    if response.is_error:
        try:
            body = response.json()
        except ValueError:
            body = {}
        message = body.get("message") or response.reason_phrase or "Request failed"
        raise AuthFlowError(message, status_code=response.status_code, error_code=body.get("error_code"))
    return response


def check_code_length(code: str) -> None:
    if len(code) != CODE_LENGTH:
        raise AuthFlowError("Please enter a 6-digit code")


@dataclass
class SetupChallenge:
    """What the setup screen shows: the secret, its URI and a QR image."""

    secret: str
    otpauth_url: str
    qr_code_data_url: str | None = None


@dataclass
class _Credentials:
    email: str
    password: str


class AuthFlow:
    """Drives the auth API the way the browser screens do."""

    def __init__(self, http: httpx.Client, api_prefix: str = "/api", workspace_id: str | None = None):
        self.http = http
        self.api_prefix = api_prefix.rstrip("/")
        self.workspace_id = workspace_id
        self.screen = Screen.LOGIN
        self.is_mfa_enforced = False
        self._credentials: _Credentials | None = None
        self._setup: SetupChallenge | None = None

    def _url(self, path: str) -> str:
        return f"{self.api_prefix}/auth{path}"

    def _post(self, path: str, payload: dict[str, Any] | None = None) -> httpx.Response:
        headers = {"X-Workspace-Id": self.workspace_id} if self.workspace_id else None
        return raise_for_error(self.http.post(self._url(path), json=payload, headers=headers))

    def _require_credentials(self) -> _Credentials:
        if self._credentials is None:
            self.screen = Screen.LOGIN
            raise FlowExpiredError("Session expired. Please log in again.")
        return self._credentials

    @property
    def setup(self) -> SetupChallenge | None:
        return self._setup

    def reset(self) -> None:
        """Forget everything held in memory (what a page reload does)."""
        self._credentials = None
        self._setup = None

    def login(self, email: str, password: str) -> Screen:
        """Submit the login form and move to the screen the server asks for."""
        response = self._post("/login", {"email": email, "password": password})
        body = response.json() if response.content else None

        if not body:
            self._credentials = None
            self.screen = Screen.AUTHENTICATED
            return self.screen

        self._credentials = _Credentials(email=email, password=password)
        self.is_mfa_enforced = bool(body.get("isMfaEnforced"))
        if body.get("userHasMfa"):
            self.screen = Screen.MFA_CHALLENGE
        elif body.get("requiresMfaSetup"):
            self.screen = Screen.MFA_SETUP
        else:
            self.screen = Screen.LOGIN
        return self.screen

    def submit_challenge(self, code: str) -> str:
        """Send the TOTP code from the challenge screen. Returns the session token."""
        check_code_length(code)
        credentials = self._require_credentials()

        response = self._post(
            "/mfa/verify",
            {"email": credentials.email, "password": credentials.password, "token": code},
        )
        self.reset()
        self.screen = Screen.AUTHENTICATED
        return response.json()["authToken"]

    def start_setup(self) -> SetupChallenge:
        """Fetch a new secret for the setup screen."""
        credentials = self._require_credentials()

        body = self._post(
            "/mfa/setup/generate",
            {"email": credentials.email, "password": credentials.password},
        ).json()
        self._setup = SetupChallenge(
            secret=body["secret"],
            otpauth_url=body["otpauthUrl"],
            qr_code_data_url=body.get("qrCodeDataUrl"),
        )
        self.screen = Screen.MFA_SETUP
        return self._setup

    def complete_setup(self, code: str) -> Screen:
        """Enable the factor with a code and go back to the login screen."""
        check_code_length(code)
        credentials = self._require_credentials()
        if self._setup is None:
            raise AuthFlowError("Generate a secret before verifying a code")

        self._post(
            "/mfa/setup/enable",
            {
                "email": credentials.email,
                "password": credentials.password,
                "secret": self._setup.secret,
                "token": code,
            },
        )
        logger.info("Second factor enrolled; login required")

        # Enabling does not sign in; the next login goes through the challenge
        self.reset()
        self.screen = Screen.LOGIN
        return self.screen
