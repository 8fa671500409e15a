"""Client for the signed-in account MFA section: status, enable and disable."""

from typing import Any

import httpx

from authgate.client.flow import AuthFlowError, SetupChallenge, check_code_length, raise_for_error
from authgate.core.logging import get_logger

logger = get_logger(__name__)


class AccountMFA:
    """Drives the session-authenticated MFA endpoints like the account page does.

    The session travels in the ``authToken`` cookie held by ``http``, or as a
    Bearer header when ``auth_token`` is given.
    """

    def __init__(
        self,
        http: httpx.Client,
        api_prefix: str = "/api",
        workspace_id: str | None = None,
        auth_token: str | None = None,
    ):
        self.http = http
        self.api_prefix = api_prefix.rstrip("/")
        self.workspace_id = workspace_id
        self.auth_token = auth_token
        self.is_enabled = False
        self._setup: SetupChallenge | None = None

    def _headers(self) -> dict[str, str]:
        headers = {}
        if self.workspace_id:
            headers["X-Workspace-Id"] = self.workspace_id
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> httpx.Response:
        response = self.http.request(
            method, f"{self.api_prefix}{path}", json=payload, headers=self._headers()
        )
        return raise_for_error(response)

    @property
    def setup(self) -> SetupChallenge | None:
        return self._setup

    def status(self) -> bool:
        """Refresh ``is_enabled`` from the current user's ``mfa`` field."""
        user = self._request("GET", "/users/me").json()["user"]
        mfa = user.get("mfa")
        self.is_enabled = bool(mfa and mfa.get("isEnabled"))
        return self.is_enabled

    def start_enable(self) -> SetupChallenge:
        """Fetch a fresh secret to scan; nothing is stored server-side yet."""
        body = self._request("POST", "/auth/mfa/generate").json()
        self._setup = SetupChallenge(
            secret=body["secret"],
            otpauth_url=body["otpauthUrl"],
            qr_code_data_url=body.get("qrCodeDataUrl"),
        )
        return self._setup

    def enable(self, code: str) -> bool:
        """Confirm the scanned secret with a code from the authenticator."""
        check_code_length(code)
        if self._setup is None:
            raise AuthFlowError("Generate a secret before verifying a code")

        self._request(
            "POST",
            "/auth/mfa/enable",
            {"secret": self._setup.secret, "token": code},
        )
        self._setup = None
        self.is_enabled = True
        logger.info("Second factor enabled from account settings")
        return True

    def disable(self) -> bool:
        self._request("POST", "/auth/mfa/disable")
        self._setup = None
        self.is_enabled = False
        return True
