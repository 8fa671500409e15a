"""MFA gate: decides whether a login proceeds, is challenged, or must enroll.

The gate owns no storage and issues no sessions. It reads and writes second
factors only through a ``CredentialStore`` and reports every decision as a
``GateResult``; the HTTP layer turns ``AUTHENTICATED`` results into exactly one
session and every other state into a response without one.

Login::

    unknown user ------------------------------> REJECTED
    enabled second factor ---------------------> CHALLENGE_REQUIRED
    workspace enforces MFA, none enrolled -----> SETUP_REQUIRED
    otherwise (NO_MFA) -- password ok ---------> AUTHENTICATED
                      `-- password wrong ------> REJECTED

Challenge completion re-checks the password before the code, so knowing an
email alone never reaches the TOTP check. Enrollment is two-phase: generating
a secret persists nothing, and the secret is only stored once a code produced
from it has been verified. Enrollment without a session is only open to users
with no enabled factor; replacing one requires a signed-in session.
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from authgate.core.logging import get_logger
from authgate.core.totp import EnrollmentSecret, TOTPEngine, TOTPSecretError
from authgate.models.mfa import MFAMethod
from authgate.models.user import User
from authgate.models.workspace import Workspace
from authgate.repositories.mfa_store import CredentialStore
from authgate.repositories.users import UserRepo
from authgate.services.credentials import CredentialVerifier

logger = get_logger(__name__)


class GateState(str, Enum):
    """States a login attempt can reach."""

    NO_MFA = "NO_MFA"
    CHALLENGE_REQUIRED = "CHALLENGE_REQUIRED"
    SETUP_REQUIRED = "SETUP_REQUIRED"
    AUTHENTICATED = "AUTHENTICATED"
    REJECTED = "REJECTED"


class RejectReason(str, Enum):
    """Why an attempt ended in REJECTED."""

    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    MFA_NOT_ENABLED = "MFA_NOT_ENABLED"
    INVALID_CODE = "INVALID_CODE"
    MFA_ALREADY_ENABLED = "MFA_ALREADY_ENABLED"


@dataclass(frozen=True)
class GateResult:
    """Outcome of one gate operation."""

    state: GateState
    user: User | None = None
    user_has_mfa: bool = False
    requires_mfa_setup: bool = False
    is_mfa_enforced: bool = False
    reason: RejectReason | None = None
    enrollment: EnrollmentSecret | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.state is GateState.AUTHENTICATED

    @property
    def is_rejected(self) -> bool:
        return self.state is GateState.REJECTED


@dataclass(frozen=True)
class MFAStatus:
    """Second-factor summary attached to the user aggregate."""

    is_enabled: bool
    method: str


def _rejected(reason: RejectReason, user: User | None = None) -> GateResult:
    return GateResult(state=GateState.REJECTED, user=user, reason=reason)


class MFAGate:
    """Composes the credential store, TOTP engine and credential verifier."""

    def __init__(
        self,
        store: CredentialStore,
        totp: TOTPEngine,
        verifier: CredentialVerifier,
        users: UserRepo,
    ):
        self.store = store
        self.totp = totp
        self.verifier = verifier
        self.users = users

    def _has_enabled_factor(self, user: User, workspace_id: UUID) -> bool:
        record = self.store.get(user.id, workspace_id)
        return bool(record and record.is_enabled)

    # Login

    def check_login(self, email: str, password: str, workspace: Workspace) -> GateResult:
        """First leg of login."""
        is_enforced = bool(workspace.enforce_mfa)

        user = self.users.find_by_email(email, workspace.id)
        if user is None or not user.is_active:
            # Same outcome (and hashing cost) as a wrong password
            self.verifier.validate_primary(email, password, workspace.id)
            return _rejected(RejectReason.INVALID_CREDENTIALS)

        if self._has_enabled_factor(user, workspace.id):
            # Password is checked on the challenge leg, together with the code
            return GateResult(
                state=GateState.CHALLENGE_REQUIRED,
                user=user,
                user_has_mfa=True,
                requires_mfa_setup=False,
                is_mfa_enforced=is_enforced,
            )

        if is_enforced:
            return GateResult(
                state=GateState.SETUP_REQUIRED,
                user=user,
                user_has_mfa=False,
                requires_mfa_setup=True,
                is_mfa_enforced=True,
            )

        # NO_MFA: plain password login
        verified = self.verifier.validate_primary(email, password, workspace.id)
        if verified is None:
            return _rejected(RejectReason.INVALID_CREDENTIALS)
        return GateResult(state=GateState.AUTHENTICATED, user=verified, is_mfa_enforced=is_enforced)

    def verify_login(self, email: str, password: str, token: str, workspace: Workspace) -> GateResult:
        """Second leg of login: credentials again plus a TOTP code."""
        user = self.verifier.validate_primary(email, password, workspace.id)
        if user is None:
            return _rejected(RejectReason.INVALID_CREDENTIALS)

        record = self.store.get(user.id, workspace.id)
        if record is None or not record.is_enabled:
            return _rejected(RejectReason.MFA_NOT_ENABLED, user)

        if not self.totp.validate_code(record.secret, token):
            return _rejected(RejectReason.INVALID_CODE, user)

        return GateResult(
            state=GateState.AUTHENTICATED,
            user=user,
            user_has_mfa=True,
            is_mfa_enforced=bool(workspace.enforce_mfa),
        )

    # Enrollment

    def generate(self, user: User) -> EnrollmentSecret:
        """New secret + enrollment URI for a user. Nothing is stored."""
        return self.totp.generate_secret(user.email)

    def generate_for_credentials(self, email: str, password: str, workspace: Workspace) -> GateResult:
        """Pre-session enrollment, step one."""
        user = self.verifier.validate_primary(email, password, workspace.id)
        if user is None:
            return _rejected(RejectReason.INVALID_CREDENTIALS)

        # Replacing an enrolled factor needs a session, never just the password
        if self._has_enabled_factor(user, workspace.id):
            return _rejected(RejectReason.MFA_ALREADY_ENABLED, user)

        return GateResult(
            state=GateState.SETUP_REQUIRED,
            user=user,
            requires_mfa_setup=True,
            is_mfa_enforced=bool(workspace.enforce_mfa),
            enrollment=self.generate(user),
        )

    def enable(self, user: User, workspace_id: UUID, secret: str, token: str) -> bool:
        """Store ``secret`` as the user's factor if ``token`` was produced from it."""
        try:
            valid = self.totp.validate_code(secret, token)
        except TOTPSecretError:
            # Client-submitted secret; a garbled one is just a failed proof
            valid = False

        if not valid:
            return False

        self.store.upsert(user.id, workspace_id, secret, enabled=True, method=MFAMethod.TOTP.value)
        logger.info(
            "Second factor enabled",
            extra={"user_id": str(user.id), "workspace_id": str(workspace_id)},
        )
        return True

    def enable_for_credentials(
        self, email: str, password: str, secret: str, token: str, workspace: Workspace
    ) -> GateResult:
        """Pre-session enrollment, step two."""
        user = self.verifier.validate_primary(email, password, workspace.id)
        if user is None:
            return _rejected(RejectReason.INVALID_CREDENTIALS)

        if self._has_enabled_factor(user, workspace.id):
            return _rejected(RejectReason.MFA_ALREADY_ENABLED, user)

        if not self.enable(user, workspace.id, secret, token):
            return _rejected(RejectReason.INVALID_CODE, user)

        # Enrolled, but the login itself still has to pass the challenge
        return GateResult(
            state=GateState.CHALLENGE_REQUIRED,
            user=user,
            user_has_mfa=True,
            is_mfa_enforced=bool(workspace.enforce_mfa),
        )

    def disable(self, user: User, workspace_id: UUID) -> bool:
        """Remove the user's factor. Succeeds whether or not one exists."""
        self.store.delete(user.id, workspace_id)
        logger.info(
            "Second factor disabled",
            extra={"user_id": str(user.id), "workspace_id": str(workspace_id)},
        )
        return True

    def mfa_status(self, user: User, workspace_id: UUID) -> MFAStatus | None:
        record = self.store.get(user.id, workspace_id)
        if record is None:
            return None
        return MFAStatus(is_enabled=record.is_enabled, method=record.method)
