"""Authentication endpoints: login, logout and the pre-session MFA legs."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from authgate.core.app_exceptions import raise_app_error, raise_invalid_credentials
from authgate.core.dependencies import (
    AuthContext,
    get_auth_context,
    get_current_workspace,
    get_mfa_gate,
)
from authgate.core.security_logging import log_security_event
from authgate.core.session import clear_auth_cookie, issue_session_token, set_auth_cookie
from authgate.core.totp import render_qr_data_url
from authgate.db.session import get_db
from authgate.models.user import User
from authgate.models.workspace import Workspace
from authgate.schemas.auth import (
    AuthTokenResponse,
    LoginMFAResponse,
    LoginRequest,
    MFASetupEnableRequest,
    MFAVerifyRequest,
)
from authgate.schemas.mfa import MFASecretResponse
from authgate.services.mfa_gate import GateResult, GateState, MFAGate, RejectReason

router = APIRouter(tags=["Auth"])


def _start_session(user: User, workspace: Workspace, db: Session, response: Response) -> str:
    """Issue the session for an AUTHENTICATED result and set the cookie."""
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()

    auth_token = issue_session_token(user, workspace.id)
    set_auth_cookie(response, auth_token)
    return auth_token


def _deny_credentials(
    request: Request,
    workspace: Workspace,
    event_type: str,
    result: GateResult | None = None,
) -> None:
    """Log the denial and raise the generic credentials error."""
    reason_code = "UNAUTHORIZED"
    user_id = None
    if result is not None and result.reason is RejectReason.MFA_ALREADY_ENABLED:
        reason_code = result.reason.value
        user_id = str(result.user.id)

    log_security_event(
        request,
        event_type=event_type,
        outcome="deny",
        reason_code=reason_code,
        user_id=user_id,
        workspace_id=str(workspace.id),
    )
    raise_invalid_credentials()


def _mfa_metadata(result: GateResult) -> LoginMFAResponse:
    return LoginMFAResponse(
        user_has_mfa=result.user_has_mfa,
        requires_mfa_setup=result.requires_mfa_setup,
        is_mfa_enforced=result.is_mfa_enforced,
    )


@router.post(
    "/login",
    response_model=LoginMFAResponse,
    status_code=status.HTTP_200_OK,
    summary="Log in",
    description=(
        "Authenticate with email and password. Sets the session cookie with an empty body, "
        "or returns MFA metadata (and no cookie) when a second factor is enrolled or required."
    ),
)
async def login(
    request_data: LoginRequest,
    request: Request,
    workspace: Workspace = Depends(get_current_workspace),
    gate: MFAGate = Depends(get_mfa_gate),
    db: Session = Depends(get_db),
) -> LoginMFAResponse | Response:
    """Log in a user."""
    result = gate.check_login(request_data.email, request_data.password, workspace)

    if result.is_rejected:
        _deny_credentials(request, workspace, "auth_login_failed")

    if result.state is GateState.CHALLENGE_REQUIRED:
        log_security_event(
            request,
            event_type="mfa_challenge_issued",
            outcome="allow",
            user_id=str(result.user.id),
            workspace_id=str(workspace.id),
        )
        return _mfa_metadata(result)

    if result.state is GateState.SETUP_REQUIRED:
        log_security_event(
            request,
            event_type="mfa_setup_required",
            outcome="allow",
            user_id=str(result.user.id),
            workspace_id=str(workspace.id),
        )
        return _mfa_metadata(result)

    response = Response(status_code=status.HTTP_200_OK)
    _start_session(result.user, workspace, db, response)

    log_security_event(
        request,
        event_type="auth_login_success",
        outcome="allow",
        user_id=str(result.user.id),
        workspace_id=str(workspace.id),
    )
    return response


@router.post(
    "/mfa/verify",
    response_model=AuthTokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Complete MFA login",
    description="Re-validate credentials, check the TOTP code and start the session.",
)
async def verify_mfa(
    request_data: MFAVerifyRequest,
    request: Request,
    response: Response,
    workspace: Workspace = Depends(get_current_workspace),
    gate: MFAGate = Depends(get_mfa_gate),
    db: Session = Depends(get_db),
) -> AuthTokenResponse:
    """Complete a challenged login."""
    result = gate.verify_login(
        request_data.email, request_data.password, request_data.token, workspace
    )

    if result.reason is RejectReason.INVALID_CREDENTIALS:
        _deny_credentials(request, workspace, "mfa_failed")

    if result.reason is RejectReason.MFA_NOT_ENABLED:
        log_security_event(
            request,
            event_type="mfa_failed",
            outcome="deny",
            reason_code="MFA_NOT_ENABLED",
            user_id=str(result.user.id),
            workspace_id=str(workspace.id),
        )
        raise_app_error(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="MFA_NOT_ENABLED",
            message="MFA not enabled for this user",
        )

    if result.reason is RejectReason.INVALID_CODE:
        log_security_event(
            request,
            event_type="mfa_failed",
            outcome="deny",
            reason_code="MFA_INVALID",
            user_id=str(result.user.id),
            workspace_id=str(workspace.id),
        )
        raise_app_error(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="MFA_INVALID",
            message="Invalid MFA code",
        )

    auth_token = _start_session(result.user, workspace, db, response)

    log_security_event(
        request,
        event_type="mfa_completed",
        outcome="allow",
        user_id=str(result.user.id),
        workspace_id=str(workspace.id),
    )
    return AuthTokenResponse(auth_token=auth_token)


@router.post(
    "/mfa/setup/generate",
    response_model=MFASecretResponse,
    status_code=status.HTTP_200_OK,
    summary="Generate MFA secret (before login)",
    description=(
        "For users who must enroll before their first session. Nothing is stored. "
        "Users who already have an enabled factor are refused."
    ),
)
async def setup_generate_mfa_secret(
    request_data: LoginRequest,
    request: Request,
    workspace: Workspace = Depends(get_current_workspace),
    gate: MFAGate = Depends(get_mfa_gate),
) -> MFASecretResponse:
    """Generate a secret after checking credentials."""
    result = gate.generate_for_credentials(request_data.email, request_data.password, workspace)
    if result.is_rejected:
        _deny_credentials(request, workspace, "mfa_setup_started", result)

    log_security_event(
        request,
        event_type="mfa_secret_generated",
        outcome="allow",
        user_id=str(result.user.id),
        workspace_id=str(workspace.id),
        pre_session=True,
    )
    return MFASecretResponse(
        secret=result.enrollment.secret,
        otpauth_url=result.enrollment.otpauth_url,
        qr_code_data_url=render_qr_data_url(result.enrollment.otpauth_url),
    )


@router.post(
    "/mfa/setup/enable",
    response_model=bool,
    status_code=status.HTTP_200_OK,
    summary="Enable MFA (before login)",
    description="Store the generated secret once a code from it verifies.",
)
async def setup_enable_mfa(
    request_data: MFASetupEnableRequest,
    request: Request,
    workspace: Workspace = Depends(get_current_workspace),
    gate: MFAGate = Depends(get_mfa_gate),
) -> bool:
    """Enable MFA after checking credentials and the code."""
    result = gate.enable_for_credentials(
        request_data.email,
        request_data.password,
        request_data.secret,
        request_data.token,
        workspace,
    )

    if result.reason in (RejectReason.INVALID_CREDENTIALS, RejectReason.MFA_ALREADY_ENABLED):
        _deny_credentials(request, workspace, "mfa_failed", result)

    if result.reason is RejectReason.INVALID_CODE:
        log_security_event(
            request,
            event_type="mfa_failed",
            outcome="deny",
            reason_code="MFA_INVALID",
            user_id=str(result.user.id),
            workspace_id=str(workspace.id),
        )
        raise_app_error(
            status_code=status.HTTP_400_BAD_REQUEST,
            code="MFA_INVALID",
            message="Invalid MFA code",
        )

    log_security_event(
        request,
        event_type="mfa_enabled",
        outcome="allow",
        user_id=str(result.user.id),
        workspace_id=str(workspace.id),
        pre_session=True,
    )
    return True


@router.post(
    "/logout",
    status_code=status.HTTP_200_OK,
    summary="Log out",
    description="Clear the session cookie.",
)
async def logout(
    request: Request,
    ctx: AuthContext = Depends(get_auth_context),
) -> Response:
    """Log out the current user."""
    response = Response(status_code=status.HTTP_200_OK)
    clear_auth_cookie(response)

    log_security_event(
        request,
        event_type="auth_logout",
        outcome="allow",
        user_id=str(ctx.user.id),
        workspace_id=str(ctx.workspace.id),
    )
    return response
