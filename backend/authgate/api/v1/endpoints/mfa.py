"""MFA self-service endpoints for signed-in users."""

from fastapi import APIRouter, Depends, Request, status

from authgate.core.app_exceptions import raise_app_error
from authgate.core.dependencies import AuthContext, get_auth_context, get_mfa_gate
from authgate.core.security_logging import log_security_event
from authgate.core.totp import render_qr_data_url
from authgate.schemas.mfa import MFAEnableRequest, MFASecretResponse
from authgate.services.mfa_gate import MFAGate

router = APIRouter(tags=["MFA"])


@router.post(
    "/generate",
    response_model=MFASecretResponse,
    status_code=status.HTTP_200_OK,
    summary="Generate MFA secret",
    description="Generate a TOTP secret and enrollment URI. Nothing is stored until enable.",
)
async def generate_mfa_secret(
    request: Request,
    ctx: AuthContext = Depends(get_auth_context),
    gate: MFAGate = Depends(get_mfa_gate),
) -> MFASecretResponse:
    """Generate a TOTP secret for the current user."""
    enrollment = gate.generate(ctx.user)

    log_security_event(
        request,
        event_type="mfa_secret_generated",
        outcome="allow",
        user_id=str(ctx.user.id),
        workspace_id=str(ctx.workspace.id),
    )

    return MFASecretResponse(
        secret=enrollment.secret,
        otpauth_url=enrollment.otpauth_url,
        qr_code_data_url=render_qr_data_url(enrollment.otpauth_url),
    )


@router.post(
    "/enable",
    response_model=bool,
    status_code=status.HTTP_200_OK,
    summary="Enable MFA",
    description="Verify a code against the submitted secret, then store it.",
)
async def enable_mfa(
    request_data: MFAEnableRequest,
    request: Request,
    ctx: AuthContext = Depends(get_auth_context),
    gate: MFAGate = Depends(get_mfa_gate),
) -> bool:
    """Enable MFA for the current user."""
    if not gate.enable(ctx.user, ctx.workspace.id, request_data.secret, request_data.token):
        log_security_event(
            request,
            event_type="mfa_failed",
            outcome="deny",
            reason_code="MFA_INVALID",
            user_id=str(ctx.user.id),
            workspace_id=str(ctx.workspace.id),
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
        user_id=str(ctx.user.id),
        workspace_id=str(ctx.workspace.id),
    )
    return True


@router.post(
    "/disable",
    response_model=bool,
    status_code=status.HTTP_200_OK,
    summary="Disable MFA",
    description="Delete the second factor. Succeeds when none is enrolled.",
)
async def disable_mfa(
    request: Request,
    ctx: AuthContext = Depends(get_auth_context),
    gate: MFAGate = Depends(get_mfa_gate),
) -> bool:
    """Disable MFA for the current user."""
    gate.disable(ctx.user, ctx.workspace.id)

    log_security_event(
        request,
        event_type="mfa_disabled",
        outcome="allow",
        user_id=str(ctx.user.id),
        workspace_id=str(ctx.workspace.id),
    )
    return True
