"""Current-user endpoint."""

from fastapi import APIRouter, Depends, status

from authgate.core.dependencies import AuthContext, get_auth_context, get_mfa_gate
from authgate.schemas.user import MeResponse, UserMFAResponse, UserResponse, WorkspaceResponse
from authgate.services.mfa_gate import MFAGate

router = APIRouter(tags=["Users"])


@router.get(
    "/me",
    response_model=MeResponse,
    status_code=status.HTTP_200_OK,
    summary="Current user",
    description="The signed-in user, their workspace and their second-factor status.",
)
async def get_me(
    ctx: AuthContext = Depends(get_auth_context),
    gate: MFAGate = Depends(get_mfa_gate),
) -> MeResponse:
    """Return the current user with an explicitly loaded MFA summary."""
    status_ = gate.mfa_status(ctx.user, ctx.workspace.id)
    mfa = UserMFAResponse(is_enabled=status_.is_enabled, method=status_.method) if status_ else None

    return MeResponse(
        user=UserResponse(
            id=ctx.user.id,
            workspace_id=ctx.user.workspace_id,
            name=ctx.user.name,
            email=ctx.user.email,
            last_login_at=ctx.user.last_login_at,
            created_at=ctx.user.created_at,
            mfa=mfa,
        ),
        workspace=WorkspaceResponse(
            id=ctx.workspace.id,
            name=ctx.workspace.name,
            enforce_mfa=ctx.workspace.enforce_mfa,
        ),
    )
