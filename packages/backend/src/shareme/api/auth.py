"""Auth API — signup, login, current user, password reset.

Learn: Routes for account access:
- POST /auth/signup → create a new account
- POST /auth/login  → email/password → bearer token
- GET  /auth/me     → current user info (needs a token)
- POST /auth/forgot → issue a reset token (always 204)
- POST /auth/reset  → consume a reset token (204, or 401 if invalid/expired)

This router is mounted WITHOUT the router-level auth gate (see
api/__init__.py); /me declares the gate itself.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from shareme.api.deps import get_reset_manager, get_reset_notifier
from shareme.auth.dependencies import get_current_identity, get_token_engine
from shareme.auth.jwt import Identity, TokenEngine
from shareme.db.engine import get_db
from shareme.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
)
from shareme.schemas.common import ErrorBody, UserInfo
from shareme.services.notifier import ResetNotifier, deliver
from shareme.services.password_reset import PasswordResetManager
from shareme.services.user_service import UserService

router = APIRouter(prefix="/auth")

_errors = {
    400: {"model": ErrorBody},
    401: {"model": ErrorBody},
}


def _user_svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


# ─── Signup / login ──────────────────────────────────────


@router.post(
    "/signup",
    response_model=UserInfo,
    status_code=201,
    responses={400: {"model": ErrorBody}, 409: {"model": ErrorBody}},
)
async def signup(body: SignupRequest, svc: UserService = Depends(_user_svc)):
    """Create a new user account."""
    return await svc.signup(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
    )


@router.post("/login", response_model=AuthResponse, responses=_errors)
async def login(
    body: LoginRequest,
    svc: UserService = Depends(_user_svc),
    engine: TokenEngine = Depends(get_token_engine),
):
    """Login with email and password → bearer token."""
    user = await svc.authenticate(body.email, body.password)
    token = engine.issue(user.email, str(user.id))
    identity = engine.verify(token)
    return AuthResponse(
        token=token,
        expires_at=identity.expires_at,
        user=UserInfo.model_validate(user),
    )


@router.get("/me", response_model=UserInfo, responses=_errors)
async def get_me(
    identity: Identity = Depends(get_current_identity),
    svc: UserService = Depends(_user_svc),
):
    """Get the current authenticated user's info."""
    return await svc.get(identity.user_id)


# ─── Password reset ─────────────────────────────────────


@router.post("/forgot", status_code=204, responses={400: {"model": ErrorBody}})
async def forgot_password(
    body: ForgotPasswordRequest,
    background: BackgroundTasks,
    manager: PasswordResetManager = Depends(get_reset_manager),
    notifier: ResetNotifier = Depends(get_reset_notifier),
):
    """Request a reset token. Same 204 whether or not the account exists.

    Learn: Delivery runs as a background task after the response, so its
    latency and failures are invisible to the caller.
    """
    ticket = await manager.request_reset(body.email)
    if ticket is not None:
        background.add_task(deliver, notifier, ticket)
    return Response(status_code=204)


@router.post("/reset", status_code=204, responses=_errors)
async def reset_password(
    body: ResetPasswordRequest,
    manager: PasswordResetManager = Depends(get_reset_manager),
):
    """Set a new password using a reset token (single use)."""
    await manager.consume_reset(body.token, body.new_password)
    return Response(status_code=204)
