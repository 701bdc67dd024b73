# taskify/routes/auth.py
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from taskify.auth import (
    SESSION_USER_KEY, get_current_user, get_google, get_hasher, get_notifier, get_settings, get_tokens,
    profile_from_userinfo,
)
from taskify.config import Settings
from taskify.database import get_session
from taskify.models import Role, User
from taskify.schemas import (
    ChangePasswordRequest, ForgotPasswordRequest, LoginRequest, RegisterRequest, ResetPasswordRequest, UserRead,
)
from taskify.security import ACCESS_TOKEN_TTL, GUEST_TOKEN_TTL, PasswordHasher, TokenIssuer
from taskify.services import user_service
from taskify.services.email_service import Notifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _issue(tokens: TokenIssuer, user: User) -> str:
    return tokens.issue(user.id, GUEST_TOKEN_TTL if user.role == Role.guest else ACCESS_TOKEN_TTL)


@router.post("/register", status_code=201)
async def register(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_session),
    hasher: PasswordHasher = Depends(get_hasher),
    notifier: Notifier = Depends(get_notifier),
):
    await user_service.register_user(session, payload, hasher=hasher, notifier=notifier)
    return {"success": True, "message": "Registration successful! Please check your email to verify your account."}


@router.get("/verify/{token}")
async def verify_email(
    token: str, session: AsyncSession = Depends(get_session), settings: Settings = Depends(get_settings)
):
    await user_service.verify_email(session, token)
    return RedirectResponse(url=f"{settings.client_url}/login?verified=true", status_code=302)


@router.post("/login")
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_session),
    hasher: PasswordHasher = Depends(get_hasher),
    tokens: TokenIssuer = Depends(get_tokens),
):
    user = await user_service.authenticate(session, payload.email, payload.password, hasher=hasher)
    return {"success": True, "token": _issue(tokens, user), "user": UserRead.from_user(user)}


@router.post("/forgot-password")
async def forgot_password(
    payload: ForgotPasswordRequest,
    session: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
):
    await user_service.request_password_reset(session, payload.email, notifier=notifier)
    return {"success": True, "message": "Password reset email sent"}


@router.post("/reset-password/{token}")
async def reset_password(
    token: str,
    payload: ResetPasswordRequest,
    session: AsyncSession = Depends(get_session),
    hasher: PasswordHasher = Depends(get_hasher),
    tokens: TokenIssuer = Depends(get_tokens),
):
    user = await user_service.reset_password(session, token, payload.password, hasher=hasher)
    return {"success": True, "message": "Password reset successful", "token": _issue(tokens, user)}


@router.post("/guest")
async def guest_login(
    session: AsyncSession = Depends(get_session),
    hasher: PasswordHasher = Depends(get_hasher),
    tokens: TokenIssuer = Depends(get_tokens),
):
    user = await user_service.create_guest(session, hasher=hasher)
    return {"success": True, "token": _issue(tokens, user), "user": UserRead.from_user(user)}


@router.post("/logout")
async def logout(request: Request):
    # Bearer tokens are stateless; the client drops its copy.
    request.session.clear()
    return {"success": True, "message": "Logged out successfully"}


@router.post("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    hasher: PasswordHasher = Depends(get_hasher),
):
    await user_service.change_password(
        session, current_user, payload.currentPassword, payload.newPassword, hasher=hasher
    )
    return {"success": True, "message": "Password updated successfully"}


@router.get("/google")
async def google_login(request: Request, google=Depends(get_google), settings: Settings = Depends(get_settings)):
    redirect_uri = settings.google_callback_url or str(request.url_for("google_callback"))
    return await google.authorize_redirect(request, redirect_uri)


@router.get("/google/callback", name="google_callback")
async def google_callback(
    request: Request,
    google=Depends(get_google),
    session: AsyncSession = Depends(get_session),
    tokens: TokenIssuer = Depends(get_tokens),
    settings: Settings = Depends(get_settings),
):
    try:
        token = await google.authorize_access_token(request)
        user_info = token.get("userinfo") or await google.userinfo(token=token)
        user = await user_service.link_external_identity(session, profile_from_userinfo(dict(user_info)))
    except Exception:
        logger.exception("Google sign-in failed")
        return RedirectResponse(url=f"{settings.client_url}/login/error", status_code=302)

    request.session[SESSION_USER_KEY] = user.id
    return RedirectResponse(url=f"{settings.client_url}/dashboard?token={_issue(tokens, user)}", status_code=302)
