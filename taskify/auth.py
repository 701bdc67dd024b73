# taskify/auth.py
from typing import Optional

from authlib.integrations.starlette_client import OAuth
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from taskify.config import Settings
from taskify.database import get_session
from taskify.errors import Internal, Unauthenticated
from taskify.models import User
from taskify.schemas import ExternalProfile
from taskify.security import PasswordHasher, TokenIssuer
from taskify.services.email_service import Notifier

SESSION_USER_KEY = "user_id"
GOOGLE_METADATA_URL = "https://accounts.google.com/.well-known/openid-configuration"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def build_oauth(settings: Settings) -> Optional[OAuth]:
    if not settings.google_enabled:
        return None
    oauth = OAuth()
    oauth.register(
        name="google", client_id=settings.google_client_id, client_secret=settings.google_client_secret,
        server_metadata_url=GOOGLE_METADATA_URL,
        client_kwargs={"scope": "openid email profile"},
    )
    return oauth


def profile_from_userinfo(user_info: dict) -> ExternalProfile:
    google_id, email = user_info.get("sub"), user_info.get("email")
    if not google_id or not email:
        raise Unauthenticated("Invalid user info from Google")
    return ExternalProfile(
        externalId=str(google_id), name=user_info.get("name") or "", email=email,
        avatarUrl=user_info.get("picture"),
    )


# --- Collaborators, built once per app in create_app ---
def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_tokens(request: Request) -> TokenIssuer:
    return request.app.state.tokens


def get_hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_google(request: Request):
    oauth: Optional[OAuth] = request.app.state.oauth
    if oauth is None:
        raise Internal("Google sign-in is not configured")
    return oauth.google


async def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
    tokens: TokenIssuer = Depends(get_tokens),
) -> User:
    """Bearer token first, then the session cookie set by the Google callback."""
    if token:
        user_id = tokens.verify(token)
    else:
        user_id = request.session.get(SESSION_USER_KEY)
    if not user_id:
        raise Unauthenticated()

    user = await session.get(User, user_id)
    if user is None:
        raise Unauthenticated("Not authorized, user not found")
    return user
