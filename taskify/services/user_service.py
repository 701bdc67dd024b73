# taskify/services/user_service.py
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from taskify.errors import Conflict, Forbidden, Internal, InvalidIdentifier, NotFound, Unauthenticated, ValidationFailed
from taskify.models import Role, User, is_valid_id
from taskify.schemas import ExternalProfile, ProfileUpdate, RegisterRequest
from taskify.security import PasswordHasher, hash_token, random_token
from taskify.services.email_service import Notifier
from taskify.services.task_filters import contains_ci

logger = logging.getLogger(__name__)

RESET_TOKEN_TTL = timedelta(minutes=30)
GUEST_EMAIL_DOMAIN = "taskify.com"


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def find_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def _find_one(session: AsyncSession, *conditions) -> Optional[User]:
    result = await session.execute(select(User).where(*conditions))
    return result.scalars().first()


async def _commit_unique_email(session: AsyncSession, message: str) -> None:
    # The lookup before a write can race another request for the same email.
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise Conflict(message)


async def register_user(
    session: AsyncSession, payload: RegisterRequest, *, hasher: PasswordHasher, notifier: Notifier
) -> User:
    email = normalize_email(payload.email)
    if await find_user_by_email(session, email):
        raise Conflict("User with this email already exists")

    user = User(
        name=payload.name.strip(),
        email=email,
        hashed_password=hasher.hash(payload.password),
        verificationToken=random_token(),
        isVerified=False,
    )
    session.add(user)
    await _commit_unique_email(session, "User with this email already exists")
    logger.info("Registered user %s", user.id)

    # Registration stands even when the email cannot be delivered.
    try:
        await notifier.send_verification(user.email, user.verificationToken)
    except Exception as e:
        logger.warning("Error sending verification email to %s: %s", user.email, e)
    return user


async def verify_email(session: AsyncSession, token: str) -> User:
    user = await _find_one(session, User.verificationToken == token) if token else None
    if user is None:
        raise ValidationFailed("Invalid or expired verification token")
    user.isVerified = True
    user.verificationToken = None
    session.add(user)
    await session.commit()
    return user


async def authenticate(session: AsyncSession, email: str, password: str, *, hasher: PasswordHasher) -> User:
    user = await find_user_by_email(session, email)
    if user is None or not hasher.verify(password, user.hashed_password):
        raise Unauthenticated("Invalid credentials")
    user.lastLogin = datetime.now()
    session.add(user)
    await session.commit()
    return user


async def request_password_reset(
    session: AsyncSession, email: str, *, notifier: Notifier, now: Optional[datetime] = None
) -> None:
    user = await find_user_by_email(session, email)
    if user is None:
        raise NotFound("User with this email does not exist")

    raw_token = random_token()
    user.resetPasswordToken = hash_token(raw_token)
    user.resetPasswordExpires = (now or datetime.now()) + RESET_TOKEN_TTL
    session.add(user)
    await session.commit()

    # The email is the whole point here: undo the token and report failure.
    try:
        await notifier.send_password_reset(user.email, raw_token)
    except Exception as e:
        logger.warning("Error sending password reset email to %s: %s", user.email, e)
        user.resetPasswordToken = None
        user.resetPasswordExpires = None
        session.add(user)
        await session.commit()
        raise Internal("Failed to send password reset email. Please try again later.")


async def reset_password(
    session: AsyncSession, token: str, password: str, *, hasher: PasswordHasher, now: Optional[datetime] = None
) -> User:
    user = await _find_one(
        session,
        User.resetPasswordToken == hash_token(token),
        col(User.resetPasswordExpires) > (now or datetime.now()),
    )
    if user is None:
        raise ValidationFailed("Invalid or expired reset token")
    user.hashed_password = hasher.hash(password)
    user.resetPasswordToken = None
    user.resetPasswordExpires = None
    session.add(user)
    await session.commit()
    return user


async def create_guest(session: AsyncSession, *, hasher: PasswordHasher) -> User:
    user = User(
        name="Guest User",
        email=f"guest_{random_token(8)}@{GUEST_EMAIL_DOMAIN}",
        hashed_password=hasher.hash(random_token(12)),
        isVerified=True,
        role=Role.guest,
    )
    session.add(user)
    await session.commit()
    return user


async def change_password(
    session: AsyncSession, user: User, current: str, new: str, *, hasher: PasswordHasher
) -> None:
    if not hasher.verify(current, user.hashed_password):
        raise ValidationFailed("Current password is incorrect")
    user.hashed_password = hasher.hash(new)
    session.add(user)
    await session.commit()


async def update_profile(session: AsyncSession, user: User, changes: ProfileUpdate) -> User:
    if changes.email:
        email = normalize_email(changes.email)
        if email != user.email:
            if await find_user_by_email(session, email):
                raise Conflict("Email already in use")
            user.email = email
    if changes.name and changes.name.strip():
        user.name = changes.name.strip()
    if changes.profilePicture is not None:
        user.profilePicture = changes.profilePicture
    session.add(user)
    await _commit_unique_email(session, "Email already in use")
    return user


async def get_user(session: AsyncSession, user_id: str, actor: User) -> User:
    if not is_valid_id(user_id):
        raise InvalidIdentifier("Invalid user ID format")
    user_id = user_id.lower()
    if actor.role != Role.admin and actor.id != user_id:
        raise Forbidden("Not authorized to view this user")
    user = await session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


async def search_users(session: AsyncSession, actor: User, query: str) -> List[User]:
    if actor.role != Role.admin:
        raise Forbidden("Not authorized to search users")
    statement = select(User).where(
        or_(contains_ci(User.name, query), contains_ci(User.email, query))
    ).order_by(col(User.createdAt))
    result = await session.execute(statement)
    return list(result.scalars().all())


async def link_external_identity(session: AsyncSession, profile: ExternalProfile) -> User:
    """
    Match by external id, then by email (backfilling the external id and the
    avatar, keeping the existing password), else create a verified user.
    """
    user = await _find_one(session, User.googleId == profile.externalId)
    if user is not None:
        return user

    user = await find_user_by_email(session, profile.email)
    if user is not None:
        user.googleId = profile.externalId
        if not user.profilePicture and profile.avatarUrl:
            user.profilePicture = profile.avatarUrl
        logger.info("Linked Google account to existing user %s", user.id)
    else:
        user = User(
            name=profile.name or profile.email.split("@")[0],
            email=normalize_email(profile.email),
            googleId=profile.externalId,
            profilePicture=profile.avatarUrl or "",
            isVerified=True,
        )
        logger.info("Created user from Google sign-in")
    session.add(user)
    await _commit_unique_email(session, "User with this email already exists")
    return user
