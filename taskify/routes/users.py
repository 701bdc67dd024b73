# taskify/routes/users.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskify.auth import get_current_user, get_hasher
from taskify.database import get_session
from taskify.models import User
from taskify.schemas import ChangePasswordRequest, ProfileUpdate, UserRead
from taskify.security import PasswordHasher
from taskify.services import user_service

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    return {"success": True, "user": UserRead.from_user(current_user)}


@router.put("/profile")
async def update_profile(
    changes: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    user = await user_service.update_profile(session, current_user, changes)
    return {"success": True, "message": "Profile updated successfully", "user": UserRead.from_user(user)}


@router.put("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    hasher: PasswordHasher = Depends(get_hasher),
):
    await user_service.change_password(
        session, current_user, payload.currentPassword, payload.newPassword, hasher=hasher
    )
    return {"success": True, "message": "Password changed successfully"}


@router.get("/search/{query}")
async def search_users(
    query: str, current_user: User = Depends(get_current_user), session: AsyncSession = Depends(get_session)
):
    users = await user_service.search_users(session, current_user, query)
    return {"success": True, "count": len(users), "users": [UserRead.from_user(u) for u in users]}


@router.get("/{user_id}")
async def get_user(
    user_id: str, current_user: User = Depends(get_current_user), session: AsyncSession = Depends(get_session)
):
    user = await user_service.get_user(session, user_id, current_user)
    return {"success": True, "user": UserRead.from_user(user)}
