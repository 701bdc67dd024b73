# taskify/schemas.py
from datetime import datetime
from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, EmailStr, Field

from taskify.models import Role, Subtask, Task, User

Priority = Literal["low", "medium", "high"]


def _local_naive(value: Optional[datetime]) -> Optional[datetime]:
    # Due dates are compared against local wall-clock day boundaries.
    if value is not None and value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


LocalDateTime = Annotated[datetime, AfterValidator(_local_naive)]


# --- Auth ---
class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(min_length=6)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str = Field(min_length=6)


class ChangePasswordRequest(BaseModel):
    currentPassword: str
    newPassword: str = Field(min_length=6)


class ExternalProfile(BaseModel):
    """Identity supplied by an external provider (Google)."""
    externalId: str
    name: str
    email: EmailStr
    avatarUrl: Optional[str] = None


# --- Users ---
class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[EmailStr] = None
    profilePicture: Optional[str] = Field(default=None, max_length=512)


class UserRead(BaseModel):
    id: str
    name: str
    email: str
    profilePicture: str
    role: Role
    isVerified: bool
    createdAt: datetime
    lastLogin: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserRead":
        return cls(
            id=user.id, name=user.name, email=user.email, profilePicture=user.profilePicture or "",
            role=user.role, isVerified=user.isVerified, createdAt=user.createdAt, lastLogin=user.lastLogin,
        )


# --- Tasks ---
# Unknown fields (user, completedAt, id, ...) are ignored, never persisted.
class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    dueDate: Optional[LocalDateTime] = None
    priority: Priority = "medium"
    tags: List[str] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    dueDate: Optional[LocalDateTime] = None
    priority: Optional[Priority] = None
    tags: Optional[List[str]] = None
    completed: Optional[bool] = None


class SubtaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)


class SubtaskUpdate(BaseModel):
    completed: bool


class SubtaskRead(BaseModel):
    id: str
    title: str
    completed: bool

    @classmethod
    def from_subtask(cls, subtask: Subtask) -> "SubtaskRead":
        return cls(id=subtask.id, title=subtask.title, completed=subtask.completed)


class TaskRead(BaseModel):
    id: str
    user: str
    title: str
    description: str
    dueDate: Optional[datetime] = None
    priority: str
    tags: List[str]
    completed: bool
    completedAt: Optional[datetime] = None
    subtasks: List[SubtaskRead]
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_task(cls, task: Task) -> "TaskRead":
        return cls(
            id=task.id, user=task.owner_id, title=task.title, description=task.description or "",
            dueDate=task.dueDate, priority=task.priority, tags=task.tags, completed=task.completed,
            completedAt=task.completedAt, subtasks=[SubtaskRead.from_subtask(s) for s in task.subtasks],
            createdAt=task.createdAt, updatedAt=task.updatedAt,
        )


class TaskStats(BaseModel):
    total: int
    completed: int
    dueToday: int
    overdue: int
    important: int
