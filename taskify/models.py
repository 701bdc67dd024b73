# taskify/models.py
import re
import uuid
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional

from sqlmodel import Field, Relationship, SQLModel

_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{32}$")


def new_id() -> str:
    return uuid.uuid4().hex


def is_valid_id(value: Optional[str]) -> bool:
    return bool(value) and _ID_PATTERN.match(value) is not None


class Role(str, Enum):
    user = "user"
    admin = "admin"
    guest = "guest"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    name: str = Field(max_length=200)
    email: str = Field(unique=True, index=True, max_length=320)
    hashed_password: Optional[str] = Field(default=None, max_length=128)
    googleId: Optional[str] = Field(default=None, index=True, max_length=255)
    profilePicture: str = Field(default="", max_length=512)
    isVerified: bool = Field(default=False)
    verificationToken: Optional[str] = Field(default=None, index=True, max_length=64)
    resetPasswordToken: Optional[str] = Field(default=None, index=True, max_length=64)
    resetPasswordExpires: Optional[datetime] = Field(default=None)
    role: Role = Field(default=Role.user)
    createdAt: datetime = Field(default_factory=datetime.now)
    lastLogin: Optional[datetime] = Field(default=None)


class TaskTag(SQLModel, table=True):
    __tablename__ = "task_tags"

    task_id: str = Field(foreign_key="tasks.id", primary_key=True, max_length=32)
    tag: str = Field(primary_key=True, max_length=100)


class Subtask(SQLModel, table=True):
    __tablename__ = "subtasks"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    task_id: str = Field(foreign_key="tasks.id", index=True, max_length=32)
    title: str = Field(max_length=200)
    completed: bool = Field(default=False)
    position: int = Field(default=0)

    task: Optional["Task"] = Relationship(back_populates="subtasks")


class Task(SQLModel, table=True):
    __tablename__ = "tasks"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    owner_id: str = Field(foreign_key="users.id", index=True, max_length=32)
    title: str = Field(max_length=200)
    description: str = Field(default="", max_length=2000)
    dueDate: Optional[datetime] = Field(default=None, index=True)
    priority: str = Field(default="medium", max_length=20)
    completed: bool = Field(default=False, index=True)
    completedAt: Optional[datetime] = Field(default=None)
    createdAt: datetime = Field(default_factory=datetime.now, index=True)
    updatedAt: datetime = Field(default_factory=datetime.now)

    # Tags and subtasks are embedded in the task: always loaded with it and
    # deleted with it.
    tag_links: List[TaskTag] = Relationship(
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "lazy": "selectin",
            "order_by": "TaskTag.tag",
        }
    )
    subtasks: List[Subtask] = Relationship(
        back_populates="task",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "lazy": "selectin",
            "order_by": "Subtask.position",
        },
    )

    @property
    def tags(self) -> List[str]:
        return [link.tag for link in self.tag_links]

    def set_tags(self, tags: Iterable[str]) -> None:
        # Reuse existing rows: re-inserting a deleted (task_id, tag) key in
        # the same flush collides in the identity map.
        wanted = list(dict.fromkeys(t.strip() for t in tags if t and t.strip()))
        kept = [link for link in self.tag_links if link.tag in wanted]
        present = {link.tag for link in kept}
        self.tag_links = kept + [TaskTag(tag=t) for t in wanted if t not in present]

    def find_subtask(self, subtask_id: str) -> Optional[Subtask]:
        subtask_id = subtask_id.lower()
        return next((s for s in self.subtasks if s.id == subtask_id), None)
