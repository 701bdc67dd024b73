# taskify/services/task_service.py
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col

from taskify.errors import Forbidden, InvalidIdentifier, NotFound
from taskify.models import Subtask, Task, User, is_valid_id
from taskify.schemas import SubtaskCreate, TaskCreate, TaskStats, TaskUpdate
from taskify.services.task_filters import IMPORTANT_TAG, TaskQuery, build_task_query

logger = logging.getLogger(__name__)

# Fields a client may change on an existing task. Everything else, including
# the owner and completedAt, is out of reach of the update body.
_SCALAR_FIELDS = ("title", "description", "dueDate", "priority", "completed")
_NULLABLE_FIELDS = {"dueDate"}


def check_identifier(value: str, message: str = "Invalid task ID format") -> str:
    if not is_valid_id(value):
        raise InvalidIdentifier(message)
    return value.lower()


async def get_owned_task(session: AsyncSession, task_id: str, user: User) -> Task:
    """Identifier syntax, then existence, then ownership, always in that order."""
    task = await session.get(Task, check_identifier(task_id))
    if task is None:
        raise NotFound("Task not found")
    if task.owner_id != user.id:
        raise Forbidden("Not authorized to access this task")
    return task


async def list_tasks(session: AsyncSession, query: TaskQuery) -> List[Task]:
    statement = query.statement().order_by(col(Task.createdAt).desc())
    result = await session.execute(statement)
    return list(result.scalars().all())


async def list_overdue_tasks(session: AsyncSession, user: User, now: Optional[datetime] = None) -> List[Task]:
    query = build_task_query(user.id, due_date="overdue", now=now)
    result = await session.execute(query.statement().order_by(col(Task.dueDate).asc()))
    return list(result.scalars().all())


async def _count(session: AsyncSession, query: TaskQuery) -> int:
    result = await session.execute(query.count_statement())
    return int(result.scalar_one())


async def task_stats(session: AsyncSession, user: User, now: Optional[datetime] = None) -> TaskStats:
    now = now or datetime.now()
    return TaskStats(
        total=await _count(session, build_task_query(user.id)),
        completed=await _count(session, build_task_query(user.id, completed=True)),
        dueToday=await _count(session, build_task_query(user.id, completed=False, due_date="today", now=now)),
        overdue=await _count(session, build_task_query(user.id, due_date="overdue", now=now)),
        important=await _count(session, build_task_query(user.id, completed=False, tags=IMPORTANT_TAG)),
    )


async def create_task(session: AsyncSession, user: User, payload: TaskCreate) -> Task:
    task = Task(
        owner_id=user.id,
        title=payload.title,
        description=payload.description,
        dueDate=payload.dueDate,
        priority=payload.priority,
        completed=False,
    )
    task.subtasks = []
    task.set_tags(payload.tags)
    session.add(task)
    await session.commit()
    logger.info("Task %s created for user %s", task.id, user.id)
    return task


def apply_task_update(task: Task, changes: TaskUpdate, now: datetime) -> None:
    """
    Apply allow-listed changes and keep completedAt in step with completed.

    The previous completion flag is read before anything is assigned.
    """
    was_completed = task.completed
    data = changes.model_dump(exclude_unset=True)

    for field in _SCALAR_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if value is None and field not in _NULLABLE_FIELDS:
            continue
        setattr(task, field, value)
    if data.get("tags") is not None:
        task.set_tags(data["tags"])

    if not was_completed and task.completed:
        task.completedAt = now
    elif was_completed and not task.completed:
        task.completedAt = None
    task.updatedAt = now


async def update_task(
    session: AsyncSession, task_id: str, user: User, changes: TaskUpdate, now: Optional[datetime] = None
) -> Task:
    task = await get_owned_task(session, task_id, user)
    apply_task_update(task, changes, now or datetime.now())
    session.add(task)
    await session.commit()
    return task


async def delete_task(session: AsyncSession, task_id: str, user: User) -> None:
    task = await get_owned_task(session, task_id, user)
    await session.delete(task)
    await session.commit()
    logger.info("Task %s deleted by user %s", task.id, user.id)


async def add_subtask(session: AsyncSession, task_id: str, user: User, payload: SubtaskCreate) -> Task:
    task = await get_owned_task(session, task_id, user)
    task.subtasks.append(Subtask(title=payload.title, completed=False, position=len(task.subtasks)))
    task.updatedAt = datetime.now()
    session.add(task)
    await session.commit()
    return task


async def update_subtask(
    session: AsyncSession, task_id: str, subtask_id: str, user: User, completed: bool
) -> Task:
    check_identifier(task_id, "Invalid ID format")
    check_identifier(subtask_id, "Invalid ID format")
    task = await get_owned_task(session, task_id, user)
    subtask = task.find_subtask(subtask_id)
    if subtask is None:
        raise NotFound("Subtask not found")
    subtask.completed = completed
    task.updatedAt = datetime.now()
    session.add(task)
    await session.commit()
    return task
