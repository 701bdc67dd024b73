# taskify/routes/tasks.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from taskify.auth import get_current_user
from taskify.database import get_session
from taskify.models import Task, User
from taskify.schemas import SubtaskCreate, SubtaskUpdate, TaskCreate, TaskRead, TaskUpdate
from taskify.services import task_service
from taskify.services.task_filters import build_task_query

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def _task_body(task: Task) -> dict:
    return {"success": True, "task": TaskRead.from_task(task)}


def _list_body(tasks: List[Task]) -> dict:
    return {"success": True, "count": len(tasks), "tasks": [TaskRead.from_task(t) for t in tasks]}


@router.get("")
async def get_tasks(
    completed: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    tags: Optional[List[str]] = Query(None),
    search: Optional[str] = Query(None),
    due_date: Optional[str] = Query(None, alias="dueDate"),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    query = build_task_query(
        current_user.id, completed=completed, priority=priority, tags=tags, search=search, due_date=due_date
    )
    return _list_body(await task_service.list_tasks(session, query))


@router.get("/stats")
async def get_task_stats(current_user: User = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    return {"success": True, "stats": await task_service.task_stats(session, current_user)}


@router.get("/overdue")
async def get_overdue_tasks(
    current_user: User = Depends(get_current_user), session: AsyncSession = Depends(get_session)
):
    return _list_body(await task_service.list_overdue_tasks(session, current_user))


@router.post("", status_code=201)
async def create_task(
    payload: TaskCreate, current_user: User = Depends(get_current_user), session: AsyncSession = Depends(get_session)
):
    return _task_body(await task_service.create_task(session, current_user, payload))


@router.get("/{task_id}")
async def get_task(
    task_id: str, current_user: User = Depends(get_current_user), session: AsyncSession = Depends(get_session)
):
    return _task_body(await task_service.get_owned_task(session, task_id, current_user))


@router.put("/{task_id}")
async def update_task(
    task_id: str,
    changes: TaskUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return _task_body(await task_service.update_task(session, task_id, current_user, changes))


@router.delete("/{task_id}")
async def delete_task(
    task_id: str, current_user: User = Depends(get_current_user), session: AsyncSession = Depends(get_session)
):
    await task_service.delete_task(session, task_id, current_user)
    return {"success": True, "message": "Task deleted"}


@router.post("/{task_id}/subtasks")
async def add_subtask(
    task_id: str,
    payload: SubtaskCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return _task_body(await task_service.add_subtask(session, task_id, current_user, payload))


@router.put("/{task_id}/subtasks/{subtask_id}")
async def update_subtask(
    task_id: str,
    subtask_id: str,
    payload: SubtaskUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    task = await task_service.update_subtask(session, task_id, subtask_id, current_user, payload.completed)
    return _task_body(task)
