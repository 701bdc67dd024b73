# taskify/services/task_filters.py
"""
Translate request filter criteria into one normalized predicate over tasks.

Every query built here is scoped to a single owner. Due-date buckets are
resolved against local wall-clock day boundaries from `day_boundary`.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple, Union

from sqlalchemy import func, or_
from sqlmodel import col, select

from taskify.database import unicode_lower
from taskify.models import Task, TaskTag

ONE_DAY = timedelta(days=1)
DUE_BUCKETS = ("today", "tomorrow", "upcoming", "overdue")
IMPORTANT_TAG = "important"


def day_boundary(instant: datetime) -> Tuple[datetime, datetime]:
    """Return (start of the instant's day, start of the next day)."""
    start = instant.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + ONE_DAY


def escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains_ci(column, text: str):
    """Case-insensitive literal substring match, Unicode letters included."""
    return unicode_lower(column).like(f"%{escape_like(text.lower())}%", escape="\\")


@dataclass(frozen=True)
class TaskQuery:
    owner_id: str
    completed: Optional[bool] = None
    priority: Optional[str] = None
    tags: Tuple[str, ...] = ()
    search: Optional[str] = None
    due_from: Optional[datetime] = None  # inclusive
    due_before: Optional[datetime] = None  # exclusive

    def clauses(self) -> List:
        conditions = [col(Task.owner_id) == self.owner_id]
        if self.completed is not None:
            conditions.append(col(Task.completed) == self.completed)
        if self.priority is not None:
            conditions.append(col(Task.priority) == self.priority)
        if self.tags:
            tagged = select(TaskTag.task_id).where(col(TaskTag.tag).in_(self.tags))
            conditions.append(col(Task.id).in_(tagged))
        if self.search:
            conditions.append(or_(contains_ci(Task.title, self.search), contains_ci(Task.description, self.search)))
        if self.due_from is not None:
            conditions.append(col(Task.dueDate) >= self.due_from)
        if self.due_before is not None:
            conditions.append(col(Task.dueDate) < self.due_before)
        return conditions

    def statement(self):
        return select(Task).where(*self.clauses())

    def count_statement(self):
        return select(func.count()).select_from(Task).where(*self.clauses())


def _parse_completed(value: Union[str, bool, None]) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    return value == "true"


def _normalize_tags(tags: Union[str, Iterable[str], None]) -> Tuple[str, ...]:
    if not tags:
        return ()
    if isinstance(tags, str):
        tags = [tags]
    return tuple(dict.fromkeys(t.strip() for t in tags if t and t.strip()))


def build_task_query(
    owner_id: str,
    *,
    completed: Union[str, bool, None] = None,
    priority: Optional[str] = None,
    tags: Union[str, Iterable[str], None] = None,
    search: Optional[str] = None,
    due_date: Optional[str] = None,
    now: Optional[datetime] = None,
) -> TaskQuery:
    """
    Criteria combine with AND; the two search conditions OR internally.

    `upcoming` and `overdue` only cover incomplete tasks and override any
    completion criterion. Unrecognized buckets are ignored.
    """
    is_completed = _parse_completed(completed)
    due_from = due_before = None

    if due_date in DUE_BUCKETS:
        start_today, start_tomorrow = day_boundary(now or datetime.now())
        if due_date == "today":
            due_from, due_before = start_today, start_tomorrow
        elif due_date == "tomorrow":
            due_from, due_before = start_tomorrow, start_tomorrow + ONE_DAY
        elif due_date == "upcoming":
            due_from, is_completed = start_today, False
        else:
            due_before, is_completed = start_today, False

    return TaskQuery(
        owner_id=owner_id,
        completed=is_completed,
        priority=priority or None,
        tags=_normalize_tags(tags),
        search=search or None,
        due_from=due_from,
        due_before=due_before,
    )
