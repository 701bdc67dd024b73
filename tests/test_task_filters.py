# tests/test_task_filters.py
from datetime import datetime, timedelta

from taskify.services.task_filters import TaskQuery, build_task_query, day_boundary, escape_like

NOW = datetime(2026, 3, 10, 15, 30, 45, 123)
START_TODAY = datetime(2026, 3, 10)
START_TOMORROW = datetime(2026, 3, 11)
OWNER = "a" * 32


def test_day_boundary_truncates_to_midnight():
    assert day_boundary(NOW) == (START_TODAY, START_TOMORROW)


def test_day_boundary_at_midnight_is_that_day():
    assert day_boundary(START_TOMORROW) == (START_TOMORROW, START_TOMORROW + timedelta(days=1))


def test_no_criteria_is_owner_scope_only():
    query = build_task_query(OWNER, now=NOW)
    assert query == TaskQuery(owner_id=OWNER)
    assert len(query.clauses()) == 1


def test_completed_string_parsing():
    assert build_task_query(OWNER, completed="true").completed is True
    assert build_task_query(OWNER, completed="false").completed is False
    assert build_task_query(OWNER, completed="yes").completed is False
    assert build_task_query(OWNER, completed=True).completed is True
    assert build_task_query(OWNER).completed is None


def test_empty_values_impose_no_constraint():
    query = build_task_query(OWNER, priority="", search="", tags=[], due_date="")
    assert query == TaskQuery(owner_id=OWNER)


def test_tags_accept_single_value_or_list():
    assert build_task_query(OWNER, tags="work").tags == ("work",)
    assert build_task_query(OWNER, tags=["work", "", "home", "work"]).tags == ("work", "home")
    assert build_task_query(OWNER, tags=[" work", "work ", "  "]).tags == ("work",)


def test_today_bucket():
    query = build_task_query(OWNER, due_date="today", now=NOW)
    assert (query.due_from, query.due_before) == (START_TODAY, START_TOMORROW)
    assert query.completed is None


def test_today_and_tomorrow_are_adjacent_half_open_ranges():
    today = build_task_query(OWNER, due_date="today", now=NOW)
    tomorrow = build_task_query(OWNER, due_date="tomorrow", now=NOW)
    # due_before is exclusive, so START_TOMORROW falls only in tomorrow.
    assert today.due_before == tomorrow.due_from == START_TOMORROW
    assert tomorrow.due_before == START_TOMORROW + timedelta(hours=24)


def test_upcoming_forces_incomplete():
    query = build_task_query(OWNER, due_date="upcoming", completed="true", now=NOW)
    assert query.completed is False
    assert query.due_from == START_TODAY
    assert query.due_before is None


def test_overdue_forces_incomplete():
    query = build_task_query(OWNER, due_date="overdue", completed="true", now=NOW)
    assert query.completed is False
    assert query.due_from is None
    assert query.due_before == START_TODAY


def test_unknown_bucket_is_ignored():
    query = build_task_query(OWNER, due_date="next-week", completed="true", now=NOW)
    assert (query.due_from, query.due_before) == (None, None)
    assert query.completed is True


def test_all_criteria_combine():
    query = build_task_query(
        OWNER, completed="false", priority="high", tags=["x"], search="report", due_date="today", now=NOW
    )
    # owner, completed, priority, tags, search, due_from, due_before
    assert len(query.clauses()) == 7


def test_escape_like_makes_wildcards_literal():
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"
