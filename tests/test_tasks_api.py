# tests/test_tasks_api.py
from datetime import datetime, timedelta

from taskify.models import new_id


def _today_at(hour: int) -> str:
    start = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)
    return (start + timedelta(hours=hour)).isoformat()


def _create(client, headers, **body):
    body.setdefault("title", "task")
    r = client.post("/api/tasks", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["task"]


def test_requires_credentials(client):
    r = client.get("/api/tasks")
    assert r.status_code == 401
    assert r.json()["success"] is False

    r = client.get("/api/tasks", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401


def test_create_and_read(client, make_user):
    alice = make_user("alice@example.com")
    task = _create(
        client, alice, title="Write spec", description="draft", priority="high", tags=["work", "work"],
        dueDate=_today_at(12), completed=True,
    )
    assert task["completed"] is False
    assert task["completedAt"] is None
    assert task["tags"] == ["work"]
    assert task["subtasks"] == []

    r = client.get(f"/api/tasks/{task['id']}", headers=alice)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["task"]["title"] == "Write spec"


def test_create_rejects_bad_body(client, make_user):
    alice = make_user("alice@example.com")
    r = client.post("/api/tasks", json={"title": ""}, headers=alice)
    assert r.status_code == 400
    assert r.json()["success"] is False

    r = client.post("/api/tasks", json={"title": "x", "priority": "urgent"}, headers=alice)
    assert r.status_code == 400


def test_guard_order_over_http(client, make_user):
    alice, bob = make_user("alice@example.com"), make_user("bob@example.com")
    task = _create(client, alice, title="private")

    assert client.get("/api/tasks/not-an-id", headers=alice).status_code == 400
    assert client.get(f"/api/tasks/{new_id()}", headers=alice).status_code == 404

    for method, extra in (("get", {}), ("put", {"json": {"title": "mine now"}}), ("delete", {})):
        r = client.request(method.upper(), f"/api/tasks/{task['id']}", headers=bob, **extra)
        assert r.status_code == 403, method
        assert r.json() == {"success": False, "statusCode": 403, "message": "Not authorized to access this task"}

    assert client.get(f"/api/tasks/{task['id']}", headers=alice).json()["task"]["title"] == "private"


def test_list_filters(client, make_user):
    alice, bob = make_user("alice@example.com"), make_user("bob@example.com")
    _create(client, alice, title="today high", dueDate=_today_at(10), priority="high", tags=["important"])
    _create(client, alice, title="tomorrow", dueDate=_today_at(24 + 10), tags=["home"])
    _create(client, alice, title="no date", description="call the bank")
    _create(client, bob, title="bob today", dueDate=_today_at(10))

    def titles(**params):
        r = client.get("/api/tasks", params=params, headers=alice)
        assert r.status_code == 200
        body = r.json()
        assert body["count"] == len(body["tasks"])
        return {t["title"] for t in body["tasks"]}

    assert titles() == {"today high", "tomorrow", "no date"}
    assert titles(dueDate="today") == {"today high"}
    assert titles(dueDate="tomorrow") == {"tomorrow"}
    assert titles(priority="high") == {"today high"}
    assert titles(tags=["home", "important"]) == {"today high", "tomorrow"}
    assert titles(search="BANK") == {"no date"}
    assert titles(completed="true") == set()
    assert titles(dueDate="whenever") == {"today high", "tomorrow", "no date"}


def test_completion_round_trip(client, make_user):
    alice = make_user("alice@example.com")
    task = _create(client, alice, title="toggle")

    r = client.put(f"/api/tasks/{task['id']}", json={"completed": True}, headers=alice)
    done = r.json()["task"]
    assert done["completed"] is True
    assert done["completedAt"] is not None

    r = client.put(f"/api/tasks/{task['id']}", json={"completed": False}, headers=alice)
    undone = r.json()["task"]
    assert undone["completed"] is False
    assert undone["completedAt"] is None


def test_update_cannot_reassign_owner(client, make_user):
    alice, bob = make_user("alice@example.com"), make_user("bob@example.com")
    bob_id = client.get("/api/users/me", headers=bob).json()["user"]["id"]
    task = _create(client, alice, title="mine")

    r = client.put(
        f"/api/tasks/{task['id']}",
        json={"user": bob_id, "completedAt": "2020-01-01T00:00:00", "title": "still mine"},
        headers=alice,
    )
    assert r.status_code == 200
    assert r.json()["task"]["user"] == task["user"]
    assert r.json()["task"]["completedAt"] is None
    assert client.get(f"/api/tasks/{task['id']}", headers=bob).status_code == 403


def test_delete(client, make_user):
    alice = make_user("alice@example.com")
    task = _create(client, alice)

    r = client.delete(f"/api/tasks/{task['id']}", headers=alice)
    assert r.json() == {"success": True, "message": "Task deleted"}
    assert client.get(f"/api/tasks/{task['id']}", headers=alice).status_code == 404


def test_subtasks(client, make_user):
    alice = make_user("alice@example.com")
    task = _create(client, alice, title="parent")

    r = client.post(f"/api/tasks/{task['id']}/subtasks", json={"title": "step one"}, headers=alice)
    assert r.status_code == 200
    subtask = r.json()["task"]["subtasks"][0]
    assert subtask["completed"] is False

    r = client.put(
        f"/api/tasks/{task['id']}/subtasks/{subtask['id']}", json={"completed": True}, headers=alice
    )
    assert r.json()["task"]["subtasks"][0]["completed"] is True

    r = client.put(f"/api/tasks/{task['id']}/subtasks/{new_id()}", json={"completed": True}, headers=alice)
    assert r.status_code == 404
    assert r.json()["message"] == "Subtask not found"

    r = client.put(f"/api/tasks/{task['id']}/subtasks/nope", json={"completed": True}, headers=alice)
    assert r.status_code == 400


def test_stats_and_overdue(client, make_user):
    alice = make_user("alice@example.com")
    task = _create(client, alice, title="release", dueDate=_today_at(18), priority="high", tags=["important"])
    _create(client, alice, title="late", dueDate=_today_at(-30))
    _create(client, alice, title="later", dueDate=_today_at(-60))

    stats = client.get("/api/tasks/stats", headers=alice).json()["stats"]
    assert stats == {"total": 3, "completed": 0, "dueToday": 1, "overdue": 2, "important": 1}

    overdue = client.get("/api/tasks/overdue", headers=alice).json()
    assert [t["title"] for t in overdue["tasks"]] == ["later", "late"]

    client.put(f"/api/tasks/{task['id']}", json={"completed": True}, headers=alice)
    stats = client.get("/api/tasks/stats", headers=alice).json()["stats"]
    assert stats == {"total": 3, "completed": 1, "dueToday": 0, "overdue": 2, "important": 0}
    r = client.get("/api/tasks", params={"dueDate": "today", "completed": "false"}, headers=alice)
    assert r.json()["count"] == 0
