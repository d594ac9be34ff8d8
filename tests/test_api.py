from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest

from kanban.api import USER_ID_HEADER, create_api_app


@pytest.fixture
async def client(session_factory) -> AsyncIterator[httpx.AsyncClient]:
    app = create_api_app(session_factory)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http


def as_user(user_id: int) -> dict[str, str]:
    return {USER_ID_HEADER: str(user_id)}


@pytest.mark.asyncio
async def test_health(client) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "checks": {"database": "ok"}}


@pytest.mark.asyncio
async def test_missing_user_context_is_unauthorized(client, seeded) -> None:
    response = await client.get("/api/boards")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_reorder_endpoint(client, seeded) -> None:
    response = await client.post(
        "/api/tasks/reorder",
        json={
            "fromColumnId": seeded.todo_id,
            "toColumnId": seeded.doing_id,
            "taskId": seeded.tasks["t2"],
            "toIndex": 1,
        },
        headers=as_user(seeded.member_id),
    )
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    board = (await client.get(f"/api/boards/{seeded.board_id}", headers=as_user(seeded.owner_id))).json()
    layout = {
        column["title"]: [(task["title"], task["order"]) for task in column["tasks"]] for column in board["columns"]
    }
    assert layout == {
        "To Do": [("t1", 0), ("t3", 1)],
        "Doing": [("t4", 0), ("t2", 1), ("t5", 2)],
    }


@pytest.mark.asyncio
async def test_domain_errors_map_to_status_codes(client, seeded) -> None:
    forbidden = await client.post(
        f"/api/boards/{seeded.board_id}/columns",
        json={"title": "Mine"},
        headers=as_user(seeded.outsider_id),
    )
    assert forbidden.status_code == 403
    assert forbidden.json() == {"error": "You do not have access to this board"}

    conflict = await client.post(
        "/api/tasks/reorder",
        json={"fromColumnId": seeded.doing_id, "toColumnId": seeded.todo_id, "taskId": seeded.tasks["t1"], "toIndex": 0},
        headers=as_user(seeded.owner_id),
    )
    assert conflict.status_code == 409

    missing = await client.post("/api/notifications/9999/read", headers=as_user(seeded.owner_id))
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_invite_requires_exactly_one_selector(client, seeded) -> None:
    url = f"/api/boards/{seeded.board_id}/invite"
    headers = as_user(seeded.owner_id)

    both = await client.post(url, json={"email": "mallory@example.com", "userId": seeded.outsider_id}, headers=headers)
    neither = await client.post(url, json={}, headers=headers)
    assert both.status_code == 422
    assert neither.status_code == 422

    ok = await client.post(url, json={"email": "mallory@example.com"}, headers=headers)
    assert ok.status_code == 200
    assert ok.json() == {"ok": True}

    boards = (await client.get("/api/boards", headers=as_user(seeded.outsider_id))).json()
    assert [board["id"] for board in boards] == [seeded.board_id]

    inbox = (await client.get("/api/notifications", headers=as_user(seeded.outsider_id))).json()
    assert [item["type"] for item in inbox] == ["INVITE"]
    assert inbox[0]["boardId"] == seeded.board_id
    assert inbox[0]["read"] is False

    read_all = await client.post("/api/notifications/read-all", headers=as_user(seeded.outsider_id))
    assert read_all.json() == {"ok": True}
    inbox = (await client.get("/api/notifications", headers=as_user(seeded.outsider_id))).json()
    assert inbox[0]["read"] is True


@pytest.mark.asyncio
async def test_task_crud_round_trip(client, seeded) -> None:
    headers = as_user(seeded.owner_id)
    created = await client.post(
        f"/api/columns/{seeded.todo_id}/tasks",
        json={"title": "Write docs", "tags": ["docs", "later"], "assigneeIds": [seeded.member_id]},
        headers=headers,
    )
    assert created.status_code == 200
    body = created.json()
    assert body["order"] == 3
    assert body["tags"] == ["docs", "later"]
    assert [user["id"] for user in body["assignees"]] == [seeded.member_id]

    updated = await client.put(f"/api/tasks/{body['id']}", json={"tags": []}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["tags"] == []
    assert updated.json()["title"] == "Write docs"

    deleted = await client.delete(f"/api/tasks/{body['id']}", headers=headers)
    assert deleted.json() == {"ok": True}


@pytest.mark.asyncio
async def test_out_of_range_user_id_is_unauthorized(client, seeded) -> None:
    response = await client.get("/api/boards", headers={USER_ID_HEADER: "99999999999999999999"})
    assert response.status_code == 401

    largest = await client.get("/api/boards", headers={USER_ID_HEADER: str(2**63 - 1)})
    assert largest.status_code == 200
    assert largest.json() == []


@pytest.mark.asyncio
async def test_tags_are_returned_as_sent(client, seeded) -> None:
    headers = as_user(seeded.owner_id)
    tags = ["bug", "bug", " ui ", ""]
    created = await client.post(
        f"/api/columns/{seeded.todo_id}/tasks",
        json={"title": "Triage", "tags": tags},
        headers=headers,
    )
    assert created.status_code == 200
    assert created.json()["tags"] == tags

    updated = await client.put(f"/api/tasks/{created.json()['id']}", json={"tags": ["z", "a", "z"]}, headers=headers)
    assert updated.json()["tags"] == ["z", "a", "z"]

    board = (await client.get(f"/api/boards/{seeded.board_id}", headers=headers)).json()
    stored = [task for column in board["columns"] for task in column["tasks"] if task["title"] == "Triage"]
    assert stored[0]["tags"] == ["z", "a", "z"]
