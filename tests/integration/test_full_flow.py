import pytest
from httpx import AsyncClient, ASGITransport
from uuid import uuid4

from journal.main import create_app

USER = {"X-User-Id": "user-1"}
OTHER = {"X-User-Id": "user-2"}
ADMIN = {"X-User-Id": "admin-1"}


async def create_event(client, headers=USER, **fields):
    payload = {"title": "Event", "intensity": 5, "importance": 5}
    payload.update(fields)
    response = await client.post("/events", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_health_check(client):
    """Test health endpoint"""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"


@pytest.mark.asyncio
async def test_owner_header_required(client):
    response = await client.get("/events")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_event_crud_flow(client):
    """Test complete flow: create → nest → annotate → update → delete"""

    # 1. Create a parent and a sub-event
    parent = await create_event(
        client,
        title="Argument at work",
        intensity=7.6,
        importance=8,
        tags=["Work", "work", " Work "],
        emotions=["anger", "shame"],
        occurred_at="2024-03-08T09:00:00Z"
    )
    assert parent["intensity"] == 8
    assert parent["tags"] == ["work"]
    assert parent["perception"] == "Neutral"
    assert parent["verification_status"] == "Pending"

    sub = await create_event(client, title="Follow-up chat", parent_event_id=parent["id"])
    assert sub["parent_event_id"] == parent["id"]

    # 2. Attach a note
    response = await client.post(
        f"/events/{parent['id']}/notes",
        json={"title": "Pattern", "facts": "Second time this month", "status": "Needs Watch"},
        headers=USER
    )
    assert response.status_code == 201
    note = response.json()
    assert note["status"] == "Needs Watch"
    assert note["importance"] == 5

    # 3. Detail view
    response = await client.get(f"/events/{parent['id']}", headers=USER)
    assert response.status_code == 200
    detail = response.json()
    assert [n["id"] for n in detail["notes"]] == [note["id"]]
    assert [e["id"] for e in detail["sub_events"]] == [sub["id"]]

    # 4. Partial updates
    response = await client.patch(f"/events/{parent['id']}", json={"title": "Renamed"}, headers=USER)
    assert response.status_code == 200
    assert response.json()["title"] == "Renamed"
    assert response.json()["tags"] == ["work"]

    response = await client.put(f"/events/{parent['id']}", json={"tags": []}, headers=USER)
    assert response.status_code == 200
    assert response.json()["tags"] == []
    assert response.json()["title"] == "Renamed"

    response = await client.patch(f"/notes/{note['id']}", json={"status": "Resolved"}, headers=USER)
    assert response.status_code == 200
    assert response.json()["status"] == "Resolved"
    assert response.json()["facts"] == "Second time this month"

    # 5. Delete the parent: notes go, the sub-event stays
    response = await client.delete(f"/events/{parent['id']}", headers=USER)
    assert response.status_code == 200
    assert response.json() == {"success": True}

    response = await client.get(f"/events/{parent['id']}", headers=USER)
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"

    response = await client.get(f"/events/{sub['id']}", headers=USER)
    assert response.status_code == 200
    assert response.json()["parent_event_id"] == parent["id"]

    response = await client.patch(f"/notes/{note['id']}", json={"title": "gone"}, headers=USER)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_input_rejections(client):
    response = await client.post("/events", json={"intensity": 5, "importance": 5}, headers=USER)
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_input"

    response = await client.post(
        "/events",
        json={"title": "x", "intensity": 5, "importance": 5, "occurred_at": "not a date"},
        headers=USER
    )
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_date"

    response = await client.post(
        "/events",
        json={"title": "x", "intensity": 5, "importance": 5, "perception": "Ecstatic"},
        headers=USER
    )
    assert response.status_code == 422
    assert response.json()["error"] == "invalid_input"

    response = await client.get("/events/not-a-uuid", headers=USER)
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize("bad", [True, "7", None])
async def test_scales_must_be_json_numbers(client, bad):
    response = await client.post(
        "/events",
        json={"title": "x", "intensity": bad, "importance": 5},
        headers=USER
    )
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_input"

    response = await client.get("/events", headers=USER)
    assert response.json() == []


@pytest.mark.asyncio
@pytest.mark.parametrize("bad", [True, "7"])
async def test_note_importance_must_be_json_number(client, bad):
    event = await create_event(client, title="Annotated")

    response = await client.post(f"/events/{event['id']}/notes", json={"importance": bad}, headers=USER)
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_input"

    response = await client.patch(f"/events/{event['id']}", json={"importance": bad}, headers=USER)
    assert response.status_code == 400

    response = await client.get(f"/events/{event['id']}/notes", headers=USER)
    assert response.json() == []


@pytest.mark.asyncio
async def test_hierarchy_rejections(client):
    parent = await create_event(client, title="Parent")
    sub = await create_event(client, title="Sub", parent_event_id=parent["id"])
    foreign = await create_event(client, headers=OTHER, title="Foreign")

    cases = [
        ({"parent_event_id": str(uuid4())}, 404, "parent_not_found"),
        ({"parent_event_id": foreign["id"]}, 403, "unauthorized"),
        ({"parent_event_id": sub["id"]}, 409, "nesting_too_deep"),
    ]
    for fields, status_code, error in cases:
        payload = {"title": "Child", "intensity": 5, "importance": 5, **fields}
        response = await client.post("/events", json=payload, headers=USER)
        assert response.status_code == status_code
        assert response.json()["error"] == error

    response = await client.patch(
        f"/events/{sub['id']}",
        json={"parent_event_id": sub["id"]},
        headers=USER
    )
    assert response.status_code == 409
    assert response.json()["error"] == "self_parent"

    response = await client.patch(
        f"/events/{parent['id']}",
        json={"parent_event_id": foreign["id"]},
        headers=USER
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_events_are_owner_scoped(client):
    event = await create_event(client, title="Private", tags=["secret"])

    response = await client.get(f"/events/{event['id']}", headers=OTHER)
    assert response.status_code == 403
    assert response.json()["error"] == "unauthorized"

    response = await client.delete(f"/events/{event['id']}", headers=OTHER)
    assert response.status_code == 403

    response = await client.get("/events", headers=OTHER)
    assert response.json() == []

    response = await client.get("/events/tags", headers=OTHER)
    assert response.json() == []


@pytest.mark.asyncio
async def test_list_filters(client):
    parent = await create_event(client, title="Parent", tags=["work"])
    sub = await create_event(client, title="Sub", tags=["home"], parent_event_id=parent["id"])

    response = await client.get("/events", params={"structure": "subs"}, headers=USER)
    assert [e["id"] for e in response.json()] == [sub["id"]]

    response = await client.get("/events", params={"tag": ["work", "gym"]}, headers=USER)
    assert [e["id"] for e in response.json()] == [parent["id"]]

    response = await client.get("/events/tags", headers=USER)
    assert response.json() == ["home", "work"]

    response = await client.get("/events", params={"order": "sideways"}, headers=USER)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_stats_endpoints(client):
    """Test analytics over a fixed set of events"""
    parent = await create_event(
        client, title="Parent", intensity=4, importance=2,
        emotions=["calm", "hope"], occurred_at="2024-03-08T09:00:00Z"
    )
    await create_event(
        client, title="Sub", intensity=4, importance=4, emotions=["calm"],
        occurred_at="2024-03-08T18:00:00Z", parent_event_id=parent["id"]
    )
    await create_event(
        client, title="Late", intensity=10, importance=6, emotions=["anxiety"],
        occurred_at="2024-03-10T08:00:00Z"
    )

    response = await client.get("/stats/summary", params={"range": "all"}, headers=USER)
    assert response.status_code == 200
    assert response.json() == [
        {"date": "2024-03-08", "avg_intensity": 4.0, "avg_importance": 3.0, "count": 2},
        {"date": "2024-03-10", "avg_intensity": 10.0, "avg_importance": 6.0, "count": 1},
    ]

    response = await client.get("/stats/emotions", params={"range": "all"}, headers=USER)
    assert response.json()[0] == {"emotion": "calm", "count": 2}

    response = await client.get("/stats/overview", params={"range": "all"}, headers=USER)
    overview = response.json()
    assert overview["total_events"] == 3
    assert overview["avg_intensity"] == 6.0
    assert overview["volatility_label"] == "high"

    response = await client.get("/stats/calendar", params={"month": "2024-03"}, headers=USER)
    calendar = response.json()
    assert calendar["counts"] == {"2024-03-08": 2, "2024-03-10": 1}
    assert len(calendar["days"]) == 42

    response = await client.get(
        "/stats/timeline",
        params={"range": "all", "structure": "parents"},
        headers=USER
    )
    assert [e["title"] for d in response.json() for e in d["events"]] == ["Late", "Parent"]

    response = await client.get("/stats/reflection", headers=USER)
    assert response.status_code == 200
    assert "narrative" in response.json()


@pytest.mark.asyncio
async def test_stats_input_rejections(client):
    response = await client.get("/stats/summary", params={"range": "week"}, headers=USER)
    assert response.status_code == 422

    response = await client.get("/stats/calendar", params={"month": "2024-13"}, headers=USER)
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_input"

    response = await client.get("/stats/calendar", headers=USER)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_demo_data_is_admin_only(client):
    response = await client.post("/admin/demo-data", headers=USER)
    assert response.status_code == 403

    response = await client.post("/admin/demo-data", headers=ADMIN)
    assert response.status_code == 201
    assert response.json()["created"] == {"parents": 3, "sub_events": 6, "notes": 9}

    response = await client.get("/events", params={"structure": "subs"}, headers=ADMIN)
    assert len(response.json()) == 6

    response = await client.delete("/admin/demo-data", headers=ADMIN)
    assert response.status_code == 200
    assert response.json()["deleted"] == {"notes": 9, "events": 9}

    response = await client.get("/events", headers=ADMIN)
    assert response.json() == []


@pytest.mark.asyncio
async def test_calendar_uses_configured_timezone(test_settings):
    app = create_app(test_settings.model_copy(update={"timezone": "Asia/Tokyo"}))

    async with app.router.lifespan_context(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            await create_event(client, title="Late night", occurred_at="2024-03-31T23:30:00Z")

            response = await client.get("/stats/calendar", params={"month": "2024-04"}, headers=USER)
            assert response.json()["counts"] == {"2024-04-01": 1}

            response = await client.get("/stats/calendar", params={"month": "2024-03"}, headers=USER)
            assert response.json()["counts"] == {}
