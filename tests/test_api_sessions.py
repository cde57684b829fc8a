from datetime import date, timedelta

import pytest

from app.core.jwt_auth import create_access_token


@pytest.mark.asyncio
async def test_requests_without_token_are_unauthorized(client):
    response = await client.get("/api/v1/sessions")

    assert response.status_code == 401
    body = response.json()
    assert body["error"] == "AUTHENTICATION_ERROR"
    assert body["path"] == "/api/v1/sessions"


@pytest.mark.asyncio
async def test_garbage_token_is_unauthorized(client):
    response = await client.get(
        "/api/v1/sessions", headers={"Authorization": "Bearer not-a-token"}
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unknown_role_is_unauthorized(client):
    token = create_access_token(1, "GOALKEEPER")

    response = await client.get("/api/v1/sessions", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_parent_cannot_manage_slots(client, parent):
    response = await client.get("/api/v1/sessions/slots", headers=parent.headers)

    assert response.status_code == 403
    assert response.json()["error"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_slot_crud(client, coach):
    created = await client.post(
        "/api/v1/sessions/slots",
        json={"dayOfWeek": 2, "startTime": "10:00", "endTime": "11:00", "maxPlayers": 4},
        headers=coach.headers,
    )
    assert created.status_code == 201
    slot = created.json()
    assert slot["dayOfWeek"] == 2
    assert slot["isRecurring"] is True

    updated = await client.put(
        f"/api/v1/sessions/slots/{slot['id']}",
        json={"location": "Court 3"},
        headers=coach.headers,
    )
    assert updated.json()["location"] == "Court 3"

    listed = await client.get("/api/v1/sessions/slots", headers=coach.headers)
    assert [s["id"] for s in listed.json()] == [slot["id"]]

    deleted = await client.delete(f"/api/v1/sessions/slots/{slot['id']}", headers=coach.headers)
    assert deleted.status_code == 204
    assert (await client.get("/api/v1/sessions/slots", headers=coach.headers)).json() == []


@pytest.mark.asyncio
async def test_invalid_slot_body_is_422(client, coach):
    response = await client.post(
        "/api/v1/sessions/slots",
        json={"dayOfWeek": 9, "startTime": "25:00", "endTime": "11:00"},
        headers=coach.headers,
    )

    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "VALIDATION_ERROR"
    assert len(body["details"]["fields"]) == 2


@pytest.mark.asyncio
async def test_generate_is_idempotent(client, coach):
    tomorrow = date.today() + timedelta(days=1)
    await client.post(
        "/api/v1/sessions/slots",
        json={"dayOfWeek": (tomorrow.weekday() + 1) % 7, "startTime": "16:00", "endTime": "17:00"},
        headers=coach.headers,
    )

    first = await client.post(
        "/api/v1/sessions/generate", json={"weeksAhead": 2}, headers=coach.headers
    )
    second = await client.post(
        "/api/v1/sessions/generate", json={"weeksAhead": 2}, headers=coach.headers
    )

    assert first.status_code == 200
    assert first.json()["created"] == 2
    assert first.json()["sessions"][0]["date"] == tomorrow.isoformat()
    assert second.json() == {"created": 0, "sessions": []}


@pytest.mark.asyncio
async def test_generate_defaults_without_body(client, coach):
    response = await client.post("/api/v1/sessions/generate", headers=coach.headers)

    assert response.status_code == 200
    assert response.json()["created"] == 0


@pytest.mark.asyncio
async def test_generate_rejects_long_horizon(client, coach):
    response = await client.post(
        "/api/v1/sessions/generate", json={"weeksAhead": 52}, headers=coach.headers
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_and_list_sessions(client, coach, parent, next_week):
    created = await client.post(
        "/api/v1/sessions",
        json={
            "date": next_week.isoformat(),
            "startTime": "09:00",
            "endTime": "10:00",
            "type": "group",
            "maxParticipants": 3,
            "location": "Hall A",
        },
        headers=coach.headers,
    )
    assert created.status_code == 201
    session = created.json()
    assert session["status"] == "scheduled"
    assert session["bookedCount"] == 0
    assert session["spotsLeft"] == 3

    duplicate = await client.post(
        "/api/v1/sessions",
        json={"date": next_week.isoformat(), "startTime": "09:00", "endTime": "11:00"},
        headers=coach.headers,
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "CONFLICT"

    coach_list = await client.get("/api/v1/sessions", headers=coach.headers)
    assert [s["id"] for s in coach_list.json()] == [session["id"]]

    parent_list = await client.get(
        "/api/v1/sessions", params={"location": "hall"}, headers=parent.headers
    )
    assert [s["id"] for s in parent_list.json()] == [session["id"]]

    upcoming = await client.get("/api/v1/sessions/upcoming", headers=coach.headers)
    assert [s["id"] for s in upcoming.json()] == [session["id"]]


@pytest.mark.asyncio
async def test_session_body_rejects_inverted_times(client, coach, next_week):
    response = await client.post(
        "/api/v1/sessions",
        json={"date": next_week.isoformat(), "startTime": "10:00", "endTime": "09:00"},
        headers=coach.headers,
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_status_flow_over_http(client, coach, make_session):
    session_id = (await make_session()).id

    started = await client.put(
        f"/api/v1/sessions/{session_id}/status",
        json={"status": "IN_PROGRESS"},
        headers=coach.headers,
    )
    assert started.json()["status"] == "in_progress"

    edit = await client.put(
        f"/api/v1/sessions/{session_id}", json={"location": "Hall B"}, headers=coach.headers
    )
    assert edit.status_code == 403

    back = await client.put(
        f"/api/v1/sessions/{session_id}/status",
        json={"status": "scheduled"},
        headers=coach.headers,
    )
    assert back.status_code == 400
    assert back.json()["error"] == "INVALID_STATE"

    done = await client.put(
        f"/api/v1/sessions/{session_id}/status",
        json={"status": "completed"},
        headers=coach.headers,
    )
    assert done.json()["status"] == "completed"


@pytest.mark.asyncio
async def test_null_session_type_is_rejected(client, coach, make_session):
    session_id = (await make_session()).id

    response = await client.put(
        f"/api/v1/sessions/{session_id}", json={"type": None}, headers=coach.headers
    )

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_cancel_endpoint_cascades(client, coach, parent, player, make_session):
    session_id = (await make_session(max_participants=2)).id
    booked = await client.post(
        "/api/v1/bookings",
        json={"sessionId": session_id, "playerId": player.id},
        headers=parent.headers,
    )

    response = await client.post(f"/api/v1/sessions/{session_id}/cancel", headers=coach.headers)

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert response.json()["bookedCount"] == 0

    booking = await client.get(f"/api/v1/bookings/{booked.json()['id']}", headers=parent.headers)
    assert booking.json()["status"] == "cancelled"
    assert booking.json()["cancelledAt"] is not None


@pytest.mark.asyncio
async def test_detail_hides_roster_from_parents(client, coach, parent, player, make_session):
    session_id = (await make_session(max_participants=2)).id
    await client.post(
        "/api/v1/bookings",
        json={"sessionId": session_id, "playerId": player.id},
        headers=parent.headers,
    )

    coach_view = await client.get(f"/api/v1/sessions/{session_id}", headers=coach.headers)
    parent_view = await client.get(f"/api/v1/sessions/{session_id}", headers=parent.headers)

    assert len(coach_view.json()["bookings"]) == 1
    assert parent_view.json()["bookings"] == []
    assert parent_view.json()["bookedCount"] == 1
    assert parent_view.json()["spotsLeft"] == 1


@pytest.mark.asyncio
async def test_missing_session_is_404(client, coach):
    response = await client.get("/api/v1/sessions/4242", headers=coach.headers)

    assert response.status_code == 404
    assert response.json()["details"] == {"resource": "Session", "identifier": "4242"}
