import asyncio
from datetime import datetime, timezone

import pytest
from fastapi import HTTPException

from psyconnect.models import Session, User
from psyconnect.services.session_workflow import can_transition, schedule_session, transition_session_status


def _book(client, headers, tutor_id, course="Trastornos de Ansiedad"):
    return client.post("/sessions", json={"tutor_id": tutor_id, "course": course}, headers=headers)


def test_transition_table():
    assert can_transition("pending", "accepted")
    assert can_transition("pending", "declined")
    assert can_transition("accepted", "completed")
    assert can_transition("accepted", "cancelled")
    assert not can_transition("pending", "completed")
    assert not can_transition("declined", "accepted")
    assert not can_transition("completed", "cancelled")


def test_booking_creates_pending_session_with_snapshots(client, create_student, create_psychologist):
    student, student_headers = create_student()
    tutor, tutor_headers = create_psychologist()

    r = _book(client, student_headers, tutor["id"])
    assert r.status_code == 201
    session = r.json()
    assert session["status"] == "pending"
    assert session["tutor"] == {"name": tutor["name"], "image_url": tutor["image_url"], "email": tutor["email"]}
    assert session["student"] == {"name": student["name"], "image_url": student["image_url"], "age": 27}
    assert session["responded_at"] is None

    mine = client.get("/sessions/my", headers=student_headers).json()
    assert [s["id"] for s in mine] == [session["id"]]

    dashboard = client.get("/sessions/requests", headers=tutor_headers).json()
    assert [s["id"] for s in dashboard["pending_requests"]] == [session["id"]]
    assert dashboard["accepted_sessions"] == []

    # pending requests never show up as active
    assert client.get("/sessions/active", headers=student_headers).json() == []
    assert client.get("/sessions/active", headers=tutor_headers).json() == []


def test_booking_rules(client, create_student, create_psychologist):
    _, student_headers = create_student()
    tutor, tutor_headers = create_psychologist()
    pending, _ = create_psychologist(name="Dr. Pablo Soto", email="pablo.soto@mail.udp.cl", approve=False)

    assert _book(client, student_headers, tutor["id"], course="Neuropsicología").status_code == 400
    assert _book(client, student_headers, pending["id"]).status_code == 404
    assert _book(client, student_headers, 9999).status_code == 404
    assert _book(client, tutor_headers, tutor["id"]).status_code == 403


def test_accept_opens_active_view_and_chat(client, accepted_session):
    session = accepted_session["session"]
    assert session["status"] == "accepted"
    assert session["responded_at"] is not None

    for headers in (accepted_session["student_headers"], accepted_session["tutor_headers"]):
        active = client.get("/sessions/active", headers=headers).json()
        assert [s["id"] for s in active] == [session["id"]]

    dashboard = client.get("/sessions/requests", headers=accepted_session["tutor_headers"]).json()
    assert dashboard["pending_requests"] == []
    assert [s["id"] for s in dashboard["accepted_sessions"]] == [session["id"]]

    r = client.post(f"/sessions/{session['id']}/messages", json={"content": "Hola, ¿cómo estás?"},
                    headers=accepted_session["student_headers"])
    assert r.status_code == 201
    r = client.post(f"/sessions/{session['id']}/messages", json={"content": "Bien, gracias."},
                    headers=accepted_session["tutor_headers"])
    assert r.status_code == 201

    messages = client.get(f"/sessions/{session['id']}/messages", headers=accepted_session["tutor_headers"]).json()
    assert [m["content"] for m in messages] == ["Hola, ¿cómo estás?", "Bien, gracias."]
    assert messages[0]["sender_id"] == accepted_session["student"]["id"]


def test_chat_is_closed_until_accepted(client, create_student, create_psychologist):
    _, student_headers = create_student()
    tutor, _ = create_psychologist()
    session = _book(client, student_headers, tutor["id"]).json()

    r = client.post(f"/sessions/{session['id']}/messages", json={"content": "Hola"}, headers=student_headers)
    assert r.status_code == 409


def test_only_participants_see_a_session(client, accepted_session, create_student):
    _, outsider_headers = create_student(name="Tomás Pérez", email="tomas.perez@gmail.com")
    session_id = accepted_session["session"]["id"]

    assert client.get(f"/sessions/{session_id}", headers=outsider_headers).status_code == 404
    assert client.get(f"/sessions/{session_id}/messages", headers=outsider_headers).status_code == 404
    assert client.get(f"/sessions/{session_id}", headers=accepted_session["student_headers"]).status_code == 200


def test_student_cannot_respond(client, create_student, create_psychologist):
    _, student_headers = create_student()
    tutor, _ = create_psychologist()
    session = _book(client, student_headers, tutor["id"]).json()

    r = client.post(f"/sessions/{session['id']}/respond", json={"response": "accepted"}, headers=student_headers)
    assert r.status_code == 403


def test_decline_moves_session_to_history(client, create_student, create_psychologist):
    _, student_headers = create_student()
    tutor, tutor_headers = create_psychologist()
    session = _book(client, student_headers, tutor["id"]).json()

    r = client.post(f"/sessions/{session['id']}/respond", json={"response": "declined"}, headers=tutor_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "declined"

    assert client.get("/sessions/my", headers=student_headers).json() == []
    history = client.get("/sessions/history", headers=student_headers).json()
    assert [(s["id"], s["status"]) for s in history] == [(session["id"], "declined")]

    # terminal: a second answer is a conflict
    r = client.post(f"/sessions/{session['id']}/respond", json={"response": "accepted"}, headers=tutor_headers)
    assert r.status_code == 409


def test_invalid_response_value(client, create_student, create_psychologist):
    _, student_headers = create_student()
    tutor, tutor_headers = create_psychologist()
    session = _book(client, student_headers, tutor["id"]).json()

    r = client.post(f"/sessions/{session['id']}/respond", json={"response": "maybe"}, headers=tutor_headers)
    assert r.status_code == 422


def test_complete_and_cancel(client, accepted_session):
    session_id = accepted_session["session"]["id"]

    r = client.post(f"/sessions/{session_id}/complete", headers=accepted_session["student_headers"])
    assert r.status_code == 403

    r = client.post(f"/sessions/{session_id}/cancel", headers=accepted_session["student_headers"])
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"

    r = client.post(f"/sessions/{session_id}/complete", headers=accepted_session["tutor_headers"])
    assert r.status_code == 409
    assert client.get("/sessions/active", headers=accepted_session["tutor_headers"]).json() == []


def test_cancel_pending_is_a_conflict(client, create_student, create_psychologist):
    _, student_headers = create_student()
    tutor, _ = create_psychologist()
    session = _book(client, student_headers, tutor["id"]).json()

    assert client.post(f"/sessions/{session['id']}/cancel", headers=student_headers).status_code == 409


def test_schedule_only_accepted(client, create_student, create_psychologist, accepted_session):
    session_id = accepted_session["session"]["id"]
    r = client.put(f"/sessions/{session_id}/schedule", json={"session_date": "2026-11-03T15:00:00+00:00"},
                   headers=accepted_session["tutor_headers"])
    assert r.status_code == 200
    assert r.json()["session_date"].startswith("2026-11-03T15:00:00")

    other_student, other_headers = create_student(name="Tomás Pérez", email="tomas.perez@gmail.com")
    pending = _book(client, other_headers, accepted_session["tutor"]["id"]).json()
    r = client.put(f"/sessions/{pending['id']}/schedule", json={"session_date": "2026-11-04T15:00:00+00:00"},
                   headers=other_headers)
    assert r.status_code == 409


def test_stale_status_write_loses(client, session_factory, create_student, create_psychologist):
    _, student_headers = create_student()
    tutor, _ = create_psychologist()
    session_id = _book(client, student_headers, tutor["id"]).json()["id"]

    async def race():
        async with session_factory() as db1, session_factory() as db2:
            first = await db1.get(Session, session_id)
            stale = await db2.get(Session, session_id)
            actor = await db1.get(User, tutor["id"])

            await transition_session_status(db1, first, "accepted", actor)
            with pytest.raises(HTTPException) as exc:
                await transition_session_status(db2, stale, "declined", actor)
            return exc.value

    exc = asyncio.run(race())
    assert exc.status_code == 409
    assert "modificada por otra acción" in exc.detail

    r = client.get(f"/sessions/{session_id}", headers=student_headers)
    assert r.json()["status"] == "accepted"


def test_schedule_after_concurrent_cancel_is_a_conflict(client, session_factory, accepted_session):
    session_id = accepted_session["session"]["id"]

    async def race():
        async with session_factory() as db1, session_factory() as db2:
            loaded = await db2.get(Session, session_id)
            student = await db1.get(User, accepted_session["student"]["id"])
            await transition_session_status(db1, await db1.get(Session, session_id), "cancelled", student)
            with pytest.raises(HTTPException) as exc:
                await schedule_session(db2, loaded, datetime(2026, 11, 3, 15, 0, tzinfo=timezone.utc))
            return exc.value

    assert asyncio.run(race()).status_code == 409

    r = client.get(f"/sessions/{session_id}", headers=accepted_session["student_headers"])
    assert r.json()["status"] == "cancelled"
    assert r.json()["session_date"] is None


def test_students_have_no_request_dashboard(client, create_student):
    _, headers = create_student()
    assert client.get("/sessions/requests", headers=headers).status_code == 403
