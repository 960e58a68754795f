"""Tests for POST /student/login."""

import asyncio

from conftest import DEFAULT_PASSWORD, auth


def test_login_issues_working_token(client, seed):
    teacher, _ = asyncio.run(seed.teacher())
    school_class = asyncio.run(seed.school_class(teacher, "3-1"))
    student, _ = asyncio.run(seed.student(teacher, student_number="S-7", school_class=school_class))
    chatbot = asyncio.run(seed.chatbot(teacher))

    resp = client.post(
        "/student/login", json={"student_number": " S-7 ", "password": DEFAULT_PASSWORD}
    )

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["student"]["id"] == student.id
    assert body["student"]["class_name"] == "3-1"
    started = client.post(f"/chatbots/{chatbot.id}/sessions", headers=auth(body["access_token"]))
    assert started.status_code == 201


def test_login_rotates_previous_token(client, seed):
    teacher, _ = asyncio.run(seed.teacher())
    student, old_token = asyncio.run(seed.student(teacher, student_number="S-8"))
    chatbot = asyncio.run(seed.chatbot(teacher))

    client.post("/student/login", json={"student_number": "S-8", "password": DEFAULT_PASSWORD})

    stale = client.post(f"/chatbots/{chatbot.id}/sessions", headers=auth(old_token))
    assert stale.status_code == 401


def test_wrong_password_and_unknown_number_look_the_same(client, seed):
    teacher, _ = asyncio.run(seed.teacher())
    asyncio.run(seed.student(teacher, student_number="S-9"))

    wrong = client.post("/student/login", json={"student_number": "S-9", "password": "nope"})
    unknown = client.post("/student/login", json={"student_number": "S-404", "password": "nope"})

    assert wrong.status_code == 401
    assert unknown.status_code == 401
    assert wrong.json() == unknown.json()
    assert wrong.json()["error"] == "unauthenticated"


def test_missing_fields_are_invalid(client):
    resp = client.post("/student/login", json={"student_number": "S-1"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_input"
