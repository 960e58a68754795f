"""Error rendering: domain errors, validation errors, unexpected failures."""

from fastapi import APIRouter

from conftest import auth
from qbot.app.core.config import settings
from qbot.app.exceptions import QuotaExceededError, UpstreamTimeoutError


def _add_failing_routes(app):
    router = APIRouter()

    @router.get("/_boom")
    async def boom():
        raise RuntimeError("kaboom")

    @router.get("/_quota")
    async def quota():
        raise QuotaExceededError(current_attempts=3, max_attempts=3)

    @router.get("/_slow")
    async def slow():
        raise UpstreamTimeoutError()

    app.include_router(router)


def test_domain_errors_render_code_and_message(app, client):
    _add_failing_routes(app)

    quota = client.get("/_quota")
    slow = client.get("/_slow")

    assert quota.status_code == 429
    assert quota.json()["error"] == "quota_exceeded"
    assert quota.json()["current_attempts"] == 3
    assert slow.status_code == 504
    assert slow.json() == {"error": "upstream_timeout", "message": "Upstream service timed out"}


def test_unhandled_error_hides_details(app, client, monkeypatch):
    monkeypatch.setattr(settings, "debug", False)
    _add_failing_routes(app)

    resp = client.get("/_boom", headers={"X-Request-ID": "req-42"})

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "internal_error"
    assert "kaboom" not in body["message"]
    assert body["request_id"] == "req-42"


def test_unhandled_error_in_debug_mode(app, client, monkeypatch):
    monkeypatch.setattr(settings, "debug", True)
    _add_failing_routes(app)

    body = client.get("/_boom").json()

    assert body["exception_type"] == "RuntimeError"
    assert body["message"] == "kaboom"


def test_request_id_is_echoed(client):
    resp = client.get("/chatbots/by-slug/unknown", headers={"X-Request-ID": "req-7"})

    assert resp.status_code == 404
    assert resp.headers["X-Request-ID"] == "req-7"


def test_oversized_token_is_rejected(client):
    resp = client.post("/chatbots/c1/sessions", headers=auth("x" * 600))

    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_input"
