import time

import pytest

from app.tally.core.config import settings
from app.tally.core.error_catalog import AppError, ErrorCatalog
from app.tally.core.rate_limit import limiter
from app.tally.services.sessions import SessionService
from tests.helpers import create_session, finalize, join


def test_join_with_code_creates_participant(client):
    session = create_session(client)
    body = join(client, session["access_code"], "Ana")
    assert body["session"]["id"] == session["id"]
    assert body["participant"]["display_name"] == "Ana"
    assert body["participant"]["status"] == "ACTIVE"


def test_join_normalizes_code_and_name(client):
    session = create_session(client)
    body = join(client, f"  {session['access_code'].lower()} ", "  Ana  ")
    assert body["session"]["id"] == session["id"]
    assert body["participant"]["display_name"] == "Ana"


def test_rejoin_with_same_name_returns_same_participant(client):
    session = create_session(client)
    first = join(client, session["access_code"], "Ana")
    second = join(client, session["access_code"], "Ana")
    assert first["participant"]["id"] == second["participant"]["id"]


def test_rejoin_after_leave_reactivates(client):
    session = create_session(client)
    participant = join(client, session["access_code"], "Ana")["participant"]
    left = client.post(f"/tally/sessions/{session['id']}/participants/{participant['id']}/leave")
    assert left.json()["status"] == "FINISHED"

    again = join(client, session["access_code"], "Ana")["participant"]
    assert again["id"] == participant["id"]
    assert again["status"] == "ACTIVE"


@pytest.mark.parametrize(
    "access_code,name",
    [("AB", "Ana"), ("ABCDEF", "A"), ("   ", "Ana"), ("ABCDEF", "   ")],
)
def test_join_rejects_short_input(client, access_code, name):
    response = client.post("/tally/join", json={"access_code": access_code, "participant_name": name})
    assert response.status_code == 400
    assert response.json()["code"] == ErrorCatalog.VALIDATION_ERROR.code


def test_join_unknown_code(client):
    response = client.post("/tally/join", json={"access_code": "ZZZZZZ", "participant_name": "Ana"})
    assert response.status_code == 404
    assert response.json()["code"] == ErrorCatalog.SESSION_NOT_FOUND.code


def test_join_finalized_session_looks_unknown(client):
    session = create_session(client)
    assert finalize(client, session["id"]).status_code == 200
    response = client.post("/tally/join", json={"access_code": session["access_code"], "participant_name": "Ana"})
    assert response.status_code == 404


def test_invalid_code_is_delayed(client, monkeypatch):
    monkeypatch.setattr(settings, "JOIN_INVALID_CODE_DELAY_SECONDS", 0.3)
    started = time.monotonic()
    response = client.post("/tally/join", json={"access_code": "NOPE42", "participant_name": "Ana"})
    assert response.status_code == 404
    assert response.json()["code"] == ErrorCatalog.SESSION_NOT_FOUND.code
    assert time.monotonic() - started >= 0.3


def test_service_reports_invalid_code_as_not_found(db_session):
    with pytest.raises(AppError) as excinfo:
        SessionService(db_session).join_session(access_code="NOPE42", participant_name="Ana")
    assert excinfo.value.error.code == ErrorCatalog.SESSION_NOT_FOUND.code


def test_session_full(client):
    session = create_session(client)
    for index in range(settings.MAX_PARTICIPANTS_PER_SESSION):
        join(client, session["access_code"], f"Counter {index}")
    response = client.post(
        "/tally/join",
        json={"access_code": session["access_code"], "participant_name": "One too many"},
    )
    assert response.status_code == 429
    assert response.json()["code"] == ErrorCatalog.SESSION_FULL.code

    # Existing participants can still rejoin.
    join(client, session["access_code"], "Counter 0")


def test_join_rate_limit(client, monkeypatch):
    monkeypatch.setattr(settings, "JOIN_RATE_LIMIT", "2/minute")
    limiter.reset()
    monkeypatch.setattr(limiter, "enabled", True)
    try:
        payload = {"access_code": "ZZZZZZ", "participant_name": "Ana"}
        assert client.post("/tally/join", json=payload).status_code == 404
        assert client.post("/tally/join", json=payload).status_code == 404
        response = client.post("/tally/join", json=payload)
        assert response.status_code == 429
        assert response.json()["code"] == ErrorCatalog.RATE_LIMITED.code
        assert int(response.headers["Retry-After"]) > 0
    finally:
        limiter.reset()


def test_leave_requires_membership(client):
    first = create_session(client)
    second = create_session(client)
    participant = join(client, first["access_code"], "Ana")["participant"]
    response = client.post(f"/tally/sessions/{second['id']}/participants/{participant['id']}/leave")
    assert response.status_code == 403
    assert response.json()["code"] == ErrorCatalog.PARTICIPANT_NOT_IN_SESSION.code


def test_leave_is_idempotent(client):
    session = create_session(client)
    participant = join(client, session["access_code"], "Ana")["participant"]
    url = f"/tally/sessions/{session['id']}/participants/{participant['id']}/leave"
    first = client.post(url).json()
    second = client.post(url).json()
    assert first["status"] == second["status"] == "FINISHED"
    assert first["left_at"] == second["left_at"]
