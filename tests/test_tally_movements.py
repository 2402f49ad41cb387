import random
import uuid
from decimal import Decimal

import pytest

from app.tally.core.config import settings
from app.tally.core.error_catalog import ErrorCatalog
from app.tally.core.metrics import metrics
from app.tally.db.models import CountSession, Movement, SESSION_STATUS_CLOSING
from tests.helpers import auth_headers, create_session, finalize, join, movement, push


def _balances(rows):
    return {row["barcode"]: row for row in rows}


def _joined(client, name="Ana"):
    session = create_session(client)
    participant = join(client, session["access_code"], name)["participant"]
    return session, participant


def test_push_movements_returns_aggregates(client):
    session, participant = _joined(client)
    response = push(
        client,
        session["id"],
        participant["id"],
        [movement("X", 2), movement("X", 1), movement("X", 2, "WAREHOUSE")],
    )
    assert response.status_code == 200
    body = response.json()
    assert body["accepted_count"] == 3
    assert body["duplicate_count"] == 0
    balance = _balances(body["updated_aggregates"])["X"]
    assert Decimal(balance["store"]) == Decimal("3")
    assert Decimal(balance["warehouse"]) == Decimal("2")
    assert Decimal(balance["total"]) == Decimal("5")


def test_resubmitted_batch_is_idempotent(client):
    session, participant = _joined(client)
    batch = [movement("X", 1), movement("Y", "0.5")]
    first = push(client, session["id"], participant["id"], batch).json()
    second = push(client, session["id"], participant["id"], batch).json()
    assert first["accepted_count"] == 2
    assert second["accepted_count"] == 0
    assert second["duplicate_count"] == 2
    assert _balances(first["updated_aggregates"]) == _balances(second["updated_aggregates"])


def test_duplicate_within_batch_counts_once(client):
    session, participant = _joined(client)
    repeated = movement("X", 4)
    body = push(client, session["id"], participant["id"], [repeated, repeated]).json()
    assert body["accepted_count"] == 1
    assert body["duplicate_count"] == 1
    assert Decimal(_balances(body["updated_aggregates"])["X"]["total"]) == Decimal("4")


def test_same_client_id_with_other_payload_keeps_first(client):
    session, participant = _joined(client)
    client_id = str(uuid.uuid4())
    push(client, session["id"], participant["id"], [movement("X", 1, client_id=client_id)])
    body = push(client, session["id"], participant["id"], [movement("X", 9, client_id=client_id)]).json()
    assert body["duplicate_count"] == 1
    assert Decimal(_balances(body["updated_aggregates"])["X"]["total"]) == Decimal("1")


def test_aggregates_independent_of_batch_order(client):
    session, participant = _joined(client)
    other = join(client, session["access_code"], "Ben")["participant"]
    items = [movement("X", quantity) for quantity in ("1", "2.5", "-1", "0.125", "3")]
    items += [movement("Y", "1", "WAREHOUSE"), movement("Y", "-0.5", "WAREHOUSE")]
    random.Random(7).shuffle(items)
    push(client, session["id"], other["id"], items[:3])
    push(client, session["id"], participant["id"], items[3:])
    push(client, session["id"], participant["id"], items)

    rows = _balances(client.get(f"/tally/sessions/{session['id']}/aggregates").json()["rows"])
    assert Decimal(rows["X"]["store"]) == Decimal("5.625")
    assert Decimal(rows["Y"]["warehouse"]) == Decimal("0.5")


def test_two_participants_add_to_same_barcode(client):
    session, ana = _joined(client)
    ben = join(client, session["access_code"], "Ben")["participant"]
    first, second = movement("X", 1), movement("X", 1)
    second["timestamp"] = first["timestamp"]
    push(client, session["id"], ana["id"], [first])
    push(client, session["id"], ben["id"], [second])
    body = client.get(f"/tally/sessions/{session['id']}/aggregates").json()
    assert Decimal(_balances(body["rows"])["X"]["total"]) == Decimal("2")
    assert body["total_movements"] == 2


def test_negative_quantities_correct_counts(client):
    session, participant = _joined(client)
    body = push(
        client,
        session["id"],
        participant["id"],
        [movement("X", 5), movement("X", -2)],
    ).json()
    assert Decimal(_balances(body["updated_aggregates"])["X"]["total"]) == Decimal("3")


def test_push_to_finalized_session_is_rejected(client, db_session):
    session, participant = _joined(client)
    push(client, session["id"], participant["id"], [movement("X", 1)])
    assert finalize(client, session["id"]).status_code == 200

    response = push(client, session["id"], participant["id"], [movement("X", 1)])
    assert response.status_code == 409
    assert response.json()["code"] == ErrorCatalog.SESSION_CLOSED.code
    assert db_session.query(Movement).count() == 1


def test_push_to_closing_session_is_rejected(client, db_session):
    session, participant = _joined(client)
    push(client, session["id"], participant["id"], [movement("X", 1)])
    count_session = db_session.get(CountSession, uuid.UUID(session["id"]))
    count_session.status = SESSION_STATUS_CLOSING
    db_session.commit()

    response = push(client, session["id"], participant["id"], [movement("X", 1)])
    assert response.status_code == 409
    assert response.json()["code"] == ErrorCatalog.SESSION_CLOSED.code
    assert response.json()["details"]["status"] == "CLOSING"
    assert db_session.query(Movement).count() == 1


def test_push_by_foreign_participant_is_rejected(client):
    session, _ = _joined(client)
    _, intruder = _joined(client, "Eve")
    response = push(client, session["id"], intruder["id"], [movement("X", 1)])
    assert response.status_code == 403
    assert response.json()["code"] == ErrorCatalog.PARTICIPANT_NOT_IN_SESSION.code


def test_push_to_unknown_session(client):
    response = push(client, str(uuid.uuid4()), str(uuid.uuid4()), [movement("X", 1)])
    assert response.status_code == 404


def test_finished_participant_can_still_sync(client):
    session, participant = _joined(client)
    client.post(f"/tally/sessions/{session['id']}/participants/{participant['id']}/leave")
    response = push(client, session["id"], participant["id"], [movement("X", 1)])
    assert response.status_code == 200


@pytest.mark.parametrize(
    "override",
    [
        {"barcode": "bad code!"},
        {"barcode": ""},
        {"quantity": "100001"},
        {"quantity": "-10001"},
        {"quantity": "1.0001"},
        {"location_tag": "BACKROOM"},
        {"timestamp": 1000},
        {"client_id": "not-a-uuid"},
    ],
)
def test_invalid_movement_rejected(client, override):
    session, participant = _joined(client)
    item = movement("X", 1)
    item.update(override)
    response = push(client, session["id"], participant["id"], [item])
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == ErrorCatalog.VALIDATION_ERROR.code
    assert body["details"]["errors"]


def test_empty_and_oversized_batches_rejected(client, monkeypatch):
    session, participant = _joined(client)
    assert push(client, session["id"], participant["id"], []).status_code == 400

    monkeypatch.setattr(settings, "SYNC_MAX_BATCH", 2)
    items = [movement("X", 1) for _ in range(3)]
    assert push(client, session["id"], participant["id"], items).status_code == 400


def test_location_defaults_to_store(client):
    session, participant = _joined(client)
    item = movement("X", 1)
    item.pop("location_tag")
    body = push(client, session["id"], participant["id"], [item]).json()
    assert Decimal(_balances(body["updated_aggregates"])["X"]["store"]) == Decimal("1")


def test_updated_aggregates_cover_batch_barcodes_only(client):
    session, participant = _joined(client)
    push(client, session["id"], participant["id"], [movement("A", 1)])
    body = push(client, session["id"], participant["id"], [movement("B", 1)]).json()
    assert [row["barcode"] for row in body["updated_aggregates"]] == ["B"]


def test_status_and_aggregates_after_finalize(client):
    session, participant = _joined(client)
    assert client.get(f"/tally/sessions/{session['id']}/status").json()["status"] == "OPEN"
    finalize(client, session["id"])
    status = client.get(f"/tally/sessions/{session['id']}/status")
    assert status.status_code == 409
    assert status.json()["details"]["status"] == "FINALIZED"
    assert client.get(f"/tally/sessions/{session['id']}/aggregates").status_code == 409


def test_reset_clears_movements(client):
    session, participant = _joined(client)
    push(client, session["id"], participant["id"], [movement("X", 1), movement("Y", 2)])

    response = client.post(f"/tally/sessions/{session['id']}/reset", headers=auth_headers())
    assert response.status_code == 200
    assert response.json()["deleted_movements"] == 2
    body = client.get(f"/tally/sessions/{session['id']}/aggregates").json()
    assert body["rows"] == []


def test_movement_metrics(client):
    metrics.reset()
    session, participant = _joined(client)
    batch = [movement("X", 1), movement("X", 1)]
    push(client, session["id"], participant["id"], batch)
    push(client, session["id"], participant["id"], batch)

    text = client.get("/metrics").text
    assert 'tally_movements_total{outcome="accepted"} 2.0' in text
    assert 'tally_movements_total{outcome="duplicate"} 2.0' in text
