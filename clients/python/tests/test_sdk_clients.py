from __future__ import annotations

from decimal import Decimal

import pytest
import responses
from responses import matchers

from tally_client_sdk import LocationTag, SessionStatus, new_movement
from tally_client_sdk.exceptions import AlreadyFinalizedError, CatalogLockedError, SessionFullError

BASE_URL = "https://api.example.com"
SESSION_ID = "11111111-1111-1111-1111-111111111111"
PARTICIPANT_ID = "22222222-2222-2222-2222-222222222222"

_SESSION = {
    "id": SESSION_ID,
    "name": "Front store",
    "access_code": "ABC234",
    "mode": "MULTIPLAYER",
    "status": "OPEN",
    "created_at": "2024-05-01T10:00:00",
}
_PARTICIPANT = {"id": PARTICIPANT_ID, "display_name": "Ana", "status": "ACTIVE", "joined_at": "2024-05-01T10:01:00"}


def test_new_movement_defaults() -> None:
    movement = new_movement(" 7501 ", 2)
    assert movement.barcode == "7501"
    assert movement.quantity == Decimal("2")
    assert movement.location_tag == LocationTag.STORE
    assert movement.client_id
    assert movement.timestamp > 0
    assert new_movement("7501", 1).client_id != movement.client_id


@responses.activate
def test_join_and_push(counting_client) -> None:
    responses.add(
        responses.POST,
        f"{BASE_URL}/tally/join",
        json={"session": _SESSION, "participant": _PARTICIPANT},
        match=[matchers.json_params_matcher({"access_code": "abc234", "participant_name": "Ana"})],
    )
    movement = new_movement("X", "1.5", "WAREHOUSE", client_id="c-1", timestamp_ms=1700000000000)
    responses.add(
        responses.POST,
        f"{BASE_URL}/tally/sessions/{SESSION_ID}/movements",
        json={
            "accepted_count": 1,
            "duplicate_count": 0,
            "updated_aggregates": [{"barcode": "X", "store": "0", "warehouse": "1.5", "total": "1.5"}],
        },
        match=[
            matchers.json_params_matcher(
                {
                    "participant_id": PARTICIPANT_ID,
                    "movements": [
                        {
                            "client_id": "c-1",
                            "barcode": "X",
                            "quantity": "1.5",
                            "location_tag": "WAREHOUSE",
                            "timestamp": 1700000000000,
                        }
                    ],
                }
            )
        ],
    )

    joined = counting_client.join("abc234", "Ana")
    assert joined.session.status == SessionStatus.OPEN
    result = counting_client.push_movements(joined.session.id, joined.participant.id, [movement])
    assert result.accepted_count == 1
    assert result.updated_aggregates[0].warehouse == Decimal("1.5")
    assert "Authorization" not in responses.calls[0].request.headers


@responses.activate
def test_join_full_session(counting_client) -> None:
    responses.add(
        responses.POST,
        f"{BASE_URL}/tally/join",
        json={"code": "SESSION_FULL", "message": "Session is full", "details": {"limit": 10}},
        status=429,
    )
    with pytest.raises(SessionFullError):
        counting_client.join("ABC234", "Ana")


@responses.activate
def test_products_and_status(counting_client) -> None:
    responses.add(
        responses.GET,
        f"{BASE_URL}/tally/sessions/{SESSION_ID}/products",
        json={
            "rows": [
                {
                    "product_code": "P1",
                    "barcode": "X",
                    "description": "Socks",
                    "system_balance": "4",
                    "counted_store": "3",
                    "counted_warehouse": "2",
                    "counted_total": "5",
                }
            ],
            "total": 1,
            "page": 2,
            "page_size": 10,
        },
        match=[matchers.query_param_matcher({"page": "2", "page_size": "10"})],
    )
    responses.add(
        responses.GET,
        f"{BASE_URL}/tally/sessions/{SESSION_ID}/status",
        json={"session_id": SESSION_ID, "status": "OPEN"},
    )
    page = counting_client.products(SESSION_ID, page=2, page_size=10)
    assert page.rows[0].counted_total == Decimal("5")
    assert counting_client.status(SESSION_ID).status == SessionStatus.OPEN


@responses.activate
def test_host_calls_send_bearer_token(host_client) -> None:
    responses.add(responses.POST, f"{BASE_URL}/tally/sessions", json=_SESSION, status=201)
    responses.add(
        responses.POST,
        f"{BASE_URL}/tally/sessions/{SESSION_ID}/catalog",
        json={"session_id": SESSION_ID, "inserted": 1, "conflicts": []},
        match=[
            matchers.json_params_matcher(
                {"rows": [{"product_code": "P1", "barcode": "X", "description": "Socks", "system_balance": "4"}]}
            )
        ],
    )
    responses.add(
        responses.POST,
        f"{BASE_URL}/tally/sessions/{SESSION_ID}/finalize",
        json={"report_id": "r-1", "session_id": SESSION_ID, "status": "FINALIZED"},
    )

    session = host_client.create_session("Front store")
    imported = host_client.import_catalog(
        session.id,
        [{"product_code": "P1", "barcode": "X", "description": "Socks", "system_balance": "4"}],
    )
    finalized = host_client.finalize(session.id)

    assert imported.inserted == 1
    assert finalized.status == SessionStatus.FINALIZED
    assert all(call.request.headers["Authorization"] == "Bearer host-token" for call in responses.calls)


@responses.activate
def test_host_error_types(host_client) -> None:
    responses.add(
        responses.DELETE,
        f"{BASE_URL}/tally/sessions/{SESSION_ID}/catalog",
        json={"code": "CATALOG_LOCKED", "message": "locked"},
        status=409,
    )
    responses.add(
        responses.POST,
        f"{BASE_URL}/tally/sessions/{SESSION_ID}/finalize",
        json={"code": "ALREADY_FINALIZED", "message": "done"},
        status=400,
    )
    with pytest.raises(CatalogLockedError):
        host_client.clear_catalog(SESSION_ID)
    with pytest.raises(AlreadyFinalizedError):
        host_client.finalize(SESSION_ID)


@responses.activate
def test_saved_reports(host_client) -> None:
    report = {
        "id": "r-1",
        "session_id": SESSION_ID,
        "filename": "Front_store_FINAL.csv",
        "row_count": 1,
        "created_at": "2024-05-01T12:00:00",
    }
    responses.add(responses.GET, f"{BASE_URL}/tally/reports", json={"rows": [report], "total": 1})
    responses.add(responses.GET, f"{BASE_URL}/tally/reports/r-1", json={**report, "content": "barcode;x\n"})
    responses.add(
        responses.GET,
        f"{BASE_URL}/tally/reports/r-1/download",
        body=b"barcode;x\n",
        content_type="text/csv",
    )
    assert host_client.list_reports().rows[0].filename == "Front_store_FINAL.csv"
    assert host_client.get_report("r-1").content == "barcode;x\n"
    assert host_client.download_report("r-1") == b"barcode;x\n"


@responses.activate
def test_pending_sync_and_reset(host_client) -> None:
    responses.add(
        responses.GET,
        f"{BASE_URL}/tally/sessions/{SESSION_ID}/pending",
        json={
            "session_id": SESSION_ID,
            "participants": [
                {
                    "participant_id": PARTICIPANT_ID,
                    "display_name": "Ana",
                    "status": "ACTIVE",
                    "last_sync_at": None,
                    "movement_count": 0,
                    "recently_synced": False,
                }
            ],
            "total_movements": 0,
            "safe_to_close": True,
            "recommendation": "No movements recorded yet.",
            "window_seconds": 30,
        },
    )
    responses.add(
        responses.POST,
        f"{BASE_URL}/tally/sessions/{SESSION_ID}/reset",
        json={"session_id": SESSION_ID, "deleted_movements": 4},
    )
    assert host_client.pending_sync(SESSION_ID).safe_to_close is True
    assert host_client.reset(SESSION_ID) == 4
