from decimal import Decimal

from app.tally.core.config import settings
from app.tally.core.error_catalog import ErrorCatalog
from tests.helpers import auth_headers, create_session, finalize, join, load_catalog, movement, push


def _rows(count: int) -> list[dict]:
    return [
        {
            "product_code": f"P{index:03d}",
            "barcode": f"{7000 + index}",
            "description": f"Product {index:03d}",
            "system_balance": "1",
        }
        for index in range(count)
    ]


def test_import_catalog_reports_conflicts(client):
    session = create_session(client)
    first = load_catalog(client, session["id"], _rows(3))
    assert first["inserted"] == 3
    assert first["conflicts"] == []

    second = load_catalog(
        client,
        session["id"],
        [
            {"product_code": "P000", "barcode": "7000"},
            {"product_code": "NEW", "barcode": "999"},
            {"product_code": "NEW", "barcode": "998"},
        ],
    )
    assert second["inserted"] == 1
    assert sorted(second["conflicts"]) == ["NEW", "P000"]


def test_import_catalog_requires_host(client):
    session = create_session(client)
    response = client.post(
        f"/tally/sessions/{session['id']}/catalog",
        headers=auth_headers("intruder"),
        json={"rows": _rows(1)},
    )
    assert response.status_code == 403


def test_import_catalog_after_finalize_is_rejected(client):
    session = create_session(client)
    finalize(client, session["id"])
    response = client.post(
        f"/tally/sessions/{session['id']}/catalog",
        headers=auth_headers(),
        json={"rows": _rows(1)},
    )
    assert response.status_code == 409
    assert response.json()["code"] == ErrorCatalog.SESSION_CLOSED.code


def test_clear_catalog_before_counting(client):
    session = create_session(client)
    load_catalog(client, session["id"], _rows(4))
    response = client.delete(f"/tally/sessions/{session['id']}/catalog", headers=auth_headers())
    assert response.status_code == 200
    assert response.json()["deleted"] == 4
    products = client.get(f"/tally/sessions/{session['id']}/products").json()
    assert products["total"] == 0


def test_clear_catalog_locked_once_counting_started(client):
    session = create_session(client)
    load_catalog(client, session["id"], _rows(2))
    participant = join(client, session["access_code"], "Ana")["participant"]
    push(client, session["id"], participant["id"], [movement("7000", 1)])

    response = client.delete(f"/tally/sessions/{session['id']}/catalog", headers=auth_headers())
    assert response.status_code == 409
    assert response.json()["code"] == ErrorCatalog.CATALOG_LOCKED.code
    assert client.get(f"/tally/sessions/{session['id']}/products").json()["total"] == 2


def test_products_include_counted_quantities(client):
    session = create_session(client)
    load_catalog(
        client,
        session["id"],
        [
            {"product_code": "P1", "barcode": "000123", "description": "Cap", "system_balance": "3"},
            {"product_code": "P2", "description": "No barcode", "system_balance": "1"},
        ],
    )
    participant = join(client, session["access_code"], "Ana")["participant"]
    push(
        client,
        session["id"],
        participant["id"],
        [movement("123", 2), movement("123", 1, "WAREHOUSE"), movement("P2", 1)],
    )

    body = client.get(f"/tally/sessions/{session['id']}/products").json()
    rows = {row["product_code"]: row for row in body["rows"]}
    assert Decimal(rows["P1"]["counted_store"]) == Decimal("2")
    assert Decimal(rows["P1"]["counted_warehouse"]) == Decimal("1")
    assert Decimal(rows["P1"]["counted_total"]) == Decimal("3")
    assert Decimal(rows["P2"]["counted_total"]) == Decimal("1")


def test_products_pagination(client, monkeypatch):
    monkeypatch.setattr(settings, "PRODUCTS_MAX_PAGE_SIZE", 5)
    session = create_session(client)
    load_catalog(client, session["id"], _rows(12))

    page = client.get(f"/tally/sessions/{session['id']}/products", params={"page": 3, "page_size": 50}).json()
    assert page["page_size"] == 5
    assert page["total"] == 12
    assert [row["product_code"] for row in page["rows"]] == ["P010", "P011"]


def test_products_closed_session(client):
    session = create_session(client)
    finalize(client, session["id"])
    response = client.get(f"/tally/sessions/{session['id']}/products")
    assert response.status_code == 409
