import uuid

from app.tally.core.error_catalog import ErrorCatalog
from tests.helpers import auth_headers, create_session, finalize, join, movement, push


def _finalized_report(client, host="host-1"):
    session = create_session(client, host=host, name="Cold room")
    participant = join(client, session["access_code"], "Ana")["participant"]
    push(client, session["id"], participant["id"], [movement("X", 1)])
    response = finalize(client, session["id"], host=host)
    assert response.status_code == 200
    return session, response.json()["report_id"]


def test_list_and_get_saved_report(client):
    session, report_id = _finalized_report(client)
    listing = client.get("/tally/reports", headers=auth_headers()).json()
    assert listing["total"] == 1
    assert listing["rows"][0]["id"] == report_id
    assert listing["rows"][0]["session_id"] == session["id"]
    assert listing["rows"][0]["filename"] == "Cold_room_FINAL.csv"

    detail = client.get(f"/tally/reports/{report_id}", headers=auth_headers()).json()
    assert detail["row_count"] == 1
    assert detail["content"].startswith("barcode;product_code;")


def test_download_saved_report(client):
    _, report_id = _finalized_report(client)
    response = client.get(f"/tally/reports/{report_id}/download", headers=auth_headers())
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="Cold_room_FINAL.csv"' in response.headers["content-disposition"]
    assert response.text.splitlines()[1] == "X;UNREGISTERED;Unregistered item (X);0;1;1;0;1"


def test_reports_are_private_to_owner(client):
    _, report_id = _finalized_report(client)
    assert client.get("/tally/reports", headers=auth_headers("host-2")).json()["total"] == 0
    response = client.get(f"/tally/reports/{report_id}", headers=auth_headers("host-2"))
    assert response.status_code == 404
    assert response.json()["code"] == ErrorCatalog.REPORT_NOT_FOUND.code
    download = client.get(f"/tally/reports/{report_id}/download", headers=auth_headers("host-2"))
    assert download.status_code == 404


def test_unknown_report(client):
    response = client.get(f"/tally/reports/{uuid.uuid4()}", headers=auth_headers())
    assert response.status_code == 404
