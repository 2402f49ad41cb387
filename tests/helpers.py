from __future__ import annotations

import time
import uuid
from collections.abc import Callable

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url

from app.tally.core.security import create_access_token


def create_postgres_test_database(base_url: str) -> tuple[str, Callable[[], None]]:
    """Create a throwaway database next to ``base_url`` and return its URL plus a dropper."""
    url = make_url(base_url)
    db_name = f"tally_test_{uuid.uuid4().hex}"
    admin_engine = create_engine(url.set(database="postgres"), isolation_level="AUTOCOMMIT", future=True)
    with admin_engine.connect() as conn:
        conn.execute(text(f'CREATE DATABASE "{db_name}"'))

    def cleanup() -> None:
        with admin_engine.connect() as conn:
            conn.execute(
                text("SELECT pg_terminate_backend(pid) FROM pg_stat_activity WHERE datname = :db_name"),
                {"db_name": db_name},
            )
            conn.execute(text(f'DROP DATABASE IF EXISTS "{db_name}"'))
        admin_engine.dispose()

    return str(url.set(database=db_name)), cleanup


def auth_headers(user_id: str = "host-1", company_id: str | None = "company-1") -> dict[str, str]:
    token = create_access_token({"sub": user_id, "company_id": company_id})
    return {"Authorization": f"Bearer {token}"}


def now_ms() -> int:
    return int(time.time() * 1000)


def movement(barcode: str, quantity, location_tag: str = "STORE", client_id: str | None = None) -> dict:
    return {
        "client_id": client_id or str(uuid.uuid4()),
        "barcode": barcode,
        "quantity": str(quantity),
        "location_tag": location_tag,
        "timestamp": now_ms(),
    }


def create_session(client, host: str = "host-1", name: str | None = "Front store") -> dict:
    response = client.post("/tally/sessions", headers=auth_headers(host), json={"name": name})
    assert response.status_code == 201, response.text
    return response.json()


def join(client, access_code: str, name: str) -> dict:
    response = client.post("/tally/join", json={"access_code": access_code, "participant_name": name})
    assert response.status_code == 200, response.text
    return response.json()


def push(client, session_id: str, participant_id: str, movements: list[dict]):
    return client.post(
        f"/tally/sessions/{session_id}/movements",
        json={"participant_id": participant_id, "movements": movements},
    )


def load_catalog(client, session_id: str, rows: list[dict], host: str = "host-1"):
    response = client.post(
        f"/tally/sessions/{session_id}/catalog",
        headers=auth_headers(host),
        json={"rows": rows},
    )
    assert response.status_code == 200, response.text
    return response.json()


def finalize(client, session_id: str, host: str = "host-1"):
    return client.post(f"/tally/sessions/{session_id}/finalize", headers=auth_headers(host))
