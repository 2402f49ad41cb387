from __future__ import annotations

import pytest

from tally_client_sdk import ClientConfig, CountingClient, HostClient, HttpClient, QueueStore, TraceContext

BASE_URL = "https://api.example.com"
SESSION_ID = "11111111-1111-1111-1111-111111111111"
PARTICIPANT_ID = "22222222-2222-2222-2222-222222222222"


@pytest.fixture()
def config() -> ClientConfig:
    return ClientConfig(env_name="test", api_base_url=BASE_URL, retries=2, retry_backoff_seconds=0.01)


@pytest.fixture()
def sleeps() -> list[float]:
    return []


@pytest.fixture()
def http(config, sleeps) -> HttpClient:
    return HttpClient(config, trace=TraceContext(), sleep=sleeps.append)


@pytest.fixture()
def counting_client(http) -> CountingClient:
    return CountingClient(http=http)


@pytest.fixture()
def host_client(http) -> HostClient:
    return HostClient(http=http, access_token="host-token")


@pytest.fixture()
def queue_store(tmp_path) -> QueueStore:
    return QueueStore(session_id=SESSION_ID, participant_id=PARTICIPANT_ID, base_dir=str(tmp_path))
