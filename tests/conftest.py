from datetime import datetime, timezone
from typing import Callable, List

import httpx
import pytest

from analytics.consumer.config import TransportConfig
from analytics.consumer.http import Transport
from analytics.events.builders import build_identify_record, build_track_record
from analytics.events.models import EventRecord


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without network access")


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """
    Keep the developer's environment and config file out of the tests.
    """
    for name in (
        "ANALYTICS_SECRET",
        "ANALYTICS_URL",
        "ANALYTICS_PATH",
        "ANALYTICS_MAX_QUEUE_SIZE",
        "ANALYTICS_TLS_MODE",
        "ANALYTICS_CA_BUNDLE",
    ):
        monkeypatch.delenv(name, raising=False)

    missing_config = tmp_path / "missing" / "config.ini"
    monkeypatch.setattr("analytics.config.main.CONFIG", missing_config)
    monkeypatch.setattr("analytics.config.tls.CONFIG", missing_config)


@pytest.fixture
def fixed_timestamp() -> datetime:
    return datetime(2024, 5, 17, 10, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def track_record(fixed_timestamp: datetime) -> EventRecord:
    return build_track_record(
        event="Signed Up",
        session_id="abc",
        properties={"plan": "pro"},
        timestamp=fixed_timestamp,
    )


@pytest.fixture
def identify_record(fixed_timestamp: datetime) -> EventRecord:
    return build_identify_record(
        user_id="u1",
        traits={"email": "jane@example.com"},
        timestamp=fixed_timestamp,
    )


@pytest.fixture
def make_records() -> Callable[[int], List[EventRecord]]:
    """
    Factory for n distinct track records named e0..e{n-1}.
    """

    def _make(count: int) -> List[EventRecord]:
        return [
            build_track_record(event=f"e{i}", session_id="s1") for i in range(count)
        ]

    return _make


@pytest.fixture
def recorded_requests() -> List[httpx.Request]:
    return []


@pytest.fixture
def transport_factory(recorded_requests: List[httpx.Request]):
    """
    Build a Transport backed by httpx.MockTransport. `responder` receives the
    request and returns an httpx.Response.
    """
    created: List[Transport] = []

    def _make(responder=None, config: TransportConfig = None) -> Transport:
        def handler(request: httpx.Request) -> httpx.Response:
            recorded_requests.append(request)
            if responder is None:
                return httpx.Response(200, json={"success": True})
            return responder(request)

        http_client = httpx.Client(transport=httpx.MockTransport(handler))
        transport = Transport(config or TransportConfig(), http_client=http_client)
        created.append(transport)
        return transport

    yield _make

    for transport in created:
        transport.client.close()
