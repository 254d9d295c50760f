"""
Pipeline Integration Tests

Engine API and client wired together in-process: trigger ingress ->
event log -> HTTP listing -> fetcher -> dispatcher -> consumers.
"""

import pytest
from fastapi.testclient import TestClient

from growth_client.api_client import ApiClient
from growth_client.config import ClientConfig
from growth_client.dispatcher import EventDispatcher
from growth_client.fetcher import EventFetcher
from growth_client.services import GrowthStateService, ReflectionService
from growth_client.session import SessionManager
from growth_client.sources import HttpEventSource
from growth_engine.api.server import create_app
from growth_engine.engine import GrowthBackend

from tests.fixtures import USER, RecordingConsumer


COMPLETION = {
    "before": {"userId": USER, "status": "pending", "estimatedDepth": "deep"},
    "after": {
        "userId": USER,
        "status": "completed",
        "estimatedDepth": "deep",
        "completedAt": "2026-01-01T10:00:00Z",
    },
}


@pytest.fixture
def http():
    return TestClient(create_app(GrowthBackend()))


@pytest.fixture
def api(http):
    return ApiClient(ClientConfig(), http_client=http)


@pytest.fixture
def consumer():
    return RecordingConsumer()


@pytest.fixture
def session(api, consumer):
    fetcher = EventFetcher(HttpEventSource(api, USER))
    return SessionManager(fetcher, EventDispatcher([consumer]), ClientConfig(), api.ping)


class TestPipeline:

    def test_full_round_trip(self, http, api, session, consumer):
        http.post(f"/triggers/accounts/{USER}")
        http.post("/triggers/tasks/task_1", json=COMPLETION)

        assert session.start() == 1
        assert consumer.calls[0][0] == "task_completed"

        assert ReflectionService(api, USER).submit_reflection("Slow and steady", tags=["calm"])
        assert session.poll_once() == 1
        assert [hook for hook, _ in consumer.calls] == ["task_completed", "reflection_logged"]

        state = GrowthStateService(api, USER).get_growth_state()
        assert state.mass == pytest.approx(1.05)
        assert state.structure == pytest.approx(0.58)
        assert state.vitality == pytest.approx(0.84)

    def test_repeat_polls_deliver_nothing_new(self, http, session, consumer):
        http.post(f"/triggers/accounts/{USER}")
        http.post("/triggers/tasks/task_1", json=COMPLETION)

        session.start()
        assert session.poll_once() == 0
        assert session.poll_once() == 0
        assert len(consumer.calls) == 1

    def test_logout_replays_history(self, http, session, consumer):
        http.post(f"/triggers/accounts/{USER}")
        http.post("/triggers/tasks/task_1", json=COMPLETION)
        session.start()

        session.logout()
        session.start()

        assert len(consumer.calls) == 2
        assert consumer.calls[0] == consumer.calls[1]
