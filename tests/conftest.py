"""Pytest fixtures for testing"""

from datetime import datetime, timezone
from typing import Any, Dict, Generator, List

import httpx
import pytest
from fastapi.testclient import TestClient

from sidekick_ledger.api.main import create_app
from sidekick_ledger.config import Settings
from sidekick_ledger.domain.ledger import build_obligation
from sidekick_ledger.domain.models import InterestKind, InterestPolicy, Obligation, ObligationKind
from sidekick_ledger.infrastructure.clients.api_key import ApiKeyProvider
from sidekick_ledger.infrastructure.clients.torn import TornClient
from sidekick_ledger.infrastructure.notifications import FeedNotifier
from sidekick_ledger.infrastructure.storage.kv import InMemoryKeyValueStore
from sidekick_ledger.services.store import ObligationStore
from sidekick_ledger.services.tracker import DebtTracker


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeTornAPI:
    """Routes httpx requests to canned Torn responses"""

    def __init__(self):
        self.logs: Dict[str, Dict[str, Any]] = {}
        self.profiles: Dict[int, Dict[str, Any]] = {}
        self.error: Dict[str, Any] | None = None
        self.status_code = 200
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={})
        if self.error:
            return httpx.Response(200, json={"error": self.error})

        path = request.url.path.strip("/")
        if path == "user":
            return httpx.Response(200, json={"log": self.logs})

        player_id = int(path.split("/")[1])
        profile = self.profiles.get(player_id)
        if profile is None:
            return httpx.Response(200, json={"error": {"code": 6, "error": "Incorrect ID"}})
        return httpx.Response(200, json=profile)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def money_log(
    title: str = "Money receive",
    counterparty: int | None = 500,
    money: Any = 400,
    message: str = "loan repayment",
    timestamp: int = int(NOW.timestamp()) - 60,
) -> Dict[str, Any]:
    """Build a raw Torn "Money sending" log entry"""
    field = "sender" if title == "Money receive" else "receiver"
    data: Dict[str, Any] = {"money": money, "message": message}
    if counterparty is not None:
        data[field] = counterparty
    return {"category": "Money sending", "title": title, "timestamp": timestamp, "data": data}


def make_obligation(
    kind: ObligationKind = ObligationKind.LOAN,
    counterparty_id: int | None = 500,
    principal: float = 1000.0,
    interest_kind: InterestKind = InterestKind.NONE,
    rate: float = 0.0,
    created_at: datetime = NOW,
    **overrides: Any,
) -> Obligation:
    obligation = build_obligation(
        kind=kind,
        counterparty_id=counterparty_id,
        counterparty_name=overrides.pop("counterparty_name", "Chedburn"),
        principal=principal,
        interest_policy=InterestPolicy(kind=interest_kind, rate=rate),
        now=created_at,
    )
    for name, value in overrides.items():
        setattr(obligation, name, value)
    return obligation


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        storage_key="test_debt_data",
        torn_api_base="https://torn.test",
        torn_api_key=None,
        api_key_wait_attempts=2,
        api_key_wait_delay_seconds=0.01,
        api_call_spacing_seconds=0,
        reconcile_interval_seconds=0.05,
        reconcile_initial_delay_seconds=0.01,
        interest_interval_seconds=0.05,
        activity_interval_seconds=0.05,
        placeholder_lookup_delay_seconds=0,
        log_window_hours=2,
    )


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def store(kv_store: InMemoryKeyValueStore, test_settings: Settings) -> ObligationStore:
    return ObligationStore(kv_store, test_settings.storage_key)


@pytest.fixture
def notifier() -> FeedNotifier:
    return FeedNotifier()


@pytest.fixture
def fake_torn() -> FakeTornAPI:
    return FakeTornAPI()


@pytest.fixture
def api_keys() -> ApiKeyProvider:
    return ApiKeyProvider("test-key")


@pytest.fixture
def torn_client(api_keys: ApiKeyProvider, fake_torn: FakeTornAPI, test_settings: Settings) -> TornClient:
    return TornClient(api_keys, base_url=test_settings.torn_api_base, transport=fake_torn.transport())


@pytest.fixture
def tracker(
    kv_store: InMemoryKeyValueStore,
    torn_client: TornClient,
    api_keys: ApiKeyProvider,
    notifier: FeedNotifier,
    test_settings: Settings,
) -> DebtTracker:
    return DebtTracker(kv_store, torn_client, api_keys, notifier, test_settings)


@pytest.fixture
def client(tracker: DebtTracker, notifier: FeedNotifier) -> Generator[TestClient, None, None]:
    """FastAPI test client wired to in-memory collaborators, timers disabled"""
    app = create_app(tracker=tracker, notifications=notifier, start_timers=False)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def log_entry():
    """Factory for raw Torn money transfer log entries"""
    return money_log


@pytest.fixture
def obligation_factory():
    """Factory for obligations created at NOW"""
    return make_obligation
