"""
Fixtures communes : faux Tookan (httpx.MockTransport), horloge pilotable,
collection Mongo en mémoire et application FastAPI de test.
"""
import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from core.dependencies import get_current_merchant, get_tookan_client, get_wallet_cache
from core.exceptions import register_exception_handlers
from core.rate_limit import limiter
from core.security import create_access_token
from routers import admin_tokens, edi, wallets
from services import order_service
from services.tookan_client import TookanClient
from services.wallet_cache import WalletCache


# ============================================================================
# Faux Tookan
# ============================================================================

class FakeTookan:
    """Répond par chemin (create_task, get_fleet_wallet, ...) et enregistre les appels."""

    def __init__(self):
        self.routes: Dict[str, Callable[[dict], httpx.Response]] = {}
        self.calls: List[tuple] = []

    def reply(self, path: str, payload: Any, status_code: int = 200) -> None:
        self.routes[path] = lambda body: httpx.Response(status_code, json=payload)

    def fail(self, path: str, exc: Exception) -> None:
        def _raise(body):
            raise exc
        self.routes[path] = _raise

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.split("/v2/", 1)[-1]
        body = json.loads(request.content or b"{}")
        self.calls.append((path, body))
        if path not in self.routes:
            return httpx.Response(404, text="Cannot POST")
        return self.routes[path](body)

    def calls_to(self, path: str) -> List[dict]:
        return [body for p, body in self.calls if p == path]


@pytest.fixture
def fake_tookan() -> FakeTookan:
    return FakeTookan()


@pytest.fixture
def tookan_client(fake_tookan: FakeTookan) -> TookanClient:
    return TookanClient(
        api_key="test-key",
        base_url="https://tookan.test/v2",
        timeout=2.0,
        transport=httpx.MockTransport(fake_tookan.handler),
    )


# ============================================================================
# Horloge
# ============================================================================

class FakeClock:
    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def wallet_cache(clock: FakeClock) -> WalletCache:
    return WalletCache(ttl_seconds=300, clock=clock)


# ============================================================================
# Collections Mongo en mémoire (sous-ensemble utilisé par token_service et audit_service)
# ============================================================================

def _matches(doc: dict, query: dict) -> bool:
    return all(doc.get(k) == v for k, v in query.items())


def _project(doc: dict, projection: Optional[dict]) -> dict:
    if not projection:
        return dict(doc)
    included = [k for k, v in projection.items() if v and k != "_id"]
    if included:
        return {k: doc[k] for k in included if k in doc}
    return {k: v for k, v in doc.items() if projection.get(k, 1)}


class _Cursor:
    def __init__(self, docs: List[dict]):
        self._docs = docs

    def sort(self, key: str, direction: int = 1) -> "_Cursor":
        self._docs.sort(key=lambda d: d.get(key), reverse=direction < 0)
        return self

    def __aiter__(self):
        self._it = iter(self._docs)
        return self

    async def __anext__(self):
        try:
            return next(self._it)
        except StopIteration:
            raise StopAsyncIteration


class FakeCollection:
    def __init__(self):
        self.docs: List[dict] = []

    async def insert_one(self, doc: dict):
        self.docs.append(dict(doc))
        return SimpleNamespace(inserted_id=len(self.docs))

    async def find_one(self, query: dict, projection: Optional[dict] = None):
        for doc in self.docs:
            if _matches(doc, query):
                return _project(doc, projection)
        return None

    async def update_one(self, query: dict, update: dict):
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(update.get("$set", {}))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    def find(self, query: dict, projection: Optional[dict] = None) -> _Cursor:
        return _Cursor([_project(d, projection) for d in self.docs if _matches(d, query)])


@pytest.fixture
def fake_db(monkeypatch) -> SimpleNamespace:
    fake = SimpleNamespace(api_tokens=FakeCollection(), audit_logs=FakeCollection())
    monkeypatch.setattr("services.token_service.db", fake)
    monkeypatch.setattr("services.audit_service.db", fake)
    return fake


# ============================================================================
# Application de test
# ============================================================================

@pytest.fixture(autouse=True)
def _isolate_process_state():
    limiter.enabled = False
    order_service._pending_submissions.clear()
    yield
    limiter.enabled = True


def create_test_app() -> FastAPI:
    app = FastAPI(title="Tookan bridge test")
    app.state.limiter = limiter
    register_exception_handlers(app)
    app.include_router(edi.router, prefix="/api/edi")
    app.include_router(admin_tokens.router, prefix="/api/admin/tokens")
    app.include_router(wallets.router, prefix="/api/wallets")
    return app


MERCHANT = {"id": "7", "token_name": "partner-A"}


@pytest.fixture
def test_app(tookan_client: TookanClient, wallet_cache: WalletCache) -> FastAPI:
    app = create_test_app()
    app.dependency_overrides[get_tookan_client] = lambda: tookan_client
    app.dependency_overrides[get_wallet_cache] = lambda: wallet_cache
    app.dependency_overrides[get_current_merchant] = lambda: MERCHANT
    return app


@pytest.fixture
def client(test_app: FastAPI):
    with TestClient(test_app) as test_client:
        yield test_client


def bearer(role: str = "admin", sub: str = "usr_ops") -> dict:
    return {"Authorization": f"Bearer {create_access_token(sub, role)}"}


@pytest.fixture
def admin_headers() -> dict:
    return bearer("admin")


@pytest.fixture
def user_headers() -> dict:
    return bearer("user", sub="usr_finance")
