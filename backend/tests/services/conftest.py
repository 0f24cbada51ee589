"""Service test fixtures — async DB + FastAPI test client + fake collaborators.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB session
    - db_manager patched for the readiness check, which bypasses get_db
    - Payment gateway, blob store and email sender replaced with in-process fakes

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (PostgreSQL-specific features not exercised here)
    - Fakes record calls instead of mocking methods: assertions read like the flow
"""

import itertools

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from datanest.api.deps import get_blob_store, get_email_sender, get_payment_gateway
from datanest.core.repository_protocols import PaymentIntent
from datanest.db.base import Base
from datanest.infrastructure.blob_store import LocalBlobStore
from datanest.infrastructure.database import get_db, DatabaseSessionManager
import datanest.infrastructure.database as db_module
from datanest.main import app

CSV_BYTES = b"city,temp\nLisbon,21\nOslo,4\n"


class FakePaymentGateway:
    """Hands out sequential refs; fail_with / cancel_fails_with make the next calls raise."""

    def __init__(self):
        self.calls: list[dict] = []
        self.cancelled: list[str] = []
        self.fail_with: Exception | None = None
        self.cancel_fails_with: Exception | None = None
        self._counter = itertools.count(1)

    async def create_intent(self, amount_cents, currency, metadata, context=None):
        self.calls.append(
            {"amount_cents": amount_cents, "currency": currency, "metadata": metadata},
        )
        if self.fail_with:
            raise self.fail_with
        ref = f"pi_test_{next(self._counter)}"
        return PaymentIntent(ref=ref, client_secret=f"{ref}_secret")

    async def cancel_intent(self, ref, context=None):
        if self.cancel_fails_with:
            raise self.cancel_fails_with
        self.cancelled.append(ref)


class RecordingEmailSender:
    def __init__(self):
        self.sent: list[dict] = []

    async def send(self, to: str, subject: str, html: str) -> bool:
        self.sent.append({"to": to, "subject": subject, "html": html})
        return True


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "uploads")


@pytest.fixture
async def client(test_engine, test_session_factory, gateway, email_sender, blob_store):
    """FastAPI test client with DB and collaborators overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_email_sender] = lambda: email_sender

    # Readiness check reads db_manager directly
    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


# ─── Actors ──────────────────────────────────────────────────────

@pytest.fixture
def register_user(client):
    """Factory: register a user, return (auth headers, user json)."""
    async def _register(email: str, role: str, name: str = "Tester"):
        resp = await client.post(
            "/api/v1/auth/register",
            json={"email": email, "name": name, "role": role},
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return {"Authorization": f"Bearer {body['access_token']}"}, body["user"]
    return _register


@pytest.fixture
def upload_dataset(client):
    """Factory: multipart upload as the given seller, returns the raw response."""
    async def _upload(
        headers: dict,
        title: str = "City temperatures",
        price: str = "10.00",
        content: bytes = CSV_BYTES,
        mime_type: str = "text/csv",
        category: str = "Climate",
        tags: str = '["weather", "europe"]',
        file_format: str = "CSV",
    ):
        return await client.post(
            "/api/v1/datasets",
            headers=headers,
            files={"dataset": ("temps.csv", content, mime_type)},
            data={
                "title": title,
                "description": "Daily temperatures for European capitals",
                "price": price,
                "category": category,
                "tags": tags,
                "format": file_format,
                "data_type": "tabular",
                "license": "CC-BY-4.0",
            },
        )
    return _upload


@pytest.fixture
async def seller(register_user):
    return await register_user("seller@example.com", "seller", "Sam Seller")


@pytest.fixture
async def buyer(register_user):
    return await register_user("buyer@example.com", "buyer", "Bea Buyer")


@pytest.fixture
async def dataset(seller, upload_dataset):
    headers, _ = seller
    resp = await upload_dataset(headers)
    assert resp.status_code == 201, resp.text
    return resp.json()
