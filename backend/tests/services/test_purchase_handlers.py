"""PurchaseHandlers — stale pending expiry, lost transitions, intent serialisation.

Driven directly over a SqlMarketplaceStore so purchase rows can be back-dated
and a rival writer can move a row between the handler's read and its update.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from datanest.core.errors import (
    ConflictError, InvalidTransitionError, PaymentGatewayError, PaymentRejectedError,
)
from datanest.repositories.sql_store import SqlMarketplaceStore
from datanest.services.handle_purchases import PurchaseHandlers
from datanest.services.keyed_locks import KeyedLocks


@pytest.fixture
async def store(test_db):
    return SqlMarketplaceStore(test_db)


@pytest.fixture
async def listing(store):
    """(buyer, seller, dataset) persisted through the repositories."""
    buyer = await store.users.create(
        {"email": "b@example.com", "name": "B", "role": "buyer"},
    )
    seller = await store.users.create(
        {"email": "s@example.com", "name": "S", "role": "seller"},
    )
    dataset = await store.datasets.create({
        "seller_id": seller.id, "title": "Prices", "description": "d",
        "price": Decimal("19.99"), "category": "Finance", "tags": [],
        "format": "CSV", "data_type": "tabular", "license": "MIT",
        "file_name": "p.csv", "file_size": 3, "file_path": "1-a.csv",
        "mime_type": "text/csv",
    })
    await store.commit()
    return buyer, seller, dataset


async def test_stale_pending_is_expired_before_new_intent(store, listing, gateway):
    buyer, _, dataset = listing
    stale = await store.purchases.create({
        "buyer_id": buyer.id, "dataset_id": dataset.id, "amount": Decimal("19.99"),
        "external_payment_ref": "pi_old",
        "purchased_at": datetime.now(timezone.utc) - timedelta(minutes=90),
    })
    await store.commit()
    stale_id = stale.id
    handlers = PurchaseHandlers(store, gateway, pending_ttl=timedelta(minutes=30))

    intent = await handlers.create_payment_intent(buyer, dataset.id)

    assert intent.amount == Decimal("19.99")
    assert gateway.calls[0]["amount_cents"] == 1999
    assert gateway.cancelled == ["pi_old"]
    assert (await store.purchases.get(stale_id)).status == "failed"


async def _back_dated_pending(store, buyer, dataset, ref="pi_old"):
    stale = await store.purchases.create({
        "buyer_id": buyer.id, "dataset_id": dataset.id, "amount": Decimal("19.99"),
        "external_payment_ref": ref,
        "purchased_at": datetime.now(timezone.utc) - timedelta(minutes=90),
    })
    await store.commit()
    return stale.id


async def test_uncancellable_stale_intent_stays_payable(store, listing, gateway):
    buyer, _, dataset = listing
    stale_id = await _back_dated_pending(store, buyer, dataset)
    gateway.cancel_fails_with = PaymentRejectedError("PaymentIntent already succeeded")
    handlers = PurchaseHandlers(store, gateway, pending_ttl=timedelta(minutes=30))

    with pytest.raises(ConflictError) as exc_info:
        await handlers.create_payment_intent(buyer, dataset.id)

    assert exc_info.value.code == "PURCHASE_PENDING"
    assert exc_info.value.context.resource_id == str(stale_id)
    assert gateway.calls == []
    assert (await store.purchases.get(stale_id)).status == "pending"

    purchase, notice = await handlers.confirm_payment(buyer, "pi_old")

    assert purchase.status == "completed"
    assert notice is not None


async def test_gateway_outage_during_cancel_keeps_stale_pending(store, listing, gateway):
    buyer, _, dataset = listing
    stale_id = await _back_dated_pending(store, buyer, dataset)
    gateway.cancel_fails_with = PaymentGatewayError("connection reset", "connection_error")
    handlers = PurchaseHandlers(store, gateway, pending_ttl=timedelta(minutes=30))

    with pytest.raises(PaymentGatewayError):
        await handlers.create_payment_intent(buyer, dataset.id)

    assert gateway.calls == []
    assert (await store.purchases.get(stale_id)).status == "pending"


async def test_fresh_pending_still_blocks(store, listing, gateway):
    buyer, _, dataset = listing
    handlers = PurchaseHandlers(store, gateway, pending_ttl=timedelta(minutes=30))
    await handlers.create_payment_intent(buyer, dataset.id)

    with pytest.raises(ConflictError) as exc_info:
        await handlers.create_payment_intent(buyer, dataset.id)

    assert exc_info.value.code == "PURCHASE_PENDING"


async def test_purchase_amount_frozen_at_intent_time(store, listing, gateway):
    buyer, _, dataset = listing
    handlers = PurchaseHandlers(store, gateway)
    await handlers.create_payment_intent(buyer, dataset.id)

    dataset.price = Decimal("99.00")
    await store.commit()
    purchase, notice = await handlers.confirm_payment(buyer, "pi_test_1")

    assert purchase.amount == Decimal("19.99")
    assert notice.amount == Decimal("19.99")


async def test_confirmation_reports_notice_once(store, listing, gateway):
    buyer, seller, dataset = listing
    handlers = PurchaseHandlers(store, gateway)
    await handlers.create_payment_intent(buyer, dataset.id)

    _, first = await handlers.confirm_payment(buyer, "pi_test_1")
    _, second = await handlers.confirm_payment(buyer, "pi_test_1")

    assert first.seller_email == "s@example.com"
    assert first.dataset_title == "Prices"
    assert second is None


# ─── lost transitions ────────────────────────────────────────────

def _rival_moves_first(monkeypatch, store, rival_target, rival_writes=None):
    """The handler's next purchase update runs after a rival already moved the row."""
    real = store.purchases.transition_status

    async def racing(purchase_id, expected, target):
        assert await real(purchase_id, expected, rival_target)
        if rival_writes:
            await rival_writes()
        await store.commit()
        return await real(purchase_id, expected, target)

    monkeypatch.setattr(store.purchases, "transition_status", racing)


async def test_confirmation_lost_to_rival_confirmation_counts_once(
    store, listing, gateway, monkeypatch,
):
    buyer, seller, dataset = listing
    buyer_id, seller_id = buyer.id, seller.id
    handlers = PurchaseHandlers(store, gateway)
    await handlers.create_payment_intent(buyer, dataset.id)

    async def rival_counters():
        await store.users.increment_total_purchases(buyer_id)
        await store.users.add_earnings(seller_id, Decimal("19.99"))

    _rival_moves_first(monkeypatch, store, "completed", rival_counters)
    purchase, notice = await handlers.confirm_payment(buyer, "pi_test_1")

    assert purchase.status == "completed"
    assert notice is None
    assert (await store.users.get(buyer_id)).total_purchases == 1
    assert (await store.users.get(seller_id)).total_earnings == Decimal("19.99")


async def test_confirmation_lost_to_rival_failure_is_conflict(
    store, listing, gateway, monkeypatch,
):
    buyer, seller, dataset = listing
    buyer_id, seller_id = buyer.id, seller.id
    handlers = PurchaseHandlers(store, gateway)
    await handlers.create_payment_intent(buyer, dataset.id)

    _rival_moves_first(monkeypatch, store, "failed")
    with pytest.raises(InvalidTransitionError) as exc_info:
        await handlers.confirm_payment(buyer, "pi_test_1")

    assert exc_info.value.current == "failed"
    assert (await store.users.get(buyer_id)).total_purchases == 0
    assert (await store.users.get(seller_id)).total_earnings == Decimal("0")


async def test_failure_lost_to_rival_failure_is_success(
    store, listing, gateway, monkeypatch,
):
    buyer, _, dataset = listing
    handlers = PurchaseHandlers(store, gateway)
    await handlers.create_payment_intent(buyer, dataset.id)

    _rival_moves_first(monkeypatch, store, "failed")
    purchase = await handlers.fail_payment(buyer, "pi_test_1")

    assert purchase.status == "failed"


async def test_intent_creation_serialised_per_key():
    locks = KeyedLocks()
    order: list[str] = []

    async def critical(name: str):
        async with locks.hold(("buyer", "dataset")):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(critical("a"), critical("b"))

    assert order == ["a-in", "a-out", "b-in", "b-out"]
    assert len(locks) == 0


async def test_different_keys_do_not_block():
    locks = KeyedLocks()
    entered = asyncio.Event()

    async def holder():
        async with locks.hold("k1"):
            await entered.wait()

    task = asyncio.create_task(holder())
    await asyncio.sleep(0)
    async with locks.hold("k2"):
        entered.set()
    await task

    assert len(locks) == 0
