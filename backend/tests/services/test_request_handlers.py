"""RequestHandlers — acceptance reports who to notify, once."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from datanest.core.errors import ConflictError
from datanest.repositories.sql_store import SqlMarketplaceStore
from datanest.services.handle_requests import AcceptanceNotice, RequestHandlers


@pytest.fixture
async def store(test_db):
    return SqlMarketplaceStore(test_db)


@pytest.fixture
async def proposed(store):
    """(buyer, request, first proposal, second proposal) from two sellers."""
    buyer = await store.users.create({"email": "b@x.io", "name": "B", "role": "buyer"})
    first_seller = await store.users.create(
        {"email": "s1@x.io", "name": "Sue", "role": "seller"},
    )
    second_seller = await store.users.create(
        {"email": "s2@x.io", "name": "Sid", "role": "seller"},
    )
    request = await store.requests.create({
        "buyer_id": buyer.id, "title": "Port arrivals", "description": "d",
        "category": "Logistics", "tags": [],
        "budget_min": Decimal("1"), "budget_max": Decimal("2"),
        "deadline": datetime(2027, 6, 30, tzinfo=timezone.utc),
    })
    first = await store.proposals.create({
        "request_id": request.id, "seller_id": first_seller.id, "price": Decimal("1"),
        "delivery_time": 3, "cover_letter": "a",
    })
    second = await store.proposals.create({
        "request_id": request.id, "seller_id": second_seller.id, "price": Decimal("2"),
        "delivery_time": 3, "cover_letter": "b",
    })
    await store.commit()
    return buyer, request, first, second


async def test_acceptance_returns_notice_for_proposal_seller(store, proposed):
    buyer, _, first, _ = proposed
    handlers = RequestHandlers(store)

    proposal, request, notice = await handlers.accept_proposal(buyer, first.id)

    assert proposal.status == "accepted"
    assert request.status == "in_progress"
    assert notice == AcceptanceNotice(
        seller_email="s1@x.io", seller_name="Sue", request_title="Port arrivals",
    )


async def test_repeat_acceptance_has_no_notice(store, proposed):
    buyer, _, first, _ = proposed
    handlers = RequestHandlers(store)
    await handlers.accept_proposal(buyer, first.id)

    proposal, _, notice = await handlers.accept_proposal(buyer, first.id)

    assert proposal.status == "accepted"
    assert notice is None


async def test_rival_acceptance_refused_without_notice(store, proposed):
    buyer, _, first, second = proposed
    handlers = RequestHandlers(store)
    await handlers.accept_proposal(buyer, first.id)

    with pytest.raises(ConflictError) as exc_info:
        await handlers.accept_proposal(buyer, second.id)

    assert exc_info.value.code == "PROPOSAL_ALREADY_ACCEPTED"
