"""Unit tests for reachability and trust listing queries."""

from datetime import date, datetime, timezone

import pytest
from services.wallet_service.models import TrustRequestType, TrustState
from services.wallet_service.schemas import (
    SortOrder,
    TrustFilter,
    WalletQuery,
    WalletSortField,
)
from services.wallet_service.services.trust_graph import (
    get_all_wallets,
    get_reachable_wallet_ids,
    get_trust_relationships,
)
from tests.factories import TrustFactory


async def _trust(db, actor, target, **overrides):
    trust = TrustFactory.create(actor, target, **overrides)
    db.add(trust)
    await db.commit()
    return trust


# ---------------------------------------------------------------------------
# Reachability
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reachable_includes_focal_and_managed(db_session, make_wallet):
    owner = await make_wallet(name="owner")
    shop = await make_wallet(name="shop")
    await _trust(db_session, owner, shop)

    assert await get_reachable_wallet_ids(db_session, owner.id) == {owner.id, shop.id}
    # manage is one-way
    assert await get_reachable_wallet_ids(db_session, shop.id) == {shop.id}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_yield_edge_points_authority_at_target(db_session, make_wallet):
    owner = await make_wallet(name="owner")
    shop = await make_wallet(name="shop")
    # shop yields to owner: owner may act for shop
    await _trust(db_session, shop, owner, request_type=TrustRequestType.YIELD)

    assert shop.id in await get_reachable_wallet_ids(db_session, owner.id)
    assert owner.id not in await get_reachable_wallet_ids(db_session, shop.id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reachable_ignores_untrusted_inactive_and_other_types(
    db_session, make_wallet
):
    owner = await make_wallet(name="owner")
    pending = await make_wallet(name="pending")
    revoked = await make_wallet(name="revoked")
    sender = await make_wallet(name="sender")
    closed = await make_wallet(name="closed", active=False)

    await _trust(db_session, owner, pending, state=TrustState.REQUESTED)
    await _trust(db_session, owner, revoked, state=TrustState.REVOKED, active=False)
    await _trust(db_session, owner, sender, request_type=TrustRequestType.SEND)
    await _trust(db_session, owner, closed)

    assert await get_reachable_wallet_ids(db_session, owner.id) == {owner.id}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reachable_ignores_deactivated_trusted_edges(db_session, make_wallet):
    owner = await make_wallet(name="owner")
    managed = await make_wallet(name="managed")
    yielder = await make_wallet(name="yielder")

    await _trust(db_session, owner, managed, state=TrustState.TRUSTED, active=False)
    await _trust(
        db_session,
        yielder,
        owner,
        request_type=TrustRequestType.YIELD,
        state=TrustState.TRUSTED,
        active=False,
    )

    assert await get_reachable_wallet_ids(db_session, owner.id) == {owner.id}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_get_all_wallets_name_filter_is_case_insensitive(db_session, make_wallet):
    owner = await make_wallet(name="owner")
    for name in ("Corner Cafe", "CAFE du Nord", "Bakery"):
        await _trust(db_session, owner, await make_wallet(name=name))

    rows, total = await get_all_wallets(
        db_session,
        owner.id,
        WalletQuery(name="cafe", sort_by=WalletSortField.NAME, order=SortOrder.ASC),
    )

    assert [r.name for r in rows] == ["CAFE du Nord", "Corner Cafe"]
    assert total is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_get_all_wallets_name_filter_escapes_wildcards(db_session, make_wallet):
    owner = await make_wallet(name="owner")
    await _trust(db_session, owner, await make_wallet(name="100% juice"))
    await _trust(db_session, owner, await make_wallet(name="1000 juices"))

    rows, _ = await get_all_wallets(db_session, owner.id, WalletQuery(name="100%"))

    assert [r.name for r in rows] == ["100% juice"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_get_all_wallets_paginates_with_stable_order(db_session, make_wallet):
    owner = await make_wallet(name="owner")
    for i in range(14):
        await _trust(db_session, owner, await make_wallet(name=f"managed-{i:02d}"))

    query = dict(sort_by=WalletSortField.NAME, order=SortOrder.ASC, count=True)
    first, total = await get_all_wallets(
        db_session, owner.id, WalletQuery(limit=10, **query)
    )
    second, _ = await get_all_wallets(
        db_session, owner.id, WalletQuery(offset=10, limit=10, **query)
    )

    assert total == 15
    assert len(first) == 10
    assert len(second) == 5
    names = [r.name for r in first + second]
    assert names == sorted(names)
    assert len(set(names)) == 15


@pytest.mark.asyncio
@pytest.mark.unit
async def test_get_all_wallets_date_range_is_inclusive(db_session, make_wallet):
    owner = await make_wallet(
        name="owner", created_at=datetime(2023, 12, 31, 23, 0, tzinfo=timezone.utc)
    )
    for name, created in (
        ("start", datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)),
        ("end", datetime(2024, 1, 31, 23, 59, tzinfo=timezone.utc)),
        ("after", datetime(2024, 2, 1, 0, 0, tzinfo=timezone.utc)),
    ):
        await _trust(db_session, owner, await make_wallet(name=name, created_at=created))

    rows, _ = await get_all_wallets(
        db_session,
        owner.id,
        WalletQuery(
            created_at_start_date=date(2024, 1, 1),
            created_at_end_date=date(2024, 1, 31),
            sort_by=WalletSortField.CREATED_AT,
            order=SortOrder.ASC,
        ),
    )

    assert [r.name for r in rows] == ["start", "end"]


@pytest.mark.unit
def test_wallet_query_rejects_inverted_dates():
    with pytest.raises(ValueError):
        WalletQuery(
            created_at_start_date=date(2024, 2, 1),
            created_at_end_date=date(2024, 1, 1),
        )


@pytest.mark.unit
def test_wallet_query_accepts_uppercase_order():
    assert WalletQuery(order="ASC").order == SortOrder.ASC


# ---------------------------------------------------------------------------
# Trust listing
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_get_trust_relationships_matches_either_side(db_session, make_wallet):
    owner = await make_wallet(name="owner")
    shop = await make_wallet(name="shop")
    bank = await make_wallet(name="bank")
    unrelated = await make_wallet(name="unrelated")
    outgoing = await _trust(db_session, owner, shop)
    incoming = await _trust(
        db_session, bank, owner, request_type=TrustRequestType.SEND,
        state=TrustState.REQUESTED,
    )
    await _trust(db_session, bank, unrelated)

    items, total = await get_trust_relationships(db_session, owner.id, TrustFilter())

    assert total == 2
    assert {t.id for t in items} == {outgoing.id, incoming.id}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_get_trust_relationships_filters(db_session, make_wallet):
    owner = await make_wallet(name="owner")
    shop = await make_wallet(name="shop")
    bank = await make_wallet(name="bank")
    await _trust(db_session, owner, shop)
    pending = await _trust(
        db_session, owner, bank, request_type=TrustRequestType.RECEIVE,
        state=TrustState.REQUESTED,
    )

    items, total = await get_trust_relationships(
        db_session, owner.id, TrustFilter(state=TrustState.REQUESTED)
    )
    assert total == 1
    assert items[0].id == pending.id

    items, total = await get_trust_relationships(
        db_session, owner.id, TrustFilter(request_type=TrustRequestType.MANAGE)
    )
    assert total == 1
    assert items[0].target_wallet_id == shop.id
