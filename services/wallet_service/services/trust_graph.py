"""Trust graph index: reachability and trust listing queries.

Read-only except for ``revoke_wallet_trusts``, which the wallet store calls
when a wallet is deactivated. State transitions of single edges belong to
``trust_service``.

Direction semantics:

* a trusted ``manage`` edge ``actor -> target`` lets the actor act for the target
* a trusted ``yield`` edge ``actor -> target`` lets the target act for the actor

so the wallets reachable from W are W itself, every target of W's ``manage``
edges and every actor of ``yield`` edges pointing at W.
"""

import uuid
from typing import Optional

from libs.common.datetime_utils import day_bounds, utc_now
from services.wallet_service.models import (
    LIVE_TRUST_STATES,
    TrustRequestType,
    TrustState,
    Wallet,
    WalletTrust,
)
from services.wallet_service.schemas import (
    SortOrder,
    TrustFilter,
    WalletQuery,
    WalletSortField,
)
from sqlalchemy import Select, func, or_, select, union, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.engine import Row

_SUMMARY_COLUMNS = (Wallet.id, Wallet.name, Wallet.logo_url, Wallet.created_at)


def _reachable_selects(wallet_id: uuid.UUID) -> tuple[Select, Select, Select]:
    """The focal wallet plus the two directional edge sets, unfiltered."""
    focal = select(*_SUMMARY_COLUMNS).where(Wallet.id == wallet_id)

    managed = (
        select(*_SUMMARY_COLUMNS)
        .join(WalletTrust, WalletTrust.target_wallet_id == Wallet.id)
        .where(
            WalletTrust.actor_wallet_id == wallet_id,
            WalletTrust.request_type == TrustRequestType.MANAGE,
            WalletTrust.state == TrustState.TRUSTED,
            WalletTrust.active.is_(True),
            Wallet.active.is_(True),
        )
    )

    yielded = (
        select(*_SUMMARY_COLUMNS)
        .join(WalletTrust, WalletTrust.actor_wallet_id == Wallet.id)
        .where(
            WalletTrust.target_wallet_id == wallet_id,
            WalletTrust.request_type == TrustRequestType.YIELD,
            WalletTrust.state == TrustState.TRUSTED,
            WalletTrust.active.is_(True),
            Wallet.active.is_(True),
        )
    )
    return focal, managed, yielded


def _apply_wallet_filters(stmt: Select, query: WalletQuery) -> Select:
    if query.name:
        stmt = stmt.where(Wallet.name.icontains(query.name, autoescape=True))

    lower, upper = day_bounds(query.created_at_start_date, query.created_at_end_date)
    if lower is not None:
        stmt = stmt.where(Wallet.created_at >= lower)
    if upper is not None:
        stmt = stmt.where(Wallet.created_at < upper)
    return stmt


async def get_all_wallets(
    db: AsyncSession, wallet_id: uuid.UUID, query: WalletQuery
) -> tuple[list[Row], Optional[int]]:
    """Return the wallets ``wallet_id`` can act for, filtered and paginated.

    Filters are pushed into each branch before the UNION; ordering and
    pagination apply to the combined set. The total is only computed when
    ``query.count`` is set since it costs a second pass.
    """
    branches = [_apply_wallet_filters(s, query) for s in _reachable_selects(wallet_id)]
    combined = union(*branches).subquery("reachable")

    sort_column = combined.c[query.sort_by.value]
    ordering = sort_column.asc() if query.order == SortOrder.ASC else sort_column.desc()
    tie_break = combined.c.id.asc()
    if query.sort_by == WalletSortField.ID:
        tie_break = combined.c.created_at.asc()

    stmt = (
        select(combined)
        .order_by(ordering, tie_break)
        .offset(query.offset)
        .limit(query.limit)
    )
    rows = list((await db.execute(stmt)).all())

    total = None
    if query.count:
        total = (
            await db.execute(select(func.count()).select_from(combined))
        ).scalar_one()

    return rows, total


async def get_reachable_wallet_ids(
    db: AsyncSession, wallet_id: uuid.UUID
) -> set[uuid.UUID]:
    """Every wallet id ``wallet_id`` can act for, itself included."""
    combined = union(*_reachable_selects(wallet_id)).subquery("reachable")
    result = await db.execute(select(combined.c.id))
    return set(result.scalars().all())


async def get_trust_relationships(
    db: AsyncSession, wallet_id: uuid.UUID, filters: TrustFilter
) -> tuple[list[WalletTrust], int]:
    """Edges where ``wallet_id`` is the actor or the target, matching ``filters``."""
    conditions = [
        or_(
            WalletTrust.actor_wallet_id == wallet_id,
            WalletTrust.target_wallet_id == wallet_id,
        )
    ]
    if filters.state is not None:
        conditions.append(WalletTrust.state == filters.state)
    if filters.type is not None:
        conditions.append(WalletTrust.type == filters.type)
    if filters.request_type is not None:
        conditions.append(WalletTrust.request_type == filters.request_type)

    total = (
        await db.execute(
            select(func.count()).select_from(WalletTrust).where(*conditions)
        )
    ).scalar_one()

    sort_column = getattr(WalletTrust, filters.sort_by.value)
    ordering = sort_column.asc() if filters.order == SortOrder.ASC else sort_column.desc()
    result = await db.execute(
        select(WalletTrust)
        .where(*conditions)
        .order_by(ordering, WalletTrust.created_at.asc(), WalletTrust.id.asc())
        .offset(filters.offset)
        .limit(filters.limit)
    )
    return list(result.scalars().all()), total


async def revoke_wallet_trusts(db: AsyncSession, wallet_id: uuid.UUID) -> int:
    """Close every live edge touching ``wallet_id``. Caller commits.

    Pending requests become ``cancelled``, trusted edges ``revoked``; all are
    flagged inactive. Returns the number of edges closed.
    """
    touching = or_(
        WalletTrust.actor_wallet_id == wallet_id,
        WalletTrust.target_wallet_id == wallet_id,
    )
    closed = 0
    for from_state, to_state in (
        (TrustState.REQUESTED, TrustState.CANCELLED),
        (TrustState.TRUSTED, TrustState.REVOKED),
    ):
        result = await db.execute(
            update(WalletTrust)
            .where(touching, WalletTrust.state == from_state)
            .values(state=to_state, active=False, updated_at=utc_now())
            .execution_options(synchronize_session="fetch")
        )
        closed += result.rowcount or 0
    return closed


async def find_live_trust(
    db: AsyncSession,
    *,
    actor_wallet_id: uuid.UUID,
    target_wallet_id: uuid.UUID,
    request_type: TrustRequestType,
) -> Optional[WalletTrust]:
    result = await db.execute(
        select(WalletTrust).where(
            WalletTrust.actor_wallet_id == actor_wallet_id,
            WalletTrust.target_wallet_id == target_wallet_id,
            WalletTrust.request_type == request_type,
            WalletTrust.state.in_(LIVE_TRUST_STATES),
            WalletTrust.active.is_(True),
        )
    )
    return result.scalars().first()
