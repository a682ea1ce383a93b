"""Trust workflow: request, accept, decline, cancel and revoke edges.

Every state change goes through ``_transition`` which enforces
TRUST_TRANSITIONS; terminal states reject all moves.
"""

import uuid

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.wallet_service.errors import (
    Conflict,
    Forbidden,
    InvalidRequest,
    TrustNotFound,
)
from services.wallet_service.models import (
    REQUEST_TYPE_TO_TRUST_TYPE,
    TRUST_TRANSITIONS,
    TrustRequestType,
    TrustState,
    WalletTrust,
)
from services.wallet_service.services.trust_graph import (
    find_live_trust,
    get_reachable_wallet_ids,
)
from services.wallet_service.services.wallet_store import get_wallet_by_id
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def get_trust_by_id(db: AsyncSession, trust_id: uuid.UUID) -> WalletTrust:
    result = await db.execute(select(WalletTrust).where(WalletTrust.id == trust_id))
    trust = result.scalar_one_or_none()
    if not trust:
        raise TrustNotFound(f"Could not find trust relationship by id: {trust_id}")
    return trust


async def require_wallet_access(
    db: AsyncSession, acting_wallet_id: uuid.UUID, wallet_id: uuid.UUID
) -> None:
    """Raise 403 unless ``acting_wallet_id`` can act for ``wallet_id``."""
    if acting_wallet_id == wallet_id:
        return
    if wallet_id not in await get_reachable_wallet_ids(db, acting_wallet_id):
        raise Forbidden("Have no permission to act on this wallet")


async def request_trust(
    db: AsyncSession,
    *,
    originator_wallet_id: uuid.UUID,
    trust_request_type: TrustRequestType,
    requester_wallet_id: uuid.UUID,
    requestee_wallet_id: uuid.UUID,
) -> WalletTrust:
    """Create a ``requested`` edge requester -> requestee.

    The originator must be able to act for the requester.
    """
    if requester_wallet_id == requestee_wallet_id:
        raise InvalidRequest("A wallet cannot trust itself")

    await require_wallet_access(db, originator_wallet_id, requester_wallet_id)
    requester = await get_wallet_by_id(db, requester_wallet_id)
    requestee = await get_wallet_by_id(db, requestee_wallet_id)
    if not requester.active or not requestee.active:
        raise InvalidRequest("Trust can only be requested between active wallets")

    existing = await find_live_trust(
        db,
        actor_wallet_id=requester.id,
        target_wallet_id=requestee.id,
        request_type=trust_request_type,
    )
    if existing:
        raise Conflict(
            f"A {trust_request_type.value} trust between these wallets is "
            f"already {existing.state.value}"
        )

    trust = WalletTrust(
        actor_wallet_id=requester.id,
        target_wallet_id=requestee.id,
        originator_wallet_id=originator_wallet_id,
        type=REQUEST_TYPE_TO_TRUST_TYPE[trust_request_type],
        request_type=trust_request_type,
        state=TrustState.REQUESTED,
    )
    db.add(trust)
    await db.commit()
    await db.refresh(trust)

    logger.info(
        "Trust %s requested: %s -[%s]-> %s by %s",
        trust.id,
        requester.id,
        trust_request_type.value,
        requestee.id,
        originator_wallet_id,
    )
    return trust


async def establish_management(
    db: AsyncSession,
    *,
    manager_wallet_id: uuid.UUID,
    managed_wallet_id: uuid.UUID,
    commit: bool = True,
) -> WalletTrust:
    """Record a trusted ``manage`` edge for a wallet the manager just created."""
    trust = WalletTrust(
        actor_wallet_id=manager_wallet_id,
        target_wallet_id=managed_wallet_id,
        originator_wallet_id=manager_wallet_id,
        type=REQUEST_TYPE_TO_TRUST_TYPE[TrustRequestType.MANAGE],
        request_type=TrustRequestType.MANAGE,
        state=TrustState.TRUSTED,
    )
    db.add(trust)
    if commit:
        await db.commit()
        await db.refresh(trust)
    else:
        await db.flush()
    return trust


def _transition(trust: WalletTrust, new_state: TrustState) -> None:
    allowed = TRUST_TRANSITIONS.get(trust.state, frozenset())
    if new_state not in allowed:
        raise InvalidRequest(
            f"Cannot move trust relationship from {trust.state.value} to {new_state.value}"
        )
    trust.state = new_state
    if new_state != TrustState.TRUSTED:
        trust.active = False
    trust.updated_at = utc_now()


async def _change_state(
    db: AsyncSession,
    trust_id: uuid.UUID,
    acting_wallet_id: uuid.UUID,
    new_state: TrustState,
    *,
    allowed_parties: tuple[str, ...],
) -> WalletTrust:
    trust = await get_trust_by_id(db, trust_id)
    reachable = await get_reachable_wallet_ids(db, acting_wallet_id)
    if not any(getattr(trust, party) in reachable for party in allowed_parties):
        raise Forbidden("Have no permission to change this trust relationship")

    old_state = trust.state
    _transition(trust, new_state)
    await db.commit()
    await db.refresh(trust)

    logger.info(
        "Trust %s %s -> %s by wallet %s",
        trust.id,
        old_state.value,
        new_state.value,
        acting_wallet_id,
    )
    return trust


async def accept_trust(
    db: AsyncSession, trust_id: uuid.UUID, acting_wallet_id: uuid.UUID
) -> WalletTrust:
    """requested -> trusted. Only the requestee's side may accept."""
    return await _change_state(
        db,
        trust_id,
        acting_wallet_id,
        TrustState.TRUSTED,
        allowed_parties=("target_wallet_id",),
    )


async def decline_trust(
    db: AsyncSession, trust_id: uuid.UUID, acting_wallet_id: uuid.UUID
) -> WalletTrust:
    """requested -> declined. Only the requestee's side may decline."""
    return await _change_state(
        db,
        trust_id,
        acting_wallet_id,
        TrustState.DECLINED,
        allowed_parties=("target_wallet_id",),
    )


async def cancel_trust(
    db: AsyncSession, trust_id: uuid.UUID, acting_wallet_id: uuid.UUID
) -> WalletTrust:
    """requested -> cancelled. The requesting side withdraws its request."""
    return await _change_state(
        db,
        trust_id,
        acting_wallet_id,
        TrustState.CANCELLED,
        allowed_parties=("originator_wallet_id", "actor_wallet_id"),
    )


async def revoke_trust(
    db: AsyncSession, trust_id: uuid.UUID, acting_wallet_id: uuid.UUID
) -> WalletTrust:
    """trusted -> revoked. Either side may revoke."""
    return await _change_state(
        db,
        trust_id,
        acting_wallet_id,
        TrustState.REVOKED,
        allowed_parties=("actor_wallet_id", "target_wallet_id"),
    )
