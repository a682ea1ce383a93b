"""Wallet store: lookups, creation, partial update and deactivation."""

import uuid
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.wallet_service.errors import WalletNameConflict, WalletNotFound
from services.wallet_service.models import Wallet
from services.wallet_service.services.storage import AssetUpload, StorageService
from services.wallet_service.services.trust_graph import revoke_wallet_trusts
from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

UPDATABLE_FIELDS = frozenset({"name", "about", "add_to_web_map"})


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_wallet_by_id(db: AsyncSession, wallet_id: uuid.UUID) -> Wallet:
    """Get wallet by ID. Raises 404 if not found."""
    result = await db.execute(select(Wallet).where(Wallet.id == wallet_id))
    wallet = result.scalar_one_or_none()
    if not wallet:
        raise WalletNotFound(f"Could not find wallet by id: {wallet_id}")
    return wallet


async def get_wallet_by_name(db: AsyncSession, name: str) -> Wallet:
    """Get the active wallet with this exact (case-sensitive) name."""
    result = await db.execute(
        select(Wallet).where(Wallet.name == name, Wallet.active.is_(True))
    )
    wallet = result.scalar_one_or_none()
    if not wallet:
        raise WalletNotFound(f"Could not find wallet by name: {name}")
    return wallet


async def wallet_name_exists(db: AsyncSession, name: str) -> bool:
    """True if an active wallet already uses this name."""
    result = await db.execute(
        select(exists().where(Wallet.name == name, Wallet.active.is_(True)))
    )
    return bool(result.scalar())


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def create_wallet(db: AsyncSession, name: str, *, commit: bool = True) -> Wallet:
    """Create a wallet, failing with 409 if an active wallet has the name.

    The pre-check gives a clean error for the common case; the partial unique
    index settles races between concurrent creators.
    """
    if await wallet_name_exists(db, name):
        raise WalletNameConflict(name)

    wallet = Wallet(name=name)
    try:
        async with db.begin_nested():
            db.add(wallet)
    except IntegrityError:
        raise WalletNameConflict(name)

    if commit:
        await db.commit()
        await db.refresh(wallet)

    logger.info("Created wallet %s name=%r", wallet.id, wallet.name)
    return wallet


async def update_wallet(
    db: AsyncSession,
    wallet_id: uuid.UUID,
    changes: dict,
    *,
    logo: Optional[AssetUpload] = None,
    cover: Optional[AssetUpload] = None,
    storage: Optional[StorageService] = None,
) -> Wallet:
    """Apply only the supplied fields, then return the full current record.

    ``changes`` keys outside UPDATABLE_FIELDS are ignored. A new ``name`` must
    be free among active wallets. Logo/cover images are uploaded through the
    asset store and their URLs recorded.
    """
    wallet = await get_wallet_by_id(db, wallet_id)
    changes = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}

    new_name = changes.get("name")
    if new_name is not None and new_name != wallet.name:
        if await wallet_name_exists(db, new_name):
            raise WalletNameConflict(new_name)

    if (logo or cover) and storage is None:
        raise ValueError("storage is required to replace wallet images")
    if logo:
        changes["logo_url"] = await storage.upload_asset(logo)
    if cover:
        changes["cover_url"] = await storage.upload_asset(cover)

    for field, value in changes.items():
        setattr(wallet, field, value)
    wallet.updated_at = utc_now()

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise WalletNameConflict(new_name)

    await db.refresh(wallet)
    logger.info("Updated wallet %s fields=%s", wallet.id, sorted(changes))
    return wallet


async def deactivate_wallet(db: AsyncSession, wallet_id: uuid.UUID) -> Wallet:
    """Two-step removal: revoke every live trust edge, then flag inactive.

    Wallets are never hard-deleted; the name becomes free for reuse.
    """
    wallet = await get_wallet_by_id(db, wallet_id)
    if not wallet.active:
        return wallet

    revoked = await revoke_wallet_trusts(db, wallet.id)
    wallet.active = False
    wallet.updated_at = utc_now()
    await db.commit()
    await db.refresh(wallet)

    logger.info("Deactivated wallet %s (%d trust edges closed)", wallet.id, revoked)
    return wallet
