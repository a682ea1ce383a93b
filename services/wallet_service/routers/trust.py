"""Trust relationship endpoints."""

import uuid

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.wallet_service.schemas import TrustRequestCreate, TrustResponse
from services.wallet_service.services.trust_service import (
    accept_trust,
    cancel_trust,
    decline_trust,
    request_trust,
    revoke_trust,
)
from services.wallet_service.services.wallet_store import get_wallet_by_name
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/trust_relationships", tags=["trust"])


@router.post("", response_model=TrustResponse, status_code=status.HTTP_201_CREATED)
async def create_trust_request(
    body: TrustRequestCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Request trust from ``requester_wallet`` (default: caller) to ``requestee_wallet``."""
    if body.requester_wallet:
        requester_id = (await get_wallet_by_name(db, body.requester_wallet)).id
    else:
        requester_id = current_user.wallet_id
    requestee = await get_wallet_by_name(db, body.requestee_wallet)

    return await request_trust(
        db,
        originator_wallet_id=current_user.wallet_id,
        trust_request_type=body.trust_request_type,
        requester_wallet_id=requester_id,
        requestee_wallet_id=requestee.id,
    )


@router.post("/{trust_id}/accept", response_model=TrustResponse)
async def accept_trust_request(
    trust_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await accept_trust(db, trust_id, current_user.wallet_id)


@router.post("/{trust_id}/decline", response_model=TrustResponse)
async def decline_trust_request(
    trust_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await decline_trust(db, trust_id, current_user.wallet_id)


@router.post("/{trust_id}/cancel", response_model=TrustResponse)
async def cancel_trust_request(
    trust_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await cancel_trust(db, trust_id, current_user.wallet_id)


@router.post("/{trust_id}/revoke", response_model=TrustResponse)
async def revoke_trust_relationship(
    trust_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Revoke a trusted relationship from either side."""
    return await revoke_trust(db, trust_id, current_user.wallet_id)
