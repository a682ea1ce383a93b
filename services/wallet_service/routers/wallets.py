"""Wallet endpoints: lookups, updates, reachability listing and batch uploads."""

import uuid
from typing import Annotated, Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    UploadFile,
    status,
)
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from pydantic import ValidationError
from services.wallet_service.errors import InvalidRequest
from services.wallet_service.schemas import (
    BatchOperationForm,
    BatchResult,
    TrustFilter,
    TrustListResponse,
    WalletCreateRequest,
    WalletListResponse,
    WalletQuery,
    WalletResponse,
    WalletSummary,
    WalletUpdate,
)
from services.wallet_service.services.batch_service import (
    batch_create_wallet,
    batch_transfer_wallet,
)
from services.wallet_service.services.csv_import import load_batch_rows, save_upload
from services.wallet_service.services.ledger import Ledger, get_ledger
from services.wallet_service.services.storage import (
    AssetUpload,
    StorageService,
    get_storage_service,
)
from services.wallet_service.services.trust_graph import (
    get_all_wallets,
    get_trust_relationships,
)
from services.wallet_service.services.trust_service import (
    establish_management,
    require_wallet_access,
)
from services.wallet_service.services.wallet_store import (
    create_wallet,
    deactivate_wallet,
    get_wallet_by_id,
    update_wallet,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/wallets", tags=["wallets"])


async def _as_asset(upload: Optional[UploadFile]) -> Optional[AssetUpload]:
    if upload is None:
        return None
    return AssetUpload(
        data=await upload.read(),
        filename=upload.filename or "upload",
        content_type=upload.content_type or "application/octet-stream",
    )


def _batch_form(
    sender_wallet: str = Form(...),
    token_transfer_amount_default: int = Form(0),
    wallet_id: uuid.UUID = Form(...),
) -> BatchOperationForm:
    try:
        return BatchOperationForm(
            sender_wallet=sender_wallet,
            token_transfer_amount_default=token_transfer_amount_default,
            wallet_id=wallet_id,
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.errors(include_url=False, include_context=False),
        )


# ---------------------------------------------------------------------------
# Listing / creation
# ---------------------------------------------------------------------------


@router.get("", response_model=WalletListResponse)
async def list_wallets(
    query: Annotated[WalletQuery, Query()],
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List the caller's wallet plus every wallet it manages (paginated)."""
    rows, total = await get_all_wallets(db, current_user.wallet_id, query)
    return WalletListResponse(
        wallets=[WalletSummary.model_validate(row) for row in rows],
        total=total,
        offset=query.offset,
        limit=query.limit,
    )


@router.post("", response_model=WalletResponse, status_code=status.HTTP_201_CREATED)
async def create_managed_wallet(
    body: WalletCreateRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a wallet managed by the caller's wallet."""
    wallet = await create_wallet(db, body.name, commit=False)
    await establish_management(
        db,
        manager_wallet_id=current_user.wallet_id,
        managed_wallet_id=wallet.id,
        commit=False,
    )
    await db.commit()
    await db.refresh(wallet)
    return wallet


# ---------------------------------------------------------------------------
# Batch operations
# ---------------------------------------------------------------------------


@router.post("/batch-create-wallet", response_model=BatchResult)
async def batch_create(
    form: BatchOperationForm = Depends(_batch_form),
    file: UploadFile = File(...),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    ledger: Ledger = Depends(get_ledger),
):
    """Create wallets listed in a CSV (columns: wallet_name, token_transfer_amount_overwrite)."""
    await require_wallet_access(db, current_user.wallet_id, form.wallet_id)
    file_path = await save_upload(file)
    csv_json = await load_batch_rows(file_path)
    return await batch_create_wallet(
        db,
        form.sender_wallet,
        form.token_transfer_amount_default,
        form.wallet_id,
        csv_json,
        file_path,
        ledger=ledger,
    )


@router.post("/batch-transfer", response_model=BatchResult)
async def batch_transfer(
    form: BatchOperationForm = Depends(_batch_form),
    file: UploadFile = File(...),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    ledger: Ledger = Depends(get_ledger),
):
    """Transfer tokens from the sender to every wallet listed in a CSV."""
    await require_wallet_access(db, current_user.wallet_id, form.wallet_id)
    file_path = await save_upload(file)
    csv_json = await load_batch_rows(file_path)
    return await batch_transfer_wallet(
        db,
        form.sender_wallet,
        form.token_transfer_amount_default,
        form.wallet_id,
        csv_json,
        file_path,
        ledger=ledger,
    )


# ---------------------------------------------------------------------------
# Single wallet
# ---------------------------------------------------------------------------


@router.get("/{wallet_id}", response_model=WalletResponse)
async def get_wallet(
    wallet_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Get a wallet the caller can act for."""
    await require_wallet_access(db, current_user.wallet_id, wallet_id)
    return await get_wallet_by_id(db, wallet_id)


@router.patch("/{wallet_id}", response_model=WalletResponse)
async def patch_wallet(
    wallet_id: uuid.UUID,
    display_name: Optional[str] = Form(None),
    about: Optional[str] = Form(None),
    add_to_web_map: Optional[bool] = Form(None),
    logo_image: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    storage: StorageService = Depends(get_storage_service),
):
    """Update the supplied wallet fields and optionally replace its images."""
    await require_wallet_access(db, current_user.wallet_id, wallet_id)

    supplied = {
        key: value
        for key, value in (
            ("display_name", display_name),
            ("about", about),
            ("add_to_web_map", add_to_web_map),
        )
        if value is not None
    }
    try:
        update = WalletUpdate(**supplied)
    except ValidationError as exc:
        raise InvalidRequest(str(exc.errors(include_url=False)[0]["msg"]))

    return await update_wallet(
        db,
        wallet_id,
        update.changes(),
        logo=await _as_asset(logo_image),
        cover=await _as_asset(cover_image),
        storage=storage,
    )


@router.delete("/{wallet_id}", response_model=WalletResponse)
async def remove_wallet(
    wallet_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Deactivate a managed wallet after closing its trust relationships."""
    if wallet_id == current_user.wallet_id:
        raise InvalidRequest("A wallet cannot deactivate itself")
    await require_wallet_access(db, current_user.wallet_id, wallet_id)
    return await deactivate_wallet(db, wallet_id)


@router.get("/{wallet_id}/trust_relationships", response_model=TrustListResponse)
async def list_trust_relationships(
    wallet_id: uuid.UUID,
    filters: Annotated[TrustFilter, Query()],
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Trust relationships where the wallet is either actor or target."""
    await require_wallet_access(db, current_user.wallet_id, wallet_id)
    trusts, total = await get_trust_relationships(db, wallet_id, filters)
    return TrustListResponse(
        trust_relationships=trusts,
        total=total,
        offset=filters.offset,
        limit=filters.limit,
    )
