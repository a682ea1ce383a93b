"""Batch wallet creation and token transfer driven by parsed CSV rows.

Each row runs in its own savepoint and is committed on its own, so one bad
row never undoes or blocks its siblings. Row failures are collected as
``BatchRowResult`` entries; only whole-file problems raise.
"""

import asyncio
import os
import uuid
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Optional

from libs.common.config import get_settings
from libs.common.logging import get_logger
from pydantic import ValidationError
from services.wallet_service.errors import (
    PipelineFailure,
    UpstreamFailure,
    WalletNotFound,
    WalletServiceError,
)
from services.wallet_service.models import Wallet
from services.wallet_service.schemas import BatchResult, BatchRow, BatchRowResult
from services.wallet_service.services.ledger import Ledger
from services.wallet_service.services.trust_service import establish_management
from services.wallet_service.services.wallet_store import (
    create_wallet,
    get_wallet_by_id,
    get_wallet_by_name,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

RowHandler = Callable[[BatchRow, int, str], Awaitable[uuid.UUID]]


def _validation_reason(exc: ValidationError) -> str:
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error.get("loc", ())) or "row"
    return f"{field}: {error.get('msg', 'invalid value')}"


def _check_file(file_path: str) -> None:
    readable = file_path and os.path.isfile(file_path) and os.access(file_path, os.R_OK)
    if not readable:
        raise PipelineFailure(f"Could not read batch file: {file_path}")


def _check_rows(csv_json: Any) -> None:
    if not isinstance(csv_json, list) or not all(
        isinstance(row, Mapping) for row in csv_json
    ):
        raise PipelineFailure("Batch rows could not be parsed")


async def _resolve_sender(
    db: AsyncSession, sender_wallet: str, wallet_id: uuid.UUID
) -> Wallet:
    try:
        sender = await get_wallet_by_id(db, wallet_id)
    except WalletNotFound as exc:
        raise PipelineFailure(
            f"Sender wallet {wallet_id} does not exist", cause=exc
        ) from exc
    except SQLAlchemyError as exc:
        raise PipelineFailure("Wallet store unavailable", cause=exc) from exc

    if not sender.active or sender.name != sender_wallet:
        raise PipelineFailure(
            f'Sender wallet "{sender_wallet}" does not match wallet {wallet_id}'
        )
    return sender


async def _bounded(awaitable: Awaitable, timeout: float):
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError:
        raise UpstreamFailure(f"Ledger call timed out after {timeout}s")


async def _run_rows(
    db: AsyncSession,
    csv_json: list[Mapping],
    default_amount: int,
    handler: RowHandler,
    batch_id: str,
) -> list[BatchRowResult]:
    results: list[BatchRowResult] = []
    for index, raw in enumerate(csv_json, start=1):
        wallet_name = str(raw.get("wallet_name") or "").strip() or None
        try:
            row = BatchRow.model_validate(dict(raw))
        except ValidationError as exc:
            results.append(
                BatchRowResult(
                    row=index,
                    wallet_name=wallet_name,
                    status="failed",
                    reason=_validation_reason(exc),
                )
            )
            continue

        amount = (
            row.token_transfer_amount_overwrite
            if row.token_transfer_amount_overwrite is not None
            else default_amount
        )
        try:
            async with db.begin_nested():
                row_wallet_id = await handler(row, amount, f"{batch_id}:{index}")
            await db.commit()
        except WalletServiceError as exc:
            reason = exc.detail
        except SQLAlchemyError as exc:
            await db.rollback()
            reason = f"Store error: {exc.__class__.__name__}"
        else:
            results.append(
                BatchRowResult(
                    row=index,
                    wallet_name=row.wallet_name,
                    status="succeeded",
                    amount=amount,
                    wallet_id=row_wallet_id,
                )
            )
            continue

        logger.warning(
            "Batch %s row %d (%s) failed: %s", batch_id, index, row.wallet_name, reason
        )
        results.append(
            BatchRowResult(
                row=index,
                wallet_name=row.wallet_name,
                status="failed",
                amount=amount,
                reason=reason,
            )
        )
    return results


def _summarise(
    operation: str, results: list[BatchRowResult], file_path: str
) -> BatchResult:
    failed = sum(1 for r in results if r.status == "failed")
    succeeded = len(results) - failed
    if failed:
        message = f"Batch wallet {operation} completed with {failed} failed row(s)"
    else:
        message = f"Batch wallet {operation} successful"
    return BatchResult(
        message=message,
        succeeded=succeeded,
        failed=failed,
        file_path=file_path,
        results=results,
    )


async def batch_create_wallet(
    db: AsyncSession,
    sender_wallet: str,
    token_transfer_amount_default: int,
    wallet_id: uuid.UUID,
    csv_json: list[Mapping],
    file_path: str,
    *,
    ledger: Ledger,
    row_timeout: Optional[float] = None,
) -> BatchResult:
    """Create one wallet per row, managed by the sender, and credit it.

    The credited amount is the row's override or the default; a zero amount
    creates the wallet without touching the ledger.
    """
    _check_file(file_path)
    _check_rows(csv_json)
    sender = await _resolve_sender(db, sender_wallet, wallet_id)
    sender_id = sender.id
    row_timeout = row_timeout or get_settings().BATCH_ROW_TIMEOUT_SECONDS
    batch_id = f"batch-create-{uuid.uuid4().hex}"

    async def create_row(row: BatchRow, amount: int, key: str) -> uuid.UUID:
        wallet = await create_wallet(db, row.wallet_name, commit=False)
        new_wallet_id = wallet.id
        await establish_management(
            db, manager_wallet_id=sender_id, managed_wallet_id=new_wallet_id, commit=False
        )
        if amount > 0:
            await _bounded(
                ledger.credit(new_wallet_id, amount, idempotency_key=key), row_timeout
            )
        return new_wallet_id

    logger.info(
        "Batch %s: creating %d wallets for sender %s from %s",
        batch_id,
        len(csv_json),
        sender_id,
        file_path,
    )
    results = await _run_rows(
        db, csv_json, token_transfer_amount_default, create_row, batch_id
    )
    result = _summarise("creation", results, file_path)
    logger.info(
        "Batch %s finished: %d succeeded, %d failed",
        batch_id,
        result.succeeded,
        result.failed,
    )
    return result


async def batch_transfer_wallet(
    db: AsyncSession,
    sender_wallet: str,
    token_transfer_amount_default: int,
    wallet_id: uuid.UUID,
    csv_json: list[Mapping],
    file_path: str,
    *,
    ledger: Ledger,
    row_timeout: Optional[float] = None,
) -> BatchResult:
    """Transfer tokens from the sender to each row's existing wallet.

    Unknown recipients fail their row; no wallet is created during a transfer.
    """
    _check_file(file_path)
    _check_rows(csv_json)
    sender = await _resolve_sender(db, sender_wallet, wallet_id)
    sender_id = sender.id
    row_timeout = row_timeout or get_settings().BATCH_ROW_TIMEOUT_SECONDS
    batch_id = f"batch-transfer-{uuid.uuid4().hex}"

    async def transfer_row(row: BatchRow, amount: int, key: str) -> uuid.UUID:
        try:
            recipient = await get_wallet_by_name(db, row.wallet_name)
        except WalletNotFound:
            raise WalletNotFound(f'Recipient wallet "{row.wallet_name}" not found')
        recipient_id = recipient.id
        await _bounded(
            ledger.transfer(sender_id, recipient_id, amount, idempotency_key=key),
            row_timeout,
        )
        return recipient_id

    logger.info(
        "Batch %s: transferring to %d wallets from sender %s using %s",
        batch_id,
        len(csv_json),
        sender_id,
        file_path,
    )
    results = await _run_rows(
        db, csv_json, token_transfer_amount_default, transfer_row, batch_id
    )
    result = _summarise("transfer", results, file_path)
    logger.info(
        "Batch %s finished: %d succeeded, %d failed",
        batch_id,
        result.succeeded,
        result.failed,
    )
    return result
