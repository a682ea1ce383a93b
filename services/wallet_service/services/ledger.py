"""Ledger collaborators: credit and transfer token balances.

``DatabaseLedger`` keeps balances on the wallet row with an immutable
``wallet_transactions`` journal. ``HttpLedger`` delegates to an external
ledger service. Both raise ``WalletServiceError`` subclasses on failure.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Depends
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.common.service_client import internal_post
from libs.db.session import get_async_db
from services.wallet_service.errors import (
    InsufficientBalance,
    InvalidRequest,
    UpstreamFailure,
    WalletNotFound,
)
from services.wallet_service.models import (
    TransactionDirection,
    TransactionStatus,
    TransactionType,
    Wallet,
    WalletTransaction,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class LedgerReceipt:
    reference: str
    amount: int
    replayed: bool = False


class Ledger(ABC):
    @abstractmethod
    async def credit(
        self, wallet_id: uuid.UUID, amount: int, *, idempotency_key: str
    ) -> LedgerReceipt:
        """Add ``amount`` tokens to a wallet."""

    @abstractmethod
    async def transfer(
        self,
        from_wallet_id: uuid.UUID,
        to_wallet_id: uuid.UUID,
        amount: int,
        *,
        idempotency_key: str,
    ) -> LedgerReceipt:
        """Move ``amount`` tokens between wallets."""


def _check_amount(amount: int) -> None:
    if amount <= 0:
        raise InvalidRequest("Amount must be a positive number of tokens")


# ---------------------------------------------------------------------------
# Database-backed ledger
# ---------------------------------------------------------------------------


class DatabaseLedger(Ledger):
    """Ledger stored alongside the wallets. Flushes only; the caller commits.

    Idempotency keys are unique in the journal, so replaying a key returns the
    original receipt without moving tokens twice.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _existing(self, idempotency_key: str) -> Optional[WalletTransaction]:
        result = await self.db.execute(
            select(WalletTransaction).where(
                WalletTransaction.idempotency_key == idempotency_key
            )
        )
        return result.scalar_one_or_none()

    async def _lock_wallet(self, wallet_id: uuid.UUID) -> Wallet:
        result = await self.db.execute(
            select(Wallet)
            .where(Wallet.id == wallet_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        wallet = result.scalar_one_or_none()
        if not wallet or not wallet.active:
            raise WalletNotFound(f"Could not find wallet by id: {wallet_id}")
        return wallet

    def _journal(
        self,
        wallet: Wallet,
        *,
        key: str,
        transaction_type: TransactionType,
        direction: TransactionDirection,
        amount: int,
        description: str,
        counterparty_wallet_id: Optional[uuid.UUID] = None,
    ) -> WalletTransaction:
        balance_before = wallet.balance
        if direction == TransactionDirection.CREDIT:
            wallet.balance = balance_before + amount
        else:
            wallet.balance = balance_before - amount

        txn = WalletTransaction(
            wallet_id=wallet.id,
            counterparty_wallet_id=counterparty_wallet_id,
            idempotency_key=key,
            transaction_type=transaction_type,
            direction=direction,
            amount=amount,
            balance_before=balance_before,
            balance_after=wallet.balance,
            status=TransactionStatus.COMPLETED,
            description=description,
        )
        self.db.add(txn)
        return txn

    async def credit(
        self, wallet_id: uuid.UUID, amount: int, *, idempotency_key: str
    ) -> LedgerReceipt:
        _check_amount(amount)
        existing = await self._existing(idempotency_key)
        if existing:
            logger.info("Idempotent replay for key=%s -> txn=%s", idempotency_key, existing.id)
            return LedgerReceipt(reference=str(existing.id), amount=existing.amount, replayed=True)

        wallet = await self._lock_wallet(wallet_id)
        txn = self._journal(
            wallet,
            key=idempotency_key,
            transaction_type=TransactionType.INITIAL_CREDIT,
            direction=TransactionDirection.CREDIT,
            amount=amount,
            description=f"Initial credit of {amount} tokens",
        )
        await self.db.flush()

        logger.info("Credit %d to wallet %s (key=%s)", amount, wallet.id, idempotency_key)
        return LedgerReceipt(reference=str(txn.id), amount=amount)

    async def transfer(
        self,
        from_wallet_id: uuid.UUID,
        to_wallet_id: uuid.UUID,
        amount: int,
        *,
        idempotency_key: str,
    ) -> LedgerReceipt:
        _check_amount(amount)
        if from_wallet_id == to_wallet_id:
            raise InvalidRequest("Cannot transfer tokens to the same wallet")

        out_key = f"{idempotency_key}:out"
        existing = await self._existing(out_key)
        if existing:
            logger.info("Idempotent replay for key=%s -> txn=%s", out_key, existing.id)
            return LedgerReceipt(reference=str(existing.id), amount=existing.amount, replayed=True)

        # Lock in a stable order so opposing transfers cannot deadlock.
        locked = {}
        for wallet_id in sorted((from_wallet_id, to_wallet_id), key=str):
            locked[wallet_id] = await self._lock_wallet(wallet_id)
        sender, recipient = locked[from_wallet_id], locked[to_wallet_id]

        if sender.balance < amount:
            raise InsufficientBalance(required=amount, available=sender.balance)

        debit = self._journal(
            sender,
            key=out_key,
            transaction_type=TransactionType.TRANSFER_OUT,
            direction=TransactionDirection.DEBIT,
            amount=amount,
            description=f"Transfer of {amount} tokens to {recipient.name}",
            counterparty_wallet_id=recipient.id,
        )
        self._journal(
            recipient,
            key=f"{idempotency_key}:in",
            transaction_type=TransactionType.TRANSFER_IN,
            direction=TransactionDirection.CREDIT,
            amount=amount,
            description=f"Transfer of {amount} tokens from {sender.name}",
            counterparty_wallet_id=sender.id,
        )
        await self.db.flush()

        logger.info(
            "Transfer %d from wallet %s to %s (key=%s), sender balance now %d",
            amount,
            sender.id,
            recipient.id,
            idempotency_key,
            sender.balance,
        )
        return LedgerReceipt(reference=str(debit.id), amount=amount)


# ---------------------------------------------------------------------------
# External ledger service
# ---------------------------------------------------------------------------


class HttpLedger(Ledger):
    """Client for an external ledger service."""

    calling_service = "wallet"

    def __init__(
        self,
        service_url: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.service_url = service_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def _post(self, path: str, payload: dict) -> dict:
        try:
            response = await internal_post(
                service_url=self.service_url,
                path=path,
                calling_service=self.calling_service,
                json=payload,
                timeout=self.timeout,
                transport=self.transport,
            )
        except httpx.HTTPError as exc:
            logger.warning("Ledger call %s failed: %s", path, exc)
            raise UpstreamFailure(f"Ledger service unavailable: {exc}") from exc

        if response.status_code == 404:
            raise WalletNotFound(response.json().get("detail", "Wallet not found"))
        if response.status_code in (400, 409, 422):
            raise InvalidRequest(response.json().get("detail", "Ledger rejected the request"))
        if response.is_error:
            raise UpstreamFailure(
                f"Ledger service returned {response.status_code} for {path}"
            )
        return response.json()

    async def credit(
        self, wallet_id: uuid.UUID, amount: int, *, idempotency_key: str
    ) -> LedgerReceipt:
        _check_amount(amount)
        data = await self._post(
            "/ledger/credit",
            {
                "wallet_id": str(wallet_id),
                "amount": amount,
                "idempotency_key": idempotency_key,
            },
        )
        return LedgerReceipt(
            reference=str(data.get("transaction_id", idempotency_key)),
            amount=amount,
            replayed=bool(data.get("replayed", False)),
        )

    async def transfer(
        self,
        from_wallet_id: uuid.UUID,
        to_wallet_id: uuid.UUID,
        amount: int,
        *,
        idempotency_key: str,
    ) -> LedgerReceipt:
        _check_amount(amount)
        data = await self._post(
            "/ledger/transfer",
            {
                "from_wallet_id": str(from_wallet_id),
                "to_wallet_id": str(to_wallet_id),
                "amount": amount,
                "idempotency_key": idempotency_key,
            },
        )
        return LedgerReceipt(
            reference=str(data.get("transaction_id", idempotency_key)),
            amount=amount,
            replayed=bool(data.get("replayed", False)),
        )


def get_ledger(db: AsyncSession = Depends(get_async_db)) -> Ledger:
    """FastAPI dependency selecting the ledger backend from settings."""
    settings = get_settings()
    if settings.LEDGER_BACKEND == "http":
        return HttpLedger(
            settings.LEDGER_SERVICE_URL, timeout=settings.LEDGER_TIMEOUT_SECONDS
        )
    return DatabaseLedger(db)
