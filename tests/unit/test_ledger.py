"""Unit tests for the ledger backends."""

import json
import uuid

import httpx
import pytest
from services.wallet_service.errors import (
    InsufficientBalance,
    InvalidRequest,
    UpstreamFailure,
    WalletNotFound,
)
from services.wallet_service.models import (
    TransactionDirection,
    TransactionType,
    WalletTransaction,
)
from services.wallet_service.services.ledger import DatabaseLedger, HttpLedger
from sqlalchemy import func, select


async def _journal_count(db) -> int:
    result = await db.execute(select(func.count()).select_from(WalletTransaction))
    return result.scalar_one()


# ---------------------------------------------------------------------------
# DatabaseLedger
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_credit_updates_balance_and_journal(db_session, make_wallet):
    wallet = await make_wallet(name="shop")
    ledger = DatabaseLedger(db_session)

    receipt = await ledger.credit(wallet.id, 50, idempotency_key="credit-1")
    await db_session.commit()

    assert receipt.amount == 50
    assert receipt.replayed is False
    assert wallet.balance == 50

    txn = (await db_session.execute(select(WalletTransaction))).scalar_one()
    assert txn.transaction_type == TransactionType.INITIAL_CREDIT
    assert txn.direction == TransactionDirection.CREDIT
    assert (txn.balance_before, txn.balance_after) == (0, 50)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_credit_replay_is_idempotent(db_session, make_wallet):
    wallet = await make_wallet(name="shop")
    ledger = DatabaseLedger(db_session)

    first = await ledger.credit(wallet.id, 50, idempotency_key="credit-1")
    second = await ledger.credit(wallet.id, 50, idempotency_key="credit-1")

    assert second.replayed is True
    assert second.reference == first.reference
    assert wallet.balance == 50
    assert await _journal_count(db_session) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_credit_rejects_non_positive_amount(db_session, make_wallet):
    wallet = await make_wallet(name="shop")

    with pytest.raises(InvalidRequest):
        await DatabaseLedger(db_session).credit(wallet.id, 0, idempotency_key="k")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_credit_unknown_wallet(db_session):
    with pytest.raises(WalletNotFound):
        await DatabaseLedger(db_session).credit(uuid.uuid4(), 5, idempotency_key="k")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_transfer_moves_tokens(db_session, make_wallet):
    sender = await make_wallet(name="sender", balance=100)
    recipient = await make_wallet(name="recipient")
    ledger = DatabaseLedger(db_session)

    await ledger.transfer(sender.id, recipient.id, 30, idempotency_key="t-1")
    await db_session.commit()

    assert sender.balance == 70
    assert recipient.balance == 30
    result = await db_session.execute(
        select(WalletTransaction).order_by(WalletTransaction.idempotency_key)
    )
    keys = [t.idempotency_key for t in result.scalars().all()]
    assert keys == ["t-1:in", "t-1:out"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_transfer_insufficient_balance(db_session, make_wallet):
    sender = await make_wallet(name="sender", balance=10)
    recipient = await make_wallet(name="recipient")

    with pytest.raises(InsufficientBalance) as exc_info:
        await DatabaseLedger(db_session).transfer(
            sender.id, recipient.id, 30, idempotency_key="t-1"
        )

    assert exc_info.value.status_code == 422
    assert sender.balance == 10
    assert await _journal_count(db_session) == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_transfer_to_self_rejected(db_session, make_wallet):
    sender = await make_wallet(name="sender", balance=10)

    with pytest.raises(InvalidRequest):
        await DatabaseLedger(db_session).transfer(
            sender.id, sender.id, 1, idempotency_key="t-1"
        )


# ---------------------------------------------------------------------------
# HttpLedger
# ---------------------------------------------------------------------------


def _ledger(handler) -> HttpLedger:
    return HttpLedger(
        "http://ledger.test/", transport=httpx.MockTransport(handler)
    )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_http_ledger_transfer_posts_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["caller"] = request.headers.get("X-Caller-Service")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"transaction_id": "txn-9"})

    sender, recipient = uuid.uuid4(), uuid.uuid4()
    receipt = await _ledger(handler).transfer(
        sender, recipient, 25, idempotency_key="t-1"
    )

    assert receipt.reference == "txn-9"
    assert seen["url"] == "http://ledger.test/ledger/transfer"
    assert seen["caller"] == "wallet"
    assert seen["body"] == {
        "from_wallet_id": str(sender),
        "to_wallet_id": str(recipient),
        "amount": 25,
        "idempotency_key": "t-1",
    }


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize(
    "status_code,error",
    [
        (404, WalletNotFound),
        (409, InvalidRequest),
        (422, InvalidRequest),
        (500, UpstreamFailure),
    ],
)
async def test_http_ledger_maps_error_status(status_code, error):
    def handler(request):
        return httpx.Response(status_code, json={"detail": "nope"})

    with pytest.raises(error):
        await _ledger(handler).credit(uuid.uuid4(), 5, idempotency_key="c-1")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_http_ledger_connection_error_is_upstream_failure():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamFailure):
        await _ledger(handler).credit(uuid.uuid4(), 5, idempotency_key="c-1")
