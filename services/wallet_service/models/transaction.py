"""WalletTransaction model: immutable journal kept by the database ledger."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.wallet_service.models.enums import (
    TransactionDirection,
    TransactionStatus,
    TransactionType,
    enum_values,
)
from sqlalchemy import CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class WalletTransaction(Base):
    """Immutable journal of balance changes. Source of truth."""

    __tablename__ = "wallet_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    wallet_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("wallets.id"), nullable=False, index=True
    )
    counterparty_wallet_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, nullable=True
    )
    idempotency_key: Mapped[str] = mapped_column(
        String, unique=True, index=True, nullable=False
    )
    transaction_type: Mapped[TransactionType] = mapped_column(
        SAEnum(
            TransactionType,
            name="transaction_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    direction: Mapped[TransactionDirection] = mapped_column(
        SAEnum(
            TransactionDirection,
            name="transaction_direction_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_before: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[TransactionStatus] = mapped_column(
        SAEnum(
            TransactionStatus,
            name="transaction_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=TransactionStatus.PENDING,
        nullable=False,
    )
    description: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transaction_amount_positive"),
        Index("ix_wallet_transactions_wallet_created", "wallet_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<WalletTransaction {self.id} {self.direction.value} {self.amount}>"
