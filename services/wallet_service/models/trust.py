"""WalletTrust model: directed trust edge between two wallets."""

import uuid
from datetime import datetime

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.wallet_service.models.enums import (
    TrustRequestType,
    TrustState,
    TrustType,
    enum_values,
)
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class WalletTrust(Base):
    """Trust edge ``actor -> target``.

    Stored independently of both wallets; the wallet store revokes edges
    explicitly before deactivating a wallet.
    """

    __tablename__ = "wallet_trust"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    actor_wallet_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("wallets.id"), nullable=False, index=True
    )
    target_wallet_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("wallets.id"), nullable=False, index=True
    )
    originator_wallet_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("wallets.id"), nullable=False
    )
    type: Mapped[TrustType] = mapped_column(
        SAEnum(
            TrustType,
            name="trust_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    request_type: Mapped[TrustRequestType] = mapped_column(
        SAEnum(
            TrustRequestType,
            name="trust_request_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    state: Mapped[TrustState] = mapped_column(
        SAEnum(
            TrustState,
            name="trust_state_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=TrustState.REQUESTED,
        nullable=False,
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "actor_wallet_id != target_wallet_id", name="ck_trust_no_self_edge"
        ),
        Index(
            "ix_wallet_trust_actor_request_state",
            "actor_wallet_id",
            "request_type",
            "state",
        ),
        Index(
            "ix_wallet_trust_target_request_state",
            "target_wallet_id",
            "request_type",
            "state",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<WalletTrust {self.id} {self.actor_wallet_id}->{self.target_wallet_id} "
            f"{self.request_type.value}/{self.state.value}>"
        )
