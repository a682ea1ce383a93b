"""Wallet Service models package.

Re-exports all models and enums so that:
  - ``from services.wallet_service.models import Wallet`` works
  - SQLAlchemy's mapper registry sees every model class on import

IMPORTANT: Every model class AND enum must be listed here.
When adding a new model, add both its import and its __all__ entry.
"""

# Enums
from services.wallet_service.models.enums import (  # noqa: F401
    LIVE_TRUST_STATES,
    REQUEST_TYPE_TO_TRUST_TYPE,
    TRUST_TRANSITIONS,
    TransactionDirection,
    TransactionStatus,
    TransactionType,
    TrustRequestType,
    TrustState,
    TrustType,
)
from services.wallet_service.models.transaction import WalletTransaction  # noqa: F401
from services.wallet_service.models.trust import WalletTrust  # noqa: F401
from services.wallet_service.models.wallet import Wallet  # noqa: F401

__all__ = [
    # Enums
    "LIVE_TRUST_STATES",
    "REQUEST_TYPE_TO_TRUST_TYPE",
    "TRUST_TRANSITIONS",
    "TransactionDirection",
    "TransactionStatus",
    "TransactionType",
    "TrustRequestType",
    "TrustState",
    "TrustType",
    # Models
    "Wallet",
    "WalletTransaction",
    "WalletTrust",
]
