"""Wallet Service schemas package.

Re-exports all schemas so that:
  - ``from services.wallet_service.schemas import WalletResponse`` works
  - Router files need no import path changes

IMPORTANT: Every schema class must be listed here.
When adding a new schema, add its import and __all__ entry.
"""

from services.wallet_service.schemas.batch import (  # noqa: F401
    BatchOperationForm,
    BatchResult,
    BatchRow,
    BatchRowResult,
)
from services.wallet_service.schemas.trust import (  # noqa: F401
    TrustFilter,
    TrustListResponse,
    TrustRequestCreate,
    TrustResponse,
    TrustSortField,
)
from services.wallet_service.schemas.wallet import (  # noqa: F401
    SortOrder,
    WalletCreateRequest,
    WalletListResponse,
    WalletQuery,
    WalletResponse,
    WalletSortField,
    WalletSummary,
    WalletUpdate,
)

__all__ = [
    # Wallet
    "SortOrder",
    "WalletCreateRequest",
    "WalletListResponse",
    "WalletQuery",
    "WalletResponse",
    "WalletSortField",
    "WalletSummary",
    "WalletUpdate",
    # Trust
    "TrustFilter",
    "TrustListResponse",
    "TrustRequestCreate",
    "TrustResponse",
    "TrustSortField",
    # Batch
    "BatchOperationForm",
    "BatchResult",
    "BatchRow",
    "BatchRowResult",
]
