"""Wallet service routers."""

from services.wallet_service.routers.trust import router as trust_router
from services.wallet_service.routers.wallets import router as wallet_router

__all__ = [
    "trust_router",
    "wallet_router",
]
