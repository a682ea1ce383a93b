"""FastAPI application for the Wallet Service."""

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from libs.common.middleware import add_observability_middleware
from services.wallet_service.routers import trust_router, wallet_router


def create_app() -> FastAPI:
    """Create and configure the Wallet Service FastAPI app."""
    app = FastAPI(
        title="Wallet Service",
        version="0.1.0",
        description="Token wallets, trust relationships and batch operations.",
    )
    add_observability_middleware(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "wallet"}

    app.include_router(wallet_router)
    app.include_router(trust_router)

    return app


app = create_app()
