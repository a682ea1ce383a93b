import os
from contextlib import contextmanager
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.db.base import Base
from libs.db.config import enable_sqlite_savepoints
from libs.db.session import get_async_db

# Import models so metadata includes every table
from services.wallet_service import models as _wallet_models  # noqa: F401
from services.wallet_service.services.storage import get_storage_service
from tests.factories import WalletFactory

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------


def make_user(wallet, user_id: Optional[str] = None) -> AuthUser:
    """AuthUser acting as ``wallet``."""
    return AuthUser(
        user_id=user_id or f"user-{wallet.name}",
        wallet_id=wallet.id,
        email=f"{wallet.name}@example.com",
    )


@contextmanager
def override_auth(app, user: AuthUser):
    """Temporarily authenticate every request on ``app`` as ``user``."""
    previous = app.dependency_overrides.get(get_current_user)
    app.dependency_overrides[get_current_user] = lambda: user
    try:
        yield user
    finally:
        if previous is None:
            app.dependency_overrides.pop(get_current_user, None)
        else:
            app.dependency_overrides[get_current_user] = previous


class FakeStorage:
    """In-memory stand-in for StorageService."""

    def __init__(self):
        self.uploads = []

    async def upload_asset(self, asset):
        from services.wallet_service.errors import InvalidRequest

        if not asset.content_type.startswith("image/"):
            raise InvalidRequest(f"{asset.filename} must be an image")
        self.uploads.append(asset)
        return f"https://assets.test/{len(self.uploads)}/{asset.filename}"


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine():
    """
    Fresh database per test. Defaults to in-memory SQLite; set
    TEST_DATABASE_URL to run against Postgres instead.
    """
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        enable_sqlite_savepoints(engine)
    else:
        engine = create_async_engine(TEST_DATABASE_URL, future=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a database session that rolls back after the test.
    We use join_transaction_mode="create_savepoint" so code under test can
    commit and roll back freely inside the outer transaction.
    """
    connection = await test_engine.connect()
    transaction = await connection.begin()

    session_factory = async_sessionmaker(
        bind=connection,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        join_transaction_mode="create_savepoint",
    )
    session = session_factory()

    try:
        yield session
    finally:
        await session.close()
        await transaction.rollback()
        await connection.close()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    """Point batch uploads at a temporary directory."""
    directory = tmp_path / "uploads"
    monkeypatch.setattr(get_settings(), "BATCH_UPLOAD_DIR", str(directory))
    return directory


@pytest.fixture
def write_csv(tmp_path):
    """Write CSV text to a temp file and return its path."""
    counter = {"n": 0}

    def _write(content: str) -> str:
        counter["n"] += 1
        path = tmp_path / f"batch-{counter['n']}.csv"
        path.write_text(content, encoding="utf-8")
        return str(path)

    return _write


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------


@pytest.fixture
def make_wallet(db_session):
    """Insert a wallet and return it."""

    async def _make(**overrides):
        wallet = WalletFactory.create(**overrides)
        db_session.add(wallet)
        await db_session.commit()
        return wallet

    return _make


@pytest_asyncio.fixture
async def owner_wallet(make_wallet):
    return await make_wallet(name="owner", balance=1000)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_storage():
    return FakeStorage()


@pytest_asyncio.fixture
async def client(
    db_session, owner_wallet, fake_storage, upload_dir
) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient against the wallet app, authenticated as ``owner_wallet``
    with the DB and asset store overridden.
    """
    from services.wallet_service.app.main import app

    app.dependency_overrides[get_async_db] = lambda: db_session
    app.dependency_overrides[get_storage_service] = lambda: fake_storage
    user = make_user(owner_wallet)
    app.dependency_overrides[get_current_user] = lambda: user

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
