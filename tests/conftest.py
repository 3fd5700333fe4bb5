"""Test fixtures — a fresh SQLite user store per test.

Learn: Each test gets its own database file under tmp_path, reached
through aiosqlite exactly like a production connection string. The
provider's clock is a FakeClock, so ticket expiry is tested by moving
time forward instead of sleeping. bcrypt runs with 4 rounds to keep
the suite fast.
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from simplesecurity.config import Settings
from simplesecurity.db.engine import build_engine
from simplesecurity.main import create_app
from simplesecurity.provider import SecurityProvider
from simplesecurity.store.credential_store import CredentialStore

TEST_SECRET = "test-ticket-secret"
ADMIN_PASSWORD = "s3cret"


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture()
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'users.db'}"


@pytest_asyncio.fixture()
async def store(database_url):
    """Bare credential store on an empty database (no schema yet)."""
    engine = build_engine(database_url)
    try:
        yield CredentialStore(engine, bcrypt_rounds=4)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def uninitialized_provider(database_url, clock):
    provider = SecurityProvider(
        database_url,
        ADMIN_PASSWORD,
        ticket_secret=TEST_SECRET,
        bcrypt_rounds=4,
        clock=clock,
    )
    try:
        yield provider
    finally:
        await provider.close()


@pytest_asyncio.fixture()
async def provider(uninitialized_provider):
    await uninitialized_provider.initialize()
    return uninitialized_provider


@pytest_asyncio.fixture()
async def client(provider, database_url):
    """HTTP client against an app wired to the test provider.

    Learn: ASGITransport does not run the lifespan, so the provider is
    initialized by its own fixture instead of at app startup.
    """
    settings = Settings(
        database_url=database_url,
        admin_password=ADMIN_PASSWORD,
        ticket_secret=TEST_SECRET,
        bcrypt_rounds=4,
    )
    app = create_app(settings=settings, provider=provider)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
