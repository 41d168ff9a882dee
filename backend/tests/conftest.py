"""Pytest fixtures for testing."""
from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest
from httpx import ASGITransport, AsyncClient

from core.config import Settings
from core.container import AppContainer, build_container
from core.token_codec import TokenCodec
from core.ttl_cache import TTLCache
from db.stores import EntityKind, Record, RecordFilter, StoreUnavailableError
from db.volatile_store import VolatileStore
from services.repository import FallbackRepository

TEST_SECRET = "test-secret-for-session-signing"

# Signature of the login_as fixture: (email, password, role) -> public user record
LoginAs = Callable[..., Awaitable[Record]]


class FakeClock:
    """Manually advanced clock in epoch milliseconds."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.current = start_ms

    def now_ms(self) -> int:
        return self.current

    def advance(self, ms: int) -> None:
        self.current += ms


class FlakyStore:
    """
    Async primary store double over an in-memory store.

    Setting `available` to False makes every call raise StoreUnavailableError,
    simulating an unreachable database. `calls` counts every attempted call.
    """

    def __init__(self) -> None:
        self.backing = VolatileStore()
        self.available = True
        self.calls = 0

    def _attempt(self, operation: str) -> None:
        self.calls += 1
        if not self.available:
            raise StoreUnavailableError(f"primary down ({operation})")

    async def get(self, kind: EntityKind, record_id: str) -> Record | None:
        self._attempt("get")
        return self.backing.get(kind, record_id)

    async def list(self, kind: EntityKind, filters: RecordFilter | None = None) -> list[Record]:
        self._attempt("list")
        return self.backing.list(kind, filters)

    async def create(self, kind: EntityKind, record: Record) -> Record:
        self._attempt("create")
        return self.backing.create(kind, record)

    async def update(self, kind: EntityKind, record_id: str, patch: Record) -> Record | None:
        self._attempt("update")
        return self.backing.update(kind, record_id, patch)

    async def delete(self, kind: EntityKind, record_id: str) -> bool:
        self._attempt("delete")
        return self.backing.delete(kind, record_id)

    async def ping(self) -> bool:
        return self.available

    async def close(self) -> None:
        return None


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the local environment and .env file."""
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        environment="test",
        session_secret=TEST_SECRET,
        bootstrap_admin_email="",
        bootstrap_admin_password="",
    )


@pytest.fixture
def clock() -> FakeClock:
    """Manually advanced millisecond clock."""
    return FakeClock()


@pytest.fixture
def codec(clock: FakeClock) -> TokenCodec:
    """Token codec bound to the fake clock."""
    return TokenCodec(TEST_SECRET, clock=clock)


@pytest.fixture
def primary() -> FlakyStore:
    """Primary store double that can be switched off."""
    return FlakyStore()


@pytest.fixture
def volatile() -> VolatileStore:
    """Volatile fallback store."""
    return VolatileStore()


@pytest.fixture
def repo(primary: FlakyStore, volatile: VolatileStore) -> FallbackRepository:
    """Repository over the flaky primary and the volatile store."""
    return FallbackRepository(primary, volatile)


@pytest.fixture
def cache() -> TTLCache:
    """Fresh TTL cache."""
    return TTLCache(default_ttl=60)


@pytest.fixture
def container(settings: Settings, primary: FlakyStore, clock: FakeClock) -> AppContainer:
    """Isolated application container over the flaky primary store."""
    return build_container(settings, primary=primary, clock=clock)


@pytest.fixture
async def client(container: AppContainer) -> AsyncGenerator[AsyncClient]:
    """HTTP client for an app built around the test container."""
    from api.main import create_app

    app = create_app(container=container)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client


@pytest.fixture
def login_as(
    client: AsyncClient,
    container: AppContainer,
) -> LoginAs:
    """
    Register a user directly in the repository and sign the client in.

    Returns the public user record.
    """
    from core.roles import Role
    from services.user_service import register

    async def _login(
        email: str = "shopper@example.com",
        password: str = "hunter22",
        role: Role = Role.USER,
    ) -> Record:
        result = await register(container.repository, email, password, name="Test", role=role)
        response = await client.post(
            "/auth/login", json={"email": email, "password": password},
        )
        assert response.status_code == 200, response.text
        return result.value

    return _login
