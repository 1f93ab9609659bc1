from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

import kyc_registry.db.tables  # noqa: F401  (registers tables on Base.metadata)
from kyc_registry.db.engine import Base, build_session_factory
from kyc_registry.main import app
from kyc_registry.models.events import CredentialEvent
from kyc_registry.models.principal import Principal
from kyc_registry.repos.credential_store import InMemoryCredentialStore
from kyc_registry.repos.holder_index import InMemoryHolderIndex
from kyc_registry.services import registry, token_service
from kyc_registry.services.authority import AuthorityGate, RoleAuthority
from kyc_registry.services.events import EventPublisher
from kyc_registry.services.lifecycle import LifecycleManager
from kyc_registry.services.token_ledger import InMemoryTokenLedger
from kyc_registry.services.transfer_guard import TransferGuard

DAY = 86_400
START = 1_760_000_000
HOLDER_A = "0x" + "a" * 40
HOLDER_B = "0x" + "b" * 40
SUBJECT_HASH = bytes(range(32))


class FakeClock:
    """Controllable unix-seconds clock."""

    def __init__(self, start: int = START) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Process-wide registry (used by the HTTP app)
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_registry_state() -> None:
    """Clear the in-memory registry between tests."""
    registry.credential_store._by_id.clear()
    registry.holder_index._by_holder.clear()
    registry.token_ledger._owners.clear()
    registry.token_ledger._next_id = 1


@pytest.fixture
def app_clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    """Freeze the clock of the manager behind the HTTP app."""
    clock = FakeClock()
    monkeypatch.setattr(registry.lifecycle_manager, "_clock", clock)
    return clock


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth(token: str | None) -> dict[str, str]:
    if token is None:
        return {}
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token() -> str:
    """Token with default role (user)."""
    return mint_token()


@pytest.fixture
def admin_token() -> str:
    """Token with the authority role."""
    return mint_token(username="registry-admin", roles=["admin"])


# ---------------------------------------------------------------------------
# Isolated lifecycle manager (service-level tests)
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def events() -> list[CredentialEvent]:
    return []


@pytest.fixture
def publisher(events: list[CredentialEvent]) -> EventPublisher:
    pub = EventPublisher()
    pub.subscribe(events.append)
    return pub


@pytest.fixture
def admin() -> Principal:
    return Principal(subject="registry-admin", roles=frozenset({"admin"}))


@pytest.fixture
def outsider() -> Principal:
    return Principal(subject="someone-else", roles=frozenset({"user"}))


@pytest.fixture
def ledger() -> InMemoryTokenLedger:
    return InMemoryTokenLedger(TransferGuard())


@pytest.fixture
def manager(
    clock: FakeClock, publisher: EventPublisher, ledger: InMemoryTokenLedger
) -> LifecycleManager:
    return LifecycleManager(
        store=InMemoryCredentialStore(),
        index=InMemoryHolderIndex(),
        ledger=ledger,
        gate=AuthorityGate(RoleAuthority("admin")),
        events=publisher,
        clock=clock,
    )


def issue_basic(
    manager: LifecycleManager,
    caller: Principal,
    holder: str = HOLDER_A,
    validity_period: int = 30 * DAY,
) -> int:
    return manager.issue(
        caller,
        holder=holder,
        holder_id="kyc-subject-1",
        validity_period=validity_period,
        subject_hash=SUBJECT_HASH,
        level="basic",
    )


# ---------------------------------------------------------------------------
# SQL backend on in-memory SQLite
# ---------------------------------------------------------------------------


@pytest.fixture
def sql_session() -> Generator[Session, None, None]:
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    factory = build_session_factory(engine)
    with factory() as session:
        yield session
    engine.dispose()
