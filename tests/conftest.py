"""Shared fixtures for the vault tests."""
import pytest

from wallet_vault.storage import MemoryStorage
from wallet_vault.vault import RecordStore, SessionCache, VaultConfig


class FakeClock:
    """Controllable wall clock in seconds."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config(tmp_path):
    return VaultConfig(home=tmp_path / "vault", env_prefix="TEST_WALLET")


@pytest.fixture
def record_store():
    """RecordStore over in-memory storage."""
    return RecordStore(records=MemoryStorage(), settings=MemoryStorage())


@pytest.fixture
def session_cache(clock):
    """SessionCache over in-memory storage with a fake clock."""
    return SessionCache(store=MemoryStorage(), key=MemoryStorage(), ttl=300, clock=clock)
