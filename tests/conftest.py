"""
Pytest configuration and shared fixtures for SovereignAuth tests.
"""

import pytest
from datetime import datetime, timedelta, timezone

from eth_account import Account
from eth_account.messages import encode_defunct

from sovereign_auth.config import AuthConfig
from sovereign_auth.coordinator import AuthCoordinator, create_coordinator
from sovereign_auth.core.clock import FrozenClock
from sovereign_auth.handlers import AuthHandlers
from sovereign_auth.nonce_store import NonceStore
from sovereign_auth.oracles import EIP191Oracle, StaticOracle
from sovereign_auth.session_store import SessionStore


# =============================================================================
# TIME FIXTURES
# =============================================================================


@pytest.fixture
def start_time() -> datetime:
    """Fixed starting instant for frozen clocks."""
    return datetime(2026, 10, 19, 8, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(start_time: datetime) -> FrozenClock:
    """Manually advanced clock."""
    return FrozenClock(current=start_time)


# =============================================================================
# IDENTITY FIXTURES
# =============================================================================


@pytest.fixture
def wallet():
    """Fresh Ethereum key pair."""
    return Account.create()


@pytest.fixture
def other_wallet():
    """A second, unrelated Ethereum key pair."""
    return Account.create()


@pytest.fixture
def test_address() -> str:
    """Syntactically valid mixed-case address (no known private key)."""
    return "0xAbC0000000000000000000000000000000000dEf"


# =============================================================================
# STORE FIXTURES
# =============================================================================


@pytest.fixture
def nonce_store(clock: FrozenClock) -> NonceStore:
    return NonceStore(ttl=timedelta(minutes=5), clock=clock)


@pytest.fixture
def session_store(clock: FrozenClock) -> SessionStore:
    return SessionStore(duration=timedelta(hours=24), clock=clock)


# =============================================================================
# COORDINATOR FIXTURES
# =============================================================================


@pytest.fixture
def auth_config() -> AuthConfig:
    """Default config pinned to localhost on Base (8453)."""
    return AuthConfig(domain="localhost", chain_id=8453)


@pytest.fixture
def coordinator(auth_config: AuthConfig, clock: FrozenClock) -> AuthCoordinator:
    """Coordinator with real EIP-191 verification and a frozen clock."""
    coordinator = create_coordinator(auth_config, oracle=EIP191Oracle(), clock=clock)
    yield coordinator
    coordinator.stop()


@pytest.fixture
def accept_all_coordinator(auth_config: AuthConfig, clock: FrozenClock) -> AuthCoordinator:
    """Coordinator whose oracle accepts signature 'valid' for any identity."""
    coordinator = create_coordinator(
        auth_config,
        oracle=StaticOracle(lambda message, signature, identity: signature == "valid"),
        clock=clock,
    )
    yield coordinator
    coordinator.stop()


@pytest.fixture
def handlers(coordinator: AuthCoordinator) -> AuthHandlers:
    return AuthHandlers(coordinator=coordinator)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def sign(account, message: str) -> str:
    """personal_sign a message, returning 0x-prefixed hex."""
    signed = account.sign_message(encode_defunct(text=message))
    return "0x" + bytes(signed.signature).hex()


@pytest.fixture
def sign_message():
    """The ``sign`` helper as a fixture."""
    return sign


# =============================================================================
# PYTEST MARKERS
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
