"""
Property-based tests for sign-in invariants.

Tests that the challenge codec, nonce store, session store and
coordinator hold their guarantees across many random inputs.
"""

import re
from datetime import datetime, timedelta, timezone

from hypothesis import assume, given, settings, strategies as st
from returns.result import Failure, Success

from sovereign_auth.challenge import build_challenge, parse_challenge
from sovereign_auth.config import AuthConfig
from sovereign_auth.coordinator import create_coordinator
from sovereign_auth.core.clock import FrozenClock
from sovereign_auth.core.types import AuthErrorKind
from sovereign_auth.identity import ETHEREUM
from sovereign_auth.nonce_store import NonceStore
from sovereign_auth.oracles import StaticOracle
from sovereign_auth.session_store import SessionStore

START = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)


# =============================================================================
# STRATEGIES
# =============================================================================

address_strategy = st.from_regex(r"0x[a-fA-F0-9]{40}", fullmatch=True)

domain_strategy = st.from_regex(r"[a-z][a-z0-9\-]{0,20}(\.[a-z]{2,6})?", fullmatch=True)

nonce_strategy = st.from_regex(r"[0-9a-f]{32}", fullmatch=True)

# Statements may span lines and mimic labelled fields
decoy_line_strategy = st.one_of(
    nonce_strategy.map(lambda n: f"Nonce: {n}"),
    address_strategy,
    st.just(""),
    st.just("URI: http://evil.example"),
    st.just("Issued At: 1970-01-01T00:00:00.000Z"),
)
statement_strategy = st.one_of(
    st.text(min_size=1, max_size=200),
    st.lists(
        st.one_of(decoy_line_strategy, st.text(alphabet=st.characters(blacklist_characters="\n"))),
        min_size=1,
        max_size=6,
    ).map("\n".join),
).filter(bool)

issued_at_strategy = st.datetimes(
    min_value=datetime(2000, 1, 1),
    max_value=datetime(2100, 1, 1),
    timezones=st.just(timezone.utc),
)


def _accepting_coordinator(clock):
    return create_coordinator(
        AuthConfig(oracle_timeout=None),
        oracle=StaticOracle(lambda message, signature, identity: signature == "valid"),
        clock=clock,
    )


# =============================================================================
# CHALLENGE PROPERTIES
# =============================================================================


class TestChallengeProperties:
    """Property-based tests for build_challenge / parse_challenge."""

    @given(
        domain=domain_strategy,
        identity=address_strategy,
        statement=statement_strategy,
        chain_id=st.integers(min_value=1, max_value=2**63),
        nonce=nonce_strategy,
        issued_at=issued_at_strategy,
    )
    def test_parse_recovers_built_fields(
        self, domain, identity, statement, chain_id, nonce, issued_at
    ):
        """Property: parse(build(f)) recovers every field, whatever the statement holds."""
        message = build_challenge(
            domain=domain,
            identity=identity,
            statement=statement,
            uri=f"https://{domain}",
            version="1",
            chain_id=chain_id,
            nonce=nonce,
            issued_at=issued_at,
        )

        fields = parse_challenge(message).unwrap()
        assert fields.domain == domain
        assert fields.identity == identity
        assert fields.statement == statement
        assert fields.uri == f"https://{domain}"
        assert fields.chain_id == str(chain_id)
        assert fields.nonce == nonce

    @given(message=st.text(max_size=500))
    def test_parse_never_raises(self, message):
        """Property: arbitrary text parses to a value, never an exception."""
        result = parse_challenge(message)
        if isinstance(result, Failure):
            assert result.failure().kind == AuthErrorKind.MALFORMED_MESSAGE


# =============================================================================
# NONCE PROPERTIES
# =============================================================================


class TestNonceProperties:
    """Property-based tests for NonceStore."""

    @given(count=st.integers(min_value=1, max_value=300))
    @settings(max_examples=20)
    def test_issued_tokens_distinct(self, count):
        store = NonceStore(clock=FrozenClock(current=START))
        tokens = [store.issue("0xabc") for _ in range(count)]
        assert len(set(tokens)) == count
        assert all(re.fullmatch(r"[0-9a-f]{32}", t) for t in tokens)

    @given(attempts=st.integers(min_value=1, max_value=20))
    def test_consumed_at_most_once(self, attempts):
        store = NonceStore(clock=FrozenClock(current=START))
        token = store.issue("0xabc")
        results = [store.consume(token, "0xabc") for _ in range(attempts)]
        assert sum(isinstance(r, Success) for r in results) == 1

    @given(offset_ms=st.integers(min_value=-10_000, max_value=10_000))
    def test_expiry_boundary(self, offset_ms):
        """Property: accepted iff age <= TTL."""
        clock = FrozenClock(current=START)
        store = NonceStore(ttl=timedelta(minutes=5), clock=clock)
        token = store.issue("0xabc")

        clock.advance(minutes=5, milliseconds=offset_ms)
        result = store.consume(token, "0xabc")

        if offset_ms <= 0:
            assert isinstance(result, Success)
        else:
            assert result.failure().kind == AuthErrorKind.NONCE_EXPIRED

    @given(issued_to=address_strategy, claimed=address_strategy)
    def test_identity_binding(self, issued_to, claimed):
        """Property: a nonce is only spendable by the identity it was issued to."""
        store = NonceStore(clock=FrozenClock(current=START))
        token = store.issue(ETHEREUM.canonical(issued_to))
        result = store.consume(token, claimed)

        if ETHEREUM.same(issued_to, claimed):
            assert isinstance(result, Success)
        else:
            assert result.failure().kind == AuthErrorKind.IDENTITY_MISMATCH
            assert token in store


# =============================================================================
# SESSION PROPERTIES
# =============================================================================


class TestSessionProperties:
    """Property-based tests for SessionStore."""

    @given(
        duration_s=st.integers(min_value=1, max_value=7 * 24 * 3600),
        offset_ms=st.integers(min_value=-5_000, max_value=5_000),
    )
    def test_validity_window(self, duration_s, offset_ms):
        """Property: valid iff now < issued_at + duration."""
        clock = FrozenClock(current=START)
        store = SessionStore(duration=timedelta(seconds=duration_s), clock=clock)
        record = store.create("0xabc", "1")
        assert record.expires_at - record.issued_at == timedelta(seconds=duration_s)

        assume(timedelta(seconds=duration_s) + timedelta(milliseconds=offset_ms) >= timedelta(0))
        clock.advance(seconds=duration_s, milliseconds=offset_ms)

        result = store.lookup(record.session_id)
        if offset_ms < 0:
            assert isinstance(result, Success)
        else:
            assert result.failure().kind == AuthErrorKind.SESSION_EXPIRED


# =============================================================================
# COORDINATOR PROPERTIES
# =============================================================================


class TestCoordinatorProperties:
    """Property-based tests for AuthCoordinator."""

    @given(identity=st.text(max_size=60))
    def test_invalid_identities_rejected(self, identity):
        assume(not ETHEREUM.is_valid(identity))
        coordinator = _accepting_coordinator(FrozenClock(current=START))

        result = coordinator.request_challenge(identity)
        assert result.failure().kind == AuthErrorKind.INVALID_IDENTITY
        assert coordinator.nonces.size == 0

    @given(message=st.text(max_size=300), signature=st.sampled_from(["valid", "", "0x00"]))
    def test_garbage_never_establishes_session(self, message, signature):
        """Property: a message the coordinator never issued cannot yield a session."""
        coordinator = _accepting_coordinator(FrozenClock(current=START))

        result = coordinator.complete_challenge(message, signature)
        assert isinstance(result, Failure)
        assert coordinator.sessions.size == 0

    @given(identity=address_strategy, replays=st.integers(min_value=1, max_value=5))
    @settings(max_examples=25)
    def test_one_session_per_challenge(self, identity, replays):
        coordinator = _accepting_coordinator(FrozenClock(current=START))
        challenge = coordinator.request_challenge(identity).unwrap()

        first = coordinator.complete_challenge(challenge.message, "valid")
        assert first.unwrap().identity == identity.lower()

        for _ in range(replays):
            replay = coordinator.complete_challenge(challenge.message, "valid")
            assert replay.failure().kind == AuthErrorKind.NONCE_NOT_FOUND
        assert coordinator.sessions.size == 1

    @given(identities=st.lists(address_strategy, min_size=2, max_size=8, unique_by=str.lower))
    @settings(max_examples=10)
    def test_interleaved_challenges_independent(self, identities):
        """Property: completing challenges in any order leaves the others usable."""
        coordinator = _accepting_coordinator(FrozenClock(current=START))
        issued = [coordinator.request_challenge(i).unwrap() for i in identities]

        for challenge in reversed(issued):
            result = coordinator.complete_challenge(challenge.message, "valid")
            assert result.unwrap().identity == challenge.identity.lower()

        assert coordinator.nonces.size == 0
        assert coordinator.sessions.size == len(identities)
