"""
Auth Protocol Coordinator

Drives the challenge -> verify -> establish-session flow and exposes the
session operations protected resources need.

Per-attempt states:

    START --IdentityAccepted--> NONCE_ISSUED --SignatureVerified--> VERIFIED
    VERIFIED --SessionEstablished--> ESTABLISHED
    START --IdentityRejected--> REJECTED
    NONCE_ISSUED --VerificationFailed--> REJECTED
    VERIFIED --SessionFailed--> REJECTED

ESTABLISHED and REJECTED are terminal. A rejected attempt is retried by
requesting a fresh challenge; other outstanding nonces are untouched.

Check order in complete_challenge (deterministic):
1. Parse the message                        -> MalformedMessage
2. Nonce exists and is live (no removal)    -> NonceNotFound / NonceExpired
3. Oracle verifies the signature            -> InvalidSignature
4. Atomic consume, identity must match      -> NonceNotFound / NonceExpired /
                                               IdentityMismatch
5. Session creation

No store lock is held across step 3. Step 4 re-validates the nonce after
the oracle round trip, so exactly one of several concurrent completions
presenting the same nonce succeeds.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum, auto
from typing import Any, Callable, Dict, Optional, Tuple

import attrs
import structlog
from returns.result import Failure, Result, Success

from sovereign_auth.challenge import build_challenge
from sovereign_auth.config import AuthConfig
from sovereign_auth.core.clock import Clock, SystemClock
from sovereign_auth.core.state_machine import StateMachineBase, TransitionEntry
from sovereign_auth.core.types import (
    AuthError,
    AuthErrorKind,
    ChallengeFields,
    EstablishedSession,
    IssuedChallenge,
    SessionRecord,
    short_token,
)
from sovereign_auth.nonce_store import NonceStore
from sovereign_auth.oracles import oracle_for_scheme
from sovereign_auth.oracles.base import VerificationOracle
from sovereign_auth.session_store import SessionStore
from sovereign_auth.sweeper import Sweeper
from sovereign_auth.verifier import SignatureVerifier

logger = structlog.get_logger()


# =============================================================================
# ATTEMPT STATE MACHINE
# =============================================================================


class AttemptState(Enum):
    """States of a single authentication attempt."""

    START = auto()
    NONCE_ISSUED = auto()
    VERIFIED = auto()
    ESTABLISHED = auto()
    REJECTED = auto()


@attrs.define(frozen=True, slots=True)
class IdentityAccepted:
    """Event: identity syntax ok, nonce issued."""

    identity: str
    nonce_prefix: str


@attrs.define(frozen=True, slots=True)
class IdentityRejected:
    """Event: identity failed the scheme's syntax check."""

    reason: str


@attrs.define(frozen=True, slots=True)
class SignatureVerified:
    """Event: oracle accepted the signature and the nonce was consumed."""

    identity: str
    nonce_prefix: str


@attrs.define(frozen=True, slots=True)
class VerificationFailed:
    """Event: any check of complete_challenge failed."""

    error_kind: AuthErrorKind
    reason: str


@attrs.define(frozen=True, slots=True)
class SessionFailed:
    """Event: session store raised after the nonce was consumed."""

    reason: str


@attrs.define(frozen=True, slots=True)
class SessionEstablished:
    """Event: session minted for the verified identity."""

    session_prefix: str
    expires_at: datetime


@attrs.define
class AttemptContext:
    identity: Optional[str] = None
    nonce_prefix: Optional[str] = None
    session_prefix: Optional[str] = None
    expires_at: Optional[datetime] = None
    error_kind: Optional[AuthErrorKind] = None
    error_message: str = ""


@attrs.define
class AttemptStateMachine(StateMachineBase[AttemptState, Any, AttemptContext]):
    """State machine for one authentication attempt."""

    def __attrs_post_init__(self) -> None:
        self.add_invariant(
            "established_has_session",
            lambda state, ctx: state != AttemptState.ESTABLISHED or ctx.session_prefix is not None,
        )
        self.add_invariant(
            "rejected_has_error",
            lambda state, ctx: (
                state != AttemptState.REJECTED
                or ctx.error_kind is not None
                or bool(ctx.error_message)
            ),
        )

    def initial_state(self) -> AttemptState:
        return AttemptState.START

    def transition_table(self) -> Dict[Tuple[AttemptState, type], TransitionEntry]:
        return {
            (AttemptState.START, IdentityAccepted): (
                AttemptState.NONCE_ISSUED,
                self._handle_identity_accepted,
            ),
            (AttemptState.START, IdentityRejected): (
                AttemptState.REJECTED,
                self._handle_identity_rejected,
            ),
            (AttemptState.NONCE_ISSUED, SignatureVerified): (
                AttemptState.VERIFIED,
                self._handle_signature_verified,
            ),
            (AttemptState.NONCE_ISSUED, VerificationFailed): (
                AttemptState.REJECTED,
                self._handle_verification_failed,
            ),
            (AttemptState.VERIFIED, SessionEstablished): (
                AttemptState.ESTABLISHED,
                self._handle_session_established,
            ),
            (AttemptState.VERIFIED, SessionFailed): (
                AttemptState.REJECTED,
                self._handle_session_failed,
            ),
        }

    @staticmethod
    def _handle_identity_accepted(event: IdentityAccepted, ctx: AttemptContext) -> AttemptContext:
        return attrs.evolve(ctx, identity=event.identity, nonce_prefix=event.nonce_prefix)

    @staticmethod
    def _handle_identity_rejected(event: IdentityRejected, ctx: AttemptContext) -> AttemptContext:
        return attrs.evolve(
            ctx,
            error_kind=AuthErrorKind.INVALID_IDENTITY,
            error_message=event.reason,
        )

    @staticmethod
    def _handle_signature_verified(event: SignatureVerified, ctx: AttemptContext) -> AttemptContext:
        return attrs.evolve(ctx, identity=event.identity, nonce_prefix=event.nonce_prefix)

    @staticmethod
    def _handle_verification_failed(event: VerificationFailed, ctx: AttemptContext) -> AttemptContext:
        return attrs.evolve(ctx, error_kind=event.error_kind, error_message=event.reason)

    @staticmethod
    def _handle_session_failed(event: SessionFailed, ctx: AttemptContext) -> AttemptContext:
        return attrs.evolve(ctx, error_message=event.reason)

    @staticmethod
    def _handle_session_established(event: SessionEstablished, ctx: AttemptContext) -> AttemptContext:
        return attrs.evolve(
            ctx,
            session_prefix=event.session_prefix,
            expires_at=event.expires_at,
        )


# =============================================================================
# COORDINATOR
# =============================================================================


@attrs.define
class AuthCoordinator:
    """
    Challenge-response sign-in.

    Example:
        coordinator = create_coordinator(AuthConfig(domain="example.com"))
        with coordinator:
            challenge = coordinator.request_challenge("0xAbC...").unwrap()
            # client signs challenge.message
            session = coordinator.complete_challenge(challenge.message, signature).unwrap()
            identity = coordinator.require_session(session.session_id).unwrap()
            coordinator.end_session(session.session_id)
    """

    config: AuthConfig
    nonces: NonceStore
    sessions: SessionStore
    verifier: SignatureVerifier
    clock: Clock = attrs.Factory(SystemClock)

    # Receives every attempt once it stops moving (audit / tests)
    on_attempt: Optional[Callable[[AttemptStateMachine], None]] = None

    _sweeper: Optional[Sweeper] = attrs.field(default=None, alias="_sweeper")
    _logger: structlog.BoundLogger = attrs.field(
        factory=lambda: structlog.get_logger(), alias="_logger"
    )

    def __attrs_post_init__(self) -> None:
        if self._sweeper is None:
            self._sweeper = Sweeper(
                stores={"nonces": self.nonces, "sessions": self.sessions},
                interval=self.config.sweep_interval,
            )

    # -------------------------------------------------------------------------
    # Challenge flow
    # -------------------------------------------------------------------------

    def request_challenge(self, identity: str) -> Result[IssuedChallenge, AuthError]:
        """
        Validate the identity and issue a challenge for it.

        Returns:
            Success(IssuedChallenge) with the message to sign and its nonce
            Failure(INVALID_IDENTITY) if the identity fails the scheme's syntax
        """
        attempt = self._new_attempt(AttemptState.START)
        scheme = self.config.scheme

        if not scheme.is_valid(identity):
            reason = f"Valid {scheme.network} identity required"
            attempt.process_event(IdentityRejected(reason=reason))
            self._finish(attempt)
            self._logger.info("challenge_rejected", reason=reason)
            return Failure(AuthError(AuthErrorKind.INVALID_IDENTITY, reason))

        canonical = scheme.canonical(identity)
        nonce = self.nonces.issue(canonical)
        message = build_challenge(
            domain=self.config.domain,
            identity=identity,
            statement=self.config.statement,
            uri=self.config.resource_uri,
            version=self.config.version,
            chain_id=self.config.chain_id,
            nonce=nonce,
            issued_at=self.clock.now(),
            network=scheme.network,
        )

        attempt.process_event(IdentityAccepted(identity=canonical, nonce_prefix=short_token(nonce)))
        self._finish(attempt)
        self._logger.info("challenge_issued", identity=canonical, nonce=short_token(nonce))

        return Success(IssuedChallenge(message=message, nonce=nonce, identity=identity))

    def complete_challenge(
        self, message: str, signature: str
    ) -> Result[EstablishedSession, AuthError]:
        """
        Verify a signed challenge and establish a session.

        Once the nonce has been consumed it stays consumed, even if
        session creation then raises; the client must start over.

        Returns:
            Success(EstablishedSession) with session id, identity and expiry
            Failure(AuthError) with the first failed check
        """
        attempt = self._new_attempt(AttemptState.NONCE_ISSUED)

        verified = self.verifier.verify(message, signature, before_oracle=self._nonce_is_live)
        if isinstance(verified, Failure):
            return self._reject(attempt, verified.failure())

        challenge = verified.unwrap()

        consumed = self.nonces.consume(challenge.nonce, challenge.identity)
        if isinstance(consumed, Failure):
            return self._reject(attempt, consumed.failure())

        attempt.process_event(
            SignatureVerified(identity=challenge.identity, nonce_prefix=short_token(challenge.nonce))
        )

        try:
            session = self.sessions.create(challenge.identity, challenge.chain_id)
        except Exception:
            self._logger.exception(
                "session_create_failed",
                identity=challenge.identity,
                nonce=short_token(challenge.nonce),
            )
            attempt.process_event(SessionFailed(reason="Session could not be created"))
            self._finish(attempt)
            raise

        attempt.process_event(
            SessionEstablished(
                session_prefix=short_token(session.session_id),
                expires_at=session.expires_at,
            )
        )
        self._finish(attempt)

        self._logger.info(
            "sign_in_completed",
            identity=session.identity,
            session=short_token(session.session_id),
        )
        return Success(EstablishedSession(session=session))

    # -------------------------------------------------------------------------
    # Session operations
    # -------------------------------------------------------------------------

    def require_session(self, session_id: str) -> Result[str, AuthError]:
        """
        Identity behind a live session, for protected-resource guards.

        Returns:
            Success(identity)
            Failure(NO_SESSION | SESSION_EXPIRED)
        """
        return self.sessions.lookup(session_id).map(lambda record: record.identity)

    def check_session(self, session_id: str) -> Result[SessionRecord, AuthError]:
        """Full session record (identity, chain id, expiry)."""
        return self.sessions.lookup(session_id)

    def end_session(self, session_id: str) -> None:
        """Revoke a session. Always succeeds."""
        self.sessions.revoke(session_id)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start the background expiry sweeper."""
        self._sweeper.start()

    def stop(self) -> None:
        """Stop the sweeper and release the oracle worker pool."""
        self._sweeper.stop()
        self.verifier.close()

    @property
    def sweeper(self) -> Sweeper:
        return self._sweeper

    def __enter__(self) -> "AuthCoordinator":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "nonces": self.nonces.get_stats(),
            "sessions": self.sessions.get_stats(),
            "sweeps": self._sweeper.runs,
        }

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _nonce_is_live(self, fields: ChallengeFields) -> Result[Any, AuthError]:
        return self.nonces.peek(fields.nonce)

    def _new_attempt(self, state: AttemptState) -> AttemptStateMachine:
        return AttemptStateMachine(_state=state, _context=AttemptContext())

    def _reject(
        self, attempt: AttemptStateMachine, error: AuthError
    ) -> Result[EstablishedSession, AuthError]:
        attempt.process_event(VerificationFailed(error_kind=error.kind, reason=error.message))
        self._finish(attempt)
        self._logger.info(
            "sign_in_rejected",
            error=error.kind.wire_name,
            reason=error.message,
        )
        return Failure(error)

    def _finish(self, attempt: AttemptStateMachine) -> None:
        if self.on_attempt is not None:
            self.on_attempt(attempt)


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================


def create_coordinator(
    config: Optional[AuthConfig] = None,
    oracle: Optional[VerificationOracle] = None,
    clock: Optional[Clock] = None,
) -> AuthCoordinator:
    """
    Wire up stores, verifier and coordinator from a config.

    Args:
        config: Settings (defaults to AuthConfig())
        oracle: Verification backend (defaults to the scheme's oracle)
        clock: Time source shared by both stores (defaults to system time)

    Returns:
        Configured AuthCoordinator (sweeper not yet started)
    """
    config = config or AuthConfig()
    clock = clock or SystemClock()
    oracle = oracle or oracle_for_scheme(config.identity_scheme)

    return AuthCoordinator(
        config=config,
        nonces=NonceStore(ttl=config.nonce_ttl, clock=clock),
        sessions=SessionStore(duration=config.session_duration, clock=clock),
        verifier=SignatureVerifier(
            oracle=oracle,
            scheme=config.scheme,
            oracle_timeout=config.oracle_timeout,
        ),
        clock=clock,
    )
