"""
SovereignAuth Core Types

Records shared by the nonce store, challenge builder, verifier,
session store and coordinator.

Design Principles:
- Immutable: All records use frozen attrs classes
- Validated: Type constraints enforced at construction
- Outcomes as values: protocol failures are AuthError values, not raises
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum, auto
from typing import Any, Dict

import attrs
from attrs import field, validators


# =============================================================================
# ERROR KINDS
# =============================================================================


class AuthErrorKind(Enum):
    """
    Recoverable protocol failures.

    Every kind is recoverable by restarting the flow with a fresh
    challenge; none of them is fatal to the process.
    """

    INVALID_IDENTITY = auto()
    MALFORMED_MESSAGE = auto()
    NONCE_NOT_FOUND = auto()
    NONCE_EXPIRED = auto()
    IDENTITY_MISMATCH = auto()
    INVALID_SIGNATURE = auto()
    NO_SESSION = auto()
    SESSION_EXPIRED = auto()

    @property
    def wire_name(self) -> str:
        """Name used in response bodies (e.g. ``NonceExpired``)."""
        return "".join(part.capitalize() for part in self.name.split("_"))

    @property
    def status_code(self) -> int:
        """Transport status code for this failure."""
        if self in (AuthErrorKind.INVALID_IDENTITY, AuthErrorKind.MALFORMED_MESSAGE):
            return 400
        return 401


@attrs.define(frozen=True, slots=True)
class AuthError:
    """
    A protocol failure carried inside ``Failure(...)``.

    Attributes:
        kind: Which failure occurred
        message: Human-readable detail (safe to return to the client)
    """

    kind: AuthErrorKind = field(validator=validators.instance_of(AuthErrorKind))
    message: str = ""

    def __attrs_post_init__(self) -> None:
        if not self.message:
            object.__setattr__(self, "message", _DEFAULT_MESSAGES[self.kind])

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind.wire_name, "message": self.message}

    def __str__(self) -> str:
        return f"{self.kind.wire_name}: {self.message}"


_DEFAULT_MESSAGES = {
    AuthErrorKind.INVALID_IDENTITY: "Valid identity required",
    AuthErrorKind.MALFORMED_MESSAGE: "Invalid challenge message format",
    AuthErrorKind.NONCE_NOT_FOUND: "Invalid or already used nonce",
    AuthErrorKind.NONCE_EXPIRED: "Nonce expired",
    AuthErrorKind.IDENTITY_MISMATCH: "Identity does not match challenge",
    AuthErrorKind.INVALID_SIGNATURE: "Invalid signature",
    AuthErrorKind.NO_SESSION: "No session",
    AuthErrorKind.SESSION_EXPIRED: "Session expired",
}


# =============================================================================
# NONCE
# =============================================================================


@attrs.define(frozen=True, slots=True)
class NonceRecord:
    """
    A single-use challenge token as held by the nonce store.

    INVARIANT: valid for exactly one consume within the TTL window
    """

    token: str = field(validator=[validators.instance_of(str), validators.min_len(32)])
    identity_hint: str = field(validator=validators.instance_of(str))
    created_at: datetime = field(validator=validators.instance_of(datetime))

    def age(self, now: datetime) -> timedelta:
        return now - self.created_at

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        """Strictly older than the TTL; an entry exactly at TTL is still live."""
        return self.age(now) > ttl


# =============================================================================
# CHALLENGE
# =============================================================================


@attrs.define(frozen=True, slots=True)
class ChallengeFields:
    """
    Structured content of a challenge message.

    ``build_challenge`` renders these fields; ``parse_challenge``
    recovers them from the rendered text.
    """

    domain: str
    identity: str
    statement: str
    uri: str
    version: str
    chain_id: str
    nonce: str
    issued_at: str
    network: str = "Ethereum"


@attrs.define(frozen=True, slots=True)
class IssuedChallenge:
    """Result of requesting a challenge: the text to sign and its nonce."""

    message: str
    nonce: str
    identity: str

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "nonce": self.nonce}


@attrs.define(frozen=True, slots=True)
class VerifiedChallenge:
    """
    Output of the signature verifier.

    ``identity`` is in the scheme's canonical form.
    """

    identity: str
    nonce: str
    chain_id: str


# =============================================================================
# SESSION
# =============================================================================


@attrs.define(frozen=True, slots=True)
class SessionRecord:
    """
    An authenticated, time-bounded session.

    INVARIANT: expires_at > issued_at
    INVARIANT: valid iff now < expires_at (no sliding expiry)
    """

    session_id: str = field(repr=False)
    identity: str
    chain_id: str
    issued_at: datetime
    expires_at: datetime

    def __attrs_post_init__(self) -> None:
        if self.expires_at <= self.issued_at:
            raise ValueError("expires_at must be after issued_at")

    def is_valid_at(self, time: datetime) -> bool:
        return time < self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        """Wire body; a decimal chain id goes out as a JSON number."""
        return {
            "address": self.identity,
            "chainId": int(self.chain_id) if self.chain_id.isdecimal() else self.chain_id,
            "expiresAt": format_timestamp(self.expires_at),
        }


@attrs.define(frozen=True, slots=True)
class EstablishedSession:
    """Result of a completed challenge."""

    session: SessionRecord

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def identity(self) -> str:
        return self.session.identity

    @property
    def expires_at(self) -> datetime:
        return self.session.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "address": self.identity,
            "expiresAt": format_timestamp(self.expires_at),
        }


# =============================================================================
# HELPERS
# =============================================================================


def format_timestamp(value: datetime) -> str:
    """
    Render a UTC timestamp as ISO-8601 with millisecond precision.

    Example: 2026-10-19T08:15:30.123Z
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def short_token(token: str) -> str:
    """Loggable prefix of a secret token."""
    return token[:8]
