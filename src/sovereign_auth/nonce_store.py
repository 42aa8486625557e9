"""
Challenge Nonce Store

Single-use challenge tokens with expiry.

Each token is issued for one identity and may be consumed exactly once
within its TTL. Consumed, expired and swept tokens are gone for good;
a later presentation of the same token reports NonceNotFound.
"""

from __future__ import annotations

import secrets
import threading
from datetime import datetime, timedelta
from typing import Dict

import attrs
import structlog
from returns.result import Failure, Result, Success

from sovereign_auth.core.clock import Clock, SystemClock
from sovereign_auth.core.types import (
    AuthError,
    AuthErrorKind,
    NonceRecord,
    short_token,
)

logger = structlog.get_logger()

NONCE_BYTES = 16
DEFAULT_NONCE_TTL = timedelta(minutes=5)


@attrs.define
class NonceStore:
    """
    Thread-safe store of outstanding challenge nonces.

    Every read-modify-write on the mapping happens under one lock, so two
    concurrent ``consume`` calls for the same token cannot both succeed.

    Example:
        store = NonceStore()
        token = store.issue("0xab...")

        result = store.consume(token, "0xAB...")
        if isinstance(result, Success):
            # First and only use of this token
            pass
    """

    ttl: timedelta = DEFAULT_NONCE_TTL
    clock: Clock = attrs.Factory(SystemClock)

    _entries: Dict[str, NonceRecord] = attrs.Factory(dict)
    _lock: threading.RLock = attrs.Factory(threading.RLock)
    _logger: structlog.BoundLogger = attrs.Factory(lambda: structlog.get_logger())

    def __attrs_post_init__(self) -> None:
        if self.ttl <= timedelta(0):
            raise ValueError("Nonce TTL must be positive")

    def issue(self, identity_hint: str) -> str:
        """
        Generate and record a fresh token.

        Args:
            identity_hint: Identity the challenge is addressed to,
                in canonical form

        Returns:
            Hex-encoded random token (NONCE_BYTES of entropy)
        """
        now = self.clock.now()
        with self._lock:
            token = secrets.token_hex(NONCE_BYTES)
            while token in self._entries:
                token = secrets.token_hex(NONCE_BYTES)
            self._entries[token] = NonceRecord(
                token=token,
                identity_hint=identity_hint,
                created_at=now,
            )
            size = len(self._entries)

        self._logger.debug(
            "nonce_issued",
            nonce=short_token(token),
            identity=identity_hint,
            store_size=size,
        )
        return token

    def peek(self, token: str) -> Result[NonceRecord, AuthError]:
        """
        Check that a token exists and is live, without consuming it.

        An expired token is evicted as a side effect.
        """
        now = self.clock.now()
        with self._lock:
            return self._check_live_locked(token, now)

    def consume(self, token: str, claimed_identity: str) -> Result[NonceRecord, AuthError]:
        """
        Atomically validate and remove a token.

        Checks, in order:
        1. Token is present (else NONCE_NOT_FOUND)
        2. Token is within its TTL (else evicted, NONCE_EXPIRED)
        3. Claimed identity matches the hint, case-insensitively
           (else IDENTITY_MISMATCH; the token is left in place)

        Returns:
            Success(record) with the removed record
            Failure(AuthError) describing the first failed check
        """
        now = self.clock.now()
        with self._lock:
            live = self._check_live_locked(token, now)
            if isinstance(live, Failure):
                return live

            record = live.unwrap()
            if record.identity_hint.lower() != claimed_identity.lower():
                self._logger.warning(
                    "nonce_identity_mismatch",
                    nonce=short_token(token),
                    expected=record.identity_hint,
                    claimed=claimed_identity,
                )
                return Failure(AuthError(AuthErrorKind.IDENTITY_MISMATCH))

            del self._entries[token]

        self._logger.debug(
            "nonce_consumed",
            nonce=short_token(token),
            identity=record.identity_hint,
        )
        return Success(record)

    def sweep(self) -> int:
        """
        Remove every entry older than the TTL.

        Returns:
            Number of entries removed
        """
        now = self.clock.now()
        with self._lock:
            expired = [
                token for token, record in self._entries.items()
                if record.is_expired(now, self.ttl)
            ]
            for token in expired:
                del self._entries[token]
            remaining = len(self._entries)

        if expired:
            self._logger.debug(
                "nonce_sweep",
                removed=len(expired),
                remaining=remaining,
            )
        return len(expired)

    def _check_live_locked(self, token: str, now: datetime) -> Result[NonceRecord, AuthError]:
        """Existence and expiry check (must hold lock)."""
        record = self._entries.get(token)
        if record is None:
            return Failure(AuthError(AuthErrorKind.NONCE_NOT_FOUND))

        if record.is_expired(now, self.ttl):
            del self._entries[token]
            self._logger.info(
                "nonce_expired",
                nonce=short_token(token),
                age_seconds=record.age(now).total_seconds(),
            )
            return Failure(AuthError(AuthErrorKind.NONCE_EXPIRED))

        return Success(record)

    def __contains__(self, token: str) -> bool:
        with self._lock:
            return token in self._entries

    @property
    def size(self) -> int:
        """Current number of outstanding nonces."""
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "size": len(self._entries),
                "ttl_seconds": int(self.ttl.total_seconds()),
            }
