"""
Session Store

In-memory authenticated sessions keyed by an unguessable identifier.

Expiry is checked lazily on lookup; a periodic sweep removes sessions
nobody reads again. Sessions never slide: every lookup sees the
expires_at fixed at creation.
"""

from __future__ import annotations

import secrets
import threading
from datetime import timedelta
from typing import Dict, List

import attrs
import structlog
from returns.result import Failure, Result, Success

from sovereign_auth.core.clock import Clock, SystemClock
from sovereign_auth.core.exceptions import InvariantViolation
from sovereign_auth.core.types import (
    AuthError,
    AuthErrorKind,
    SessionRecord,
    short_token,
)

logger = structlog.get_logger()

SESSION_ID_BYTES = 32
DEFAULT_SESSION_DURATION = timedelta(hours=24)


def _usable_id(session_id: object) -> bool:
    return isinstance(session_id, str) and session_id != ""


@attrs.define
class SessionStore:
    """
    Thread-safe session registry.

    Multiple sessions per identity may coexist.

    Example:
        store = SessionStore()
        session = store.create("0xab...", "8453")

        result = store.lookup(session.session_id)
        if isinstance(result, Success):
            print(result.unwrap().identity)

        store.revoke(session.session_id)
    """

    duration: timedelta = DEFAULT_SESSION_DURATION
    clock: Clock = attrs.Factory(SystemClock)

    _sessions: Dict[str, SessionRecord] = attrs.Factory(dict)
    _lock: threading.RLock = attrs.Factory(threading.RLock)
    _logger: structlog.BoundLogger = attrs.Factory(lambda: structlog.get_logger())

    def __attrs_post_init__(self) -> None:
        if self.duration <= timedelta(0):
            raise ValueError("Session duration must be positive")

    def create(self, identity: str, chain_id: str) -> SessionRecord:
        """
        Mint and store a new session.

        Args:
            identity: Verified identity, canonical form
            chain_id: Network / chain the challenge named

        Returns:
            The stored SessionRecord (expires_at = issued_at + duration)
        """
        now = self.clock.now()
        with self._lock:
            session_id = secrets.token_hex(SESSION_ID_BYTES)
            while session_id in self._sessions:
                session_id = secrets.token_hex(SESSION_ID_BYTES)

            record = SessionRecord(
                session_id=session_id,
                identity=identity,
                chain_id=str(chain_id),
                issued_at=now,
                expires_at=now + self.duration,
            )
            if record.expires_at - record.issued_at != self.duration:
                raise InvariantViolation("Session expiry does not match configured duration")

            self._sessions[session_id] = record
            size = len(self._sessions)

        self._logger.info(
            "session_created",
            session=short_token(session_id),
            identity=identity,
            chain_id=record.chain_id,
            expires_at=record.expires_at.isoformat(),
            store_size=size,
        )
        return record

    def lookup(self, session_id: str) -> Result[SessionRecord, AuthError]:
        """
        Find a live session.

        An expired session is deleted here, so the next lookup of the
        same id reports NO_SESSION.

        Returns:
            Success(record) if present and not expired
            Failure(NO_SESSION | SESSION_EXPIRED)
        """
        if not _usable_id(session_id):
            return Failure(AuthError(AuthErrorKind.NO_SESSION))

        now = self.clock.now()
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                return Failure(AuthError(AuthErrorKind.NO_SESSION))

            if not record.is_valid_at(now):
                del self._sessions[session_id]
                self._logger.info(
                    "session_expired",
                    session=short_token(session_id),
                    identity=record.identity,
                )
                return Failure(AuthError(AuthErrorKind.SESSION_EXPIRED))

            return Success(record)

    def revoke(self, session_id: str) -> bool:
        """
        Delete a session. Idempotent.

        Returns:
            True if a session was removed, False if there was none
        """
        with self._lock:
            removed = self._sessions.pop(session_id, None) if _usable_id(session_id) else None

        if removed is not None:
            self._logger.info(
                "session_revoked",
                session=short_token(session_id),
                identity=removed.identity,
            )
        return removed is not None

    def sweep(self) -> int:
        """
        Remove every expired session.

        Returns:
            Number of sessions removed
        """
        now = self.clock.now()
        with self._lock:
            expired = [
                session_id for session_id, record in self._sessions.items()
                if not record.is_valid_at(now)
            ]
            for session_id in expired:
                del self._sessions[session_id]
            remaining = len(self._sessions)

        if expired:
            self._logger.debug(
                "session_sweep",
                removed=len(expired),
                remaining=remaining,
            )
        return len(expired)

    def sessions_for(self, identity: str) -> List[SessionRecord]:
        """Live sessions belonging to ``identity`` (case-insensitive)."""
        now = self.clock.now()
        wanted = identity.lower()
        with self._lock:
            return [
                record for record in self._sessions.values()
                if record.identity.lower() == wanted and record.is_valid_at(now)
            ]

    @property
    def size(self) -> int:
        """Current number of stored sessions (including not-yet-swept expired ones)."""
        with self._lock:
            return len(self._sessions)

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "size": len(self._sessions),
                "duration_seconds": int(self.duration.total_seconds()),
            }
