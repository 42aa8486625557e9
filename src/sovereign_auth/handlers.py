"""
Transport-agnostic request handlers.

Each handler takes the already-decoded request pieces (JSON body,
headers, query) and returns a status code plus a JSON-ready body, so
any HTTP framework can mount them:

    POST /auth/nonce    -> issue_challenge(body)
    POST /auth/verify   -> complete_challenge(body)
    GET  /auth/session  -> check_session(headers, query)
    POST /auth/logout   -> logout(headers)

``require_auth`` is the guard for protected routes.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import attrs
import structlog
from returns.result import Failure, Result

from sovereign_auth.coordinator import AuthCoordinator
from sovereign_auth.core.types import AuthError, AuthErrorKind, SessionRecord

logger = structlog.get_logger()

SESSION_HEADER = "x-session-id"
SESSION_QUERY_PARAM = "sessionId"


@attrs.define(frozen=True, slots=True)
class Response:
    """Status code and JSON body."""

    status: int
    body: Dict[str, Any]

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @classmethod
    def from_error(cls, error: AuthError) -> "Response":
        return cls(status=error.kind.status_code, body=error.to_dict())


def _as_mapping(value: object) -> Mapping[str, Any]:
    """Decoded JSON or header input; anything but a mapping counts as empty."""
    return value if isinstance(value, Mapping) else {}


def session_id_from(
    headers: Optional[Mapping[str, str]],
    query: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    """
    Session id from the ``x-session-id`` header (any case), falling
    back to the ``sessionId`` query parameter.
    """
    for name, value in _as_mapping(headers).items():
        if isinstance(name, str) and name.lower() == SESSION_HEADER:
            if isinstance(value, str) and value:
                return value
    value = _as_mapping(query).get(SESSION_QUERY_PARAM)
    if isinstance(value, str) and value:
        return value
    return None


@attrs.define
class AuthHandlers:
    """Request/response adapters over an AuthCoordinator."""

    coordinator: AuthCoordinator

    def issue_challenge(self, body: Optional[Mapping[str, Any]]) -> Response:
        """``{address}`` -> 200 ``{message, nonce}`` | 400 InvalidIdentity."""
        address = _as_mapping(body).get("address")
        result = self.coordinator.request_challenge(address)
        if isinstance(result, Failure):
            return Response.from_error(result.failure())
        return Response(status=200, body=result.unwrap().to_dict())

    def complete_challenge(self, body: Optional[Mapping[str, Any]]) -> Response:
        """``{message, signature}`` -> 200 ``{sessionId, address, expiresAt}`` | 400/401."""
        body = _as_mapping(body)
        message = body.get("message")
        signature = body.get("signature")

        if not message or not signature:
            logger.info(
                "verify_request_incomplete",
                has_message=bool(message),
                has_signature=bool(signature),
            )
            return Response(
                status=400,
                body={
                    "error": AuthErrorKind.MALFORMED_MESSAGE.wire_name,
                    "message": "message and signature required",
                },
            )

        result = self.coordinator.complete_challenge(message, signature)
        if isinstance(result, Failure):
            return Response.from_error(result.failure())
        return Response(status=200, body=result.unwrap().to_dict())

    def check_session(
        self,
        headers: Optional[Mapping[str, str]],
        query: Optional[Mapping[str, str]] = None,
    ) -> Response:
        """Session id -> 200 ``{address, chainId, expiresAt}`` | 401 NoSession/SessionExpired."""
        session_id = session_id_from(headers, query)
        result = self.coordinator.check_session(session_id or "")
        if isinstance(result, Failure):
            return Response.from_error(result.failure())
        return Response(status=200, body=result.unwrap().to_dict())

    def logout(self, headers: Optional[Mapping[str, str]]) -> Response:
        """Always 200 ``{ok: true}``."""
        session_id = session_id_from(headers)
        if session_id:
            self.coordinator.end_session(session_id)
        return Response(status=200, body={"ok": True})

    def require_auth(self, headers: Optional[Mapping[str, str]]) -> Result[SessionRecord, AuthError]:
        """
        Guard for protected routes (header only, no query fallback).

        Returns:
            Success(SessionRecord) to attach identity/chain id to the request
            Failure(NO_SESSION | SESSION_EXPIRED)
        """
        session_id = session_id_from(headers)
        if not session_id:
            return Failure(AuthError(AuthErrorKind.NO_SESSION, "Authentication required"))
        return self.coordinator.check_session(session_id)


__all__ = [
    "AuthHandlers",
    "Response",
    "session_id_from",
    "SESSION_HEADER",
    "SESSION_QUERY_PARAM",
]
