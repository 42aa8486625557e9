"""
SovereignAuth Exception Types

Exceptions are reserved for faults: bad configuration, misuse of the
API, broken invariants. Protocol outcomes (bad signature, expired nonce,
unknown session) are returned as ``Failure(AuthError)`` values instead.
"""

from typing import Optional


class SovereignAuthError(Exception):
    """Base exception for all SovereignAuth errors."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ConfigurationError(SovereignAuthError):
    """
    Invalid configuration.

    Raised when a config value cannot be parsed or violates a constraint
    (for example a non-positive TTL or an unknown identity scheme).
    """

    pass


class OracleUnavailable(SovereignAuthError):
    """
    Verification oracle could not be consulted.

    Oracles raise this when their backend is unreachable or misconfigured.
    The verifier maps it to an InvalidSignature outcome.
    """

    def __init__(self, message: str = "Verification oracle unavailable") -> None:
        super().__init__(message)


class InvariantViolation(SovereignAuthError):
    """
    Security invariant was violated.

    This is a serious error indicating the store or attempt has entered
    a state that must be impossible (e.g. a session whose expiry does
    not match its issue time plus the configured duration).
    """

    pass
