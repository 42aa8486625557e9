"""
SovereignAuth Core Module

Provides foundational types and abstractions shared by every component.

Components:
- types: Records and error kinds (NonceRecord, SessionRecord, AuthError, ...)
- clock: Injectable time source
- state_machine: Base state machine with invariant checking
- exceptions: Fault exception types
"""

from sovereign_auth.core.types import (
    AuthError,
    AuthErrorKind,
    ChallengeFields,
    EstablishedSession,
    IssuedChallenge,
    NonceRecord,
    SessionRecord,
    VerifiedChallenge,
)
from sovereign_auth.core.clock import Clock, FrozenClock, SystemClock
from sovereign_auth.core.state_machine import StateMachineBase, Transition
from sovereign_auth.core.exceptions import (
    ConfigurationError,
    InvariantViolation,
    OracleUnavailable,
    SovereignAuthError,
)

__all__ = [
    # Types
    "AuthError",
    "AuthErrorKind",
    "ChallengeFields",
    "EstablishedSession",
    "IssuedChallenge",
    "NonceRecord",
    "SessionRecord",
    "VerifiedChallenge",
    # Clock
    "Clock",
    "FrozenClock",
    "SystemClock",
    # State Machine
    "StateMachineBase",
    "Transition",
    # Exceptions
    "SovereignAuthError",
    "ConfigurationError",
    "InvariantViolation",
    "OracleUnavailable",
]
