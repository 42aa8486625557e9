"""
SovereignAuth - Key-based sign-in without passwords

A client holding a key pair proves control of it by signing a one-time
challenge and receives a time-bounded session. No passwords, no
third-party identity provider.

Flow:
1. request_challenge(identity) issues a single-use nonce and a
   canonical message naming it
2. The client signs the message with its private key
3. complete_challenge(message, signature) verifies the signature,
   consumes the nonce and mints a session
4. require_session(session_id) guards protected resources until the
   session expires or end_session() revokes it

Example Usage:
    from sovereign_auth import AuthConfig, create_coordinator

    coordinator = create_coordinator(AuthConfig(domain="example.com"))
    with coordinator:
        challenge = coordinator.request_challenge(address).unwrap()
        signature = wallet.sign(challenge.message)
        session = coordinator.complete_challenge(challenge.message, signature).unwrap()
        print(f"Signed in until {session.expires_at}")
"""

from sovereign_auth.config import AuthConfig
from sovereign_auth.coordinator import AuthCoordinator, AttemptState, create_coordinator
from sovereign_auth.core.types import (
    AuthError,
    AuthErrorKind,
    EstablishedSession,
    IssuedChallenge,
    SessionRecord,
)
from sovereign_auth.handlers import AuthHandlers, Response

__version__ = "0.1.0"

__all__ = [
    # Main API
    "AuthCoordinator",
    "AuthConfig",
    "AuthHandlers",
    "Response",
    "create_coordinator",
    "AttemptState",
    # Types
    "AuthError",
    "AuthErrorKind",
    "EstablishedSession",
    "IssuedChallenge",
    "SessionRecord",
    # Metadata
    "__version__",
]
