"""
Identity schemes.

An identity scheme says what a valid identity looks like, how to find
it on the identity line of a challenge, and what its canonical form is.
The verification oracle in use must agree with the scheme.
"""

from __future__ import annotations

import re
from typing import Dict, Pattern

import attrs

from sovereign_auth.core.exceptions import ConfigurationError


@attrs.define(frozen=True, slots=True)
class IdentityScheme:
    """
    Syntax rules for one kind of identity.

    Attributes:
        name: Config key (e.g. "ethereum")
        network: Word used in the challenge header
            ("... sign in with your <network> account:")
        pattern: Regex matching exactly one identity, unanchored
    """

    name: str
    network: str
    pattern: Pattern[str] = attrs.field(repr=False)

    def is_valid(self, identity: object) -> bool:
        return isinstance(identity, str) and self.pattern.fullmatch(identity) is not None

    def canonical(self, identity: str) -> str:
        """Canonical (lowercase) form used for storage and comparison."""
        return identity.lower()

    def same(self, a: str, b: str) -> bool:
        return self.canonical(a) == self.canonical(b)


ETHEREUM = IdentityScheme(
    name="ethereum",
    network="Ethereum",
    pattern=re.compile(r"0x[a-fA-F0-9]{40}"),
)

# Raw 32-byte Ed25519 public key, hex encoded. Self-certifying: the
# identity is the verification key.
ED25519 = IdentityScheme(
    name="ed25519",
    network="Ed25519",
    pattern=re.compile(r"[a-fA-F0-9]{64}"),
)

SCHEMES: Dict[str, IdentityScheme] = {
    ETHEREUM.name: ETHEREUM,
    ED25519.name: ED25519,
}


def get_scheme(name: str) -> IdentityScheme:
    """Look up a registered scheme by name."""
    try:
        return SCHEMES[name.lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown identity scheme: {name} (known: {', '.join(sorted(SCHEMES))})"
        ) from None
