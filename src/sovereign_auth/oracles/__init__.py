"""
Signature verification backends.

Components:
- base: VerificationOracle capability and the callable-driven StaticOracle
- eip191: Ethereum personal_sign recovery (eth-account)
- ed25519: Self-certifying Ed25519 keys (cryptography)
"""

from typing import Dict, Type

from sovereign_auth.core.exceptions import ConfigurationError
from sovereign_auth.oracles.base import StaticOracle, VerificationOracle
from sovereign_auth.oracles.ed25519 import Ed25519Oracle
from sovereign_auth.oracles.eip191 import EIP191Oracle

# Default backend per identity scheme
ORACLES_BY_SCHEME: Dict[str, Type[VerificationOracle]] = {
    "ethereum": EIP191Oracle,
    "ed25519": Ed25519Oracle,
}


def oracle_for_scheme(scheme_name: str) -> VerificationOracle:
    """Instantiate the default oracle for an identity scheme."""
    try:
        return ORACLES_BY_SCHEME[scheme_name.lower()]()
    except KeyError:
        raise ConfigurationError(f"No verification oracle for scheme: {scheme_name}") from None


__all__ = [
    "VerificationOracle",
    "StaticOracle",
    "EIP191Oracle",
    "Ed25519Oracle",
    "ORACLES_BY_SCHEME",
    "oracle_for_scheme",
]
