"""
Ethereum personal_sign (EIP-191) oracle.

Recovers the signing address from a 65-byte secp256k1 signature over
the EIP-191 prefixed message and compares it with the claimed address.
"""

from __future__ import annotations

import attrs
import structlog
from eth_account import Account
from eth_account.messages import encode_defunct

from sovereign_auth.oracles.base import VerificationOracle

logger = structlog.get_logger()


@attrs.define
class EIP191Oracle(VerificationOracle):
    """
    Verifies ``personal_sign`` signatures produced by Ethereum wallets.

    Signatures are hex strings, with or without a ``0x`` prefix.
    Anything that fails to decode raises; callers fail closed.
    """

    name: str = "eip191"

    def verify(self, message: str, signature: str, identity: str) -> bool:
        signable = encode_defunct(text=message)
        recovered = Account.recover_message(signable, signature=signature)
        matched = recovered.lower() == identity.lower()
        if not matched:
            logger.debug(
                "eip191_address_mismatch",
                recovered=recovered.lower(),
                claimed=identity.lower(),
            )
        return matched
