"""
Ed25519 oracle.

For the self-certifying ``ed25519`` identity scheme the identity *is*
the hex-encoded 32-byte public key, so no lookup is needed.
"""

from __future__ import annotations

import base64
import binascii
import re

import attrs
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from sovereign_auth.oracles.base import VerificationOracle

SIGNATURE_SIZE = 64

_HEX_SIGNATURE = re.compile(r"(0x)?[0-9a-fA-F]{128}")


def decode_signature(signature: str) -> bytes:
    """
    Decode a 64-byte signature given as hex or (url-safe) base64.

    Raises:
        ValueError: if the text is neither, or the length is wrong
    """
    if _HEX_SIGNATURE.fullmatch(signature):
        raw = bytes.fromhex(signature[2:] if signature.startswith("0x") else signature)
    else:
        padding = "=" * (-len(signature) % 4)
        try:
            raw = base64.urlsafe_b64decode(
                signature.replace("+", "-").replace("/", "_") + padding
            )
        except (binascii.Error, ValueError) as err:
            raise ValueError("Signature is neither hex nor base64") from err

    if len(raw) != SIGNATURE_SIZE:
        raise ValueError(f"Signature must be {SIGNATURE_SIZE} bytes, got {len(raw)}")
    return raw


@attrs.define
class Ed25519Oracle(VerificationOracle):
    """Verifies raw Ed25519 signatures over the UTF-8 message bytes."""

    name: str = "ed25519"

    def verify(self, message: str, signature: str, identity: str) -> bool:
        public_key = Ed25519PublicKey.from_public_bytes(bytes.fromhex(identity))
        try:
            public_key.verify(decode_signature(signature), message.encode("utf-8"))
        except InvalidSignature:
            return False
        return True
