"""
Verification oracle capability.

An oracle answers one question: did ``identity``'s private key produce
``signature`` over ``message``? Backends are picked by configuration,
never by probing for installed libraries at call time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

import attrs


class VerificationOracle(ABC):
    """
    Pluggable signature check.

    Implementations return False for a well-formed but wrong signature
    and may raise for anything else (undecodable input, backend down).
    Callers treat every raise as a rejection.
    """

    name: str = "oracle"

    @abstractmethod
    def verify(self, message: str, signature: str, identity: str) -> bool:
        """
        Check a signature.

        Args:
            message: Exact text that was signed
            signature: Encoded signature blob
            identity: Claimed signer

        Returns:
            True only if the signature is valid for ``identity``

        Raises:
            OracleUnavailable: backend could not be consulted
        """
        ...


@attrs.define
class StaticOracle(VerificationOracle):
    """
    Oracle driven by a plain callable.

    Used by tests and simulations in place of a cryptographic backend.

    Example:
        oracle = StaticOracle(lambda message, signature, identity: signature == "ok")
    """

    check: Callable[[str, str, str], bool]
    name: str = "static"

    def verify(self, message: str, signature: str, identity: str) -> bool:
        return bool(self.check(message, signature, identity))
