"""
Signature Verifier

Parses a signed challenge and asks the verification oracle whether the
embedded identity produced the signature.

Fail closed: an oracle that returns False, raises, or does not answer
within the timeout yields InvalidSignature. There is no path on which
verification is skipped.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Callable, Optional

import attrs
import structlog
from returns.result import Failure, Result, Success

from sovereign_auth.challenge import parse_challenge
from sovereign_auth.core.exceptions import OracleUnavailable
from sovereign_auth.core.types import (
    AuthError,
    AuthErrorKind,
    ChallengeFields,
    VerifiedChallenge,
    short_token,
)
from sovereign_auth.identity import ETHEREUM, IdentityScheme
from sovereign_auth.oracles.base import VerificationOracle

logger = structlog.get_logger()


@attrs.define
class SignatureVerifier:
    """
    Challenge parser plus oracle call.

    The oracle runs on a small worker pool so the caller can bound the
    wait with ``oracle_timeout``. No store lock is held during the call.

    Example:
        verifier = SignatureVerifier(oracle=EIP191Oracle())
        result = verifier.verify(message, signature)
        if isinstance(result, Success):
            verified = result.unwrap()
            print(verified.identity, verified.nonce)
    """

    oracle: VerificationOracle
    scheme: IdentityScheme = ETHEREUM
    oracle_timeout: Optional[float] = 10.0
    max_workers: int = 4

    _executor: Optional[ThreadPoolExecutor] = attrs.field(default=None, alias="_executor")
    _pool_lock: threading.Lock = attrs.field(factory=threading.Lock, alias="_pool_lock")
    _logger: structlog.BoundLogger = attrs.field(
        factory=lambda: structlog.get_logger(), alias="_logger"
    )

    def verify(
        self,
        message: str,
        signature: str,
        before_oracle: Optional[Callable[[ChallengeFields], Result[Any, AuthError]]] = None,
    ) -> Result[VerifiedChallenge, AuthError]:
        """
        Verify a signed challenge.

        Steps:
        1. Parse the message (MALFORMED_MESSAGE if it has no identity/nonce)
        2. Run ``before_oracle`` on the parsed fields, if given; a Failure
           stops here without consulting the oracle
        3. Call the oracle with (message, signature, identity)
        4. Return canonical identity, nonce and chain id on success

        Returns:
            Success(VerifiedChallenge) if the oracle accepted the signature
            Failure(AuthError) otherwise
        """
        parsed = parse_challenge(message, self.scheme)
        if isinstance(parsed, Failure):
            self._logger.info("challenge_malformed", reason=parsed.failure().message)
            return parsed

        fields = parsed.unwrap()

        if before_oracle is not None:
            precheck = before_oracle(fields)
            if isinstance(precheck, Failure):
                return precheck

        if not isinstance(signature, str) or not signature:
            return Failure(AuthError(AuthErrorKind.INVALID_SIGNATURE, "Signature required"))

        if not self._consult_oracle(message, signature, fields.identity):
            self._logger.warning(
                "signature_rejected",
                identity=self.scheme.canonical(fields.identity),
                nonce=short_token(fields.nonce),
                oracle=self.oracle.name,
            )
            return Failure(AuthError(AuthErrorKind.INVALID_SIGNATURE))

        return Success(
            VerifiedChallenge(
                identity=self.scheme.canonical(fields.identity),
                nonce=fields.nonce,
                chain_id=fields.chain_id,
            )
        )

    def _consult_oracle(self, message: str, signature: str, identity: str) -> bool:
        """Run the oracle; any error or timeout counts as rejection."""
        try:
            if self.oracle_timeout is None:
                return self.oracle.verify(message, signature, identity) is True

            future = self._pool().submit(self.oracle.verify, message, signature, identity)
            return future.result(timeout=self.oracle_timeout) is True

        except FutureTimeout:
            self._logger.error(
                "oracle_timeout",
                oracle=self.oracle.name,
                timeout_seconds=self.oracle_timeout,
            )
        except OracleUnavailable as e:
            self._logger.error("oracle_unavailable", oracle=self.oracle.name, error=e.message)
        except Exception as e:
            self._logger.error(
                "oracle_error",
                oracle=self.oracle.name,
                error=str(e),
                error_type=type(e).__name__,
            )
        return False

    def _pool(self) -> ThreadPoolExecutor:
        with self._pool_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="sovereign-auth-oracle",
                )
            return self._executor

    def close(self) -> None:
        """Release the worker pool. Stuck oracle calls are abandoned."""
        with self._pool_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False)
                self._executor = None
