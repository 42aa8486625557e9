"""
Unit tests for sovereign_auth.challenge module.

Tests rendering and positional parsing of challenge messages.
"""

import pytest
from datetime import datetime, timezone

from returns.result import Failure, Success

from sovereign_auth.challenge import DEFAULT_STATEMENT, build_challenge, parse_challenge
from sovereign_auth.core.types import AuthErrorKind
from sovereign_auth.identity import ED25519, ETHEREUM

ADDRESS = "0xAbC0000000000000000000000000000000000dEf"
NONCE = "0123456789abcdef0123456789abcdef"
ISSUED = datetime(2026, 10, 19, 8, 0, 0, 123000, tzinfo=timezone.utc)


def _build(**overrides):
    args = dict(
        domain="localhost",
        identity=ADDRESS,
        statement="Sign in to Sovereign Builder Kit",
        uri="http://localhost",
        version="1",
        chain_id=8453,
        nonce=NONCE,
        issued_at=ISSUED,
    )
    args.update(overrides)
    return build_challenge(**args)


class TestBuildChallenge:
    """Tests for build_challenge."""

    def test_exact_layout(self):
        """Test the rendered text matches the canonical layout."""
        expected = (
            "localhost wants you to sign in with your Ethereum account:\n"
            f"{ADDRESS}\n"
            "\n"
            "Sign in to Sovereign Builder Kit\n"
            "\n"
            "URI: http://localhost\n"
            "Version: 1\n"
            "Chain ID: 8453\n"
            f"Nonce: {NONCE}\n"
            "Issued At: 2026-10-19T08:00:00.123Z"
        )
        assert _build() == expected

    def test_deterministic(self):
        assert _build() == _build()

    def test_default_statement(self):
        message = _build(statement="")
        assert message.split("\n")[3] == DEFAULT_STATEMENT

    def test_network_word(self):
        message = _build(network="Ed25519")
        assert message.startswith("localhost wants you to sign in with your Ed25519 account:")


class TestParseChallenge:
    """Tests for parse_challenge."""

    def test_recovers_fields(self):
        fields = parse_challenge(_build()).unwrap()
        assert fields.domain == "localhost"
        assert fields.identity == ADDRESS
        assert fields.statement == "Sign in to Sovereign Builder Kit"
        assert fields.uri == "http://localhost"
        assert fields.version == "1"
        assert fields.chain_id == "8453"
        assert fields.nonce == NONCE
        assert fields.issued_at == "2026-10-19T08:00:00.123Z"

    def test_statement_with_decoy_fields(self):
        """Test statement text cannot shadow the real nonce or identity."""
        decoy = (
            "Nonce: deadbeefdeadbeefdeadbeefdeadbeef\n"
            "0x1111111111111111111111111111111111111111\n"
            "\n"
            "URI: http://evil.example"
        )
        fields = parse_challenge(_build(statement=decoy)).unwrap()
        assert fields.nonce == NONCE
        assert fields.identity == ADDRESS
        assert fields.uri == "http://localhost"
        assert fields.statement == decoy

    def test_ed25519_scheme(self):
        identity = "ab" * 32
        message = _build(identity=identity, network=ED25519.network)
        fields = parse_challenge(message, ED25519).unwrap()
        assert fields.identity == identity

    def test_wrong_network_header(self):
        message = _build(network="Solana")
        result = parse_challenge(message, ETHEREUM)
        assert result.failure().kind == AuthErrorKind.MALFORMED_MESSAGE

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda m: m.replace(f"Nonce: {NONCE}\n", ""),
            lambda m: m.replace(ADDRESS, "0x1234"),
            lambda m: m.replace("wants you to sign in", "would like you to sign in"),
            lambda m: m.replace("Chain ID: 8453\nNonce", "Nonce"),
            lambda m: m.replace(f"Nonce: {NONCE}", "Nonce: "),
            lambda m: m.replace("\n\nURI:", "\nURI:"),
            lambda m: "\n".join(m.split("\n")[:4]),
            lambda m: m + "\nExtra: line",
        ],
        ids=[
            "missing-nonce",
            "bad-identity",
            "bad-header",
            "missing-chain-id",
            "empty-nonce",
            "missing-blank-before-uri",
            "truncated",
            "trailing-garbage",
        ],
    )
    def test_malformed(self, mutate):
        result = parse_challenge(mutate(_build()))
        assert isinstance(result, Failure)
        assert result.failure().kind == AuthErrorKind.MALFORMED_MESSAGE

    def test_non_string(self):
        assert isinstance(parse_challenge(None), Failure)

    def test_success_type(self):
        assert isinstance(parse_challenge(_build()), Success)
