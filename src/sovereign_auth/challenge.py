"""
Challenge Messages

Renders the canonical sign-in message and parses it back.

Layout (one field per line, blank line before the statement and
before the URI block):

    <domain> wants you to sign in with your <network> account:
    <identity>

    <statement>

    URI: <uri>
    Version: <version>
    Chain ID: <chainId>
    Nonce: <nonce>
    Issued At: <issuedAt>

Parsing is positional. The header and identity are read from the top,
the labelled block from the bottom, and whatever lies between is the
statement. Statement text can therefore contain "Nonce: ..." or another
address without being mistaken for the real fields.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import List, Optional, Tuple

from returns.result import Failure, Result, Success

from sovereign_auth.core.types import (
    AuthError,
    AuthErrorKind,
    ChallengeFields,
    format_timestamp,
)
from sovereign_auth.identity import ETHEREUM, IdentityScheme

DEFAULT_STATEMENT = "Sign in to Sovereign Builder Kit"
DEFAULT_VERSION = "1"
DEFAULT_CHAIN_ID = "8453"  # Base

_HEADER_RE = re.compile(
    r"(?P<domain>\S+) wants you to sign in with your (?P<network>.+) account:"
)

# Trailing block, top to bottom
_LABELS: Tuple[str, ...] = ("URI", "Version", "Chain ID", "Nonce", "Issued At")

_VALUE_RE = re.compile(r"\S+")


def build_challenge(
    domain: str,
    identity: str,
    statement: Optional[str],
    uri: str,
    version: str,
    chain_id: object,
    nonce: str,
    issued_at: datetime,
    network: str = ETHEREUM.network,
) -> str:
    """
    Render a challenge message.

    Pure: identical inputs always give byte-identical output. The
    identity is embedded as given; syntax validation happens before
    this is called.

    Args:
        domain: Serving domain (e.g. "localhost")
        identity: Identity the challenge is addressed to
        statement: Human-readable statement (default used when empty)
        uri: Resource URI
        version: Message version
        chain_id: Chain / network identifier
        nonce: Token from the nonce store
        issued_at: Issue time, rendered as ISO-8601 UTC
        network: Network word for the header line

    Returns:
        The message text to be signed
    """
    return "\n".join(
        [
            f"{domain} wants you to sign in with your {network} account:",
            identity,
            "",
            statement or DEFAULT_STATEMENT,
            "",
            f"URI: {uri}",
            f"Version: {version or DEFAULT_VERSION}",
            f"Chain ID: {chain_id or DEFAULT_CHAIN_ID}",
            f"Nonce: {nonce}",
            f"Issued At: {format_timestamp(issued_at)}",
        ]
    )


def parse_challenge(
    message: str, scheme: IdentityScheme = ETHEREUM
) -> Result[ChallengeFields, AuthError]:
    """
    Recover the fields of a challenge message.

    Returns:
        Success(ChallengeFields) if the message has the canonical layout
        Failure(AuthError(MALFORMED_MESSAGE)) otherwise
    """
    if not isinstance(message, str):
        return _malformed("Message must be a string")

    lines = message.split("\n")
    # header, identity, blank, >=1 statement line, blank, 5 labelled lines
    if len(lines) < 4 + 1 + len(_LABELS):
        return _malformed("Message is too short")

    header = _HEADER_RE.fullmatch(lines[0])
    if header is None:
        return _malformed("Missing sign-in header")
    if header.group("network") != scheme.network:
        return _malformed(f"Expected a {scheme.network} account header")

    identity = lines[1]
    if not scheme.is_valid(identity):
        return _malformed("Missing or invalid identity line")

    if lines[2] != "":
        return _malformed("Expected blank line after identity")

    tail = lines[-len(_LABELS):]
    values = _parse_labelled(tail)
    if values is None:
        return _malformed("Missing or misplaced labelled fields")

    separator = len(lines) - len(_LABELS) - 1
    if lines[separator] != "":
        return _malformed("Expected blank line before URI")

    statement = "\n".join(lines[3:separator])
    uri, version, chain_id, nonce, issued_at = values

    if not _VALUE_RE.fullmatch(nonce):
        return _malformed("Invalid nonce field")
    if not _VALUE_RE.fullmatch(chain_id):
        return _malformed("Invalid chain id field")

    return Success(
        ChallengeFields(
            domain=header.group("domain"),
            identity=identity,
            statement=statement,
            uri=uri,
            version=version,
            chain_id=chain_id,
            nonce=nonce,
            issued_at=issued_at,
            network=header.group("network"),
        )
    )


def _parse_labelled(lines: List[str]) -> Optional[List[str]]:
    values = []
    for label, line in zip(_LABELS, lines):
        prefix = f"{label}: "
        if not line.startswith(prefix) or len(line) == len(prefix):
            return None
        values.append(line[len(prefix):])
    return values


def _malformed(reason: str) -> Result[ChallengeFields, AuthError]:
    return Failure(AuthError(AuthErrorKind.MALFORMED_MESSAGE, reason))
