"""
SovereignAuth configuration.

Attributes default to the values the Sovereign Builder Kit sign-in ships
with: localhost domain, Base chain (8453), 5 minute nonces, 24 hour
sessions, a sweep every minute.
"""

from __future__ import annotations

import os
import re
from datetime import timedelta
from typing import Callable, Mapping, Optional, TypeVar

import attrs
from attrs import validators

from sovereign_auth.challenge import DEFAULT_STATEMENT, DEFAULT_VERSION
from sovereign_auth.core.exceptions import ConfigurationError
from sovereign_auth.identity import IdentityScheme, get_scheme
from sovereign_auth.nonce_store import DEFAULT_NONCE_TTL
from sovereign_auth.session_store import DEFAULT_SESSION_DURATION

ENV_PREFIX = "SOVEREIGN_AUTH_"

T = TypeVar("T")

_NO_WHITESPACE_RE = re.compile(r"\S+")


def _positive_timedelta(instance: object, attribute: attrs.Attribute, value: timedelta) -> None:
    if not isinstance(value, timedelta) or value <= timedelta(0):
        raise ConfigurationError(f"{attribute.name} must be a positive duration, got {value!r}")


def _positive_number(instance: object, attribute: attrs.Attribute, value: float) -> None:
    if value <= 0:
        raise ConfigurationError(f"{attribute.name} must be positive, got {value!r}")


def _no_whitespace(instance: object, attribute: attrs.Attribute, value: str) -> None:
    if not isinstance(value, str) or not _NO_WHITESPACE_RE.fullmatch(value):
        raise ConfigurationError(
            f"{attribute.name} must be non-empty without whitespace, got {value!r}"
        )


def _single_line(instance: object, attribute: attrs.Attribute, value: str) -> None:
    if not isinstance(value, str) or "\n" in value or "\r" in value:
        raise ConfigurationError(f"{attribute.name} must be a single line, got {value!r}")


def _known_scheme(instance: object, attribute: attrs.Attribute, value: str) -> None:
    get_scheme(value)


@attrs.define
class AuthConfig:
    """
    Sign-in configuration.

    Attributes:
        domain: Serving domain shown in the challenge header
        statement: Statement line of every challenge
        uri: Resource URI (defaults to http://<domain>)
        version: Challenge message version
        chain_id: Chain / network id embedded in challenges and sessions
        nonce_ttl: How long an issued nonce stays consumable
        session_duration: Fixed lifetime of a session
        sweep_interval: Seconds between background expiry sweeps
        oracle_timeout: Seconds to wait for the verification oracle
            (None waits inline with no bound)
        identity_scheme: Registered identity scheme name
    """

    domain: str = attrs.field(default="localhost", validator=_no_whitespace)
    statement: str = DEFAULT_STATEMENT
    uri: Optional[str] = attrs.field(default=None, validator=validators.optional(_single_line))
    version: str = attrs.field(default=DEFAULT_VERSION, validator=_single_line)
    chain_id: int = attrs.field(default=8453, converter=int)
    nonce_ttl: timedelta = attrs.field(default=DEFAULT_NONCE_TTL, validator=_positive_timedelta)
    session_duration: timedelta = attrs.field(
        default=DEFAULT_SESSION_DURATION, validator=_positive_timedelta
    )
    sweep_interval: float = attrs.field(default=60.0, validator=_positive_number)
    oracle_timeout: Optional[float] = attrs.field(
        default=10.0, validator=validators.optional(_positive_number)
    )
    identity_scheme: str = attrs.field(default="ethereum", validator=_known_scheme)

    @property
    def resource_uri(self) -> str:
        return self.uri or f"http://{self.domain}"

    @property
    def scheme(self) -> IdentityScheme:
        return get_scheme(self.identity_scheme)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        prefix: str = ENV_PREFIX,
    ) -> "AuthConfig":
        """
        Build a config from environment variables.

        Recognised (all optional): DOMAIN, STATEMENT, URI, VERSION,
        CHAIN_ID, NONCE_TTL_SECONDS, SESSION_DURATION_SECONDS,
        SWEEP_INTERVAL_SECONDS, ORACLE_TIMEOUT_SECONDS, IDENTITY_SCHEME.

        Raises:
            ConfigurationError: if a value cannot be parsed
        """
        env = os.environ if environ is None else environ
        kwargs = {}

        def read(name: str, parse: Callable[[str], T]) -> Optional[T]:
            raw = env.get(prefix + name)
            if raw is None or raw == "":
                return None
            try:
                return parse(raw)
            except ValueError as err:
                raise ConfigurationError(f"Invalid {prefix}{name}: {raw!r}") from err

        def seconds(raw: str) -> timedelta:
            return timedelta(seconds=float(raw))

        for key, name, parse in (
            ("domain", "DOMAIN", str),
            ("statement", "STATEMENT", str),
            ("uri", "URI", str),
            ("version", "VERSION", str),
            ("chain_id", "CHAIN_ID", int),
            ("nonce_ttl", "NONCE_TTL_SECONDS", seconds),
            ("session_duration", "SESSION_DURATION_SECONDS", seconds),
            ("sweep_interval", "SWEEP_INTERVAL_SECONDS", float),
            ("oracle_timeout", "ORACLE_TIMEOUT_SECONDS", float),
            ("identity_scheme", "IDENTITY_SCHEME", str),
        ):
            value = read(name, parse)
            if value is not None:
                kwargs[key] = value

        return cls(**kwargs)
