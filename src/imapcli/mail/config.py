"""Connection settings read from the environment."""

from __future__ import annotations

import os
import ssl
from collections.abc import Mapping
from dataclasses import dataclass

from imapcli.mail.errors import ConfigError, MissingCredentialsError

DEFAULT_HOST = "127.0.0.1"
DEFAULT_IMAP_PORT = 1143
DEFAULT_SMTP_PORT = 1025
DEFAULT_TIMEOUT_SECONDS = 30.0

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class ServerConfig:
    """Host, port and credentials for one protocol (IMAP or SMTP)."""

    protocol: str
    host: str
    port: int
    user: str | None = None
    password: str | None = None

    def require_credentials(self) -> tuple[str, str]:
        """Return ``(user, password)`` or raise MissingCredentialsError."""
        if not self.user or not self.password:
            prefix = self.protocol.upper()
            raise MissingCredentialsError(
                f"{prefix} credentials not provided. "
                f"Set {prefix}_USER and {prefix}_PASS environment variables."
            )
        return self.user, self.password


@dataclass(frozen=True)
class MailConfig:
    """Everything needed to open one IMAP or SMTP connection.

    Defaults target a local mail bridge: plain connection on 127.0.0.1 that is
    upgraded with STARTTLS when offered. Certificate verification is off
    unless ``IMAPCLI_TLS_VERIFY`` is true, since such bridges ship
    self-signed certificates.
    """

    imap: ServerConfig
    smtp: ServerConfig
    tls_verify: bool = False
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> MailConfig:
        """Build MailConfig from environment variables.

        SMTP_USER / SMTP_PASS fall back to the IMAP credentials.
        Raises ConfigError for malformed ports, timeout or boolean values.
        """
        env = os.environ if environ is None else environ
        imap_user = env.get("IMAP_USER") or None
        imap_pass = env.get("IMAP_PASS") or None
        return cls(
            imap=ServerConfig(
                protocol="imap",
                host=env.get("IMAP_HOST") or DEFAULT_HOST,
                port=_port(env, "IMAP_PORT", DEFAULT_IMAP_PORT),
                user=imap_user,
                password=imap_pass,
            ),
            smtp=ServerConfig(
                protocol="smtp",
                host=env.get("SMTP_HOST") or DEFAULT_HOST,
                port=_port(env, "SMTP_PORT", DEFAULT_SMTP_PORT),
                user=env.get("SMTP_USER") or imap_user,
                password=env.get("SMTP_PASS") or imap_pass,
            ),
            tls_verify=_flag(env, "IMAPCLI_TLS_VERIFY"),
            timeout=_timeout(env, "IMAPCLI_TIMEOUT"),
        )

    def ssl_context(self) -> ssl.SSLContext:
        """TLS context used for STARTTLS on both protocols."""
        context = ssl.create_default_context()
        if not self.tls_verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context


def _port(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        port = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer port, got {raw!r}") from None
    if not 0 < port < 65536:
        raise ConfigError(f"{name} must be between 1 and 65535, got {port}")
    return port


def _flag(env: Mapping[str, str], name: str) -> bool:
    raw = env.get(name, "").strip().lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ConfigError(f"{name} must be true or false, got {raw!r}")


def _timeout(env: Mapping[str, str], name: str) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number of seconds, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value
