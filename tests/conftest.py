"""Shared pytest fixtures."""

from datetime import datetime, timezone
from typing import Any

import pytest
from imapclient.response_types import Address, Envelope

_MAIL_ENV_VARS = (
    "IMAP_HOST", "IMAP_PORT", "IMAP_USER", "IMAP_PASS",
    "SMTP_HOST", "SMTP_PORT", "SMTP_USER", "SMTP_PASS",
    "IMAPCLI_TLS_VERIFY", "IMAPCLI_TIMEOUT",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every mail setting from the environment."""
    for name in _MAIL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def mail_env(clean_env: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Bridge credentials set, everything else at defaults."""
    clean_env.setenv("IMAP_USER", "bridge@example.com")
    clean_env.setenv("IMAP_PASS", "bridge-secret")
    return clean_env


def make_envelope(
    subject: bytes | None = b"Budget review",
    sender: tuple[bytes | None, bytes, bytes] | None = (b"Alice", b"alice", b"example.com"),
    date: datetime | None = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc),
    to: list[tuple[bytes | None, bytes, bytes]] | None = None,
    cc: list[tuple[bytes | None, bytes, bytes]] | None = None,
    message_id: bytes | None = b"<msg-1@example.com>",
) -> Envelope:
    def _addresses(entries: list[tuple[bytes | None, bytes, bytes]] | None) -> tuple[Address, ...] | None:
        if entries is None:
            return None
        return tuple(Address(name, None, mailbox, host) for name, mailbox, host in entries)

    return Envelope(
        date=date,
        subject=subject,
        from_=_addresses([sender]) if sender else None,
        sender=None,
        reply_to=None,
        to=_addresses(to),
        cc=_addresses(cc),
        bcc=None,
        in_reply_to=None,
        message_id=message_id,
    )


def make_fetch(
    envelope: Envelope | None = None,
    flags: tuple[bytes, ...] | None = (b"\\Seen",),
    internal_date: datetime | None = datetime(2024, 1, 15, 9, 5, tzinfo=timezone.utc),
    size: int | None = 2048,
    **extra: Any,
) -> dict[bytes, Any]:
    """An imapclient FETCH response dict for one message."""
    data: dict[bytes, Any] = {b"ENVELOPE": envelope if envelope is not None else make_envelope()}
    if flags is not None:
        data[b"FLAGS"] = flags
    if internal_date is not None:
        data[b"INTERNALDATE"] = internal_date
    if size is not None:
        data[b"RFC822.SIZE"] = size
    for key, value in extra.items():
        data[key.encode("ascii")] = value
    return data


@pytest.fixture
def envelope_factory():
    return make_envelope


@pytest.fixture
def fetch_factory():
    return make_fetch
