"""Result shaping: FETCH responses to MessageSummary/MessageDetail, sort, truncate."""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from email.header import decode_header, make_header
from typing import Any

from imapcli.mail.types import NO_SUBJECT, UNKNOWN_SENDER, MessageDetail, MessageSummary

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return str(value)


def decode_header_value(value: object) -> str:
    """Decode an RFC 2047 encoded header value; undecodable input is returned as-is."""
    raw = _text(value)
    if not raw:
        return ""
    try:
        return str(make_header(decode_header(raw)))
    except (LookupError, UnicodeDecodeError, ValueError):
        return raw


def format_address(address: Any) -> str | None:
    """Render an envelope Address as ``"Name <mailbox@host>"``.

    Returns None for group markers and other entries without a mailbox.
    """
    mailbox = _text(getattr(address, "mailbox", None))
    if not mailbox:
        return None
    host = _text(getattr(address, "host", None))
    addr = f"{mailbox}@{host}" if host else mailbox
    name = decode_header_value(getattr(address, "name", None))
    return f"{name} <{addr}>".strip()


def format_addresses(addresses: Iterable[Any] | None) -> tuple[str, ...]:
    formatted = (format_address(a) for a in addresses or ())
    return tuple(a for a in formatted if a)


def normalise_flags(flags: object) -> tuple[str, ...]:
    """Flags as str tokens; absent or malformed flags become an empty tuple."""
    if flags is None or isinstance(flags, (str, bytes)):
        return ()
    try:
        return tuple(_text(flag) for flag in flags)  # type: ignore[union-attr]
    except TypeError:
        return ()


def _aware(value: object) -> datetime | None:
    if not isinstance(value, datetime):
        return None
    # imapclient hands back naive local times by default
    return value if value.tzinfo is not None else value.astimezone()


def message_date(envelope: Any, internal_date: object) -> datetime | None:
    """Prefer the sender-asserted envelope Date, fall back to INTERNALDATE."""
    return _aware(getattr(envelope, "date", None)) or _aware(internal_date)


def _envelope_fields(data: dict[bytes, Any]) -> dict[str, Any]:
    envelope = data.get(b"ENVELOPE")
    senders = format_addresses(getattr(envelope, "from_", None))
    return {
        "subject": decode_header_value(getattr(envelope, "subject", None)) or NO_SUBJECT,
        "sender": senders[0] if senders else UNKNOWN_SENDER,
        "date": message_date(envelope, data.get(b"INTERNALDATE")),
        "flags": normalise_flags(data.get(b"FLAGS")),
    }


def summary_from_fetch(uid: int, data: dict[bytes, Any]) -> MessageSummary:
    """Build a MessageSummary from one imapclient FETCH response."""
    size = data.get(b"RFC822.SIZE")
    return MessageSummary(
        uid=uid,
        size=size if isinstance(size, int) else None,
        **_envelope_fields(data),
    )


def detail_from_fetch(uid: int, data: dict[bytes, Any], body: str) -> MessageDetail:
    """Build a MessageDetail from one FETCH response and an extracted body."""
    envelope = data.get(b"ENVELOPE")
    message_id = _text(getattr(envelope, "message_id", None))
    return MessageDetail(
        uid=uid,
        to=format_addresses(getattr(envelope, "to", None)),
        cc=format_addresses(getattr(envelope, "cc", None)),
        message_id=message_id or None,
        body=body,
        **_envelope_fields(data),
    )


def _sort_key(message: MessageSummary) -> tuple[bool, datetime]:
    return (message.date is not None, message.date or _EPOCH)


def newest_first(messages: Iterable[MessageSummary], limit: int) -> list[MessageSummary]:
    """Sort by date descending (undated last), then keep the first ``limit``.

    Truncation happens after sorting so the result is always the most recent
    ``limit`` messages of everything that matched.
    """
    ordered = sorted(messages, key=_sort_key, reverse=True)
    if len(ordered) > limit:
        logger.debug("Truncating %d message(s) to %d", len(ordered), limit)
    return ordered[:max(0, limit)]
