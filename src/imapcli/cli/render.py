"""Output formatting: JSON records with stable field order, and plain-text listings."""

import json
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from imapcli.mail.types import (
    NO_SUBJECT,
    UNKNOWN_SENDER,
    FolderInfo,
    MessageDetail,
    MessageSummary,
    SearchOutcome,
    is_unread,
)

RULE = "=" * 60
UNREAD_MARKER = "[UNREAD] "


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


# ── Structured records ─────────────────────────────────────────────────────────


def summary_record(message: MessageSummary) -> dict[str, Any]:
    return {
        "uid": message.uid,
        "subject": message.subject or NO_SUBJECT,
        "sender": message.sender or UNKNOWN_SENDER,
        "date": _iso(message.date),
        "flags": list(message.flags or ()),
        "size": message.size,
    }


def detail_record(detail: MessageDetail) -> dict[str, Any]:
    return {
        "uid": detail.uid,
        "subject": detail.subject or NO_SUBJECT,
        "sender": detail.sender or UNKNOWN_SENDER,
        "to": list(detail.to),
        "cc": list(detail.cc),
        "date": _iso(detail.date),
        "flags": list(detail.flags or ()),
        "message_id": detail.message_id,
        "body": detail.body,
    }


def folder_record(folder: FolderInfo) -> dict[str, Any]:
    return {
        "path": folder.path,
        "delimiter": folder.delimiter,
        "flags": list(folder.flags),
        "special_use": list(folder.special_use),
    }


def to_json(data: Any) -> str:
    """Pretty-print records. An empty list stays ``[]``."""
    return json.dumps(data, indent=2, ensure_ascii=False)


# ── Text rendering ─────────────────────────────────────────────────────────────


def _day(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d") if value is not None else "(unknown date)"


def _timestamp(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S %z").strip() if value is not None else "(unknown date)"


def render_summaries(messages: Sequence[MessageSummary]) -> list[str]:
    """One numbered block per message: header line, From, Date, blank line."""
    lines: list[str] = []
    for i, message in enumerate(messages, start=1):
        marker = UNREAD_MARKER if is_unread(message.flags) else ""
        lines.append(f"{i}. {marker}UID:{message.uid} - {message.subject or NO_SUBJECT}")
        lines.append(f"   From: {message.sender or UNKNOWN_SENDER}")
        lines.append(f"   Date: {_day(message.date)}")
        lines.append("")
    return lines


def recent_header(limit: int, folder: str) -> str:
    return f"Recent {limit} emails from {folder}:"


def search_header(outcome: SearchOutcome) -> str:
    if not outcome.messages:
        return "No emails found matching the search criteria."
    return f"Found {outcome.total} emails (showing first {len(outcome.messages)}):"


def render_detail(detail: MessageDetail) -> list[str]:
    """Full headers between rules, then the body, closed by a rule."""
    lines = [
        RULE,
        f"Subject: {detail.subject or NO_SUBJECT}",
        f"From: {detail.sender or UNKNOWN_SENDER}",
        f"To: {', '.join(detail.to)}",
    ]
    if detail.cc:
        lines.append(f"CC: {', '.join(detail.cc)}")
    lines += [
        f"Date: {_timestamp(detail.date)}",
        f"UID: {detail.uid}",
        f"Flags: {', '.join(detail.flags) if detail.flags else 'None'}",
        RULE,
        "",
        detail.body,
        "",
        RULE,
    ]
    return lines


def render_folders(folders: Sequence[FolderInfo]) -> list[str]:
    lines = ["Available Folders:"]
    for folder in folders:
        special = f" ({', '.join(folder.special_use)})" if folder.special_use else ""
        lines.append(f"  {folder.path}{special}")
    return lines
