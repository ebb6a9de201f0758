"""Record types shared across the mail, query and CLI modules."""

from dataclasses import dataclass, field
from datetime import datetime

NO_SUBJECT = "(no subject)"
UNKNOWN_SENDER = "(unknown sender)"
SEEN_FLAG = "\\Seen"


def is_unread(flags: object) -> bool:
    """Return True unless ``flags`` contains the ``\\Seen`` token.

    Flags may arrive as bytes (imapclient) or str (already normalised).
    Anything that is not an iterable of tokens counts as unread.
    """
    if flags is None or isinstance(flags, (str, bytes)):
        return True
    try:
        tokens = list(flags)  # type: ignore[call-overload]
    except TypeError:
        return True
    for token in tokens:
        if isinstance(token, bytes):
            token = token.decode("ascii", errors="replace")
        if isinstance(token, str) and token.lower() == SEEN_FLAG.lower():
            return False
    return True


@dataclass(frozen=True)
class MessageSummary:
    """Envelope-level view of one message, as listed by ``recent``/``search``."""

    uid: int
    subject: str = NO_SUBJECT
    sender: str = UNKNOWN_SENDER
    date: datetime | None = None   # envelope Date, else INTERNALDATE
    flags: tuple[str, ...] = ()
    size: int | None = None

    @property
    def unread(self) -> bool:
        return is_unread(self.flags)


@dataclass(frozen=True)
class MessageDetail:
    """A single message as shown by ``read``: envelope, recipients and body."""

    uid: int
    subject: str = NO_SUBJECT
    sender: str = UNKNOWN_SENDER
    date: datetime | None = None
    flags: tuple[str, ...] = ()
    to: tuple[str, ...] = ()
    cc: tuple[str, ...] = ()
    message_id: str | None = None
    body: str = ""

    @property
    def unread(self) -> bool:
        return is_unread(self.flags)


@dataclass(frozen=True)
class FolderInfo:
    """One entry of the server's LIST response."""

    path: str
    delimiter: str | None = None
    flags: tuple[str, ...] = ()
    special_use: tuple[str, ...] = ()


@dataclass(frozen=True)
class SearchOutcome:
    """Sorted, truncated search results plus the server-side match count."""

    total: int
    messages: list[MessageSummary] = field(default_factory=list)


@dataclass(frozen=True)
class OutgoingMessage:
    """A plain-text message ready for SMTP dispatch."""

    to: str
    subject: str
    body: str
    cc: tuple[str, ...] = ()
    bcc: tuple[str, ...] = ()

    @property
    def to_addresses(self) -> list[str]:
        """``to`` split on commas; several primary recipients are allowed."""
        return [part.strip() for part in self.to.split(",") if part.strip()]

    @property
    def recipients(self) -> list[str]:
        """Envelope recipients: To, then Cc, then Bcc."""
        return [*self.to_addresses, *self.cc, *self.bcc]


@dataclass(frozen=True)
class SendReceipt:
    """What the server accepted for a dispatched message."""

    message_id: str
    to: str
    subject: str
    recipients: tuple[str, ...] = ()
