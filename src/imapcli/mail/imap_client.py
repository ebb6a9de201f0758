"""IMAP session: wraps imapclient.IMAPClient behind the operations the CLI needs."""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientError

from imapcli.mail.config import MailConfig
from imapcli.mail.errors import (
    ConnectionFailureError,
    CursorExhaustedError,
    NotFoundError,
    ProtocolError,
)
from imapcli.mail.types import FolderInfo

logger = logging.getLogger(__name__)

# Envelope-level items only: listing never downloads bodies.
SUMMARY_FIELDS: list[bytes] = [b"ENVELOPE", b"FLAGS", b"INTERNALDATE", b"RFC822.SIZE"]
DETAIL_FIELDS: list[bytes] = [b"ENVELOPE", b"FLAGS", b"INTERNALDATE", b"BODYSTRUCTURE"]

# RFC 6154 special-use attributes as they appear among LIST flags
SPECIAL_USE: frozenset[str] = frozenset(
    {"\\All", "\\Archive", "\\Drafts", "\\Flagged", "\\Junk", "\\Sent", "\\Trash"}
)

_FETCH_CHUNK = 200

FetchData = dict[bytes, Any]


def _lost(exc: OSError) -> ConnectionFailureError:
    return ConnectionFailureError(f"Connection to IMAP server lost: {exc}")


def search_charset(criteria: Sequence[Any]) -> str | None:
    """Return "UTF-8" when any criterion carries non-ASCII text, else None.

    imapclient encodes criteria as US-ASCII unless a charset is named.
    """
    for item in criteria:
        if isinstance(item, (list, tuple)):
            if search_charset(item):
                return "UTF-8"
        elif isinstance(item, str) and not item.isascii():
            return "UTF-8"
    return None


def _text(value: object) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class MessageCursor:
    """Single-pass, lazy iterator over FETCH responses.

    UIDs are fetched in chunks as iteration proceeds. The cursor can be
    iterated exactly once; a second ``iter()`` raises CursorExhaustedError.
    Messages the server no longer has (expunged since SEARCH) are skipped.

    Usage::

        cursor = mailbox.fetch(uids, SUMMARY_FIELDS)
        for uid, data in cursor:
            ...
    """

    def __init__(
        self,
        client: IMAPClient,
        uids: Sequence[int],
        fields: Sequence[bytes],
        chunk_size: int = _FETCH_CHUNK,
    ) -> None:
        self._client = client
        self._uids = list(uids)
        self._fields = list(fields)
        self._chunk_size = max(1, chunk_size)
        self._started = False
        self._exhausted = False

    @property
    def exhausted(self) -> bool:
        """True once iteration has finished or was abandoned."""
        return self._exhausted

    def __iter__(self) -> Iterator[tuple[int, FetchData]]:
        if self._started:
            raise CursorExhaustedError("Message cursor has already been consumed")
        self._started = True
        return self._generate()

    def _generate(self) -> Iterator[tuple[int, FetchData]]:
        try:
            for start in range(0, len(self._uids), self._chunk_size):
                chunk = self._uids[start:start + self._chunk_size]
                try:
                    response = self._client.fetch(chunk, self._fields)
                except IMAPClientError as exc:
                    raise ProtocolError(f"FETCH failed: {exc}") from exc
                except OSError as exc:
                    raise _lost(exc) from exc
                logger.debug("Fetched %d of %d requested message(s)", len(response), len(chunk))
                for uid in chunk:
                    data = response.get(uid)
                    if data is not None:
                        yield uid, data
        finally:
            self._exhausted = True


class MailboxClient:
    """Thin wrapper around a logged-in IMAPClient.

    Use the ``imap_session()`` context manager to construct one; it owns the
    connection and logs out on exit.
    """

    def __init__(self, client: IMAPClient) -> None:
        self._client = client

    def list_folders(self) -> list[FolderInfo]:
        """Return every folder the server lists, in server order."""
        try:
            listing = self._client.list_folders()
        except IMAPClientError as exc:
            raise ProtocolError(f"LIST failed: {exc}") from exc
        except OSError as exc:
            raise _lost(exc) from exc

        folders: list[FolderInfo] = []
        for flags, delimiter, name in listing:
            tokens = tuple(_text(flag) for flag in flags or ())
            folders.append(FolderInfo(
                path=_text(name),
                delimiter=_text(delimiter) if delimiter is not None else None,
                flags=tokens,
                special_use=tuple(t for t in tokens if t in SPECIAL_USE),
            ))
        return folders

    @contextmanager
    def selected(self, folder: str) -> Iterator["MailboxClient"]:
        """Hold ``folder`` selected (read-only) for the duration of the block.

        The folder is closed again on every exit path, before the session
        logs out. Read-only selection means CLOSE never expunges.
        """
        try:
            self._client.select_folder(folder, readonly=True)
        except IMAPClientError as exc:
            raise NotFoundError(f"Folder {folder} not found: {exc}") from exc
        except OSError as exc:
            raise _lost(exc) from exc
        logger.debug("Selected folder %s", folder)
        try:
            yield self
        finally:
            try:
                self._client.close_folder()
                logger.debug("Released folder %s", folder)
            except (IMAPClientError, OSError) as exc:
                logger.warning("Failed to release folder %s: %s", folder, exc)

    def search(self, criteria: list[Any]) -> list[int]:
        """Run UID SEARCH in the selected folder and return matching UIDs."""
        charset = search_charset(criteria)
        logger.debug("SEARCH %r (charset %s)", criteria, charset or "US-ASCII")
        try:
            return list(self._client.search(criteria, charset=charset))
        except IMAPClientError as exc:
            raise ProtocolError(f"SEARCH failed: {exc}") from exc
        except OSError as exc:
            raise _lost(exc) from exc

    def fetch(self, uids: Sequence[int], fields: Sequence[bytes]) -> MessageCursor:
        """Return a lazy cursor over FETCH responses for ``uids``."""
        return MessageCursor(self._client, uids, fields)

    def fetch_section(self, uid: int, section: str) -> bytes | None:
        """Fetch one body section without setting ``\\Seen``.

        Returns None when the server answers with NIL or omits the section.
        """
        item = f"BODY.PEEK[{section}]".encode("ascii")
        try:
            response = self._client.fetch([uid], [item])
        except IMAPClientError as exc:
            raise ProtocolError(f"FETCH BODY[{section}] failed: {exc}") from exc
        except OSError as exc:
            raise _lost(exc) from exc
        for key, value in response.get(uid, {}).items():
            if key.startswith(b"BODY[") and isinstance(value, bytes):
                return value
        return None


@contextmanager
def imap_session(config: MailConfig) -> Iterator[MailboxClient]:
    """Context manager that yields a logged-in MailboxClient.

    Credentials are checked before any network activity. The connection is
    plain TCP, upgraded with STARTTLS when the server advertises it, and is
    logged out on every exit path.

    Example::

        with imap_session(MailConfig.from_env()) as mailbox:
            folders = mailbox.list_folders()
    """
    user, password = config.imap.require_credentials()
    client = _connect(config, user, password)
    try:
        yield MailboxClient(client)
    finally:
        try:
            client.logout()
            logger.debug("IMAP session closed")
        except (IMAPClientError, OSError) as exc:
            logger.warning("IMAP logout failed: %s", exc)


def _connect(config: MailConfig, user: str, password: str) -> IMAPClient:
    server = config.imap
    logger.info("Connecting to IMAP server %s:%d", server.host, server.port)
    try:
        client = IMAPClient(server.host, port=server.port, ssl=False, timeout=config.timeout)
    except (IMAPClientError, OSError) as exc:
        raise ConnectionFailureError(
            f"Could not connect to IMAP server {server.host}:{server.port}: {exc}"
        ) from exc

    try:
        if client.has_capability("STARTTLS"):
            client.starttls(config.ssl_context())
            logger.debug("IMAP connection upgraded with STARTTLS")
        else:
            logger.warning("IMAP server %s does not offer STARTTLS; continuing in plain text", server.host)
        client.login(user, password)
    except (IMAPClientError, OSError) as exc:
        client.shutdown()
        raise ConnectionFailureError(f"IMAP login to {server.host}:{server.port} failed: {exc}") from exc

    logger.info("IMAP session established (%s)", user)
    return client
