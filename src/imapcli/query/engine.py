"""MailQuery: coordinates the mailbox session for the read-side CLI commands."""

import logging

from imapcli.mail.errors import NotFoundError
from imapcli.mail.imap_client import DETAIL_FIELDS, SUMMARY_FIELDS, MailboxClient
from imapcli.mail.types import FolderInfo, MessageDetail, MessageSummary, SearchOutcome
from imapcli.query.body import extract_body
from imapcli.query.criteria import MATCH_ALL, FilterSet, SearchExpression, compile_filters
from imapcli.query.results import detail_from_fetch, newest_first, summary_from_fetch

logger = logging.getLogger(__name__)


class MailQuery:
    """Runs folder listing, recent/search listings and single reads.

    Every folder-scoped operation holds the folder selected only for its own
    duration, so the folder is released before the session logs out.

    Usage::

        with imap_session(config) as mailbox:
            query = MailQuery(mailbox)
            outcome = query.search(FilterSet(subject="invoice"), limit=5)
    """

    def __init__(self, mailbox: MailboxClient) -> None:
        self.mailbox = mailbox

    def folders(self) -> list[FolderInfo]:
        return self.mailbox.list_folders()

    def recent(self, folder: str = "INBOX", limit: int = 10) -> list[MessageSummary]:
        """Return the ``limit`` most recent messages in ``folder``."""
        return self._run(MATCH_ALL, folder, limit).messages

    def search(self, filters: FilterSet, folder: str = "INBOX", limit: int = 50) -> SearchOutcome:
        """Search ``folder`` and return the ``limit`` most recent matches."""
        return self._run(compile_filters(filters), folder, limit)

    def read(self, uid: int, folder: str = "INBOX") -> MessageDetail:
        """Fetch one message with its plain-text body.

        Raises NotFoundError when ``uid`` is not in ``folder``.
        """
        with self.mailbox.selected(folder):
            found = next(iter(self.mailbox.fetch([uid], DETAIL_FIELDS)), None)
            if found is None:
                raise NotFoundError(f"Email with UID {uid} not found in folder {folder}")
            _, data = found
            body = extract_body(self.mailbox, uid, data.get(b"BODYSTRUCTURE"))
        return detail_from_fetch(uid, data, body)

    def _run(self, expression: SearchExpression, folder: str, limit: int) -> SearchOutcome:
        with self.mailbox.selected(folder):
            uids = self.mailbox.search(expression.to_imap())
            logger.debug("%d message(s) matched in %s", len(uids), folder)
            if not uids:
                return SearchOutcome(total=0, messages=[])
            summaries = [summary_from_fetch(uid, data) for uid, data in self.mailbox.fetch(uids, SUMMARY_FIELDS)]
        return SearchOutcome(total=len(uids), messages=newest_first(summaries, limit))
