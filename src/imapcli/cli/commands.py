"""CLI command implementations: read-side commands delegate to MailQuery."""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

import click
from rich.console import Console

from imapcli.cli.render import (
    detail_record,
    folder_record,
    recent_header,
    render_detail,
    render_folders,
    render_summaries,
    search_header,
    summary_record,
    to_json,
)
from imapcli.mail.config import MailConfig
from imapcli.mail.errors import MailError, ValidationError
from imapcli.mail.imap_client import imap_session
from imapcli.mail.smtp_client import resolve_body, send_message, split_addresses
from imapcli.mail.types import OutgoingMessage
from imapcli.query.criteria import FilterSet
from imapcli.query.engine import MailQuery

logger = logging.getLogger(__name__)

# Message text is printed verbatim: no markup, emoji codes or wrapping.
console = Console(width=200, soft_wrap=True, markup=False, emoji=False, highlight=False)
err_console = Console(stderr=True, soft_wrap=True, markup=False, emoji=False, highlight=False)

F = TypeVar("F", bound=Callable[..., Any])

_json_option = click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
_folder_option = click.option(
    "--folder", default="INBOX", show_default=True, metavar="NAME", help="Folder to use."
)


def reports_errors(func: F) -> F:
    """Turn a MailError into ``Error: ...`` on stderr and exit status 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except MailError as exc:
            logger.debug("%s failed", func.__name__, exc_info=True)
            err_console.print(f"Error: {exc}", style="red")
            click.get_current_context().exit(1)

    return wrapper  # type: ignore[return-value]


def _print_lines(lines: Sequence[str]) -> None:
    console.print("\n".join(lines))


# ── folders ────────────────────────────────────────────────────────────────────


@click.command()
@_json_option
@reports_errors
def folders(as_json: bool) -> None:
    """List all mailbox folders."""
    config = MailConfig.from_env()
    with imap_session(config) as mailbox:
        result = MailQuery(mailbox).folders()

    if as_json:
        click.echo(to_json([folder_record(f) for f in result]))
    else:
        _print_lines(render_folders(result))


# ── recent ─────────────────────────────────────────────────────────────────────


@click.command()
@click.option("--limit", default=10, show_default=True, type=click.IntRange(min=1),
              help="Number of emails to fetch.")
@_folder_option
@_json_option
@reports_errors
def recent(limit: int, folder: str, as_json: bool) -> None:
    """List the most recent emails in a folder."""
    config = MailConfig.from_env()
    with imap_session(config) as mailbox:
        messages = MailQuery(mailbox).recent(folder=folder, limit=limit)

    if as_json:
        click.echo(to_json([summary_record(m) for m in messages]))
        return
    _print_lines([recent_header(limit, folder), *render_summaries(messages)])


# ── search ─────────────────────────────────────────────────────────────────────


@click.command()
@click.argument("query", required=False)
@click.option("--from", "from_address", metavar="EMAIL", help="Filter by sender.")
@click.option("--subject", metavar="TEXT", help="Filter by subject.")
@click.option("--after", metavar="DATE", help="Emails on or after DATE (YYYY-MM-DD).")
@click.option("--before", metavar="DATE", help="Emails before DATE (YYYY-MM-DD).")
@_folder_option
@click.option("--limit", default=50, show_default=True, type=click.IntRange(min=1),
              help="Maximum number of results.")
@_json_option
@reports_errors
def search(
    query: str | None,
    from_address: str | None,
    subject: str | None,
    after: str | None,
    before: str | None,
    folder: str,
    limit: int,
    as_json: bool,
) -> None:
    """Search emails; QUERY matches subject or body."""
    # Dates are validated here, before any connection is opened.
    filters = FilterSet.from_options(query, from_address, subject, after, before)
    config = MailConfig.from_env()
    with imap_session(config) as mailbox:
        outcome = MailQuery(mailbox).search(filters, folder=folder, limit=limit)

    if as_json:
        click.echo(to_json([summary_record(m) for m in outcome.messages]))
        return
    _print_lines([search_header(outcome), *render_summaries(outcome.messages)])


# ── read ───────────────────────────────────────────────────────────────────────


@click.command()
@click.argument("uid", type=click.IntRange(min=1))
@_folder_option
@_json_option
@reports_errors
def read(uid: int, folder: str, as_json: bool) -> None:
    """Read a specific email by UID."""
    config = MailConfig.from_env()
    with imap_session(config) as mailbox:
        detail = MailQuery(mailbox).read(uid, folder=folder)

    if as_json:
        click.echo(to_json(detail_record(detail)))
    else:
        _print_lines(render_detail(detail))


# ── send ───────────────────────────────────────────────────────────────────────


@click.command()
@click.option("--to", required=True, metavar="LIST", help="Recipient address(es), comma-separated.")
@click.option("--subject", required=True, metavar="TEXT", help="Email subject.")
@click.option("--body", metavar="TEXT", help="Email body text.")
@click.option("--body-file", metavar="PATH", help="Read the body from a file (wins over --body).")
@click.option("--cc", metavar="LIST", help="CC recipients (comma-separated).")
@click.option("--bcc", metavar="LIST", help="BCC recipients (comma-separated).")
@reports_errors
def send(
    to: str,
    subject: str,
    body: str | None,
    body_file: str | None,
    cc: str | None,
    bcc: str | None,
) -> None:
    """Send an email via SMTP."""
    if not split_addresses(to):
        raise ValidationError("Recipient address is required. Use --to option.")
    text = resolve_body(body, body_file)
    config = MailConfig.from_env()
    message = OutgoingMessage(
        to=to,
        subject=subject,
        body=text,
        cc=split_addresses(cc),
        bcc=split_addresses(bcc),
    )
    receipt = send_message(config, message)

    _print_lines([
        "Email sent successfully!",
        f"Message ID: {receipt.message_id}",
        f"To: {receipt.to}",
        f"Subject: {receipt.subject}",
    ])
