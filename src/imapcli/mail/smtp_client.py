"""SMTP dispatch: body resolution, message construction and a single send."""

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from pathlib import Path

from imapcli.mail.config import MailConfig
from imapcli.mail.errors import BodyFileError, TransportError, ValidationError
from imapcli.mail.types import OutgoingMessage, SendReceipt

logger = logging.getLogger(__name__)


def resolve_body(body: str | None, body_file: str | Path | None) -> str:
    """Return the message body for ``send``.

    Precedence: when ``body_file`` is given its contents are the body and
    ``body`` is ignored. Otherwise ``body`` is used. An unreadable file raises
    BodyFileError; an empty result raises ValidationError. Nothing here
    touches the network.
    """
    text = body or ""
    if body_file is not None:
        if body:
            logger.warning("Both --body and --body-file given; using %s", body_file)
        try:
            text = Path(body_file).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise BodyFileError(f"Failed to read body file: {exc}") from exc

    if not text:
        raise ValidationError("Email body is required. Use --body or --body-file option.")
    return text


def split_addresses(raw: str | None) -> tuple[str, ...]:
    """Split a comma-separated recipient list, dropping blanks."""
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def build_message(sender: str, message: OutgoingMessage) -> EmailMessage:
    """Build the MIME message. Bcc recipients are never written to headers."""
    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = ", ".join(message.to_addresses)
    if message.cc:
        msg["Cc"] = ", ".join(message.cc)
    msg["Subject"] = message.subject
    msg["Date"] = formatdate(localtime=True)
    msg["Message-ID"] = make_msgid()
    msg.set_content(message.body)
    return msg


def send_message(config: MailConfig, message: OutgoingMessage) -> SendReceipt:
    """Send ``message`` over one SMTP connection. No retry.

    The connection starts in plain text and is upgraded with STARTTLS when
    the server offers it. Any SMTP or socket failure raises TransportError
    carrying the server's message unchanged.
    """
    server = config.smtp
    user, password = server.require_credentials()
    msg = build_message(user, message)
    recipients = message.recipients

    logger.info("Sending %r to %d recipient(s) via %s:%d",
                message.subject, len(recipients), server.host, server.port)
    try:
        with smtplib.SMTP(server.host, server.port, timeout=config.timeout) as smtp:
            smtp.ehlo()
            if smtp.has_extn("starttls"):
                smtp.starttls(context=config.ssl_context())
                smtp.ehlo()
            else:
                logger.warning("SMTP server %s does not offer STARTTLS; continuing in plain text",
                               server.host)
            smtp.login(user, password)
            refused = smtp.send_message(msg, from_addr=user, to_addrs=recipients)
    except (smtplib.SMTPException, OSError) as exc:
        raise TransportError(str(exc)) from exc

    for address, (code, reason) in refused.items():
        logger.warning("Recipient %s refused: %s %s", address, code, reason)

    accepted = tuple(r for r in recipients if r not in refused)
    return SendReceipt(
        message_id=str(msg["Message-ID"]),
        to=message.to,
        subject=message.subject,
        recipients=accepted,
    )
