"""Tests for body resolution and SMTP dispatch. smtplib.SMTP is mocked."""

import smtplib
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from imapcli.mail.config import MailConfig
from imapcli.mail.errors import (
    BodyFileError,
    MissingCredentialsError,
    TransportError,
    ValidationError,
)
from imapcli.mail.smtp_client import build_message, resolve_body, send_message, split_addresses
from imapcli.mail.types import OutgoingMessage


@pytest.fixture
def config() -> MailConfig:
    return MailConfig.from_env({"IMAP_USER": "bridge@example.com", "IMAP_PASS": "secret"})


@pytest.fixture
def smtp() -> MagicMock:
    server = MagicMock()
    server.has_extn.return_value = True
    server.send_message.return_value = {}
    server.__enter__.return_value = server
    return server


def _message(**overrides) -> OutgoingMessage:
    fields = {"to": "a@b.com", "subject": "hi", "body": "Hello there"}
    fields.update(overrides)
    return OutgoingMessage(**fields)


# ── resolve_body ───────────────────────────────────────────────────────────────


class TestResolveBody:
    def test_inline_body(self) -> None:
        assert resolve_body("Hello", None) == "Hello"

    def test_file_body(self, tmp_path: Path) -> None:
        path = tmp_path / "body.txt"
        path.write_text("From a file\n", encoding="utf-8")
        assert resolve_body(None, str(path)) == "From a file\n"

    def test_file_wins_over_inline(self, tmp_path: Path, caplog) -> None:
        path = tmp_path / "body.txt"
        path.write_text("File body", encoding="utf-8")
        assert resolve_body("Inline body", path) == "File body"
        assert "using" in caplog.text

    def test_no_body_is_validation_error(self) -> None:
        with pytest.raises(ValidationError, match="Email body is required"):
            resolve_body(None, None)

    def test_empty_file_is_validation_error(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.txt"
        path.write_text("", encoding="utf-8")
        with pytest.raises(ValidationError):
            resolve_body("ignored", path)

    def test_missing_file_is_file_error(self, tmp_path: Path) -> None:
        with pytest.raises(BodyFileError, match="Failed to read body file"):
            resolve_body(None, tmp_path / "missing.txt")

    def test_file_error_is_not_validation_error(self, tmp_path: Path) -> None:
        with pytest.raises(BodyFileError) as info:
            resolve_body("inline", tmp_path / "missing.txt")
        assert not isinstance(info.value, ValidationError)


class TestSplitAddresses:
    def test_splits_and_strips(self) -> None:
        assert split_addresses(" a@b.com, c@d.com ,,") == ("a@b.com", "c@d.com")

    def test_none_is_empty(self) -> None:
        assert split_addresses(None) == ()


# ── build_message ──────────────────────────────────────────────────────────────


class TestBuildMessage:
    def test_headers(self) -> None:
        msg = build_message("me@example.com", _message(cc=("c@d.com", "e@f.com"), bcc=("hidden@x.com",)))
        assert msg["From"] == "me@example.com"
        assert msg["To"] == "a@b.com"
        assert msg["Cc"] == "c@d.com, e@f.com"
        assert msg["Subject"] == "hi"
        assert msg["Message-ID"]
        assert msg["Bcc"] is None
        assert msg.get_content().strip() == "Hello there"


# ── send_message ───────────────────────────────────────────────────────────────


class TestSendMessage:
    def test_sends_to_all_recipients(self, config, smtp) -> None:
        message = _message(cc=("c@d.com",), bcc=("hidden@x.com",))
        with patch("imapcli.mail.smtp_client.smtplib.SMTP", return_value=smtp) as cls:
            receipt = send_message(config, message)

        cls.assert_called_once_with("127.0.0.1", 1025, timeout=config.timeout)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("bridge@example.com", "secret")
        kwargs = smtp.send_message.call_args.kwargs
        assert kwargs["from_addr"] == "bridge@example.com"
        assert kwargs["to_addrs"] == ["a@b.com", "c@d.com", "hidden@x.com"]
        assert receipt.to == "a@b.com"
        assert receipt.subject == "hi"
        assert receipt.message_id.startswith("<")
        assert receipt.recipients == ("a@b.com", "c@d.com", "hidden@x.com")

    def test_comma_separated_to_is_several_recipients(self, config, smtp) -> None:
        message = _message(to="a@b.com, c@d.com")
        with patch("imapcli.mail.smtp_client.smtplib.SMTP", return_value=smtp):
            receipt = send_message(config, message)
        sent = smtp.send_message.call_args.args[0]
        assert sent["To"] == "a@b.com, c@d.com"
        assert smtp.send_message.call_args.kwargs["to_addrs"] == ["a@b.com", "c@d.com"]
        assert receipt.recipients == ("a@b.com", "c@d.com")

    def test_plain_connection_when_starttls_not_offered(self, config, smtp) -> None:
        smtp.has_extn.return_value = False
        with patch("imapcli.mail.smtp_client.smtplib.SMTP", return_value=smtp):
            send_message(config, _message())
        smtp.starttls.assert_not_called()

    def test_refused_recipients_are_dropped_from_receipt(self, config, smtp) -> None:
        smtp.send_message.return_value = {"c@d.com": (550, b"No such user")}
        with patch("imapcli.mail.smtp_client.smtplib.SMTP", return_value=smtp):
            receipt = send_message(config, _message(cc=("c@d.com",)))
        assert receipt.recipients == ("a@b.com",)

    def test_auth_failure_is_transport_error_verbatim(self, config, smtp) -> None:
        smtp.login.side_effect = smtplib.SMTPAuthenticationError(535, b"5.7.8 bad credentials")
        with patch("imapcli.mail.smtp_client.smtplib.SMTP", return_value=smtp):
            with pytest.raises(TransportError, match="bad credentials"):
                send_message(config, _message())

    def test_connection_refused_is_transport_error(self, config) -> None:
        with patch("imapcli.mail.smtp_client.smtplib.SMTP", side_effect=ConnectionRefusedError("refused")):
            with pytest.raises(TransportError, match="refused"):
                send_message(config, _message())

    def test_missing_credentials(self) -> None:
        with patch("imapcli.mail.smtp_client.smtplib.SMTP") as cls:
            with pytest.raises(MissingCredentialsError, match="SMTP_USER"):
                send_message(MailConfig.from_env({}), _message())
        cls.assert_not_called()
