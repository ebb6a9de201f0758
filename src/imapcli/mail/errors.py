"""Error kinds raised by the mail layer and reported by the CLI."""


class MailError(Exception):
    """Base class for every error the CLI reports with exit status 1."""


class ConfigError(MailError):
    """Raised when an environment setting cannot be parsed."""


class MissingCredentialsError(MailError):
    """Raised when IMAP or SMTP user/password are not configured."""


class ConnectionFailureError(MailError):
    """Raised when connecting, upgrading to TLS or logging in fails."""


class InvalidDateError(MailError):
    """Raised when a date filter is not in YYYY-MM-DD form."""


class NotFoundError(MailError):
    """Raised when a folder or message UID does not exist."""


class ValidationError(MailError):
    """Raised when a send request has no resolvable body."""


class BodyFileError(MailError):
    """Raised when --body-file cannot be read."""


class TransportError(MailError):
    """Raised when the SMTP server rejects or fails a dispatch."""


class CursorExhaustedError(MailError):
    """Raised when a MessageCursor is iterated a second time."""


class ProtocolError(MailError):
    """Raised when the server answers a command with NO or BAD."""
