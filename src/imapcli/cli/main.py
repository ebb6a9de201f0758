"""CLI entry point for imapcli."""

import logging

import click
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(package_name="imapcli")
@click.option("-v", "--verbose", is_flag=True, help="Write debug logs to stderr.")
def cli(verbose: bool) -> None:
    """IMAP/SMTP CLI tool for reading and sending email.

    Connection settings come from IMAP_* / SMTP_* environment variables
    (a .env file in the working directory is loaded first).
    """
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,  # stdout stays clean for --json
        format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
    )


# Import and register commands after cli is defined to avoid circular imports.
from imapcli.cli.commands import folders, read, recent, search, send  # noqa: E402

cli.add_command(folders)
cli.add_command(recent)
cli.add_command(search)
cli.add_command(read)
cli.add_command(send)
