"""Best-effort plain-text body extraction as an ordered list of strategies.

Each strategy returns the decoded text or an ExtractionMiss. The first
strategy that yields non-empty text wins; when all of them miss, a
placeholder string becomes the body. Extraction never raises.
"""

import base64
import binascii
import logging
import quopri
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from imapcli.mail.errors import MailError

logger = logging.getLogger(__name__)

EMPTY_BODY = "(Empty body)"
EXTRACTION_FAILED = "(Body extraction failed - complex content structure)"


class SectionSource(Protocol):
    def fetch_section(self, uid: int, section: str) -> bytes | None: ...


@dataclass(frozen=True)
class ExtractionMiss:
    """A strategy found nothing usable. ``empty`` means the part exists but is blank."""

    section: str
    reason: str
    empty: bool = False


def _param(params: object, name: str) -> str | None:
    # BODYSTRUCTURE parameters are a flat (key, value, key, value, ...) tuple
    if not isinstance(params, (list, tuple)):
        return None
    pairs = list(params)
    for key, value in zip(pairs[::2], pairs[1::2]):
        if isinstance(key, bytes) and key.decode("ascii", "replace").lower() == name:
            return value.decode("ascii", "replace") if isinstance(value, bytes) else None
    return None


def first_part_encoding(bodystructure: Any) -> tuple[str, str]:
    """Return ``(transfer_encoding, charset)`` of MIME part 1.

    Falls back to ``("7bit", "utf-8")`` when the structure is missing, the
    first part is itself multipart, or the tuple is malformed.
    """
    default = ("7bit", "utf-8")
    try:
        part = bodystructure[0][0] if isinstance(bodystructure[0], (list, tuple)) else bodystructure
        if isinstance(part[0], (list, tuple)):
            return default
        encoding = part[5].decode("ascii", "replace").lower() if isinstance(part[5], bytes) else "7bit"
        charset = _param(part[2], "charset") or "utf-8"
    except (TypeError, IndexError, AttributeError):
        return default
    return encoding, charset


def decode_part(raw: bytes, encoding: str = "7bit", charset: str = "utf-8") -> str:
    """Undo the transfer encoding, then decode with ``charset`` (UTF-8 if unknown)."""
    if encoding == "base64":
        try:
            raw = base64.b64decode(raw)
        except (binascii.Error, ValueError):
            logger.debug("Part claims base64 but does not decode; using raw bytes")
    elif encoding == "quoted-printable":
        raw = quopri.decodestring(raw)
    try:
        return raw.decode(charset, errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class SectionStrategy:
    """Fetch one BODY[section] and decode it.

    Transfer and charset decoding use BODYSTRUCTURE only for section ``1``;
    other sections are decoded as UTF-8.
    """

    section: str

    def extract(self, source: SectionSource, uid: int, bodystructure: Any = None) -> str | ExtractionMiss:
        try:
            raw = source.fetch_section(uid, self.section)
        except MailError as exc:
            return ExtractionMiss(self.section, str(exc))
        if raw is None:
            return ExtractionMiss(self.section, "section not returned")

        if self.section == "1":
            encoding, charset = first_part_encoding(bodystructure)
        else:
            encoding, charset = "7bit", "utf-8"
        text = decode_part(raw, encoding, charset).strip()
        if not text:
            return ExtractionMiss(self.section, "section is empty", empty=True)
        return text


DEFAULT_STRATEGIES: tuple[SectionStrategy, ...] = (
    SectionStrategy("1.TEXT"),
    SectionStrategy("1"),
)


def extract_body(
    source: SectionSource,
    uid: int,
    bodystructure: Any = None,
    strategies: Sequence[SectionStrategy] = DEFAULT_STRATEGIES,
) -> str:
    """Try each strategy in order and return the first text found.

    When every strategy misses: EMPTY_BODY if one of them found a blank
    part, otherwise EXTRACTION_FAILED.
    """
    misses: list[ExtractionMiss] = []
    for strategy in strategies:
        result = strategy.extract(source, uid, bodystructure)
        if isinstance(result, str):
            return result
        logger.debug("Body strategy BODY[%s] missed for UID %d: %s", result.section, uid, result.reason)
        misses.append(result)

    if any(miss.empty for miss in misses):
        return EMPTY_BODY
    logger.info("Could not extract a text body for UID %d", uid)
    return EXTRACTION_FAILED
