"""Filter compiler: turns CLI filters into an IMAP SEARCH expression."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Union

from imapcli.mail.errors import InvalidDateError

DATE_FORMAT = "%Y-%m-%d"
_DATE_SHAPE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD string, raising InvalidDateError on anything else."""
    error = InvalidDateError(f"Invalid date format: {value}. Use YYYY-MM-DD format.")
    text = value.strip() if isinstance(value, str) else ""
    # strptime alone accepts unpadded fields such as 2024-1-5
    if not _DATE_SHAPE.match(text):
        raise error
    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except ValueError:
        raise error from None


@dataclass(frozen=True)
class FilterSet:
    """User-supplied search filters. Every field is optional.

    ``after`` and ``before`` are not checked against each other: an inverted
    range is a valid query that matches nothing.
    """

    query: str | None = None
    from_address: str | None = None
    subject: str | None = None
    after: date | None = None
    before: date | None = None

    @classmethod
    def from_options(
        cls,
        query: str | None = None,
        from_address: str | None = None,
        subject: str | None = None,
        after: str | None = None,
        before: str | None = None,
    ) -> FilterSet:
        """Build a FilterSet from raw CLI strings, validating dates first."""
        return cls(
            query=query or None,
            from_address=from_address or None,
            subject=subject or None,
            after=parse_date(after) if after else None,
            before=parse_date(before) if before else None,
        )

    @property
    def is_empty(self) -> bool:
        return not any((self.query, self.from_address, self.subject, self.after, self.before))


# ── Expression tree ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Term:
    """A single SEARCH key with its argument, e.g. ``FROM alice@example.com``."""

    key: str
    value: str | date

    def to_imap(self) -> list[Any]:
        return [self.key, self.value]


@dataclass(frozen=True)
class AnyOf:
    """Two terms joined with IMAP ``OR``."""

    left: Term
    right: Term

    def to_imap(self) -> list[Any]:
        return ["OR", *self.left.to_imap(), *self.right.to_imap()]


Predicate = Union[Term, AnyOf]


@dataclass(frozen=True)
class SearchExpression:
    """Conjunction of predicates. No predicates means "match all"."""

    terms: tuple[Predicate, ...] = ()

    @property
    def matches_all(self) -> bool:
        return not self.terms

    def to_imap(self) -> list[Any]:
        """Render as imapclient search criteria.

        The list is flat, in prefix form: ``OR SUBJECT q BODY q`` needs no
        parentheses because each key takes exactly one argument. imapclient
        only applies the SEARCH charset at the top level, so nested lists
        would be encoded as US-ASCII. Dates are formatted by imapclient.
        """
        if self.matches_all:
            return ["ALL"]
        criteria: list[Any] = []
        for term in self.terms:
            criteria.extend(term.to_imap())
        return criteria


MATCH_ALL = SearchExpression()


def compile_filters(filters: FilterSet) -> SearchExpression:
    """Compile a FilterSet: one AND-ed predicate per non-empty field."""
    terms: list[Predicate] = []
    if filters.query:
        terms.append(AnyOf(Term("SUBJECT", filters.query), Term("BODY", filters.query)))
    if filters.from_address:
        terms.append(Term("FROM", filters.from_address))
    if filters.subject:
        terms.append(Term("SUBJECT", filters.subject))
    if filters.after is not None:
        terms.append(Term("SINCE", filters.after))
    if filters.before is not None:
        terms.append(Term("BEFORE", filters.before))
    return SearchExpression(tuple(terms))
