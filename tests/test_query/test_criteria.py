"""Tests for the filter compiler."""

from datetime import date

import pytest

from imapcli.mail.errors import InvalidDateError
from imapcli.query.criteria import (
    MATCH_ALL,
    AnyOf,
    FilterSet,
    SearchExpression,
    Term,
    compile_filters,
    parse_date,
)


# ── parse_date ─────────────────────────────────────────────────────────────────


class TestParseDate:
    def test_accepts_iso_date(self) -> None:
        assert parse_date("2024-01-31") == date(2024, 1, 31)

    def test_strips_whitespace(self) -> None:
        assert parse_date(" 2024-02-01 ") == date(2024, 2, 1)

    @pytest.mark.parametrize(
        "value", ["31/01/2024", "2024-13-01", "yesterday", "2024-02-30", "", "2024-1-5", "24-01-05"]
    )
    def test_rejects_other_formats(self, value: str) -> None:
        with pytest.raises(InvalidDateError, match="Use YYYY-MM-DD format"):
            parse_date(value)

    def test_error_names_the_value(self) -> None:
        with pytest.raises(InvalidDateError, match="Invalid date format: 01-02-2024"):
            parse_date("01-02-2024")


# ── FilterSet ──────────────────────────────────────────────────────────────────


class TestFilterSet:
    def test_from_options_parses_dates(self) -> None:
        filters = FilterSet.from_options(after="2024-01-01", before="2024-01-31")
        assert filters.after == date(2024, 1, 1)
        assert filters.before == date(2024, 1, 31)

    def test_from_options_rejects_bad_before(self) -> None:
        with pytest.raises(InvalidDateError, match="not-a-date"):
            FilterSet.from_options(query="x", before="not-a-date")

    def test_empty_strings_count_as_unset(self) -> None:
        filters = FilterSet.from_options(query="", from_address="", subject="")
        assert filters.is_empty

    def test_inverted_range_is_allowed(self) -> None:
        filters = FilterSet.from_options(after="2024-02-01", before="2024-01-01")
        assert filters.after > filters.before


# ── compile_filters ────────────────────────────────────────────────────────────


class TestCompileFilters:
    def test_empty_filters_match_all(self) -> None:
        expression = compile_filters(FilterSet())
        assert expression.matches_all
        assert expression == MATCH_ALL
        assert expression.to_imap() == ["ALL"]

    def test_compiling_twice_is_equal(self) -> None:
        filters = FilterSet(query="budget", from_address="alice@example.com")
        assert compile_filters(filters) == compile_filters(filters)
        assert compile_filters(FilterSet()) == compile_filters(FilterSet())

    def test_free_text_is_subject_or_body(self) -> None:
        expression = compile_filters(FilterSet(query="invoice"))
        assert expression.terms == (AnyOf(Term("SUBJECT", "invoice"), Term("BODY", "invoice")),)
        assert expression.to_imap() == ["OR", "SUBJECT", "invoice", "BODY", "invoice"]

    def test_every_field_adds_one_term(self) -> None:
        filters = FilterSet(
            query="q",
            from_address="alice@example.com",
            subject="Budget",
            after=date(2024, 1, 1),
            before=date(2024, 1, 31),
        )
        expression = compile_filters(filters)
        assert len(expression.terms) == 5
        assert expression.to_imap() == [
            "OR", "SUBJECT", "q", "BODY", "q",
            "FROM", "alice@example.com",
            "SUBJECT", "Budget",
            "SINCE", date(2024, 1, 1),
            "BEFORE", date(2024, 1, 31),
        ]

    def test_dates_only(self) -> None:
        expression = compile_filters(FilterSet(after=date(2024, 3, 1)))
        assert expression.to_imap() == ["SINCE", date(2024, 3, 1)]

    def test_equal_expressions_hash_alike(self) -> None:
        first = SearchExpression((Term("FROM", "a@b.com"),))
        second = compile_filters(FilterSet(from_address="a@b.com"))
        assert {first, second} == {first}
