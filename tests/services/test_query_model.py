from __future__ import annotations

import pytest

from log_lander.domain.errors import QueryError
from log_lander.domain.projection import PartitionField, ProjectionSpec, default_projection_spec
from log_lander.services.projection_engine import FieldConstraint
from log_lander.services.query import Comparison, Query, epoch_ms, like_pattern, split_predicate

_ROW = {
    "id": "1",
    "timestamp": 1700000000000,
    "message": "ERROR boom",
    "logGroup": "/svc/a",
    "year": 2024,
    "month": 1,
}


def test_like_matches_sql_wildcards() -> None:
    assert like_pattern("%ERROR%").fullmatch("x ERROR y")
    assert like_pattern("ERR_R%").fullmatch("ERROR boom")
    assert not like_pattern("ERROR").fullmatch("ERROR boom")
    assert like_pattern("100%.").fullmatch("100 percent.")
    assert not like_pattern("a.c").fullmatch("abc")


def test_comparison_operators_on_rows() -> None:
    assert Comparison("message", "LIKE", "%boom").matches(_ROW)
    assert Comparison("message", "NOT LIKE", "%WARN%").matches(_ROW)
    assert Comparison("timestamp", ">=", 1700000000000).matches(_ROW)
    assert not Comparison("timestamp", "<", 1700000000000).matches(_ROW)
    assert Comparison("logGroup", "IN", ("/svc/a", "/svc/b")).matches(_ROW)
    assert Comparison("timestamp", "BETWEEN", (1, 1700000000000)).matches(_ROW)
    assert Comparison("id", "!=", "2").matches(_ROW)


def test_comparison_aligns_numbers_and_text() -> None:
    # A quoted number still compares numerically against an integer column.
    assert Comparison("month", "=", "01").matches(_ROW)
    assert Comparison("id", "=", 1).matches(_ROW)


def test_missing_field_never_matches() -> None:
    assert not Comparison("owner", "=", "x").matches(_ROW)


def test_comparison_validates_field_and_operator() -> None:
    with pytest.raises(QueryError, match="Unknown field"):
        Comparison("minute", "=", 1)
    with pytest.raises(QueryError, match="Unsupported operator"):
        Comparison("id", "~", "1")
    with pytest.raises(QueryError, match="BETWEEN"):
        Comparison("id", "BETWEEN", (1,))


def test_negative_limit_is_rejected() -> None:
    with pytest.raises(QueryError):
        Query(limit=-1)


def test_split_predicate_separates_partition_and_residual_terms() -> None:
    terms = (
        Comparison("year", "=", 2024),
        Comparison("month", "IN", (1, 2)),
        Comparison("day", ">", 14),
        Comparison("hour", "!=", 3),
        Comparison("message", "LIKE", "%ERROR%"),
    )
    split = split_predicate(terms, default_projection_spec())
    assert split.partition == {
        "year": FieldConstraint.equals(2024),
        "month": FieldConstraint(values=frozenset({1, 2})),
        "day": FieldConstraint.between(15, None),
    }
    assert [t.field for t in split.residual] == ["hour", "message"]


def test_split_predicate_merges_terms_on_one_field() -> None:
    terms = (Comparison("hour", ">=", 8), Comparison("hour", "<", 12))
    split = split_predicate(terms, default_projection_spec())
    assert split.partition["hour"] == FieldConstraint(lo=8, hi=11)


def test_split_predicate_rejects_text_for_integer_partition() -> None:
    with pytest.raises(QueryError, match="integer"):
        split_predicate((Comparison("year", "=", "last"),), default_projection_spec())


def test_timestamp_accepts_iso_literals() -> None:
    # 2024-01-15T10:00Z; ISO strings become epoch milliseconds before comparing.
    row = {"timestamp": 1705312800000}
    assert Comparison("timestamp", ">=", "2024-01-01T00:00:00Z").matches(row)
    assert not Comparison("timestamp", "<", "2024-01-15T10:00:00+00:00").matches(row)
    assert Comparison("timestamp", "BETWEEN", ("2024-01-15T09:59:59Z", "2024-01-15T10:00:00")).matches(row)
    assert Comparison("timestamp", "=", "1705312800000").value == 1705312800000
    assert epoch_ms("2024-01-15T10:00:00.123Z") == 1705312800123


def test_timestamp_rejects_non_time_literal() -> None:
    with pytest.raises(QueryError, match="ISO-8601"):
        Comparison("timestamp", ">", "yesterday")


def test_range_on_string_partition_field_needs_integer_bounds() -> None:
    base = default_projection_spec()
    year, month, day, _ = base.fields
    spec = ProjectionSpec(
        prefix="",
        template=base.template,
        fields=(year, month, day, PartitionField(name="hour", lo=0, hi=23, digits=2, type="string")),
    )
    assert split_predicate((Comparison("hour", "BETWEEN", ("3", "5")),), spec).partition["hour"] == (
        FieldConstraint.between(3, 5)
    )
    with pytest.raises(QueryError, match="integer bounds"):
        split_predicate((Comparison("hour", "BETWEEN", ("a", "c")),), spec)
    with pytest.raises(QueryError, match="integer bounds"):
        split_predicate((Comparison("hour", ">", "noon"),), spec)
