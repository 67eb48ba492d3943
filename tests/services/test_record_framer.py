from __future__ import annotations

import json

from log_lander.domain.errors import ReasonCode
from log_lander.services.record_framer import RecordFramer


def _frame(data: bytes):
    return RecordFramer().frame(data)


def test_concatenated_objects_without_separator_become_two_records() -> None:
    result = _frame(b'{"a":1}{"a":2}')
    assert [r.line for r in result.records] == [b'{"a":1}\n', b'{"a":2}\n']
    assert [json.loads(r.line) for r in result.records] == [{"a": 1}, {"a": 2}]
    assert result.warnings == ()


def test_braces_inside_strings_do_not_split_records() -> None:
    data = b'{"m":"a}{b","q":"say \\"}\\""}{"m":"[x"}'
    result = _frame(data)
    assert [r.payload["m"] for r in result.records] == ["a}{b", "[x"]


def test_pretty_printed_and_newline_separated_input() -> None:
    data = b'{\n  "a": 1,\n  "b": {"c": [1, 2]}\n}\n\n{"a": 2}\n'
    result = _frame(data)
    assert [r.line for r in result.records] == [b'{"a":1,"b":{"c":[1,2]}}\n', b'{"a":2}\n']


def test_top_level_array_is_flattened_in_order() -> None:
    result = _frame(b'[{"a":1},{"a":2}]{"a":3}')
    assert [r.payload["a"] for r in result.records] == [1, 2, 3]


def test_trailing_fragment_is_dropped_with_warning() -> None:
    # The complete record survives; the cut-off tail is reported, not carried over.
    result = _frame(b'{"a":1}{"a":')
    assert [r.payload for r in result.records] == [{"a": 1}]
    assert len(result.warnings) == 1
    warning = result.warnings[0]
    assert warning.reason is ReasonCode.TRAILING_FRAGMENT
    assert warning.offset == 7
    assert warning.fragment == b'{"a":'


def test_unterminated_string_is_a_trailing_fragment() -> None:
    result = _frame(b'{"a":"never closed}')
    assert result.records == ()
    assert result.warnings[0].reason is ReasonCode.TRAILING_FRAGMENT


def test_garbage_between_objects_is_skipped() -> None:
    result = _frame(b'{"a":1} junk }{"a":2}')
    assert [r.payload["a"] for r in result.records] == [1, 2]
    assert [w.reason for w in result.warnings] == [ReasonCode.UNBALANCED_OBJECT]


def test_balanced_but_invalid_json_is_skipped() -> None:
    result = _frame(b'{a:1}{"a":2}')
    assert [r.payload["a"] for r in result.records] == [2]
    assert result.warnings[0].reason is ReasonCode.INVALID_JSON


def test_non_object_array_items_are_shape_violations() -> None:
    result = _frame(b'[1, {"a":1}]')
    assert [r.payload for r in result.records] == [{"a": 1}]
    assert [w.reason for w in result.warnings] == [ReasonCode.SHAPE_VIOLATION]


def test_empty_input_yields_nothing() -> None:
    result = _frame(b"  \n ")
    assert result.records == ()
    assert result.warnings == ()


def test_framer_is_stateless_across_batches() -> None:
    # A fragment at the end of one batch never merges into the next.
    framer = RecordFramer()
    first = framer.frame(b'{"a":1}{"a"')
    second = framer.frame(b':2}')
    assert [r.payload for r in first.records] == [{"a": 1}]
    assert second.records == ()
    assert second.warnings[0].reason is ReasonCode.UNBALANCED_OBJECT


def test_lone_surrogate_escape_stays_an_escape() -> None:
    # Valid JSON may carry an unpaired \ud800; the framed line must still encode.
    result = _frame(b'{"m":"ok"}{"m":"x\\ud800y"}')
    assert [r.line for r in result.records] == [b'{"m":"ok"}\n', b'{"m":"x\\ud800y"}\n']
    assert json.loads(result.records[1].line) == {"m": "x\ud800y"}
    assert result.warnings == ()
