"""Record framing for concatenated JSON input.

Upstream batching may glue JSON objects together with no separator at all
(``{"a":1}{"a":2}``), wrap them in a top-level array, or pretty-print them over
several lines. The framer finds record boundaries structurally, by tracking
brace/bracket depth outside of string literals, and re-serializes every record
as compact JSON followed by exactly one newline, so each persisted line parses
on its own.

Anything that cannot become a record is reported as a PartialParseWarning and
dropped:

- an object still open when the input ends (TRAILING_FRAGMENT),
- a balanced span that is not valid JSON (INVALID_JSON),
- a stray closing bracket or text between objects (UNBALANCED_OBJECT),
- a top-level value that is not an object (SHAPE_VIOLATION).
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

from log_lander.domain.errors import PartialParseWarning, ReasonCode

# Only these bytes change scanner state; everything else is skipped in bulk.
_SPECIAL = re.compile(rb'[{}\[\]"\\]')
_STRING_END = re.compile(rb'["\\]')
_WHITESPACE = b" \t\r\n,"


@dataclass(frozen=True, slots=True)
class FramedRecord:
    payload: dict[str, Any]
    line: bytes
    offset: int


@dataclass(frozen=True, slots=True)
class FramingResult:
    records: tuple[FramedRecord, ...]
    warnings: tuple[PartialParseWarning, ...]


@dataclass(frozen=True, slots=True)
class RecordFramer:
    # Stateless: a fragment never leaks into the next batch.
    def frame(self, stream: bytes) -> FramingResult:
        records: list[FramedRecord] = []
        warnings: list[PartialParseWarning] = []
        pos = 0
        size = len(stream)
        while pos < size:
            pos = _skip_separators(stream, pos)
            if pos >= size:
                break
            head = stream[pos : pos + 1]
            if head not in (b"{", b"["):
                nxt = _next_opener(stream, pos)
                warnings.append(PartialParseWarning(ReasonCode.UNBALANCED_OBJECT, pos, stream[pos:nxt]))
                pos = nxt
                continue

            end = _find_span_end(stream, pos)
            if end is None:
                warnings.append(PartialParseWarning(ReasonCode.TRAILING_FRAGMENT, pos, stream[pos:]))
                break

            span = stream[pos:end]
            try:
                value = json.loads(span)
            except ValueError:
                warnings.append(PartialParseWarning(ReasonCode.INVALID_JSON, pos, span))
                pos = end
                continue

            items = value if isinstance(value, list) else [value]
            for item in items:
                if not isinstance(item, dict):
                    warnings.append(PartialParseWarning(ReasonCode.SHAPE_VIOLATION, pos, span))
                    continue
                records.append(FramedRecord(payload=item, line=_serialize(item), offset=pos))
            pos = end

        return FramingResult(records=tuple(records), warnings=tuple(warnings))


def _serialize(item: dict[str, Any]) -> bytes:
    # ASCII escapes keep lone surrogates from valid JSON encodable.
    return json.dumps(item, separators=(",", ":")).encode("ascii") + b"\n"


def _skip_separators(stream: bytes, pos: int) -> int:
    size = len(stream)
    while pos < size and stream[pos] in _WHITESPACE:
        pos += 1
    return pos


def _next_opener(stream: bytes, pos: int) -> int:
    # Resynchronize on the next object or array start.
    candidates = [idx for idx in (stream.find(b"{", pos + 1), stream.find(b"[", pos + 1)) if idx != -1]
    return min(candidates) if candidates else len(stream)


def _find_span_end(stream: bytes, start: int) -> int | None:
    """Return the index just past the balanced value starting at start, or None."""
    depth = 0
    pos = start
    while True:
        match = _SPECIAL.search(stream, pos)
        if match is None:
            return None
        char = match.group()
        pos = match.end()
        if char == b'"':
            pos = _skip_string(stream, pos)
            if pos < 0:
                return None
        elif char in (b"{", b"["):
            depth += 1
        elif char in (b"}", b"]"):
            depth -= 1
            if depth == 0:
                return pos
        # A backslash outside a string is left for json.loads to reject.


def _skip_string(stream: bytes, pos: int) -> int:
    # pos is just past the opening quote; returns index past the closing quote or -1.
    while True:
        match = _STRING_END.search(stream, pos)
        if match is None:
            return -1
        if match.group() == b"\\":
            pos = match.end() + 1
            continue
        return match.end()
