from __future__ import annotations

import re
from dataclasses import dataclass

from log_lander.domain.errors import QueryError
from log_lander.services.query import ROW_FIELDS, Comparison, OrderBy, Query, Scalar

# Grammar (keywords case-insensitive):
#   query   := [WHERE] [term (AND term)*] [ORDER BY key (, key)*] [LIMIT n]
#   term    := field op literal | field [NOT] LIKE 'text'
#            | field IN (literal, ...) | field BETWEEN literal AND literal
#   literal := integer | 'single-quoted text' ('' escapes a quote)
_TOKEN = re.compile(
    r"""\s*(?:
        (?P<number>-?\d+)
      | (?P<string>'(?:[^']|'')*')
      | (?P<op><=|>=|<>|!=|=|<|>)
      | (?P<punct>[(),])
      | (?P<word>[A-Za-z_][A-Za-z0-9_]*)
    )""",
    re.VERBOSE,
)

_FIELD_LOOKUP = {name.lower(): name for name in ROW_FIELDS}


@dataclass(frozen=True, slots=True)
class _Token:
    kind: str
    text: str
    pos: int


def tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    stripped_end = len(text.rstrip())
    while pos < stripped_end:
        match = _TOKEN.match(text, pos)
        if match is None or match.end() == pos:
            raise QueryError(f"Unexpected input at position {pos}: {text[pos:pos + 20]!r}")
        kind = match.lastgroup
        assert kind is not None
        tokens.append(_Token(kind=kind, text=match.group(kind), pos=match.start(kind)))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, tokens: list[_Token]) -> None:
        self._tokens = tokens
        self._idx = 0

    def parse(self) -> Query:
        terms: list[Comparison] = []
        order_by: list[OrderBy] = []
        limit: int | None = None

        self._accept_keyword("WHERE")
        if self._peek() is not None and not self._at_keyword("ORDER", "LIMIT"):
            terms.append(self._term())
            while self._accept_keyword("AND"):
                terms.append(self._term())

        if self._accept_keyword("ORDER"):
            self._expect_keyword("BY")
            order_by.append(self._order_key())
            while self._accept_punct(","):
                order_by.append(self._order_key())

        if self._accept_keyword("LIMIT"):
            token = self._next()
            if token.kind != "number":
                raise QueryError(f"LIMIT expects an integer at position {token.pos}")
            limit = int(token.text)

        leftover = self._peek()
        if leftover is not None:
            raise QueryError(f"Unexpected token {leftover.text!r} at position {leftover.pos}")
        return Query(terms=tuple(terms), order_by=tuple(order_by), limit=limit)

    def _term(self) -> Comparison:
        name = self._field()
        token = self._next()
        if token.kind == "op":
            op = "!=" if token.text == "<>" else token.text
            return Comparison(field=name, op=op, value=self._literal())
        keyword = token.text.upper() if token.kind == "word" else ""
        if keyword == "LIKE":
            return Comparison(field=name, op="LIKE", value=self._string())
        if keyword == "NOT":
            self._expect_keyword("LIKE")
            return Comparison(field=name, op="NOT LIKE", value=self._string())
        if keyword == "IN":
            self._expect_punct("(")
            values = [self._literal()]
            while self._accept_punct(","):
                values.append(self._literal())
            self._expect_punct(")")
            return Comparison(field=name, op="IN", value=tuple(values))
        if keyword == "BETWEEN":
            lo = self._literal()
            self._expect_keyword("AND")
            hi = self._literal()
            return Comparison(field=name, op="BETWEEN", value=(lo, hi))
        raise QueryError(f"Expected an operator after {name!r} at position {token.pos}")

    def _order_key(self) -> OrderBy:
        name = self._field()
        if self._accept_keyword("DESC"):
            return OrderBy(field=name, descending=True)
        self._accept_keyword("ASC")
        return OrderBy(field=name)

    def _field(self) -> str:
        token = self._next()
        if token.kind != "word":
            raise QueryError(f"Expected a field name at position {token.pos}")
        name = _FIELD_LOOKUP.get(token.text.lower())
        if name is None:
            raise QueryError(f"Unknown field {token.text!r}")
        return name

    def _literal(self) -> Scalar:
        token = self._next()
        if token.kind == "number":
            return int(token.text)
        if token.kind == "string":
            return token.text[1:-1].replace("''", "'")
        raise QueryError(f"Expected a literal at position {token.pos}")

    def _string(self) -> str:
        value = self._literal()
        if not isinstance(value, str):
            raise QueryError("LIKE expects a quoted pattern")
        return value

    def _peek(self) -> _Token | None:
        return self._tokens[self._idx] if self._idx < len(self._tokens) else None

    def _next(self) -> _Token:
        token = self._peek()
        if token is None:
            raise QueryError("Unexpected end of query")
        self._idx += 1
        return token

    def _at_keyword(self, *words: str) -> bool:
        token = self._peek()
        return token is not None and token.kind == "word" and token.text.upper() in words

    def _accept_keyword(self, word: str) -> bool:
        if self._at_keyword(word):
            self._idx += 1
            return True
        return False

    def _expect_keyword(self, word: str) -> None:
        if not self._accept_keyword(word):
            raise QueryError(f"Expected {word}")

    def _accept_punct(self, char: str) -> bool:
        token = self._peek()
        if token is not None and token.kind == "punct" and token.text == char:
            self._idx += 1
            return True
        return False

    def _expect_punct(self, char: str) -> None:
        if not self._accept_punct(char):
            raise QueryError(f"Expected {char!r}")


def parse_query(text: str) -> Query:
    return _Parser(tokenize(text)).parse()
