"""Compact one-line sentence notation for pattern specifications.

Notation::

    play .song. [by .artist.]
    (what's|what is) the time
    * weather *

- bare words are literals
- `(a|b c)` lists alternative words or phrases
- `[ ... ]` is an optional segment (may nest)
- `.name.` captures a slot
- `*` is a wildcard gap
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from skill_dispatch.errors import InvalidPatternSpec
from skill_dispatch.grammar.spec import (
    CaptureSpec,
    LiteralSpec,
    OptionalSpec,
    PatternSpec,
    WildcardSpec,
)

_NOTATION_TOKEN = re.compile(r"\.(?P<slot>\w+)\.|(?P<op>[()\[\]|*])|(?P<word>[^\s()\[\]|*]+)")


def parse_line(line: str) -> PatternSpec:
    """Parse one notation line into a `PatternSpec`."""
    return PatternSpec(elements=_LineParser(line).parse())


def iter_pattern_lines(text: str) -> Iterator[tuple[int, str]]:
    """Yield `(line_number, line)` for non-empty, non-comment lines."""
    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if line and not line.startswith("#"):
            yield number, line


class _LineParser:
    def __init__(self, line: str) -> None:
        self.line = line
        self.tokens = list(_NOTATION_TOKEN.finditer(line))
        self.pos = 0

    def parse(self) -> list:
        elements = self._sequence(closing=None)
        if not elements:
            raise InvalidPatternSpec(f"Empty pattern: {self.line!r}")
        return elements

    def _sequence(self, closing: str | None) -> list:
        elements: list = []
        while self.pos < len(self.tokens):
            match = self.tokens[self.pos]
            op = match.group("op")
            if op is not None and op == closing:
                self.pos += 1
                return elements
            self.pos += 1
            if match.group("slot") is not None:
                elements.append(CaptureSpec(name=match.group("slot")))
            elif match.group("word") is not None:
                elements.append(LiteralSpec(words=[match.group("word")]))
            elif op == "*":
                elements.append(WildcardSpec())
            elif op == "[":
                children = self._sequence(closing="]")
                if not children:
                    raise self._error("empty optional segment", match)
                elements.append(OptionalSpec(elements=children))
            elif op == "(":
                elements.append(self._alternatives(match))
            else:
                raise self._error(f"unexpected {op!r}", match)
        if closing is not None:
            raise InvalidPatternSpec(f"Missing {closing!r} in {self.line!r}")
        return elements

    def _alternatives(self, opening: re.Match[str]) -> LiteralSpec:
        alternatives: list[str] = []
        words: list[str] = []
        while self.pos < len(self.tokens):
            match = self.tokens[self.pos]
            self.pos += 1
            op = match.group("op")
            if match.group("word") is not None:
                words.append(match.group("word"))
            elif op in ("|", ")"):
                if not words:
                    raise self._error("empty alternative", match)
                alternatives.append(" ".join(words))
                words = []
                if op == ")":
                    return LiteralSpec(words=alternatives)
            else:
                raise self._error("only words are allowed inside '( )'", match)
        raise self._error("missing ')'", opening)

    def _error(self, message: str, match: re.Match[str]) -> InvalidPatternSpec:
        return InvalidPatternSpec(f"{message} at column {match.start() + 1} in {self.line!r}")
