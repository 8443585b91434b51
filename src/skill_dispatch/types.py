"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from skill_dispatch.grammar.compiler import Pattern


@dataclass(slots=True, frozen=True)
class Token:
    """A normalized word with its character span in the raw text."""

    text: str
    normalized: str
    start: int
    end: int


@dataclass(slots=True, frozen=True)
class Utterance:
    """Raw user input plus its tokenization."""

    raw: str
    tokens: tuple[Token, ...]

    @property
    def normalized(self) -> tuple[str, ...]:
        return tuple(token.normalized for token in self.tokens)

    def span_text(self, start: int, end: int) -> str:
        """Return the raw text covered by tokens `[start, end)`."""
        if start >= end:
            return ""
        return self.raw[self.tokens[start].start : self.tokens[end - 1].end]

    def __len__(self) -> int:
        return len(self.tokens)


@dataclass(slots=True, frozen=True)
class SlotSpan:
    """Text bound to a capture slot, with token indices `[start, end)`."""

    text: str
    start: int
    end: int


@dataclass(slots=True, frozen=True)
class MatchResult:
    """Outcome of scoring one section against one utterance."""

    score: float
    pattern: Pattern | None = None
    pattern_index: int | None = None
    slots: dict[str, SlotSpan] = field(default_factory=dict)

    @property
    def matched(self) -> bool:
        return self.pattern is not None and self.score > 0.0

    @classmethod
    def no_match(cls) -> "MatchResult":
        return cls(score=0.0)


@dataclass(slots=True)
class RenderedItem:
    """A structured sub-item of a rendered result."""

    title: str
    body: str = ""
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class RenderedResult:
    """Renderer-agnostic payload produced by a skill's output stage."""

    title: str
    body: str = ""
    items: list[RenderedItem] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
