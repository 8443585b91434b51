"""Scoring strategies for pattern alignments."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class Alignment:
    """One complete alignment of a pattern with an utterance.

    `literal_tokens` counts utterance tokens matched by literal elements,
    `gap_tokens` counts tokens swallowed by wildcard gaps and
    `unaligned_tokens` the leading and trailing tokens the pattern left
    untouched. Captured tokens are in `slots` as `(name, start, end)`.
    """

    literal_tokens: int
    gap_tokens: int
    slots: tuple[tuple[str, int, int], ...] = ()
    unaligned_tokens: int = 0


class Scorer(ABC):
    """Maps an alignment to a confidence in `[0.0, 1.0]`."""

    @abstractmethod
    def score(self, alignment: Alignment, utterance_length: int) -> float:
        """Return the confidence of `alignment`."""


class CoverageScorer(Scorer):
    """Fraction of uncaptured utterance tokens explained by literals.

    Captured words are the user's arguments and never count against a
    pattern; words in wildcard gaps or outside the aligned span do.
    """

    def score(self, alignment: Alignment, utterance_length: int) -> float:
        if alignment.literal_tokens <= 0 or utterance_length <= 0:
            return 0.0
        accounted = alignment.literal_tokens + alignment.gap_tokens + alignment.unaligned_tokens
        return min(1.0, alignment.literal_tokens / accounted)
