"""Token-level pattern alignment and section scoring."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from skill_dispatch.grammar.compiler import (
    CaptureElement,
    Element,
    LiteralElement,
    OptionalElement,
    Pattern,
    WildcardElement,
    min_tokens,
)
from skill_dispatch.grammar.tokenizer import tokenize
from skill_dispatch.recognition.scoring import Alignment, CoverageScorer, Scorer
from skill_dispatch.types import MatchResult, SlotSpan, Utterance


class Recognizer:
    """Scores pattern sets against utterances.

    A pattern aligns with a contiguous run of the utterance; tokens before and
    after that run are left unaligned and count against the score, while a
    required literal that cannot be placed fails the pattern. Literal elements
    must match normalized tokens exactly; optional segments are tried included
    first, then skipped. Captures (at least one token) and wildcard gaps (zero
    or more) take the shortest run that still lets the rest of the pattern
    align, backing off to longer runs. Alignments starting at the first token
    are tried first. Every complete alignment is scored by the injected
    `Scorer`; the best one represents the pattern.

    The recognizer holds no per-call state, so one instance may score sections
    from several threads at once.
    """

    def __init__(self, scorer: Scorer | None = None) -> None:
        self.scorer = scorer or CoverageScorer()

    def match(self, patterns: Iterable[Pattern], utterance: Utterance | str) -> MatchResult:
        """Return the best match of any pattern in `patterns`.

        Higher score wins; on equal scores the earlier-declared pattern wins.
        A best score of 0 is reported as `MatchResult.no_match()`.
        """

        if isinstance(utterance, str):
            utterance = tokenize(utterance)
        if not utterance.tokens:
            return MatchResult.no_match()

        best_score = 0.0
        best: tuple[int, Pattern, Alignment] | None = None
        for index, pattern in enumerate(patterns):
            score, alignment = self.match_pattern(pattern, utterance)
            if alignment is not None and score > best_score:
                best_score = score
                best = (index, pattern, alignment)

        if best is None:
            return MatchResult.no_match()

        index, pattern, alignment = best
        return MatchResult(
            score=best_score,
            pattern=pattern,
            pattern_index=index,
            slots={
                name: SlotSpan(text=utterance.span_text(start, end), start=start, end=end)
                for name, start, end in alignment.slots
            },
        )

    def match_pattern(
        self, pattern: Pattern, utterance: Utterance
    ) -> tuple[float, Alignment | None]:
        """Score a single pattern; `(0.0, None)` when it cannot align."""
        best_score = 0.0
        best: Alignment | None = None
        for alignment in self.alignments(pattern, utterance):
            score = self.scorer.score(alignment, len(utterance))
            if score > best_score:
                best_score, best = score, alignment
                if score >= 1.0:
                    break
        return best_score, best

    def alignments(self, pattern: Pattern, utterance: Utterance) -> Iterator[Alignment]:
        """Yield every complete alignment in search order."""
        tokens = utterance.normalized
        for start in range(len(tokens) - min_tokens(pattern.elements) + 1):
            yield from self._walk(pattern.elements, tokens, start, 0, 0, (), start)

    def _walk(
        self,
        stack: tuple[Element, ...],
        tokens: tuple[str, ...],
        pos: int,
        literal: int,
        gap: int,
        slots: tuple[tuple[str, int, int], ...],
        start: int,
    ) -> Iterator[Alignment]:
        if not stack:
            yield Alignment(
                literal_tokens=literal,
                gap_tokens=gap,
                slots=slots,
                unaligned_tokens=start + len(tokens) - pos,
            )
            return

        head, rest = stack[0], stack[1:]
        if len(tokens) - pos < min_tokens(stack):
            return

        if isinstance(head, LiteralElement):
            for phrase in head.alternatives:
                end = pos + len(phrase)
                if tokens[pos:end] == phrase:
                    yield from self._walk(
                        rest, tokens, end, literal + len(phrase), gap, slots, start
                    )

        elif isinstance(head, OptionalElement):
            yield from self._walk(head.elements + rest, tokens, pos, literal, gap, slots, start)
            yield from self._walk(rest, tokens, pos, literal, gap, slots, start)

        elif isinstance(head, CaptureElement):
            last = len(tokens) - min_tokens(rest)
            for end in range(pos + 1, last + 1):
                bound = slots + ((head.name, pos, end),)
                yield from self._walk(rest, tokens, end, literal, gap, bound, start)

        elif isinstance(head, WildcardElement):
            last = len(tokens) - min_tokens(rest)
            for end in range(pos, last + 1):
                yield from self._walk(
                    rest, tokens, end, literal, gap + (end - pos), slots, start
                )
