"""Dispatcher: resolve one utterance to the best skill and run its chain."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Any

from skill_dispatch.config import DispatchConfig
from skill_dispatch.errors import (
    ChainFailure,
    ProcessingFailed,
    ProcessingTimedOut,
    RenderingFailed,
)
from skill_dispatch.grammar.tokenizer import tokenize
from skill_dispatch.obs.tracing import DispatchTrace, Outcome, Timer, TraceStore
from skill_dispatch.recognition.recognizer import Recognizer
from skill_dispatch.sections.registry import Section, SectionRegistry, normalize_locale
from skill_dispatch.skills.registry import SkillContext, SkillRegistry
from skill_dispatch.types import MatchResult, RenderedResult, Utterance

logger = logging.getLogger(__name__)


class Dispatcher:
    """Scores every candidate section and runs the winning skill chain.

    When a `SkillRegistry` is attached, only sections of registered, available
    and enabled skills take part. Without one, every section is scored and
    only `select()` is meaningful.

    Sections are resolved for `locale` (the section registry's default when
    omitted); every selection and dispatch call may override it.
    """

    def __init__(
        self,
        sections: SectionRegistry,
        skills: SkillRegistry | None = None,
        *,
        recognizer: Recognizer | None = None,
        config: DispatchConfig | None = None,
        preferences: Mapping[str, Any] | None = None,
        trace_store: TraceStore | None = None,
        locale: str | None = None,
    ) -> None:
        self.sections = sections
        self.skills = skills
        self.recognizer = recognizer or Recognizer()
        self.config = config or DispatchConfig()
        self.trace_store = trace_store or TraceStore(limit=self.config.trace_limit)
        self.locale = normalize_locale(locale or sections.default_locale)
        self.context = SkillContext(
            sections=sections,
            locale=self.locale,
            recognizer=self.recognizer,
            config=self.config.chain,
            preferences=dict(preferences or {}),
        )

    def context_for(self, locale: str | None = None) -> SkillContext:
        if locale is None:
            return self.context
        locale = normalize_locale(locale)
        return self.context if locale == self.locale else replace(self.context, locale=locale)

    def candidates(self, locale: str | None = None) -> list[Section]:
        """Sections eligible for scoring, in registration order."""
        context = self.context_for(locale)
        sections = self.sections.sections(context.locale)
        if self.skills is None:
            return sections
        enabled = {info.id for info in self.skills.enabled_infos(context)}
        return [section for section in sections if section.skill_id in enabled]

    def select(
        self, utterance: Utterance | str, locale: str | None = None
    ) -> tuple[str, MatchResult] | None:
        """Return the best `(skill_id, match)` scoring above the acceptance threshold.

        Equal scores keep the section registered first. `None` means no match,
        which is an ordinary outcome.
        """

        if isinstance(utterance, str):
            utterance = tokenize(utterance)
        sections = self.candidates(locale)
        if not utterance.tokens or not sections:
            return None

        if self.config.scoring_workers > 1 and len(sections) > 1:
            with ThreadPoolExecutor(max_workers=self.config.scoring_workers) as pool:
                matches = list(
                    pool.map(lambda section: self.recognizer.match(section, utterance), sections)
                )
        else:
            matches = [self.recognizer.match(section, utterance) for section in sections]

        threshold = self.config.chain.acceptance_threshold
        best: tuple[str, MatchResult] | None = None
        for section, match in zip(sections, matches, strict=True):
            if not match.matched or match.score <= threshold:
                continue
            if best is None or match.score > best[1].score:
                best = (section.skill_id, match)

        if best is not None:
            logger.debug("Selected %s with score %.3f", best[0], best[1].score)
        return best

    async def dispatch(self, text: str, locale: str | None = None) -> RenderedResult | None:
        """Resolve `text` to a rendered result, or `None` when nothing usable came out."""
        result, _ = await self.dispatch_traced(text, locale)
        return result

    def dispatch_sync(self, text: str, locale: str | None = None) -> RenderedResult | None:
        return asyncio.run(self.dispatch(text, locale))

    async def dispatch_traced(
        self, text: str, locale: str | None = None
    ) -> tuple[RenderedResult | None, DispatchTrace]:
        """Like `dispatch`, also returning the trace recorded for the call."""
        context = self.context_for(locale)
        skill_id: str | None = None
        match: MatchResult | None = None
        result: RenderedResult | None = None
        outcome = Outcome.NO_MATCH
        error: str | None = None

        with Timer() as timer:
            selected = self.select(tokenize(text), context.locale)
            if selected is not None:
                skill_id, match = selected
                try:
                    result = await self._run_chain(skill_id, match, context)
                except ChainFailure as exc:
                    outcome = _failure_outcome(exc)
                    error = exc.reason
                    logger.info("Dispatch to %s failed (%s): %s", skill_id, outcome.value, exc.reason)
                else:
                    outcome = Outcome.RENDERED if result is not None else Outcome.NO_MATCH
            else:
                logger.debug("No skill matched %r", text)

        if result is not None and skill_id is not None and match is not None:
            result.metadata.setdefault("skill_id", skill_id)
            result.metadata.setdefault("score", match.score)

        trace = self.trace_store.create_record(
            utterance=text,
            outcome=outcome,
            latency_ms=timer.elapsed_ms,
            skill_id=skill_id,
            score=match.score if match is not None else 0.0,
            slots={name: span.text for name, span in match.slots.items()} if match else {},
            error=error,
            locale=context.locale,
        )
        return result, trace

    async def _run_chain(
        self, skill_id: str, match: MatchResult, context: SkillContext
    ) -> RenderedResult | None:
        if self.skills is None:
            return None
        try:
            chain = self.skills.build(skill_id, context)
        except Exception as exc:
            logger.exception("Building skill %s failed", skill_id)
            raise ProcessingFailed(skill_id, f"skill could not be built: {exc}") from exc
        recognized = chain.accept(match)
        if recognized is None:
            return None
        processed = await recognized.process()
        return processed.output()


def _failure_outcome(exc: ChainFailure) -> Outcome:
    if isinstance(exc, ProcessingTimedOut):
        return Outcome.PROCESSING_TIMED_OUT
    if isinstance(exc, RenderingFailed):
        return Outcome.RENDERING_FAILED
    return Outcome.PROCESSING_FAILED
