"""Three-stage skill chain: recognize -> process -> output.

The chain is a type-state machine. `SkillChain` is the idle chain; a
successful recognition returns a `RecognizedChain`, whose `process()` returns
a `ProcessedChain`, whose `output()` returns the `RenderedResult`. Each step
object can be advanced once. Because `output()` only exists on
`ProcessedChain`, rendering before processing cannot be expressed.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any

from skill_dispatch.config import ChainConfig
from skill_dispatch.errors import (
    ChainFailure,
    ProcessingFailed,
    ProcessingTimedOut,
    RenderingFailed,
)
from skill_dispatch.grammar.tokenizer import tokenize
from skill_dispatch.skills.stages import OutputStage, ProcessStage, RecognizeStage
from skill_dispatch.types import MatchResult, RenderedResult, Utterance

logger = logging.getLogger(__name__)


class ChainState(str, Enum):
    IDLE = "idle"
    RECOGNIZED = "recognized"
    PROCESSED = "processed"
    RENDERED = "rendered"
    FAILED = "failed"


class SkillChain:
    """Binds the three stages of one skill instance.

    All three stages are required at construction. The chain keeps no state
    between calls, so one instance may serve concurrent dispatches as long as
    its stages do not mutate shared data.
    """

    def __init__(
        self,
        skill_id: str,
        recognize: RecognizeStage,
        process: ProcessStage,
        output: OutputStage,
        config: ChainConfig | None = None,
    ) -> None:
        for name, stage, expected in (
            ("recognize", recognize, RecognizeStage),
            ("process", process, ProcessStage),
            ("output", output, OutputStage),
        ):
            if not isinstance(stage, expected):
                raise TypeError(
                    f"SkillChain {skill_id!r} requires a {expected.__name__} for {name}"
                )
        self.skill_id = skill_id
        self.recognize_stage = recognize
        self.process_stage = process
        self.output_stage = output
        self.config = config or ChainConfig()

    @property
    def state(self) -> ChainState:
        return ChainState.IDLE

    def recognize(self, utterance: Utterance | str) -> RecognizedChain | None:
        """Run the recognize stage; `None` when the score does not clear the threshold."""
        if isinstance(utterance, str):
            utterance = tokenize(utterance)
        return self.accept(self.recognize_stage.recognize(utterance))

    def accept(self, match: MatchResult) -> RecognizedChain | None:
        """Enter `RECOGNIZED` with a match computed elsewhere (e.g. by the dispatcher)."""
        if not match.matched or match.score <= self.config.acceptance_threshold:
            return None
        return RecognizedChain(self, match)

    async def run(self, utterance: Utterance | str) -> RenderedResult | None:
        """Recognize, process and render in one call.

        Returns `None` on no-match; raises `ChainFailure` subclasses on failure.
        """
        recognized = self.recognize(utterance)
        if recognized is None:
            return None
        processed = await recognized.process()
        return processed.output()


class _Step:
    def __init__(self, chain: SkillChain, state: ChainState) -> None:
        self.chain = chain
        self._state = state
        self._advanced = False

    @property
    def state(self) -> ChainState:
        return self._state

    def _claim(self) -> None:
        if self._advanced:
            raise RuntimeError(
                f"Chain step of {self.chain.skill_id!r} already advanced ({self._state.value})"
            )
        self._advanced = True


class RecognizedChain(_Step):
    """A chain whose utterance was accepted; holds the match and its slots."""

    def __init__(self, chain: SkillChain, match: MatchResult) -> None:
        super().__init__(chain, ChainState.RECOGNIZED)
        self.match = match

    async def process(self) -> ProcessedChain:
        """Run the process stage under the configured timeout.

        Raises:
            ProcessingTimedOut: the stage exceeded `process_timeout_seconds`.
            ProcessingFailed: the stage raised.
        """

        self._claim()
        skill_id = self.chain.skill_id
        timeout = self.chain.config.process_timeout_seconds
        task = asyncio.ensure_future(self.chain.process_stage.process(self.match.slots))
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            task.cancel()
            self._state = ChainState.FAILED
            logger.debug("Chain %s cancelled while processing", skill_id)
            raise

        if task not in done:
            task.cancel()
            self._state = ChainState.FAILED
            raise ProcessingTimedOut(skill_id, timeout)

        try:
            data = task.result()
        except ChainFailure:
            self._state = ChainState.FAILED
            raise
        except Exception as exc:
            self._state = ChainState.FAILED
            raise ProcessingFailed(skill_id, str(exc) or type(exc).__name__) from exc

        self._state = ChainState.PROCESSED
        return ProcessedChain(self.chain, self.match, data)


class ProcessedChain(_Step):
    """A chain holding processed data, ready to render."""

    def __init__(self, chain: SkillChain, match: MatchResult, data: Any) -> None:
        super().__init__(chain, ChainState.PROCESSED)
        self.match = match
        self.data = data

    def output(self) -> RenderedResult:
        """Run the output stage.

        Raises:
            RenderingFailed: the stage raised or returned no `RenderedResult`.
        """

        self._claim()
        skill_id = self.chain.skill_id
        try:
            result = self.chain.output_stage.output(self.data)
        except ChainFailure:
            self._state = ChainState.FAILED
            raise
        except Exception as exc:
            self._state = ChainState.FAILED
            raise RenderingFailed(skill_id, str(exc) or type(exc).__name__) from exc

        if not isinstance(result, RenderedResult):
            self._state = ChainState.FAILED
            raise RenderingFailed(skill_id, "output stage returned no rendered result")

        self._state = ChainState.RENDERED
        return result
