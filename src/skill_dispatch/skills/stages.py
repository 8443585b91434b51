"""Stage interfaces every skill implements, plus function adapters."""

from __future__ import annotations

import asyncio
import contextvars
import functools
import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from skill_dispatch.recognition.recognizer import Recognizer
from skill_dispatch.sections.registry import Section
from skill_dispatch.types import MatchResult, RenderedResult, SlotSpan, Utterance

Slots = Mapping[str, SlotSpan]

# Kept off the loop's default executor, which `asyncio.run` joins on exit.
_BLOCKING_POOL = ThreadPoolExecutor(thread_name_prefix="skill-process")


async def run_blocking(func: Callable[..., Any], *args: Any) -> Any:
    """Run a blocking callable in the shared skill worker pool and await it."""
    loop = asyncio.get_running_loop()
    context = contextvars.copy_context()
    call = functools.partial(context.run, func, *args)
    return await loop.run_in_executor(_BLOCKING_POOL, call)


class RecognizeStage(ABC):
    @abstractmethod
    def recognize(self, utterance: Utterance) -> MatchResult:
        """Score `utterance` for this skill."""


class ProcessStage(ABC):
    @abstractmethod
    async def process(self, slots: Slots) -> Any:
        """Fetch or compute the data the output stage renders.

        This is the only stage expected to block on I/O; it runs under the
        chain's timeout and may be cancelled.
        """


class OutputStage(ABC):
    @abstractmethod
    def output(self, data: Any) -> RenderedResult:
        """Build the renderer-agnostic result from processed data."""


class SectionRecognizeStage(RecognizeStage):
    """Recognizes a skill through its compiled section."""

    def __init__(self, section: Section, recognizer: Recognizer | None = None) -> None:
        self.section = section
        self.recognizer = recognizer or Recognizer()

    def recognize(self, utterance: Utterance) -> MatchResult:
        return self.recognizer.match(self.section, utterance)


class FunctionProcessStage(ProcessStage):
    """Wraps a callable taking the slots mapping.

    Coroutine functions are awaited; plain functions run in a worker thread so
    blocking I/O does not stall the event loop.
    """

    def __init__(self, func: Callable[[Slots], Any]) -> None:
        self.func = func

    async def process(self, slots: Slots) -> Any:
        if inspect.iscoroutinefunction(self.func):
            return await self.func(slots)
        result = await run_blocking(self.func, slots)
        if inspect.isawaitable(result):
            return await result
        return result


class FunctionOutputStage(OutputStage):
    def __init__(self, func: Callable[[Any], RenderedResult]) -> None:
        self.func = func

    def output(self, data: Any) -> RenderedResult:
        return self.func(data)
