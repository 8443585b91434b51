from collections.abc import Callable
from typing import Any

import pytest

from skill_dispatch.grammar.spec import capture, optional
from skill_dispatch.sections.registry import SectionRegistry
from skill_dispatch.skills.chain import SkillChain
from skill_dispatch.skills.registry import SkillContext
from skill_dispatch.skills.stages import (
    FunctionOutputStage,
    FunctionProcessStage,
    SectionRecognizeStage,
)
from skill_dispatch.types import RenderedResult

MUSIC_PATTERNS = [
    ["play", capture("song_name"), "by", capture("artist")],
    ["play", capture("song_name")],
]
WEATHER_PATTERNS = [
    [optional("what's", "the"), "weather", optional("today")],
]


@pytest.fixture
def sections() -> SectionRegistry:
    registry = SectionRegistry()
    registry.add("music", MUSIC_PATTERNS)
    registry.add("weather", WEATHER_PATTERNS)
    return registry


def _echo_slots(slots: Any) -> dict[str, str]:
    return {name: span.text for name, span in slots.items()}


def _echo_output(data: dict[str, str]) -> RenderedResult:
    return RenderedResult(title="echo", body=" ".join(data.values()), metadata={"slots": data})


@pytest.fixture
def chain_factory() -> Callable[..., Callable[[SkillContext], SkillChain]]:
    """Return a builder of skill factories with pluggable process/output functions."""

    def _factory(
        skill_id: str,
        process: Callable[[Any], Any] = _echo_slots,
        output: Callable[[Any], RenderedResult] = _echo_output,
    ) -> Callable[[SkillContext], SkillChain]:
        def _build(context: SkillContext) -> SkillChain:
            return SkillChain(
                skill_id,
                recognize=SectionRecognizeStage(
                    context.sections.get(skill_id, context.locale), context.recognizer
                ),
                process=FunctionProcessStage(process),
                output=FunctionOutputStage(output),
                config=context.config,
            )

        return _build

    return _factory
