import asyncio
from datetime import datetime

import pytest

from skill_dispatch.dispatch.dispatcher import Dispatcher
from skill_dispatch.grammar.notation import parse_line
from skill_dispatch.obs.tracing import Outcome
from skill_dispatch.sections.registry import SectionRegistry
from skill_dispatch.skills.builtin import register_builtin_skills
from skill_dispatch.skills.registry import SkillRegistry


def _dispatcher(**kwargs) -> Dispatcher:
    sections = SectionRegistry()
    skills = SkillRegistry()
    register_builtin_skills(skills, sections, **kwargs)
    return Dispatcher(sections, skills)


def test_current_time_uses_injected_clock() -> None:
    dispatcher = _dispatcher(clock=lambda: datetime(2024, 5, 1, 14, 5))

    result = dispatcher.dispatch_sync("What time is it?")

    assert result is not None
    assert result.title == "Current time"
    assert result.body == "It is 14:05."
    assert result.metadata["skill_id"] == "current_time"


def test_lyrics_skill_unavailable_without_client() -> None:
    dispatcher = _dispatcher()

    assert [section.skill_id for section in dispatcher.candidates()] == ["current_time"]
    assert dispatcher.dispatch_sync("show me the lyrics of yesterday") is None


def test_lyrics_skill_renders_stanzas() -> None:
    calls = []

    def _client(song: str, artist: str | None) -> str:
        calls.append((song, artist))
        return "Yesterday, all my troubles seemed so far away\n\nSuddenly, I'm not half the man"

    dispatcher = _dispatcher(lyrics_client=_client)

    result = dispatcher.dispatch_sync("show me the lyrics of Yesterday by The Beatles")

    assert calls == [("Yesterday", "The Beatles")]
    assert result is not None
    assert result.title == "Yesterday by The Beatles"
    assert [item.title for item in result.items] == ["Stanza 1", "Stanza 2"]
    assert result.body.startswith("Yesterday, all my troubles")


def test_empty_lyrics_fail_rendering() -> None:
    async def _client(song: str, artist: str | None) -> str:
        return ""

    dispatcher = _dispatcher(lyrics_client=_client)

    result, trace = asyncio.run(dispatcher.dispatch_traced("lyrics of silence"))

    assert result is None
    assert trace.outcome is Outcome.RENDERING_FAILED


def test_preloaded_section_replaces_default_phrasings() -> None:
    sections = SectionRegistry()
    sections.add("current_time", [parse_line("clock [please]")])
    skills = SkillRegistry()
    register_builtin_skills(skills, sections, clock=lambda: datetime(2024, 1, 1, 9, 30))
    dispatcher = Dispatcher(sections, skills)

    assert dispatcher.dispatch_sync("what time is it") is None
    assert dispatcher.dispatch_sync("clock please").body == "It is 09:30."


def test_filler_word_still_selects_current_time() -> None:
    dispatcher = _dispatcher()

    exact = dispatcher.select("what time is it")
    polite = dispatcher.select("what time is it please")

    assert exact is not None and exact[1].score == 1.0
    assert polite is not None
    assert polite[0] == "current_time"
    assert polite[1].score == pytest.approx(0.8)
