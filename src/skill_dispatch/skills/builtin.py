"""Built-in skills shipped with the dispatch core."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from datetime import datetime
from typing import Any

from skill_dispatch.errors import RenderingFailed
from skill_dispatch.grammar.spec import capture, literal, optional
from skill_dispatch.sections.registry import SectionRegistry
from skill_dispatch.skills.chain import SkillChain
from skill_dispatch.skills.registry import SkillContext, SkillRegistry
from skill_dispatch.skills.stages import (
    FunctionOutputStage,
    FunctionProcessStage,
    SectionRecognizeStage,
    Slots,
    run_blocking,
)
from skill_dispatch.types import RenderedItem, RenderedResult

LyricsClient = Callable[[str, str | None], Any]

BUILTIN_LOCALE = "en"

CURRENT_TIME_PATTERNS: list[list[Any]] = [
    ["what", "time", "is", "it", optional("now")],
    [literal("what's", "what is"), "the", "time", optional("now")],
    [optional("tell", "me"), "the", "time"],
]

LYRICS_PATTERNS: list[list[Any]] = [
    [
        optional(literal("show", "sing", "play", "find")),
        optional("me"),
        optional("the"),
        "lyrics",
        literal("of", "for", "to"),
        capture("song"),
        optional("by", capture("artist")),
    ],
    [
        literal("how", "what"),
        literal("does", "do"),
        capture("song"),
        optional("by", capture("artist")),
        "go",
    ],
]


def register_builtin_skills(
    skills: SkillRegistry,
    sections: SectionRegistry,
    *,
    lyrics_client: LyricsClient | None = None,
    clock: Callable[[], datetime] | None = None,
) -> None:
    """Register default skills and their sections.

    Skills:
    - `current_time`: tells the time from `clock` (defaults to `datetime.now`).
    - `lyrics`: fetches song lyrics through `lyrics_client(song, artist)`;
      unavailable when no client is configured.

    The default phrasings are English. A section already registered for the
    same skill under `BUILTIN_LOCALE` (e.g. loaded from a section file)
    replaces them; sections of other locales are left as they are.
    """

    now = clock or datetime.now

    if not sections.has("current_time", BUILTIN_LOCALE):
        sections.add("current_time", CURRENT_TIME_PATTERNS, BUILTIN_LOCALE)
    if not sections.has("lyrics", BUILTIN_LOCALE):
        sections.add("lyrics", LYRICS_PATTERNS, BUILTIN_LOCALE)

    def _read_clock(slots: Slots) -> datetime:
        del slots
        return now()

    def _render_time(moment: datetime) -> RenderedResult:
        return RenderedResult(
            title="Current time",
            body=f"It is {moment:%H:%M}.",
            metadata={"iso_time": moment.isoformat()},
        )

    def _build_current_time(context: SkillContext) -> SkillChain:
        return SkillChain(
            "current_time",
            recognize=SectionRecognizeStage(
                context.sections.get("current_time", context.locale), context.recognizer
            ),
            process=FunctionProcessStage(_read_clock),
            output=FunctionOutputStage(_render_time),
            config=context.config,
        )

    async def _fetch_lyrics(slots: Slots) -> dict[str, Any]:
        if lyrics_client is None:
            raise RuntimeError("lyrics client not configured")
        song = slots["song"].text
        artist = slots["artist"].text if "artist" in slots else None
        if inspect.iscoroutinefunction(lyrics_client):
            lyrics = await lyrics_client(song, artist)
        else:
            lyrics = await run_blocking(lyrics_client, song, artist)
        return {"song": song, "artist": artist, "lyrics": lyrics}

    def _render_lyrics(data: dict[str, Any]) -> RenderedResult:
        lyrics = str(data.get("lyrics") or "").strip()
        if not lyrics:
            raise RenderingFailed("lyrics", f"no lyrics found for {data['song']!r}")
        stanzas = [stanza.strip() for stanza in lyrics.split("\n\n") if stanza.strip()]
        title = data["song"] if not data["artist"] else f"{data['song']} by {data['artist']}"
        return RenderedResult(
            title=title,
            body=stanzas[0],
            items=[
                RenderedItem(title=f"Stanza {index}", body=stanza)
                for index, stanza in enumerate(stanzas, start=1)
            ],
            metadata={"song": data["song"], "artist": data["artist"]},
        )

    def _build_lyrics(context: SkillContext) -> SkillChain:
        return SkillChain(
            "lyrics",
            recognize=SectionRecognizeStage(
                context.sections.get("lyrics", context.locale), context.recognizer
            ),
            process=FunctionProcessStage(_fetch_lyrics),
            output=FunctionOutputStage(_render_lyrics),
            config=context.config,
        )

    skills.add("current_time", _build_current_time, name="Current time")
    skills.add(
        "lyrics",
        _build_lyrics,
        name="Lyrics",
        is_available=lambda context: lyrics_client is not None,
    )
