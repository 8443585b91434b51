"""Text fallback shown when no skill produced a result."""

from __future__ import annotations

from skill_dispatch.types import RenderedResult


def fallback_result(utterance: str) -> RenderedResult:
    text = utterance.strip()
    body = (
        f"I could not understand “{text}”."
        if text
        else "I did not hear anything."
    )
    return RenderedResult(
        title="Sorry",
        body=body,
        metadata={"fallback": True},
    )
