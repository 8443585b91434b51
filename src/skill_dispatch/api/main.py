"""FastAPI entrypoint for select/dispatch/skills/trace endpoints."""

from __future__ import annotations

import os
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from skill_dispatch.config import ChainConfig, DispatchConfig
from skill_dispatch.dispatch.dispatcher import Dispatcher
from skill_dispatch.obs.log import configure_logging
from skill_dispatch.sections.loader import SectionLoader
from skill_dispatch.sections.registry import SectionRegistry
from skill_dispatch.skills.builtin import register_builtin_skills
from skill_dispatch.skills.fallback import fallback_result
from skill_dispatch.skills.registry import SkillRegistry, is_enabled_preference_key


def _load_config() -> DispatchConfig:
    chain = ChainConfig(
        acceptance_threshold=float(os.getenv("SKILL_DISPATCH_THRESHOLD", "0.5")),
        process_timeout_seconds=float(os.getenv("SKILL_DISPATCH_TIMEOUT", "10.0")),
    )
    return DispatchConfig(chain=chain)


def _disabled_preferences() -> dict[str, bool]:
    raw = os.getenv("SKILL_DISPATCH_DISABLED", "")
    return {
        is_enabled_preference_key(skill_id.strip()): False
        for skill_id in raw.split(",")
        if skill_id.strip()
    }


class UtteranceRequest(BaseModel):
    utterance: str = Field(max_length=2000)
    locale: str | None = Field(default=None, pattern=r"^[A-Za-z]{2,3}([_-][A-Za-z0-9]{2,8})*$")


def _pattern_count(skill_id: str, locale: str) -> int:
    section = _sections.find(skill_id, locale)
    return len(section) if section is not None else 0


configure_logging(os.getenv("SKILL_DISPATCH_LOG_LEVEL", "INFO"))

app = FastAPI(title="Skill Dispatch", version="0.1.0")

_sections = SectionRegistry()
_sections_dir = os.getenv("SKILL_DISPATCH_SECTIONS_DIR")
if _sections_dir:
    SectionLoader().load_directory(_sections_dir, _sections)
_skills = SkillRegistry()
register_builtin_skills(_skills, _sections)
_sections.seal()
_skills.seal()

_dispatcher = Dispatcher(
    _sections,
    _skills,
    config=_load_config(),
    preferences=_disabled_preferences(),
    locale=os.getenv("SKILL_DISPATCH_LOCALE") or None,
)


@app.get("/health")
def health() -> dict[str, Any]:
    return {
        "status": "ok",
        "skills": len(_skills),
        "enabled_skills": len(_skills.enabled_infos(_dispatcher.context)),
        "sections": len(_sections),
        "locale": _dispatcher.locale,
        "locales": _sections.locales(),
        "trace_count": len(_dispatcher.trace_store.list_recent(limit=1000)),
    }


@app.get("/skills")
def skills() -> dict[str, Any]:
    context = _dispatcher.context
    return {
        "items": [
            {
                "id": info.id,
                "name": info.name,
                "available": info.available(context),
                "enabled": _skills.is_enabled(info, context),
                "patterns": _pattern_count(info.id, context.locale),
                "settings": info.settings.model_dump() if info.settings else None,
            }
            for info in _skills.infos()
        ]
    }


@app.post("/select")
def select(request: UtteranceRequest) -> dict[str, Any]:
    selected = _dispatcher.select(request.utterance, request.locale)
    if selected is None:
        return {"matched": False}
    skill_id, match = selected
    return {
        "matched": True,
        "skill_id": skill_id,
        "score": match.score,
        "pattern": str(match.pattern),
        "slots": {name: span.text for name, span in match.slots.items()},
    }


@app.post("/dispatch")
async def dispatch(request: UtteranceRequest) -> dict[str, Any]:
    result, trace = await _dispatcher.dispatch_traced(request.utterance, request.locale)
    if result is None:
        return {
            "fallback": True,
            "outcome": trace.outcome.value,
            "trace_id": trace.trace_id,
            "result": asdict(fallback_result(request.utterance)),
        }
    return {
        "fallback": False,
        "outcome": trace.outcome.value,
        "trace_id": trace.trace_id,
        "result": asdict(result),
    }


@app.get("/traces")
def traces(limit: int = 20) -> dict[str, Any]:
    records = [asdict(record) for record in _dispatcher.trace_store.list_recent(limit=limit)]
    return {"items": records}


@app.get("/traces/{trace_id}")
def trace_detail(trace_id: str) -> dict[str, Any]:
    try:
        record = _dispatcher.trace_store.get(trace_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return asdict(record)


@app.get("/metrics")
def metrics() -> dict[str, Any]:
    return _dispatcher.trace_store.summary()
