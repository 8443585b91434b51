"""Skill registry built on Pydantic v2 models."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from skill_dispatch.config import ChainConfig
from skill_dispatch.errors import DuplicateSkillId, RegistrySealed, UnknownSkillId
from skill_dispatch.recognition.recognizer import Recognizer
from skill_dispatch.sections.registry import DEFAULT_LOCALE, SectionRegistry
from skill_dispatch.skills.chain import SkillChain

logger = logging.getLogger(__name__)


def is_enabled_preference_key(skill_id: str) -> str:
    return f"skills_handler_is_enabled_{skill_id}"


@dataclass(slots=True, frozen=True)
class SkillContext:
    """Runtime configuration handed to skill factories.

    `locale` is the locale of the dispatch the chain is built for; factories
    look up their section with `sections.get(skill_id, locale)`.
    """

    sections: SectionRegistry
    locale: str = DEFAULT_LOCALE
    recognizer: Recognizer = field(default_factory=Recognizer)
    config: ChainConfig = field(default_factory=ChainConfig)
    preferences: Mapping[str, Any] = field(default_factory=dict)


class SettingEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    kind: Literal["bool", "text", "choice"] = "text"
    default: Any = None
    choices: list[str] = Field(default_factory=list)


class SettingsDescriptor(BaseModel):
    """Settings a host UI may offer for a skill. Never read by dispatch."""

    model_config = ConfigDict(frozen=True)

    title: str
    entries: list[SettingEntry] = Field(default_factory=list)


class SkillInfo(BaseModel):
    """Declarative skill metadata plus the factory that builds its chain."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    id: str = Field(min_length=1)
    name: str
    enabled: bool = True
    build: Callable[[SkillContext], SkillChain]
    is_available: Callable[[SkillContext], bool] | None = None
    settings: SettingsDescriptor | None = None

    def available(self, context: SkillContext) -> bool:
        return self.is_available is None or bool(self.is_available(context))

    def create(self, context: SkillContext) -> SkillChain:
        chain = self.build(context)
        if not isinstance(chain, SkillChain):
            raise TypeError(f"Skill {self.id!r} factory did not return a SkillChain")
        return chain


class SkillRegistry:
    """Stores skill infos in registration order and builds their chains."""

    def __init__(self) -> None:
        self._skills: dict[str, SkillInfo] = {}
        self._sealed = False

    def register(self, info: SkillInfo) -> None:
        if self._sealed:
            raise RegistrySealed(f"Skill registry is sealed; cannot add {info.id}")
        if info.id in self._skills:
            raise DuplicateSkillId(info.id)
        self._skills[info.id] = info
        logger.info("Registered skill %s (%s)", info.id, info.name)

    def add(
        self,
        skill_id: str,
        build: Callable[[SkillContext], SkillChain],
        *,
        name: str | None = None,
        enabled: bool = True,
        is_available: Callable[[SkillContext], bool] | None = None,
        settings: SettingsDescriptor | None = None,
    ) -> SkillInfo:
        info = SkillInfo(
            id=skill_id,
            name=name or skill_id.replace("_", " ").title(),
            enabled=enabled,
            build=build,
            is_available=is_available,
            settings=settings,
        )
        self.register(info)
        return info

    def resolve(self, skill_id: str) -> SkillInfo:
        info = self._skills.get(skill_id)
        if info is None:
            raise UnknownSkillId(skill_id)
        return info

    def infos(self) -> list[SkillInfo]:
        return list(self._skills.values())

    def available_infos(self, context: SkillContext) -> list[SkillInfo]:
        return [info for info in self._skills.values() if info.available(context)]

    def is_enabled(self, info: SkillInfo, context: SkillContext) -> bool:
        """Availability plus the user's preference, defaulting to `info.enabled`."""
        if not info.available(context):
            return False
        preference = context.preferences.get(is_enabled_preference_key(info.id))
        return info.enabled if preference is None else bool(preference)

    def enabled_infos(self, context: SkillContext) -> list[SkillInfo]:
        return [info for info in self._skills.values() if self.is_enabled(info, context)]

    def build(self, skill_id: str, context: SkillContext) -> SkillChain:
        return self.resolve(skill_id).create(context)

    def seal(self) -> None:
        self._sealed = True
        logger.info("Skill registry sealed with %d skills", len(self._skills))

    @property
    def sealed(self) -> bool:
        return self._sealed

    def __contains__(self, skill_id: object) -> bool:
        return skill_id in self._skills

    def __len__(self) -> int:
        return len(self._skills)
