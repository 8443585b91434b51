"""Section registry: compiled pattern sets keyed by locale and skill identifier."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from skill_dispatch.errors import (
    DuplicateSkillId,
    InvalidPatternSpec,
    RegistrySealed,
    UnknownSkillId,
)
from skill_dispatch.grammar.compiler import Pattern, compile_pattern

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en"

_LOCALE_PATTERN = re.compile(r"^[a-z]{2,3}(?:-[a-z0-9]{2,8})*$")


def normalize_locale(locale: str) -> str:
    """Lower-case a locale tag and use `-` as separator (`en_US` -> `en-us`)."""
    normalized = locale.strip().replace("_", "-").lower()
    if not _LOCALE_PATTERN.match(normalized):
        raise ValueError(f"Invalid locale: {locale!r}")
    return normalized


def locale_fallbacks(locale: str) -> list[str]:
    """`zh-hant-tw` -> `["zh-hant-tw", "zh-hant", "zh"]`."""
    parts = normalize_locale(locale).split("-")
    return ["-".join(parts[:size]) for size in range(len(parts), 0, -1)]


@dataclass(slots=True, frozen=True)
class Section:
    """Alternative phrasings of one skill's intent, in priority order."""

    skill_id: str
    patterns: tuple[Pattern, ...]
    locale: str = DEFAULT_LOCALE

    def __iter__(self) -> Iterator[Pattern]:
        return iter(self.patterns)

    def __len__(self) -> int:
        return len(self.patterns)


def build_section(skill_id: str, specs: Iterable[Any], locale: str = DEFAULT_LOCALE) -> Section:
    """Compile `specs` into a section, skipping patterns that fail to compile."""
    locale = normalize_locale(locale)
    patterns: list[Pattern] = []
    for index, spec in enumerate(specs):
        try:
            patterns.append(compile_pattern(spec))
        except InvalidPatternSpec as exc:
            logger.warning("Skipping pattern %d of section %s/%s: %s", index, locale, skill_id, exc)
    return Section(skill_id=skill_id, patterns=tuple(patterns), locale=locale)


class SectionRegistry:
    """Holds one section per (locale, skill id).

    Lookups for a locale fall back to its language (`en-gb` -> `en`) and then
    to `default_locale`. Skill ids keep the order in which they were first
    registered, whatever the locale.

    Sections are registered during start-up; `seal()` marks initialization
    complete, after which the registry is read-only and safe to share across
    threads without locking.
    """

    def __init__(
        self,
        sections: Iterable[Section] | None = None,
        *,
        default_locale: str = DEFAULT_LOCALE,
    ) -> None:
        self.default_locale = normalize_locale(default_locale)
        self._locales: dict[str, dict[str, Section]] = {}
        self._skill_ids: dict[str, None] = {}
        self._sealed = False
        for section in sections or []:
            self.register(section)

    def register(self, section: Section) -> None:
        if self._sealed:
            raise RegistrySealed(f"Section registry is sealed; cannot add {section.skill_id}")
        locale = normalize_locale(section.locale)
        by_id = self._locales.setdefault(locale, {})
        if section.skill_id in by_id:
            raise DuplicateSkillId(section.skill_id)
        by_id[section.skill_id] = section
        self._skill_ids.setdefault(section.skill_id, None)
        logger.info(
            "Registered section %s/%s (%d patterns)", locale, section.skill_id, len(section)
        )

    def add(self, skill_id: str, specs: Iterable[Any], locale: str | None = None) -> Section:
        """Compile and register a section in one step."""
        section = build_section(skill_id, specs, locale or self.default_locale)
        self.register(section)
        return section

    def find(self, skill_id: str, locale: str | None = None) -> Section | None:
        for candidate in self._resolution_order(locale):
            section = self._locales.get(candidate, {}).get(skill_id)
            if section is not None:
                return section
        return None

    def get(self, skill_id: str, locale: str | None = None) -> Section:
        section = self.find(skill_id, locale)
        if section is None:
            raise UnknownSkillId(skill_id)
        return section

    def has(self, skill_id: str, locale: str) -> bool:
        """Whether `locale` itself, without fallback, defines `skill_id`."""
        return skill_id in self._locales.get(normalize_locale(locale), {})

    def sections(self, locale: str | None = None) -> list[Section]:
        """The section resolved for `locale` of every skill id, in registration order."""
        resolved = (self.find(skill_id, locale) for skill_id in self._skill_ids)
        return [section for section in resolved if section is not None]

    def locales(self) -> list[str]:
        return list(self._locales)

    def seal(self) -> None:
        self._sealed = True
        logger.info(
            "Section registry sealed with %d sections in %d locales",
            len(self._skill_ids),
            len(self._locales),
        )

    @property
    def sealed(self) -> bool:
        return self._sealed

    def _resolution_order(self, locale: str | None) -> list[str]:
        order = locale_fallbacks(locale) if locale else []
        for fallback in locale_fallbacks(self.default_locale):
            if fallback not in order:
                order.append(fallback)
        return order

    def __contains__(self, skill_id: object) -> bool:
        return skill_id in self._skill_ids

    def __len__(self) -> int:
        return len(self._skill_ids)
