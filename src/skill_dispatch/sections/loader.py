"""Section sources: load pattern sets from section files."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from skill_dispatch.errors import InvalidPatternSpec
from skill_dispatch.grammar.notation import iter_pattern_lines, parse_line
from skill_dispatch.sections.registry import (
    DEFAULT_LOCALE,
    Section,
    SectionRegistry,
    build_section,
    normalize_locale,
)

logger = logging.getLogger(__name__)


class SectionSource(ABC):
    """Base parser interface used by the section loader."""

    extensions: tuple[str, ...] = ()

    @abstractmethod
    def parse(self, path: Path, locale: str = DEFAULT_LOCALE) -> Section:
        """Parse a file into a compiled section for `locale`."""


class NotationSectionSource(SectionSource):
    """One notation line per pattern; the file stem is the skill id."""

    extensions = (".sentences",)

    def parse(self, path: Path, locale: str = DEFAULT_LOCALE) -> Section:
        specs = []
        for number, line in iter_pattern_lines(path.read_text(encoding="utf-8")):
            try:
                specs.append(parse_line(line))
            except InvalidPatternSpec as exc:
                logger.warning("Skipping %s:%d: %s", path, number, exc)
        return build_section(path.stem, specs, locale)


class JsonSectionSource(SectionSource):
    """JSON object with `patterns` and optional `skill_id` and `locale`.

    Each pattern is either a list of element specifications or a string in
    sentence notation. A `locale` key overrides the locale implied by the
    file's location.
    """

    extensions = (".json",)

    def parse(self, path: Path, locale: str = DEFAULT_LOCALE) -> Section:
        payload: Any = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(payload, dict) or not isinstance(payload.get("patterns"), list):
            raise ValueError(f"Section file must be an object with a 'patterns' list: {path}")

        skill_id = str(payload.get("skill_id") or path.stem)
        specs: list[Any] = []
        for index, pattern in enumerate(payload["patterns"]):
            if isinstance(pattern, str):
                try:
                    specs.append(parse_line(pattern))
                except InvalidPatternSpec as exc:
                    logger.warning("Skipping pattern %d of %s: %s", index, path, exc)
            else:
                specs.append(pattern)
        return build_section(skill_id, specs, str(payload.get("locale") or locale))


class SectionLoader:
    """Maps file extension to section source implementation."""

    def __init__(self, sources: list[SectionSource] | None = None) -> None:
        self._sources: dict[str, SectionSource] = {}
        for source in sources or [NotationSectionSource(), JsonSectionSource()]:
            self.register(source)

    def register(self, source: SectionSource) -> None:
        for extension in source.extensions:
            self._sources[extension.lower()] = source

    def supports(self, path: str | Path) -> bool:
        return Path(path).suffix.lower() in self._sources

    def load_path(self, path: str | Path, locale: str = DEFAULT_LOCALE) -> Section:
        file_path = Path(path)
        source = self._sources.get(file_path.suffix.lower())
        if source is None:
            raise ValueError(f"No section source registered for extension: {file_path.suffix}")
        return source.parse(file_path, locale)

    def load_directory(
        self,
        directory: str | Path,
        registry: SectionRegistry,
        locale: str | None = None,
    ) -> list[Section]:
        """Register every supported file under `directory`, in name order.

        Files directly in `directory` belong to `locale` (the registry default
        when omitted). Each subdirectory holds the files of the locale it is
        named after, e.g. `en/`, `it/` or `pt_BR/`; subdirectories whose name
        is not a locale are skipped.

        Files that cannot be read or parsed are logged and skipped; duplicate
        skill ids within one locale still fail registration.
        """

        root = Path(directory)
        loaded = self._load_files(root, registry, locale or registry.default_locale)
        for child in sorted(root.iterdir()):
            if not child.is_dir():
                continue
            try:
                child_locale = normalize_locale(child.name)
            except ValueError:
                logger.warning("Skipping section directory %s: not a locale name", child)
                continue
            loaded.extend(self._load_files(child, registry, child_locale))
        return loaded

    def _load_files(self, directory: Path, registry: SectionRegistry, locale: str) -> list[Section]:
        loaded: list[Section] = []
        for path in sorted(directory.iterdir()):
            if not path.is_file() or not self.supports(path):
                continue
            try:
                section = self.load_path(path, locale)
            except (OSError, ValueError) as exc:
                logger.warning("Skipping section file %s: %s", path, exc)
                continue
            registry.register(section)
            loaded.append(section)
        return loaded
