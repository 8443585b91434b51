"""Compiles declarative pattern specifications into immutable matchers."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Union

from pydantic import ValidationError

from skill_dispatch.errors import InvalidPatternSpec
from skill_dispatch.grammar.spec import (
    CaptureSpec,
    LiteralSpec,
    OptionalSpec,
    PatternSpec,
    WildcardSpec,
)
from skill_dispatch.grammar.tokenizer import normalize_phrase


@dataclass(slots=True, frozen=True)
class LiteralElement:
    alternatives: tuple[tuple[str, ...], ...]

    def __str__(self) -> str:
        phrases = [" ".join(phrase) for phrase in self.alternatives]
        if len(phrases) == 1:
            return phrases[0]
        return "(" + "|".join(phrases) + ")"


@dataclass(slots=True, frozen=True)
class OptionalElement:
    elements: tuple["Element", ...]

    def __str__(self) -> str:
        return "[" + " ".join(str(element) for element in self.elements) + "]"


@dataclass(slots=True, frozen=True)
class CaptureElement:
    name: str

    def __str__(self) -> str:
        return f".{self.name}."


@dataclass(slots=True, frozen=True)
class WildcardElement:
    def __str__(self) -> str:
        return "*"


Element = Union[LiteralElement, OptionalElement, CaptureElement, WildcardElement]


@dataclass(slots=True, frozen=True)
class Pattern:
    """A compiled phrasing: an ordered tuple of elements."""

    elements: tuple[Element, ...]
    slot_names: tuple[str, ...]

    def __str__(self) -> str:
        return " ".join(str(element) for element in self.elements)


def min_tokens(elements: Sequence[Element]) -> int:
    """Smallest number of utterance tokens `elements` can align with."""
    total = 0
    for element in elements:
        if isinstance(element, LiteralElement):
            total += min(len(phrase) for phrase in element.alternatives)
        elif isinstance(element, CaptureElement):
            total += 1
    return total


def compile_pattern(spec: PatternSpec | Sequence[Any]) -> Pattern:
    """Compile one pattern specification.

    Raises:
        InvalidPatternSpec: when the pattern is malformed, an element
            type is unrecognized, or a capture name repeats.
    """

    if isinstance(spec, str):
        raise InvalidPatternSpec(
            "Pattern specification must be a sequence of elements, not a string"
        )
    if not isinstance(spec, PatternSpec):
        try:
            spec = PatternSpec.model_validate({"elements": list(spec)})
        except ValidationError as exc:
            first = exc.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise InvalidPatternSpec(
                f"Malformed pattern element at {location}: {first['msg']}"
            ) from exc
        except TypeError as exc:
            raise InvalidPatternSpec(f"Malformed pattern specification: {exc}") from exc

    if not spec.elements:
        raise InvalidPatternSpec("Pattern has no elements")

    slot_names: list[str] = []
    elements = tuple(_compile_element(item, slot_names) for item in spec.elements)
    return Pattern(elements=elements, slot_names=tuple(slot_names))


def _compile_element(item: Any, slot_names: list[str]) -> Element:
    if isinstance(item, LiteralSpec):
        if not item.words:
            raise InvalidPatternSpec("Literal has no alternatives")
        alternatives: list[tuple[str, ...]] = []
        for word in item.words:
            phrase = normalize_phrase(word)
            if not phrase:
                raise InvalidPatternSpec(f"Literal alternative has no words: {word!r}")
            if phrase not in alternatives:
                alternatives.append(phrase)
        return LiteralElement(alternatives=tuple(alternatives))

    if isinstance(item, OptionalSpec):
        if not item.elements:
            raise InvalidPatternSpec("Optional segment is empty")
        return OptionalElement(
            elements=tuple(_compile_element(child, slot_names) for child in item.elements)
        )

    if isinstance(item, CaptureSpec):
        if not item.name.isidentifier():
            raise InvalidPatternSpec(f"Invalid capture name: {item.name!r}")
        if item.name in slot_names:
            raise InvalidPatternSpec(f"Duplicate capture name: {item.name}")
        slot_names.append(item.name)
        return CaptureElement(name=item.name)

    if isinstance(item, WildcardSpec):
        return WildcardElement()

    raise InvalidPatternSpec(f"Unrecognized pattern element: {type(item).__name__}")
