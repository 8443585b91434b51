"""Declarative pattern specifications built on Pydantic v2 models.

A pattern specification is the parsed, in-memory form of one phrasing of an
intent. It is produced by the build-time sentence tooling, by section files
(see `skill_dispatch.sections.loader`), or directly in Python with the helper
constructors at the bottom of this module::

    ["play", capture("song_name"), "by", capture("artist")]

Bare strings are shorthand for a literal with a single alternative.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _expand_shorthand(items: Any) -> Any:
    if not isinstance(items, (list, tuple)):
        return items
    return [
        {"type": "literal", "words": [item]} if isinstance(item, str) else item
        for item in items
    ]


class LiteralSpec(BaseModel):
    """Matches one of several equivalent words or phrases."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["literal"] = "literal"
    words: list[str]


class OptionalSpec(BaseModel):
    """Matches its sub-pattern zero or one time."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["optional"] = "optional"
    elements: list["ElementSpec"]

    @field_validator("elements", mode="before")
    @classmethod
    def _strings_are_literals(cls, value: Any) -> Any:
        return _expand_shorthand(value)


class CaptureSpec(BaseModel):
    """Binds a run of tokens to a named slot."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["capture"] = "capture"
    name: str


class WildcardSpec(BaseModel):
    """Matches any run of tokens without binding them."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["wildcard"] = "wildcard"


ElementSpec = Annotated[
    Union[LiteralSpec, OptionalSpec, CaptureSpec, WildcardSpec],
    Field(discriminator="type"),
]

OptionalSpec.model_rebuild()


class PatternSpec(BaseModel):
    """Ordered element specifications for one phrasing."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    elements: list[ElementSpec]

    @field_validator("elements", mode="before")
    @classmethod
    def _strings_are_literals(cls, value: Any) -> Any:
        return _expand_shorthand(value)


def literal(*words: str) -> LiteralSpec:
    return LiteralSpec(words=list(words))


def optional(*elements: Any) -> OptionalSpec:
    return OptionalSpec(elements=list(elements))


def capture(name: str) -> CaptureSpec:
    return CaptureSpec(name=name)


def wildcard() -> WildcardSpec:
    return WildcardSpec()
