import pytest

from skill_dispatch.errors import InvalidPatternSpec
from skill_dispatch.grammar.compiler import (
    CaptureElement,
    LiteralElement,
    OptionalElement,
    WildcardElement,
    compile_pattern,
)
from skill_dispatch.grammar.spec import capture, literal, optional, wildcard


def test_compile_literal_and_capture_elements() -> None:
    pattern = compile_pattern(["play", capture("song_name"), "by", capture("artist")])

    assert pattern.slot_names == ("song_name", "artist")
    assert isinstance(pattern.elements[0], LiteralElement)
    assert isinstance(pattern.elements[1], CaptureElement)
    assert str(pattern) == "play .song_name. by .artist."


def test_literal_alternatives_are_normalized_phrases() -> None:
    pattern = compile_pattern([literal("Start Playing", "play", "PLAY"), wildcard()])

    head = pattern.elements[0]
    assert head.alternatives == (("start", "playing"), ("play",))
    assert isinstance(pattern.elements[1], WildcardElement)
    assert str(pattern) == "(start playing|play) *"


def test_dict_specifications_compile() -> None:
    pattern = compile_pattern(
        [
            {"type": "literal", "words": ["weather"]},
            {"type": "optional", "elements": ["today", {"type": "capture", "name": "city"}]},
        ]
    )

    assert isinstance(pattern.elements[1], OptionalElement)
    assert pattern.slot_names == ("city",)


def test_compilation_is_deterministic() -> None:
    spec = ["turn", optional("the"), capture("device"), literal("on", "off")]

    assert compile_pattern(spec) == compile_pattern(spec)


def test_duplicate_capture_name_rejected() -> None:
    with pytest.raises(InvalidPatternSpec):
        compile_pattern([capture("x"), "and", capture("x")])

    with pytest.raises(InvalidPatternSpec):
        compile_pattern([capture("x"), optional("and", capture("x"))])


@pytest.mark.parametrize(
    "spec",
    [
        [],
        [{"type": "regex", "value": "a+"}],
        [42],
        [literal()],
        [literal("!!!")],
        [capture("not valid")],
        [optional()],
    ],
)
def test_invalid_specifications_rejected(spec: list) -> None:
    with pytest.raises(InvalidPatternSpec):
        compile_pattern(spec)


def test_string_is_not_a_pattern_spec() -> None:
    with pytest.raises(InvalidPatternSpec):
        compile_pattern("play something")


def test_invalid_pattern_spec_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        compile_pattern([])
