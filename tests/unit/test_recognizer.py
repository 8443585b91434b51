import pytest

from skill_dispatch.grammar.compiler import compile_pattern
from skill_dispatch.grammar.spec import capture, literal, optional, wildcard
from skill_dispatch.grammar.tokenizer import tokenize
from skill_dispatch.recognition.recognizer import Recognizer
from skill_dispatch.recognition.scoring import Alignment, Scorer
from skill_dispatch.sections.registry import build_section


def _patterns(*specs: list) -> list:
    return [compile_pattern(spec) for spec in specs]


def test_play_song_by_artist_extracts_slots() -> None:
    patterns = _patterns(["play", capture("song_name"), "by", capture("artist")])

    result = Recognizer().match(patterns, "play bohemian rhapsody by queen")

    assert result.score == 1.0
    assert result.pattern_index == 0
    assert {name: span.text for name, span in result.slots.items()} == {
        "song_name": "bohemian rhapsody",
        "artist": "queen",
    }
    assert (result.slots["song_name"].start, result.slots["song_name"].end) == (1, 3)


def test_missing_required_literal_fails_the_pattern() -> None:
    patterns = _patterns(["play", capture("song_name"), "by", capture("artist")])

    result = Recognizer().match(patterns, "play thriller")

    assert not result.matched
    assert result.score == 0.0
    assert result.pattern is None


def test_other_pattern_in_section_takes_over() -> None:
    section = build_section(
        "music",
        [
            ["play", capture("song_name"), "by", capture("artist")],
            ["play", capture("song_name")],
        ],
    )

    result = Recognizer().match(section, "play thriller")

    assert result.matched
    assert result.pattern_index == 1
    assert result.slots["song_name"].text == "thriller"


def test_equal_scores_keep_earliest_pattern() -> None:
    patterns = _patterns(["play", capture("first")], ["play", capture("second")])

    result = Recognizer().match(patterns, "play jazz")

    assert result.pattern_index == 0
    assert list(result.slots) == ["first"]


def test_higher_score_beats_declaration_order() -> None:
    patterns = _patterns([wildcard(), "music"], ["play", "music"])

    result = Recognizer().match(patterns, "play music")

    assert result.pattern_index == 1
    assert result.score == 1.0


def test_wildcard_tokens_lower_the_score() -> None:
    patterns = _patterns(["play", wildcard()])

    result = Recognizer().match(patterns, "play some loud music")

    assert result.score == pytest.approx(0.25)
    assert result.slots == {}


def test_optional_segments_are_free() -> None:
    patterns = _patterns(["turn", optional("the"), "lights", literal("on", "off")])
    recognizer = Recognizer()

    assert recognizer.match(patterns, "turn lights on").score == 1.0
    assert recognizer.match(patterns, "Turn the lights OFF").score == 1.0
    assert not recognizer.match(patterns, "turn the the lights on").matched


def test_capture_prefers_alignment_with_best_score() -> None:
    patterns = _patterns(["play", capture("query"), wildcard()])

    result = Recognizer().match(patterns, "play a b c")

    assert result.score == 1.0
    assert result.slots["query"].text == "a b c"


def test_multi_word_literal_alternative() -> None:
    patterns = _patterns([literal("start playing", "play"), capture("song")])

    result = Recognizer().match(patterns, "start playing yellow submarine")

    assert result.score == 1.0
    assert result.slots["song"].text == "yellow submarine"


def test_normalized_literals_match_case_and_diacritics() -> None:
    patterns = _patterns(["cafe", "mode"])

    assert Recognizer().match(patterns, "CAFÉ Mode").score == 1.0


def test_capture_only_pattern_is_no_match() -> None:
    patterns = _patterns([capture("anything")])

    assert not Recognizer().match(patterns, "whatever you say").matched


def test_empty_utterance_scores_zero() -> None:
    patterns = _patterns([optional("hello")], ["hello"])

    assert Recognizer().match(patterns, "").score == 0.0
    assert Recognizer().match(patterns, tokenize("   ")).score == 0.0


def test_match_pattern_reports_best_alignment() -> None:
    pattern = compile_pattern(["play", wildcard(), "music"])

    score, alignment = Recognizer().match_pattern(pattern, tokenize("play some music"))

    assert score == pytest.approx(2 / 3)
    assert alignment == Alignment(literal_tokens=2, gap_tokens=1, slots=())


def test_scorer_is_swappable() -> None:
    class FlatScorer(Scorer):
        def score(self, alignment: Alignment, utterance_length: int) -> float:
            return 0.75 if alignment.literal_tokens else 0.0

    patterns = _patterns(["play", capture("song")])

    assert Recognizer(FlatScorer()).match(patterns, "play jazz").score == 0.75


def test_leftover_words_lower_the_score_instead_of_failing() -> None:
    patterns = _patterns(["what", "time", "is", "it", optional("now")])
    recognizer = Recognizer()

    trailing = recognizer.match(patterns, "what time is it please")
    leading = recognizer.match(patterns, "hey what time is it")

    assert trailing.score == pytest.approx(4 / 5)
    assert leading.score == pytest.approx(4 / 5)
    assert recognizer.match(patterns, "so what time is it now please").score == pytest.approx(5 / 7)


def test_unaligned_tokens_are_reported_separately() -> None:
    pattern = compile_pattern(["play", capture("song")])

    score, alignment = Recognizer().match_pattern(pattern, tokenize("please play thriller"))

    assert score == pytest.approx(0.5)
    assert alignment == Alignment(
        literal_tokens=1, gap_tokens=0, slots=(("song", 2, 3),), unaligned_tokens=1
    )


def test_capture_absorbs_trailing_words_when_that_scores_higher() -> None:
    patterns = _patterns(["play", capture("song_name")])

    result = Recognizer().match(patterns, "play thriller please")

    assert result.score == 1.0
    assert result.slots["song_name"].text == "thriller please"
