"""Utterance tokenization with case and diacritic normalization."""

from __future__ import annotations

import re
import unicodedata

from skill_dispatch.types import Token, Utterance

_WORD_PATTERN = re.compile(r"\w+(?:['’]\w+)*", flags=re.UNICODE)


def normalize(word: str) -> str:
    """Fold case and strip combining marks (`Café` -> `cafe`)."""
    decomposed = unicodedata.normalize("NFKD", word)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.replace("’", "'").casefold()


def tokenize(text: str) -> Utterance:
    tokens = tuple(
        Token(
            text=match.group(0),
            normalized=normalize(match.group(0)),
            start=match.start(),
            end=match.end(),
        )
        for match in _WORD_PATTERN.finditer(text)
    )
    return Utterance(raw=text, tokens=tokens)


def normalize_phrase(phrase: str) -> tuple[str, ...]:
    return tuple(token.normalized for token in tokenize(phrase).tokens)
