"""Токенная схожесть: Jaccard по нормализованным множествам токенов."""

from __future__ import annotations

import re
from collections.abc import Set

from callqa.similarity.vocabulary import DEFAULT_VOCABULARY, Vocabulary

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")


def tokenize(text: str, vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> frozenset[str]:
    """Текст → множество канонических токенов.

    lowercase → удаляем пунктуацию («e-mail» → «email») → split →
    отбрасываем короткие (длина < ``min_token_length``) и стоп-слова →
    синонимы к канонической форме.
    """
    if not text:
        return frozenset()

    cleaned = _NON_ALNUM_RE.sub("", text.lower())
    return frozenset(
        vocabulary.canonical_token(token)
        for token in cleaned.split()
        if len(token) >= vocabulary.min_token_length
        and token not in vocabulary.stopwords
    )


def jaccard(a: Set[str], b: Set[str]) -> float:
    """Jaccard-схожесть двух множеств; 0.0, если хотя бы одно пустое."""
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def token_similarity(a: str, b: str, vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> float:
    """Схожесть двух текстов по токенам, значение в [0, 1]."""
    return jaccard(tokenize(a, vocabulary), tokenize(b, vocabulary))
