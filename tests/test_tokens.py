"""Тесты токенизации и Jaccard-схожести."""

from __future__ import annotations

import pytest

from callqa.similarity.tokens import jaccard, token_similarity, tokenize
from callqa.similarity.vocabulary import Vocabulary


def test_tokenize_drops_stopwords_and_short_tokens() -> None:
    assert tokenize("The agent was rude to me") == {"rude"}


def test_tokenize_maps_synonyms_to_canonical_form() -> None:
    assert tokenize("skipped customer name capture") == {"fail", "customer", "name", "collect"}
    assert tokenize("agent missed collecting the customer's name") == {
        "fail",
        "customer",
        "name",
        "collect",
    }


def test_tokenize_strips_punctuation_inside_words() -> None:
    assert tokenize("e-mail address") == {"email", "address"}
    assert tokenize("didn't explain, refund!") == {"didnt", "explain", "refund"}


def test_token_similarity_hyphenated_spelling_matches() -> None:
    assert token_similarity("e-mail address", "email address") == pytest.approx(1.0)


def test_tokenize_empty() -> None:
    assert tokenize("") == frozenset()
    assert tokenize("a an to") == frozenset()


def test_tokenize_custom_vocabulary() -> None:
    vocabulary = Vocabulary(stopwords=frozenset({"hello"}), synonyms={})
    assert tokenize("hello world", vocabulary) == {"world"}


@pytest.mark.parametrize(
    ("a", "b", "expected"),
    [
        ({"x", "y"}, {"x", "y"}, 1.0),
        ({"x", "y"}, {"y", "z"}, 1 / 3),
        ({"x"}, {"y"}, 0.0),
        (set(), {"y"}, 0.0),
        (set(), set(), 0.0),
    ],
)
def test_jaccard(a: set, b: set, expected: float) -> None:
    assert jaccard(a, b) == pytest.approx(expected)


def test_token_similarity_synonyms_make_texts_identical() -> None:
    assert token_similarity(
        "skipped customer name capture",
        "agent missed collecting the customer's name",
    ) == pytest.approx(1.0)


def test_token_similarity_partial_overlap() -> None:
    assert token_similarity("agent was rude to the customer", "skipped customer name capture") == (
        pytest.approx(0.2)
    )
