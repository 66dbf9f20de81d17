"""Тесты косинуса, адаптивных весов и SimilarityScorer."""

from __future__ import annotations

import math

import numpy as np
import pytest

from callqa.similarity.scoring import (
    BALANCED,
    EMBEDDING_BALANCED,
    EMBEDDING_DOMINANT,
    EMBEDDING_STRUCTURED,
    STRUCTURED,
    TOKEN_HEAVY,
    SimilarityScorer,
    boosted_entity_similarity,
    combine,
    cosine_similarity,
    select_weights,
)
from callqa.similarity.vocabulary import Vocabulary


# ---------------------------------------------------------------------------
# cosine_similarity
# ---------------------------------------------------------------------------


def test_cosine_identical_vectors() -> None:
    assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)


def test_cosine_orthogonal_and_opposite() -> None:
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)


def test_cosine_accepts_numpy_arrays() -> None:
    assert cosine_similarity(np.array([3.0, 4.0]), np.array([3.0, 4.0])) == pytest.approx(1.0)


@pytest.mark.parametrize(
    ("v1", "v2"),
    [
        (None, [1.0]),
        ([1.0], None),
        ([], []),
        ([1.0, 2.0], [1.0, 2.0, 3.0]),
        ([0.0, 0.0], [1.0, 1.0]),
        (["a", "b"], [1.0, 2.0]),
    ],
)
def test_cosine_degenerate_inputs_return_zero(v1, v2) -> None:
    assert cosine_similarity(v1, v2) == 0.0


# ---------------------------------------------------------------------------
# Adaptive weights
# ---------------------------------------------------------------------------


def test_weight_tables_sum_to_one() -> None:
    for w in (EMBEDDING_DOMINANT, EMBEDDING_STRUCTURED, EMBEDDING_BALANCED,
              STRUCTURED, TOKEN_HEAVY, BALANCED):
        assert w.entity + w.action + w.token + w.embedding == pytest.approx(1.0)


@pytest.mark.parametrize(
    ("signals", "expected"),
    [
        ((0.0, 0.0, 0.0, 0.71), EMBEDDING_DOMINANT),
        ((0.9, 0.9, 0.9, 0.7), EMBEDDING_STRUCTURED),
        ((0.31, 0.0, 0.0, 0.5), EMBEDDING_STRUCTURED),
        ((0.3, 0.3, 0.9, 0.5), EMBEDDING_BALANCED),
        ((0.0, 0.0, 0.0, 0.0), EMBEDDING_BALANCED),
        ((0.0, 0.31, 0.0, None), STRUCTURED),
        ((0.3, 0.3, 0.41, None), TOKEN_HEAVY),
        ((0.3, 0.3, 0.4, None), BALANCED),
    ],
)
def test_select_weights_strict_thresholds(signals, expected) -> None:
    assert select_weights(*signals) == expected


def test_combine_without_embedding() -> None:
    # STRUCTURED: 0.4*1 + 0.4*0.5 + 0.2*0.5
    assert combine(1.0, 0.5, 0.5) == pytest.approx(0.7)


def test_combine_with_embedding() -> None:
    # EMBEDDING_DOMINANT: 0.2*0 + 0.2*0 + 0.1*1 + 0.5*0.8
    assert combine(0.0, 0.0, 1.0, 0.8) == pytest.approx(0.5)


def test_combine_is_bounded() -> None:
    assert 0.0 <= combine(1.0, 1.0, 1.0, 1.0) <= 1.0
    assert combine(0.0, 0.0, 0.0) == 0.0


def test_entity_boost_requires_two_shared() -> None:
    one_shared = boosted_entity_similarity(frozenset({"a", "b"}), frozenset({"a", "c"}))
    two_shared = boosted_entity_similarity(
        frozenset({"a", "b", "c"}), frozenset({"a", "b", "d"}),
    )
    assert one_shared == pytest.approx(1 / 3)
    assert two_shared == pytest.approx(0.5 * 1.5)


def test_entity_boost_is_capped_at_one() -> None:
    assert boosted_entity_similarity(frozenset({"a", "b"}), frozenset({"a", "b"})) == 1.0


# ---------------------------------------------------------------------------
# SimilarityScorer
# ---------------------------------------------------------------------------


def test_scorer_paraphrases_score_one() -> None:
    scorer = SimilarityScorer()
    score = scorer.similarity(
        "skipped customer name capture",
        "agent missed collecting the customer's name",
    )
    assert score == pytest.approx(1.0)


def test_scorer_unrelated_texts_score_low() -> None:
    scorer = SimilarityScorer()
    # Только токены: 1/5 общих, таблица BALANCED → 0.3 * 0.2
    score = scorer.similarity("skipped customer name capture", "agent was rude to the customer")
    assert score == pytest.approx(0.06)


def test_scorer_breakdown_exposes_signals() -> None:
    scorer = SimilarityScorer()
    a = scorer.features("skipped customer name capture")
    b = scorer.features("agent missed collecting the customer's name")

    breakdown = scorer.compare(a, b)

    assert breakdown.entity == 1.0
    assert breakdown.action == 1.0
    assert breakdown.token == 1.0
    assert breakdown.embedding is None


def test_scorer_missing_embedding_key_falls_back_to_text_signals() -> None:
    scorer = SimilarityScorer()
    embeddings = {"a": [1.0, 0.0]}

    score = scorer.similarity(
        "alpha bravo charlie", "alpha bravo delta", embeddings, key_a="a", key_b="b",
    )

    # Без эмбеддинга: токены 2/4, таблица TOKEN_HEAVY → 0.5 * 0.5
    assert score == pytest.approx(0.25)


def test_scorer_negative_cosine_is_clamped_to_zero() -> None:
    scorer = SimilarityScorer()
    embeddings = {"a": [1.0, 0.0], "b": [-1.0, 0.0]}

    a = scorer.features("alpha", embedding_key="a")
    b = scorer.features("bravo", embedding_key="b")
    breakdown = scorer.compare(a, b, embeddings)

    assert breakdown.embedding == 0.0
    assert breakdown.score == 0.0


def test_scorer_embedding_threshold_boundary() -> None:
    """Токены 0.5 и косинус 9/14 под EMBEDDING_BALANCED дают ровно 0.30."""
    scorer = SimilarityScorer()
    c = 9 / 14
    embeddings = {"a": [1.0, 0.0], "b": [c, math.sqrt(1 - c * c)]}

    score = scorer.similarity(
        "alpha bravo charlie", "alpha bravo delta", embeddings, key_a="a", key_b="b",
    )

    assert score == pytest.approx(0.30)


def test_scorer_features_use_bound_vocabulary() -> None:
    vocabulary = Vocabulary(stopwords=frozenset({"alpha"}), synonyms={"bravo": "charlie"})
    scorer = SimilarityScorer(vocabulary)

    assert scorer.features("alpha bravo").tokens == {"charlie"}
