"""Комбинирование сигналов схожести в одну оценку.

Сигналы для пары текстов:
  - entity    — Jaccard по сущностям (+ буст x1.5, если общих сущностей ≥ 2);
  - action    — Jaccard по парам action-object;
  - token     — Jaccard по нормализованным токенам;
  - embedding — косинус внешних эмбеддингов (необязательный, в [0, 1]).

Веса выбираются адаптивно по силе сигналов (см. ``select_weights``).
Отсутствие эмбеддинга — штатная ситуация, меняет только таблицу весов.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import numpy as np

from callqa.similarity.taggers import (
    TextTagger,
    build_action_object_tagger,
    build_entity_tagger,
)
from callqa.similarity.tokens import jaccard, tokenize
from callqa.similarity.vocabulary import DEFAULT_VOCABULARY, Vocabulary

_ENTITY_BOOST = 1.5
_ENTITY_BOOST_MIN_SHARED = 2
_STRONG_EMBEDDING = 0.7
_STRONG_STRUCTURE = 0.3
_STRONG_TOKENS = 0.4


# ---------------------------------------------------------------------------
# Embedding similarity
# ---------------------------------------------------------------------------


def cosine_similarity(
    v1: Sequence[float] | np.ndarray | None,
    v2: Sequence[float] | np.ndarray | None,
) -> float:
    """Косинус двух векторов в [-1, 1].

    0.0 для отсутствующих, пустых, разной длины, нулевых или нечисловых векторов.
    """
    if v1 is None or v2 is None:
        return 0.0
    try:
        a = np.asarray(v1, dtype=np.float64)
        b = np.asarray(v2, dtype=np.float64)
    except (TypeError, ValueError):
        return 0.0

    if a.ndim != 1 or a.size == 0 or a.shape != b.shape:
        return 0.0

    norm = float(np.linalg.norm(a) * np.linalg.norm(b))
    if norm == 0.0 or not np.isfinite(norm):
        return 0.0
    return float(np.clip(np.dot(a, b) / norm, -1.0, 1.0))


# ---------------------------------------------------------------------------
# Adaptive weights
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SignalWeights:
    """Веса сигналов; сумма равна 1.0."""

    entity: float
    action: float
    token: float
    embedding: float = 0.0


EMBEDDING_DOMINANT = SignalWeights(entity=0.20, action=0.20, token=0.10, embedding=0.50)
EMBEDDING_STRUCTURED = SignalWeights(entity=0.30, action=0.30, token=0.10, embedding=0.30)
EMBEDDING_BALANCED = SignalWeights(entity=0.25, action=0.25, token=0.15, embedding=0.35)
STRUCTURED = SignalWeights(entity=0.40, action=0.40, token=0.20)
TOKEN_HEAVY = SignalWeights(entity=0.25, action=0.25, token=0.50)
BALANCED = SignalWeights(entity=0.35, action=0.35, token=0.30)


def select_weights(
    entity_sim: float,
    action_sim: float,
    token_sim: float,
    embedding_sim: float | None,
) -> SignalWeights:
    """Выбрать таблицу весов. Порядок проверок значим."""
    structured = entity_sim > _STRONG_STRUCTURE or action_sim > _STRONG_STRUCTURE

    if embedding_sim is not None:
        if embedding_sim > _STRONG_EMBEDDING:
            return EMBEDDING_DOMINANT
        if structured:
            return EMBEDDING_STRUCTURED
        return EMBEDDING_BALANCED

    if structured:
        return STRUCTURED
    if token_sim > _STRONG_TOKENS:
        return TOKEN_HEAVY
    return BALANCED


def combine(
    entity_sim: float,
    action_sim: float,
    token_sim: float,
    embedding_sim: float | None = None,
) -> float:
    """Взвешенная сумма сигналов в [0, 1]."""
    weights = select_weights(entity_sim, action_sim, token_sim, embedding_sim)
    score = (
        weights.entity * entity_sim
        + weights.action * action_sim
        + weights.token * token_sim
    )
    if embedding_sim is not None:
        score += weights.embedding * embedding_sim
    return min(max(score, 0.0), 1.0)


def boosted_entity_similarity(a: frozenset[str], b: frozenset[str]) -> float:
    """Jaccard по сущностям с бустом за ≥ 2 общих сущности (не выше 1.0)."""
    sim = jaccard(a, b)
    if len(a & b) >= _ENTITY_BOOST_MIN_SHARED:
        sim = min(1.0, sim * _ENTITY_BOOST)
    return sim


# ---------------------------------------------------------------------------
# SimilarityScorer
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextFeatures:
    """Предвычисленные признаки канонического текста находки."""

    entities: frozenset[str]
    action_objects: frozenset[str]
    tokens: frozenset[str]
    embedding_key: str | None = None


@dataclass(frozen=True)
class SimilarityBreakdown:
    """Все сигналы пары и итоговая оценка (для отладки и тестов)."""

    entity: float
    action: float
    token: float
    embedding: float | None
    score: float


class SimilarityScorer:
    """Считает признаки текстов и итоговую схожесть пар.

    Теггеры и токенизатор связываются со словарём при создании;
    глобального изменяемого состояния нет.
    """

    def __init__(
        self,
        vocabulary: Vocabulary = DEFAULT_VOCABULARY,
        *,
        entity_tagger: TextTagger | None = None,
        action_tagger: TextTagger | None = None,
    ) -> None:
        self._vocabulary = vocabulary
        self._entity_tagger = entity_tagger or build_entity_tagger(vocabulary)
        self._action_tagger = action_tagger or build_action_object_tagger(vocabulary)

    def features(self, text: str, *, embedding_key: str | None = None) -> TextFeatures:
        """Извлечь признаки один раз на находку."""
        return TextFeatures(
            entities=self._entity_tagger.tag(text),
            action_objects=self._action_tagger.tag(text),
            tokens=tokenize(text, self._vocabulary),
            embedding_key=embedding_key,
        )

    def compare(
        self,
        a: TextFeatures,
        b: TextFeatures,
        embeddings: Mapping[str, Sequence[float]] | None = None,
    ) -> SimilarityBreakdown:
        """Сравнить две находки по предвычисленным признакам."""
        entity_sim = boosted_entity_similarity(a.entities, b.entities)
        action_sim = jaccard(a.action_objects, b.action_objects)
        token_sim = jaccard(a.tokens, b.tokens)
        embedding_sim = self._embedding_similarity(a, b, embeddings)

        return SimilarityBreakdown(
            entity=entity_sim,
            action=action_sim,
            token=token_sim,
            embedding=embedding_sim,
            score=combine(entity_sim, action_sim, token_sim, embedding_sim),
        )

    def similarity(
        self,
        text_a: str,
        text_b: str,
        embeddings: Mapping[str, Sequence[float]] | None = None,
        *,
        key_a: str | None = None,
        key_b: str | None = None,
    ) -> float:
        """Итоговая схожесть двух произвольных текстов."""
        return self.compare(
            self.features(text_a, embedding_key=key_a),
            self.features(text_b, embedding_key=key_b),
            embeddings,
        ).score

    @staticmethod
    def _embedding_similarity(
        a: TextFeatures,
        b: TextFeatures,
        embeddings: Mapping[str, Sequence[float]] | None,
    ) -> float | None:
        """Косинус по ключам находок, обрезанный снизу до 0.

        None — если эмбеддингов нет или для одного из ключей нет вектора.
        """
        if not embeddings or a.embedding_key is None or b.embedding_key is None:
            return None
        v1 = embeddings.get(a.embedding_key)
        v2 = embeddings.get(b.embedding_key)
        if v1 is None or v2 is None:
            return None
        return max(0.0, cosine_similarity(v1, v2))
