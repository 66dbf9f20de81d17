"""Жадная онлайн-кластеризация находок по семантической схожести.

Алгоритм (один проход, порядок входа значим):
1. Опционально — жёсткое разбиение на партиции по ключу (например,
   ``(dimension, root_cause_type)`` для сценариев). Находки из разных
   партиций никогда не попадают в один кластер.
2. Внутри партиции каждая находка сравнивается с ПЕРВЫМ участником каждого
   уже открытого кластера в порядке их создания.
3. Находка попадает в первый кластер, где итоговая схожесть ≥ порога;
   если такого нет — открывается новый кластер из одной находки.

Кластеры после создания не сливаются и не пересчитываются. Поэтому
результат зависит от порядка входа при нетранзитивных отношениях схожести
около порога — это известное и задокументированное свойство алгоритма.
Сложность O(n·k), где k — текущее число кластеров.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Mapping, Sequence
from dataclasses import dataclass
from typing import TypeVar

from callqa.similarity.scoring import SimilarityScorer, TextFeatures

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Допуск на погрешность float при сравнении с порогом: оценка, аналитически
# равная порогу, должна проходить.
_SCORE_EPSILON = 1e-9


@dataclass(frozen=True)
class ClusteringConfig:
    """Параметры жадной кластеризации."""

    similarity_threshold: float = 0.30


def greedy_cluster(
    items: Sequence[T],
    similarity: Callable[[T, T], float],
    threshold: float = 0.30,
) -> list[list[T]]:
    """Разложить элементы по кластерам «первый подходящий кластер побеждает».

    Каждый элемент сравнивается только с первым участником кластера
    (не с центроидом и не с лучшим кандидатом).
    """
    clusters: list[list[T]] = []
    for item in items:
        for cluster in clusters:
            if similarity(item, cluster[0]) >= threshold - _SCORE_EPSILON:
                cluster.append(item)
                break
        else:
            clusters.append([item])
    return clusters


class ClusteringService:
    """Группирует находки в кластеры по совокупности сигналов схожести."""

    def __init__(
        self,
        config: ClusteringConfig | None = None,
        scorer: SimilarityScorer | None = None,
    ) -> None:
        self._config = config or ClusteringConfig()
        self._scorer = scorer or SimilarityScorer()

    @property
    def config(self) -> ClusteringConfig:
        return self._config

    def cluster(
        self,
        findings: Sequence[T],
        *,
        canonical_text: Callable[[T], str],
        embedding_key: Callable[[T], str] | None = None,
        partition_key: Callable[[T], Hashable] | None = None,
        embeddings: Mapping[str, Sequence[float]] | None = None,
    ) -> list[list[T]]:
        """Кластеризовать находки.

        Args:
            findings: Находки в порядке поступления.
            canonical_text: Текст находки для всех сигналов схожести.
            embedding_key: Ключ находки в словаре эмбеддингов.
            partition_key: Ключ жёсткого разбиения; None — одна партиция.
            embeddings: Предвычисленные векторы; отсутствие ключа — не ошибка.

        Returns:
            Кластеры: партиции в порядке первого появления, внутри партиции —
            в порядке создания кластеров; участники — в порядке входа.
        """
        if not findings:
            return []

        partitions: dict[Hashable, list[int]] = {}
        for idx, finding in enumerate(findings):
            key = partition_key(finding) if partition_key else None
            partitions.setdefault(key, []).append(idx)

        features: list[TextFeatures] = [
            self._scorer.features(
                canonical_text(f),
                embedding_key=embedding_key(f) if embedding_key else None,
            )
            for f in findings
        ]

        def similarity(i: int, j: int) -> float:
            breakdown = self._scorer.compare(features[i], features[j], embeddings)
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    "Схожесть #%d ↔ #%d: entity=%.4f action=%.4f token=%.4f "
                    "embedding=%s → %.4f",
                    i, j,
                    breakdown.entity,
                    breakdown.action,
                    breakdown.token,
                    "—" if breakdown.embedding is None else f"{breakdown.embedding:.4f}",
                    breakdown.score,
                )
            return breakdown.score

        result: list[list[T]] = []
        for indices in partitions.values():
            for group in greedy_cluster(
                indices, similarity, self._config.similarity_threshold,
            ):
                result.append([findings[i] for i in group])

        singletons = sum(1 for c in result if len(c) == 1)
        logger.info(
            "Сгруппировано %d находок в %d кластеров (%d одиночных, партиций: %d)",
            len(findings),
            len(result),
            singletons,
            len(partitions),
        )
        return result
