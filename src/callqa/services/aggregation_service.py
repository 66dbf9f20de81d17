"""Агрегация находок: кластеризация + сводка по каждому кластеру.

Один движок обслуживает три точки вызова, различающиеся только профилем:
  - стандартные проблемы — жёсткое разбиение по точному ``type``;
  - пользовательские проверки — без разбиения, разные названия проверок
    могут слиться, если описывают одно и то же;
  - сценарии — разбиение по ``(dimension, root_cause_type)``.

Сводка кластера: представительная метка (самая частая, при равенстве —
первая встреченная), максимальная серьёзность, средняя уверенность
(округление half-up), уникальные звонки, текст паттерна и до N примеров.
"""

from __future__ import annotations

import hashlib
import logging
from collections import Counter
from collections.abc import Callable, Hashable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from callqa.models.aggregation import (
    AggregatedIssue,
    AggregatedScenario,
    AggregationSummary,
    FindingCluster,
)
from callqa.models.common import severity_rank
from callqa.models.findings import DetectedIssue, Finding, Scenario
from callqa.services.clustering_service import ClusteringConfig, ClusteringService
from callqa.similarity.scoring import SimilarityScorer
from callqa.similarity.vocabulary import DEFAULT_VOCABULARY, load_vocabulary
from callqa.utils.text_normalization import humanize_label, normalize_partition_label

if TYPE_CHECKING:
    from callqa.config import Settings

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Finding)
C = TypeVar("C", bound=FindingCluster)

_UNCATEGORIZED_DIMENSION = "Uncategorized"
_UNKNOWN_ROOT_CAUSE = "unknown"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def round_half_up(total: int | float, count: int) -> int:
    """Среднее ``total / count``, округлённое half-up (80.5 → 81)."""
    if count <= 0:
        return 0
    mean = Decimal(str(total)) / Decimal(count)
    return int(mean.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _unique(values: Sequence[str]) -> list[str]:
    """Уникальные непустые значения в порядке первого появления."""
    return [v for v in dict.fromkeys(values) if v]


def _generate_cluster_id(profile_name: str, partition: Hashable, member_ids: list[str]) -> str:
    """Детерминированный ID кластера: SHA-256 от профиля, партиции и участников."""
    raw = "\n".join([profile_name, repr(partition), "|".join(member_ids)])
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


# ---------------------------------------------------------------------------
# Cluster summary
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClusterStats:
    """Агрегаты по участникам одного кластера."""

    representative: str
    severity: str
    avg_confidence: int
    affected_call_ids: list[str]
    distinct_labels: list[str]
    pattern: str
    evidence_snippets: list[str]


def summarize_cluster(
    members: Sequence[F],
    *,
    label: Callable[[F], str],
    detail: Callable[[F], str],
    evidence_limit: int = 3,
) -> ClusterStats:
    """Свести кластер находок к агрегатам.

    Текст паттерна:
      - одно уникальное описание → описание как есть;
      - несколько описаний при одной метке → ``N patterns across M calls``;
      - несколько разных меток → ``T similar types clustered: N patterns across M calls``.
    """
    if not members:
        return ClusterStats("", "", 0, [], [], "", [])

    labels = [label(f) for f in members]
    counts = Counter(labels)
    # max() берёт первый максимум, Counter хранит порядок вставки
    representative = max(counts, key=counts.__getitem__)
    distinct_labels = list(counts)

    severity = max(members, key=lambda f: severity_rank(f.severity)).severity
    avg_confidence = round_half_up(sum(f.confidence for f in members), len(members))
    affected_call_ids = _unique([f.call_id for f in members])

    details = _unique([detail(f) for f in members])
    calls = _plural(len(affected_call_ids), "call")
    if len(distinct_labels) > 1:
        pattern = (
            f"{len(distinct_labels)} similar types clustered: "
            f"{_plural(len(details), 'pattern')} across {calls}"
        )
    elif len(details) > 1:
        pattern = f"{len(details)} patterns across {calls}"
    else:
        pattern = details[0] if details else ""

    evidence = _unique([f.evidence_snippet for f in members])[: max(evidence_limit, 0)]

    return ClusterStats(
        representative=representative,
        severity=severity,
        avg_confidence=avg_confidence,
        affected_call_ids=affected_call_ids,
        distinct_labels=distinct_labels,
        pattern=pattern,
        evidence_snippets=evidence,
    )


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


def issue_sort_key(cluster: FindingCluster) -> tuple[int, int]:
    """Проблемы: больше затронутых звонков выше, затем серьёзнее."""
    return (-cluster.occurrences, -severity_rank(cluster.severity, warn=False))


def scenario_sort_key(cluster: FindingCluster) -> tuple[int, int]:
    """Сценарии: по влиянию occurrences × вес серьёзности, затем по числу звонков."""
    impact = cluster.occurrences * severity_rank(cluster.severity, warn=False)
    return (-impact, -cluster.unique_calls)


@dataclass(frozen=True)
class AggregationProfile(Generic[F, C]):
    """Параметры точки вызова движка агрегации.

    ``embedding_key`` должен различать тексты внутри партиции: ключ по метке,
    совпадающей с ключом партиции, даёт всем парам косинус 1.0.
    None отключает эмбеддинги для профиля.
    """

    name: str
    model: type[C]
    canonical_text: Callable[[F], str]
    label: Callable[[F], str]
    detail: Callable[[F], str]
    occurrences: Callable[[Sequence[F], list[str]], int]
    sort_key: Callable[[FindingCluster], tuple[int, int]]
    summary_fields: Callable[[Sequence[F]], dict[str, Any]] = field(
        default=lambda members: {}
    )
    partition_key: Callable[[F], Hashable] | None = None
    embedding_key: Callable[[F], str] | None = None


def _issue_text(issue: DetectedIssue) -> str:
    return f"{humanize_label(issue.type)} {issue.explanation}".strip()


def _issue_summary_fields(members: Sequence[DetectedIssue]) -> dict[str, Any]:
    return {
        "source_checks": _unique([i.source_check_name or "" for i in members]),
        "instances": list(members),
    }


def scenario_partition_key(scenario: Scenario) -> tuple[str, str]:
    """``(dimension, root_cause_type)`` с дефолтами и снятием тега ``(A)``."""
    return (
        normalize_partition_label(scenario.dimension) or _UNCATEGORIZED_DIMENSION,
        normalize_partition_label(scenario.root_cause_type) or _UNKNOWN_ROOT_CAUSE,
    )


def _scenario_text(scenario: Scenario) -> str:
    return f"{scenario.title} {scenario.what_happened}".strip()


def _scenario_summary_fields(members: Sequence[Scenario]) -> dict[str, Any]:
    dimension, root_cause = scenario_partition_key(members[0])
    return {
        "dimension": dimension,
        "root_cause_type": None if root_cause == _UNKNOWN_ROOT_CAUSE else root_cause,
        "scenarios": list(members),
    }


ISSUE_PROFILE: AggregationProfile[DetectedIssue, AggregatedIssue] = AggregationProfile(
    name="issues",
    model=AggregatedIssue,
    canonical_text=_issue_text,
    label=lambda i: i.type,
    detail=lambda i: i.explanation,
    occurrences=lambda members, call_ids: len(call_ids),
    sort_key=issue_sort_key,
    summary_fields=_issue_summary_fields,
    partition_key=lambda i: i.type,
    embedding_key=_issue_text,
)

CUSTOM_AUDIT_PROFILE: AggregationProfile[DetectedIssue, AggregatedIssue] = AggregationProfile(
    name="custom_audits",
    model=AggregatedIssue,
    canonical_text=_issue_text,
    label=lambda i: i.type,
    detail=lambda i: i.explanation,
    occurrences=lambda members, call_ids: len(call_ids),
    sort_key=issue_sort_key,
    summary_fields=_issue_summary_fields,
    embedding_key=_issue_text,
)

SCENARIO_PROFILE: AggregationProfile[Scenario, AggregatedScenario] = AggregationProfile(
    name="scenarios",
    model=AggregatedScenario,
    canonical_text=_scenario_text,
    label=lambda s: s.title,
    detail=lambda s: s.what_happened,
    occurrences=lambda members, call_ids: len(members),
    sort_key=scenario_sort_key,
    summary_fields=_scenario_summary_fields,
    partition_key=scenario_partition_key,
    embedding_key=_scenario_text,
)


# ---------------------------------------------------------------------------
# AggregationService
# ---------------------------------------------------------------------------


class AggregationService:
    """Группирует находки в кластеры и строит по ним сводки."""

    def __init__(
        self,
        clustering_service: ClusteringService | None = None,
        *,
        evidence_limit: int = 3,
    ) -> None:
        self._clustering = clustering_service or ClusteringService()
        self._evidence_limit = evidence_limit

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        threshold: float | None = None,
    ) -> AggregationService:
        """Собрать сервис из ``Settings`` (порог, словарь, размер выборки примеров).

        Raises:
            VocabularyError: Если задан ``vocabulary_path`` и файл некорректен.
        """
        vocabulary = (
            load_vocabulary(settings.vocabulary_path)
            if settings.vocabulary_path
            else DEFAULT_VOCABULARY
        )
        config = ClusteringConfig(
            similarity_threshold=(
                threshold if threshold is not None else settings.similarity_threshold
            ),
        )
        return cls(
            ClusteringService(config, SimilarityScorer(vocabulary)),
            evidence_limit=settings.evidence_sample_size,
        )

    def aggregate_issues(
        self,
        issues: Sequence[DetectedIssue],
        embeddings: Mapping[str, Sequence[float]] | None = None,
    ) -> list[AggregatedIssue]:
        """Агрегировать находки стандартных проверок."""
        return self.aggregate(issues, ISSUE_PROFILE, embeddings)

    def aggregate_custom_audits(
        self,
        issues: Sequence[DetectedIssue],
        embeddings: Mapping[str, Sequence[float]] | None = None,
    ) -> list[AggregatedIssue]:
        """Агрегировать находки пользовательских проверок с семантическим слиянием."""
        return self.aggregate(issues, CUSTOM_AUDIT_PROFILE, embeddings)

    def aggregate_scenarios(
        self,
        scenarios: Sequence[Scenario],
        embeddings: Mapping[str, Sequence[float]] | None = None,
    ) -> list[AggregatedScenario]:
        """Агрегировать сценарии открытого аудита."""
        return self.aggregate(scenarios, SCENARIO_PROFILE, embeddings)

    def aggregate(
        self,
        findings: Sequence[F],
        profile: AggregationProfile[F, C],
        embeddings: Mapping[str, Sequence[float]] | None = None,
    ) -> list[C]:
        """Кластеризовать находки по профилю и вернуть отсортированные сводки."""
        if not findings:
            return []

        clusters = self._clustering.cluster(
            findings,
            canonical_text=profile.canonical_text,
            embedding_key=profile.embedding_key,
            partition_key=profile.partition_key,
            embeddings=embeddings,
        )

        result = [self._build_cluster(members, profile) for members in clusters]
        # sort() стабилен: при равных ключах сохраняется порядок создания кластеров
        result.sort(key=profile.sort_key)

        logger.info(
            "Агрегация [%s]: %d находок → %d кластеров",
            profile.name,
            len(findings),
            len(result),
        )
        return result

    def _build_cluster(self, members: list[F], profile: AggregationProfile[F, C]) -> C:
        stats = summarize_cluster(
            members,
            label=profile.label,
            detail=profile.detail,
            evidence_limit=self._evidence_limit,
        )
        member_ids = [f.id for f in members]
        partition = profile.partition_key(members[0]) if profile.partition_key else None

        return profile.model(
            cluster_id=_generate_cluster_id(profile.name, partition, member_ids),
            representative=stats.representative,
            severity=stats.severity,
            avg_confidence=stats.avg_confidence,
            occurrences=profile.occurrences(members, stats.affected_call_ids),
            unique_calls=len(stats.affected_call_ids),
            affected_call_ids=stats.affected_call_ids,
            pattern=stats.pattern,
            evidence_snippets=stats.evidence_snippets,
            member_ids=member_ids,
            **profile.summary_fields(members),
        )


def get_aggregation_summary(clusters: Sequence[FindingCluster]) -> AggregationSummary:
    """Сводная статистика: находки, группы, среднее на группу, уникальные звонки."""
    total_findings = sum(c.member_count for c in clusters)
    total_groups = len(clusters)
    all_calls = {call_id for c in clusters for call_id in c.affected_call_ids}

    return AggregationSummary(
        total_findings=total_findings,
        total_groups=total_groups,
        avg_findings_per_group=round_half_up(total_findings, total_groups),
        total_calls=len(all_calls),
    )
