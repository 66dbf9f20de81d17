"""Pydantic-модели результатов агрегации находок."""

from __future__ import annotations

from pydantic import BaseModel, Field

from callqa.models.findings import DetectedIssue, Scenario


class FindingCluster(BaseModel):
    """Кластер — группа находок, описывающих одну повторяющуюся проблему."""

    cluster_id: str
    representative: str = Field(description="Самая частая метка (type/title) среди участников")
    severity: str = Field(description="Максимальная серьёзность среди участников")
    avg_confidence: int = Field(description="Средняя уверенность, округление half-up")
    occurrences: int
    unique_calls: int
    affected_call_ids: list[str] = Field(default_factory=list)
    pattern: str = ""
    evidence_snippets: list[str] = Field(default_factory=list)
    member_ids: list[str] = Field(default_factory=list)

    @property
    def member_count(self) -> int:
        return len(self.member_ids)


class AggregatedIssue(FindingCluster):
    """Агрегированная проблема (стандартные и пользовательские проверки)."""

    source_checks: list[str] = Field(default_factory=list)
    instances: list[DetectedIssue] = Field(default_factory=list)


class AggregatedScenario(FindingCluster):
    """Агрегированный сценарий внутри пары (dimension, root_cause_type)."""

    dimension: str
    root_cause_type: str | None = None
    scenarios: list[Scenario] = Field(default_factory=list)


class AggregationSummary(BaseModel):
    """Сводная статистика по результату агрегации."""

    total_findings: int = 0
    total_groups: int = 0
    avg_findings_per_group: int = 0
    total_calls: int = 0
