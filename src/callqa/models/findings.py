"""Pydantic-модели находок аудита: проблемы (issues) и сценарии (scenarios).

Находки приходят от LLM-детектора уже разобранными. Отсутствующие текстовые
поля становятся пустой строкой, отсутствующая уверенность — нулём.
Поле ``severity`` намеренно строковое: неизвестные значения не должны
ронять агрегацию (см. ``severity_rank``).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Finding(BaseModel):
    """Одна находка, привязанная к конкретному звонку и строкам транскрипта."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    call_id: str = Field(alias="callId")
    severity: str = "low"
    confidence: int = Field(default=0, ge=0, le=100)
    line_numbers: list[int] = Field(default_factory=list, alias="lineNumbers")
    evidence_snippet: str = Field(default="", alias="evidenceSnippet")


class DetectedIssue(Finding):
    """Проблема, найденная стандартной или пользовательской проверкой."""

    type: str = ""
    explanation: str = ""
    suggested_fix: str | None = Field(default=None, alias="suggestedFix")
    is_custom_check: bool = Field(default=False, alias="isCustomCheck")
    source_check_id: str | None = Field(default=None, alias="sourceCheckId")
    source_check_name: str | None = Field(default=None, alias="sourceCheckName")


class Scenario(Finding):
    """Сценарий открытого аудита: ситуация, где агент мог сработать лучше."""

    title: str = ""
    context: str = ""
    what_happened: str = Field(default="", alias="whatHappened")
    impact: str = ""
    dimension: str | None = None
    root_cause_type: str | None = Field(default=None, alias="rootCauseType")
