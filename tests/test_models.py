"""Тесты моделей находок, рангов серьёзности и нормализации меток."""

from __future__ import annotations

import logging

import pytest
from conftest import make_issue, make_scenario
from pydantic import ValidationError

from callqa.models.common import Severity, severity_rank
from callqa.models.findings import DetectedIssue
from callqa.utils.text_normalization import humanize_label, normalize_partition_label


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("low", 1),
        ("medium", 2),
        ("high", 3),
        ("critical", 4),
        (" CRITICAL ", 4),
        (Severity.HIGH, 3),
    ],
)
def test_severity_rank(value, expected: int) -> None:
    assert severity_rank(value) == expected


def test_severity_rank_unknown_is_zero_and_warns(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        assert severity_rank("urgent") == 0
        assert severity_rank(None) == 0
    assert caplog.text.count("Неизвестный уровень серьёзности") == 2


def test_severity_rank_unknown_silent_when_requested(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        assert severity_rank("urgent", warn=False) == 0
    assert caplog.text == ""


def test_issue_accepts_camel_case_and_snake_case() -> None:
    camel = make_issue(callId="c1", sourceCheckName="Greeting")
    snake = DetectedIssue(id="i1", call_id="c1", source_check_name="Greeting")

    assert camel.call_id == snake.call_id == "c1"
    assert camel.source_check_name == snake.source_check_name == "Greeting"


def test_issue_defaults() -> None:
    issue = DetectedIssue.model_validate({"id": "i1", "callId": "c1"})

    assert issue.type == ""
    assert issue.explanation == ""
    assert issue.confidence == 0
    assert issue.evidence_snippet == ""
    assert issue.is_custom_check is False


def test_issue_confidence_out_of_range() -> None:
    with pytest.raises(ValidationError):
        make_issue(confidence=101)


def test_finding_is_frozen() -> None:
    scenario = make_scenario()
    with pytest.raises(ValidationError):
        scenario.title = "changed"  # type: ignore[misc]


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("Empathy (A)", "Empathy"),
        ("Compliance [b2]", "Compliance"),
        ("  Flow   Control ", "Flow Control"),
        ("Process (Manual Review)", "Process (Manual Review)"),
        ("Data (PII)", "Data (PII)"),
        ("Data ( B )", "Data"),
        (None, ""),
        ("", ""),
    ],
)
def test_normalize_partition_label(label, expected: str) -> None:
    assert normalize_partition_label(label) == expected


def test_humanize_label() -> None:
    assert humanize_label("flow_deviation") == "flow deviation"
    assert humanize_label("missed-step_check") == "missed step check"
    assert humanize_label(None) == ""
