"""Общие фабрики и фикстуры для тестов callqa."""

from __future__ import annotations

import itertools

from callqa.models.findings import DetectedIssue, Scenario

_ids = itertools.count(1)


def make_issue(**overrides) -> DetectedIssue:
    """Фабрика DetectedIssue с разумными дефолтами."""
    n = next(_ids)
    defaults: dict = {
        "id": f"issue-{n}",
        "callId": f"call-{n}",
        "type": "missed_verification",
        "explanation": "Agent skipped customer name capture",
        "severity": "medium",
        "confidence": 80,
        "lineNumbers": [3],
        "evidenceSnippet": f"snippet {n}",
    }
    defaults.update(overrides)
    return DetectedIssue.model_validate(defaults)


def make_scenario(**overrides) -> Scenario:
    """Фабрика Scenario с разумными дефолтами."""
    n = next(_ids)
    defaults: dict = {
        "id": f"scenario-{n}",
        "callId": f"call-{n}",
        "title": "Skipped identity verification",
        "context": "Customer asked to change the delivery address",
        "whatHappened": "Agent changed the address without verifying identity",
        "impact": "Account takeover risk",
        "severity": "high",
        "confidence": 70,
        "dimension": "Compliance",
        "rootCauseType": "process",
        "evidenceSnippet": f"evidence {n}",
    }
    defaults.update(overrides)
    return Scenario.model_validate(defaults)
