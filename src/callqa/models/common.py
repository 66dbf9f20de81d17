"""Общие перечисления: уровни серьёзности находок."""

from __future__ import annotations

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    """Серьёзность находки. Порядок: critical > high > medium > low."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANKS[self]


_SEVERITY_RANKS: dict[Severity, int] = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


def severity_rank(value: str | Severity | None, *, warn: bool = True) -> int:
    """Числовой ранг серьёзности (critical=4 … low=1).

    Неизвестное значение получает ранг 0 и не роняет агрегацию,
    но логируется как WARNING: это признак проблем с данными выше по потоку.
    """
    if isinstance(value, str) and not isinstance(value, Severity):
        value = value.strip().lower()
    try:
        return Severity(value).rank
    except ValueError:
        if warn:
            logger.warning(
                "Неизвестный уровень серьёзности %r — используется ранг 0",
                value,
            )
        return 0
