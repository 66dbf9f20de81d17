"""Нормализация меток и коротких текстов находок."""

from __future__ import annotations

import re

_MULTI_WS_RE = re.compile(r"\s+")

# Хвостовой тег варианта: «Empathy (A)», «Compliance (b2)». Аббревиатуры вроде «(PII)» не трогаем.
_TRAILING_TAG_RE = re.compile(r"\s*[\(\[]\s*[A-Za-z]\d?\s*[\)\]]\s*$")


def collapse_whitespace(text: str) -> str:
    """Свернуть все пробельные последовательности в один пробел."""
    return _MULTI_WS_RE.sub(" ", text).strip()


def normalize_partition_label(label: str | None) -> str:
    """Нормализовать метку партиции: пробелы и хвостовой тег ``(A)``.

    Регистр сохраняется — партиции сравниваются регистрозависимо.
    """
    if not label:
        return ""
    return _TRAILING_TAG_RE.sub("", collapse_whitespace(label)).strip()


def humanize_label(label: str | None) -> str:
    """``flow_deviation`` → ``flow deviation`` для использования в тексте."""
    if not label:
        return ""
    return collapse_whitespace(label.replace("_", " ").replace("-", " "))
