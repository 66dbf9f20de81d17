"""Теггеры текста: извлечение сущностей и пар action-object.

Оба извлекателя — один полиморфный ``RuleTagger`` с разными наборами
правил. Правило — скомпилированный regex и функция, превращающая
совпадение в тег (или ``None``, если совпадение — шум). Наборы правил
строятся из ``Vocabulary``, поэтому смена словаря не трогает алгоритм.

Все функции тотальны: пустой или «непохожий» текст даёт пустое множество.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from callqa.similarity.vocabulary import DEFAULT_VOCABULARY, Vocabulary

_APOSTROPHES_RE = re.compile(r"[‘’ʼ`]")


@runtime_checkable
class TextTagger(Protocol):
    """Контракт любого теггера: текст → множество тегов."""

    def tag(self, text: str) -> frozenset[str]:
        ...


@dataclass(frozen=True)
class TaggingRule:
    """Одно правило: шаблон + построитель тега из совпадения."""

    pattern: re.Pattern[str]
    emit: Callable[[re.Match[str]], str | None]


class RuleTagger:
    """Применяет набор правил к тексту в нижнем регистре."""

    def __init__(self, rules: Sequence[TaggingRule]) -> None:
        self._rules = tuple(rules)

    def tag(self, text: str) -> frozenset[str]:
        if not text:
            return frozenset()

        lowered = _APOSTROPHES_RE.sub("'", text.lower())
        tags: set[str] = set()
        for rule in self._rules:
            for match in rule.pattern.finditer(lowered):
                tag = rule.emit(match)
                if tag:
                    tags.add(tag)
        return frozenset(tags)


# ---------------------------------------------------------------------------
# Построение шаблонов
# ---------------------------------------------------------------------------


def _alternation(words: Iterable[str]) -> str:
    """Regex-альтернатива, длинные варианты первыми (``ask for`` раньше ``ask``)."""
    ordered = sorted(set(words), key=lambda w: (-len(w), w))
    return "|".join(re.escape(w).replace(r"\ ", r"\s+") for w in ordered)


def _entity_rules(vocabulary: Vocabulary) -> list[TaggingRule]:
    rules: list[TaggingRule] = []

    if vocabulary.entity_qualifiers and vocabulary.entity_heads:
        # Lookahead на существительное: «mandatory verification step» даёт
        # и mandatory_verification, и verification_step.
        compound = re.compile(
            rf"\b(?P<qualifier>{_alternation(vocabulary.entity_qualifiers)})(?:'s)?\s+"
            rf"(?=(?P<head>{_alternation(vocabulary.entity_heads)})s?\b)"
        )
        rules.append(TaggingRule(
            pattern=compound,
            emit=lambda m: f"{m.group('qualifier')}_{m.group('head')}",
        ))

    if vocabulary.important_nouns:
        single = re.compile(
            rf"\b(?P<noun>{_alternation(vocabulary.important_nouns)})s?\b"
        )
        rules.append(TaggingRule(pattern=single, emit=lambda m: m.group("noun")))

    return rules


def _action_object_rules(vocabulary: Vocabulary) -> list[TaggingRule]:
    leading = vocabulary.leading_verbs
    if not leading:
        return []

    capture = (
        rf"(?:(?:{_alternation(vocabulary.capture_verbs)})\s+)?"
        if vocabulary.capture_verbs
        else ""
    )
    qualifiers = (
        rf"(?:(?:{_alternation(vocabulary.object_qualifiers)})(?:'s)?\s+){{0,3}}"
        if vocabulary.object_qualifiers
        else ""
    )
    pattern = re.compile(
        rf"\b(?P<verb>{_alternation(leading)})\s+"
        rf"(?:to\s+)?"
        rf"{capture}"
        rf"{qualifiers}"
        rf"(?P<object>[a-z][a-z0-9]*)\b"
    )

    nouns = vocabulary.entity_nouns

    def emit(match: re.Match[str]) -> str | None:
        obj = match.group("object")
        if len(obj) < vocabulary.min_object_length or obj in vocabulary.stopwords:
            return None
        if obj.endswith("s") and obj[:-1] in nouns:
            obj = obj[:-1]
        action = vocabulary.normalize_action(match.group("verb"))
        return f"{action}_{obj}"

    return [TaggingRule(pattern=pattern, emit=emit)]


def build_entity_tagger(vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> RuleTagger:
    """Теггер сущностей: составные фразы ``qualifier_head`` и важные существительные."""
    return RuleTagger(_entity_rules(vocabulary))


def build_action_object_tagger(vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> RuleTagger:
    """Теггер пар action-object: ``глагол [to] [capture-глагол] [квалификаторы] объект``."""
    return RuleTagger(_action_object_rules(vocabulary))


_DEFAULT_ENTITY_TAGGER = build_entity_tagger()
_DEFAULT_ACTION_TAGGER = build_action_object_tagger()


def extract_entities(text: str, tagger: TextTagger | None = None) -> frozenset[str]:
    """Извлечь сущности из текста (по умолчанию — встроенным словарём)."""
    return (tagger or _DEFAULT_ENTITY_TAGGER).tag(text)


def extract_action_objects(text: str, tagger: TextTagger | None = None) -> frozenset[str]:
    """Извлечь нормализованные токены ``action_object`` (например ``fail_name``)."""
    return (tagger or _DEFAULT_ACTION_TAGGER).tag(text)
