"""Словарь предметной области для сигналов схожести.

Стоп-слова, синонимы, сущности и глаголы действий — это конфигурация,
а не логика сопоставления. ``Vocabulary`` — неизменяемое значение, которое
связывается с теггерами и токенизатором при их создании. Для другой
предметной области достаточно загрузить свой YAML через ``load_vocabulary()``.

Формат YAML (любая секция необязательна и заменяет встроенную целиком)::

    stopwords: [the, and, ...]
    synonyms:
      fail: [skip, skipped, missed]
    entities:
      qualifiers: [customer, mandatory]
      heads: [name, step]
      nouns: [name, identity]
    actions:
      buckets:
        fail: [failed, skipped]
      passthrough_verbs: [managed]
      capture_verbs: [collect, ask]
      qualifiers: [the, customer]
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from callqa.exceptions import VocabularyError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Встроенный словарь (аудит звонков контакт-центра)
# ---------------------------------------------------------------------------

_DEFAULT_STOPWORDS = (
    "the", "and", "but", "for", "nor", "with", "from", "into", "onto", "over",
    "about", "after", "before", "during", "while", "when", "where", "which",
    "who", "whom", "what", "why", "how", "that", "this", "these", "those",
    "was", "were", "are", "has", "have", "had", "been", "being", "not",
    "did", "does", "doing", "will", "would", "could", "should", "can", "may",
    "might", "must", "shall", "its", "his", "her", "hers", "their", "theirs",
    "they", "them", "then", "than", "there", "here", "also", "just", "very",
    "any", "all", "some", "such", "only", "own", "same", "other", "each",
    "both", "more", "most", "too", "out", "off", "again", "further", "once",
    "agent", "call", "calls", "caller",
)

_DEFAULT_SYNONYMS: dict[str, tuple[str, ...]] = {
    "fail": (
        "fail", "fails", "failed", "failing", "failure", "skip", "skips",
        "skipped", "skipping", "miss", "misses", "missed", "missing", "omit",
        "omits", "omitted", "omitting", "omission", "bypass", "bypassed",
        "bypassing", "forgot", "forget", "forgets", "forgetting", "neglect",
        "neglected", "neglecting", "ignore", "ignored", "ignoring",
    ),
    "collect": (
        "collect", "collects", "collected", "collecting", "collection",
        "capture", "captures", "captured", "capturing", "gather", "gathered",
        "gathering", "obtain", "obtained", "obtaining", "request", "requested",
        "requesting", "ask", "asked", "asking", "record", "recorded",
    ),
    "verify": (
        "verify", "verifies", "verified", "verifying", "verification",
        "confirm", "confirms", "confirmed", "confirming", "confirmation",
        "validate", "validated", "validating", "validation", "check",
        "checked", "checking", "authenticate", "authenticated",
        "authentication",
    ),
    "name": ("name", "names", "named"),
    "greet": ("greet", "greeted", "greeting", "greetings"),
    "close": ("close", "closed", "closing"),
    "rude": ("rude", "rudely", "impolite", "disrespectful", "dismissive", "curt"),
    "empathy": ("empathy", "empathetic", "empathize", "empathise", "sympathy", "sympathetic"),
    "apology": ("apology", "apologies", "apologize", "apologise", "apologized", "apologised"),
    "repeat": ("repeat", "repeats", "repeated", "repeating", "repetition", "loop", "looped", "looping"),
    "interrupt": ("interrupt", "interrupts", "interrupted", "interrupting", "interruption"),
    "escalate": ("escalate", "escalated", "escalating", "escalation"),
    "restart": ("restart", "restarted", "reset", "restarting"),
    "language": ("language", "languages"),
    "script": ("script", "scripts", "scripted"),
    "customer": ("customer", "customers", "client", "clients"),
}

_DEFAULT_ENTITY_QUALIFIERS = (
    "customer", "client", "mandatory", "required", "verification", "security",
    "identity", "account", "contact", "personal", "payment", "billing",
    "phone", "email", "delivery", "compliance", "consent", "legal", "order",
    "callback", "refund", "cancellation", "closing", "opening", "greeting",
    "script", "policy",
)

_DEFAULT_ENTITY_HEADS = (
    "name", "number", "address", "email", "details", "information", "step",
    "steps", "question", "questions", "check", "verification", "disclosure",
    "statement", "script", "greeting", "consent", "date", "policy",
    "procedure", "confirmation", "status", "request", "amount", "method",
    "identity",
)

_DEFAULT_IMPORTANT_NOUNS = (
    "name", "identity", "address", "email", "phone", "account", "payment",
    "verification", "authentication", "disclosure", "consent", "greeting",
    "closing", "script", "empathy", "apology", "refund", "order", "delivery",
    "callback", "escalation", "transfer", "language", "policy", "complaint",
    "cancellation", "password", "pin", "birthday", "balance", "invoice",
    "subscription", "appointment", "recording",
)

_DEFAULT_ACTION_BUCKETS: dict[str, tuple[str, ...]] = {
    "fail": (
        "fail", "fails", "failed", "failing", "skip", "skips", "skipped",
        "skipping", "miss", "misses", "missed", "omit", "omits", "omitted",
        "forgot", "forgets", "neglected", "neglects", "bypassed", "ignored",
        "did not", "didn't", "does not", "doesn't", "never", "unable to",
    ),
    "collect": (
        "collect", "collects", "collected", "capture", "captures", "captured",
        "gather", "gathers", "gathered", "obtain", "obtains", "obtained",
        "request", "requests", "requested", "ask", "asks", "asked",
        "record", "records", "recorded",
    ),
    "verify": (
        "verify", "verifies", "verified", "confirm", "confirms", "confirmed",
        "validate", "validates", "validated", "check", "checks", "checked",
        "authenticate", "authenticates", "authenticated",
    ),
}

_DEFAULT_PASSTHROUGH_VERBS = (
    "managed", "attempted", "tried", "remembered", "offered", "provided",
    "explained", "mentioned", "stated", "gave", "followed", "completed",
)

_DEFAULT_CAPTURE_VERBS = (
    "collect", "collecting", "capture", "capturing", "gather", "gathering",
    "obtain", "obtaining", "request", "requesting", "ask", "asking",
    "ask for", "asking for", "verify", "verifying", "confirm", "confirming",
    "validate", "validating", "check", "checking", "record", "recording",
    "get", "getting", "take", "taking", "mention", "mentioning", "provide",
    "providing", "read", "reading", "state", "stating", "offer", "offering",
    "explain", "explaining", "follow", "following", "complete", "completing",
    "greet", "greeting",
)

_DEFAULT_OBJECT_QUALIFIERS = (
    "the", "a", "an", "for", "their", "his", "her", "its", "any", "all",
    "required", "mandatory", "full", "correct", "proper", "complete",
    "customer", "client", "caller", "account", "contact", "personal",
    "payment", "billing", "security", "verification", "identity", "phone",
    "email", "order", "refund", "callback",
)


def _freeze_groups(groups: Mapping[str, Iterable[str]]) -> Mapping[str, frozenset[str]]:
    return MappingProxyType(
        {key: frozenset(values) for key, values in groups.items()}
    )


def _invert_groups(groups: Mapping[str, Iterable[str]]) -> Mapping[str, str]:
    """Развернуть ``{canonical: [variants]}`` в ``{variant: canonical}``.

    При конфликте побеждает первая группа — порядок групп значим.
    """
    lookup: dict[str, str] = {}
    for canonical, variants in groups.items():
        for variant in (canonical, *variants):
            lookup.setdefault(variant, canonical)
    return MappingProxyType(lookup)


# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Vocabulary:
    """Неизменяемая конфигурация словаря для теггеров и токенизатора."""

    stopwords: frozenset[str] = field(
        default_factory=lambda: frozenset(_DEFAULT_STOPWORDS)
    )
    synonyms: Mapping[str, str] = field(
        default_factory=lambda: _invert_groups(_DEFAULT_SYNONYMS)
    )
    entity_qualifiers: frozenset[str] = field(
        default_factory=lambda: frozenset(_DEFAULT_ENTITY_QUALIFIERS)
    )
    entity_heads: frozenset[str] = field(
        default_factory=lambda: frozenset(_DEFAULT_ENTITY_HEADS)
    )
    important_nouns: frozenset[str] = field(
        default_factory=lambda: frozenset(_DEFAULT_IMPORTANT_NOUNS)
    )
    action_buckets: Mapping[str, frozenset[str]] = field(
        default_factory=lambda: _freeze_groups(_DEFAULT_ACTION_BUCKETS)
    )
    passthrough_verbs: frozenset[str] = field(
        default_factory=lambda: frozenset(_DEFAULT_PASSTHROUGH_VERBS)
    )
    capture_verbs: frozenset[str] = field(
        default_factory=lambda: frozenset(_DEFAULT_CAPTURE_VERBS)
    )
    object_qualifiers: frozenset[str] = field(
        default_factory=lambda: frozenset(_DEFAULT_OBJECT_QUALIFIERS)
    )
    min_token_length: int = 3
    min_object_length: int = 3

    @property
    def leading_verbs(self) -> frozenset[str]:
        """Все глаголы, с которых может начинаться шаблон action-object."""
        verbs: set[str] = set(self.passthrough_verbs)
        for forms in self.action_buckets.values():
            verbs.update(forms)
        return frozenset(verbs)

    @property
    def entity_nouns(self) -> frozenset[str]:
        return self.entity_heads | self.important_nouns

    def normalize_action(self, verb: str) -> str:
        """Свести глагол к корзине (fail/collect/verify); иначе вернуть как есть."""
        verb = " ".join(verb.split())
        for action, forms in self.action_buckets.items():
            if verb in forms:
                return action
        return verb

    def canonical_token(self, token: str) -> str:
        return self.synonyms.get(token, token)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Vocabulary:
        """Собрать словарь из распарсенного YAML; отсутствующие секции — встроенные.

        Raises:
            VocabularyError: Если секция имеет неверную структуру.
        """
        if not isinstance(data, Mapping):
            raise VocabularyError(
                f"Словарь должен быть отображением, получен {type(data).__name__}"
            )

        overrides: dict[str, Any] = {}

        if "stopwords" in data:
            overrides["stopwords"] = frozenset(_word_list(data["stopwords"], "stopwords"))
        if "synonyms" in data:
            overrides["synonyms"] = _invert_groups(_word_groups(data["synonyms"], "synonyms"))

        entities = data.get("entities") or {}
        if not isinstance(entities, Mapping):
            raise VocabularyError("Секция 'entities' должна быть отображением")
        for key, attr in (
            ("qualifiers", "entity_qualifiers"),
            ("heads", "entity_heads"),
            ("nouns", "important_nouns"),
        ):
            if key in entities:
                overrides[attr] = frozenset(_word_list(entities[key], f"entities.{key}"))

        actions = data.get("actions") or {}
        if not isinstance(actions, Mapping):
            raise VocabularyError("Секция 'actions' должна быть отображением")
        if "buckets" in actions:
            overrides["action_buckets"] = _freeze_groups(
                _word_groups(actions["buckets"], "actions.buckets")
            )
        for key, attr in (
            ("passthrough_verbs", "passthrough_verbs"),
            ("capture_verbs", "capture_verbs"),
            ("qualifiers", "object_qualifiers"),
        ):
            if key in actions:
                overrides[attr] = frozenset(_word_list(actions[key], f"actions.{key}"))

        return cls(**overrides)


def _word_list(value: Any, section: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise VocabularyError(f"Секция '{section}' должна быть списком строк")
    return [v.strip().lower() for v in value if v.strip()]


def _word_groups(value: Any, section: str) -> dict[str, list[str]]:
    if not isinstance(value, Mapping):
        raise VocabularyError(f"Секция '{section}' должна быть отображением")
    return {
        str(key).strip().lower(): _word_list(variants, f"{section}.{key}")
        for key, variants in value.items()
    }


DEFAULT_VOCABULARY = Vocabulary()


def load_vocabulary(path: str | Path) -> Vocabulary:
    """Загрузить словарь из YAML-файла.

    Raises:
        VocabularyError: Если файл не найден, не читается или имеет неверную структуру.
    """
    vocab_path = Path(path)
    if not vocab_path.is_file():
        raise VocabularyError(f"Файл словаря не найден: {vocab_path}")

    try:
        with open(vocab_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (yaml.YAMLError, OSError) as exc:
        raise VocabularyError(f"Ошибка чтения словаря {vocab_path}: {exc}") from exc

    vocabulary = Vocabulary.from_mapping(data or {})
    logger.info(
        "Словарь загружен из %s: %d стоп-слов, %d синонимов, %d сущностей",
        vocab_path,
        len(vocabulary.stopwords),
        len(vocabulary.synonyms),
        len(vocabulary.entity_nouns),
    )
    return vocabulary
