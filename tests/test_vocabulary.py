"""Тесты словаря и его загрузки из YAML."""

from __future__ import annotations

import pytest

from callqa.exceptions import VocabularyError
from callqa.similarity.taggers import build_action_object_tagger, build_entity_tagger
from callqa.similarity.tokens import tokenize
from callqa.similarity.vocabulary import DEFAULT_VOCABULARY, Vocabulary, load_vocabulary


def test_default_vocabulary_normalize_action() -> None:
    assert DEFAULT_VOCABULARY.normalize_action("skipped") == "fail"
    assert DEFAULT_VOCABULARY.normalize_action("did   not") == "fail"
    assert DEFAULT_VOCABULARY.normalize_action("asked") == "collect"
    assert DEFAULT_VOCABULARY.normalize_action("confirmed") == "verify"
    assert DEFAULT_VOCABULARY.normalize_action("offered") == "offered"


def test_default_vocabulary_canonical_token() -> None:
    assert DEFAULT_VOCABULARY.canonical_token("omitted") == "fail"
    assert DEFAULT_VOCABULARY.canonical_token("unrelated") == "unrelated"


def test_vocabulary_is_immutable() -> None:
    with pytest.raises(AttributeError):
        DEFAULT_VOCABULARY.min_token_length = 1  # type: ignore[misc]
    with pytest.raises(TypeError):
        DEFAULT_VOCABULARY.synonyms["x"] = "y"  # type: ignore[index]


def test_from_mapping_missing_sections_keep_defaults() -> None:
    vocabulary = Vocabulary.from_mapping({"stopwords": ["Hello"]})

    assert vocabulary.stopwords == {"hello"}
    assert vocabulary.entity_heads == DEFAULT_VOCABULARY.entity_heads


def test_load_vocabulary_from_yaml(tmp_path) -> None:
    path = tmp_path / "vocab.yaml"
    path.write_text(
        "stopwords: [the]\n"
        "synonyms:\n"
        "  deny: [denied, refused]\n"
        "entities:\n"
        "  qualifiers: [warranty]\n"
        "  heads: [claim]\n"
        "  nouns: [claim]\n"
        "actions:\n"
        "  buckets:\n"
        "    deny: [denied, refused]\n"
        "  passthrough_verbs: []\n"
        "  capture_verbs: [process]\n"
        "  qualifiers: [the]\n",
        encoding="utf-8",
    )

    vocabulary = load_vocabulary(path)

    assert tokenize("Refused the claim", vocabulary) == {"deny", "claim"}
    assert build_entity_tagger(vocabulary).tag("warranty claim") == {"warranty_claim", "claim"}
    assert build_action_object_tagger(vocabulary).tag("refused to process the claim") == {
        "deny_claim",
    }


def test_load_vocabulary_empty_file_gives_defaults(tmp_path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    vocabulary = load_vocabulary(path)

    assert vocabulary.stopwords == DEFAULT_VOCABULARY.stopwords


def test_load_vocabulary_missing_file(tmp_path) -> None:
    with pytest.raises(VocabularyError, match="не найден"):
        load_vocabulary(tmp_path / "nope.yaml")


def test_load_vocabulary_invalid_yaml(tmp_path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("stopwords: [unclosed\n", encoding="utf-8")

    with pytest.raises(VocabularyError, match="Ошибка чтения"):
        load_vocabulary(path)


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "stopwords: the\n",
        "synonyms: [a, b]\n",
        "entities: [a]\n",
        "actions:\n  buckets:\n    fail: skipped\n",
    ],
)
def test_load_vocabulary_bad_structure(tmp_path, content: str) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(VocabularyError):
        load_vocabulary(path)


def test_vocabulary_compares_by_value() -> None:
    assert Vocabulary() == DEFAULT_VOCABULARY
    assert Vocabulary.from_mapping({"stopwords": ["hello"]}) != DEFAULT_VOCABULARY
