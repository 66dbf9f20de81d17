"""Точка входа CLI: агрегация находок аудита звонков из JSON-файла."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from callqa import __version__

logger = logging.getLogger(__name__)

_KINDS = ("issues", "custom", "scenarios")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="callqa",
        description="Группировка повторяющихся находок аудита звонков по смысловой схожести",
    )
    parser.add_argument(
        "kind",
        choices=_KINDS,
        help="Тип находок: issues — стандартные проверки, custom — "
             "пользовательские проверки, scenarios — сценарии открытого аудита",
    )
    parser.add_argument(
        "file",
        type=Path,
        help="JSON-файл с массивом находок",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Порог схожести (переопределяет CALLQA_SIMILARITY_THRESHOLD)",
    )
    parser.add_argument(
        "--embeddings",
        action="store_true",
        default=None,
        help="Рассчитать эмбеддинги перед кластеризацией (переопределяет CALLQA_EMBEDDINGS_ENABLED)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Уровень логирования (переопределяет CALLQA_LOG_LEVEL)",
    )
    parser.add_argument(
        "--output-format",
        choices=["text", "json"],
        default="text",
        help="Формат вывода (по умолчанию: text)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"callqa {__version__}",
    )
    return parser


def load_findings(path: Path, kind: str) -> list[Any]:
    """Прочитать JSON-массив находок и провалидировать его моделями.

    Raises:
        ValueError: Файл не читается, не JSON или не массив объектов.
        pydantic.ValidationError: Элемент не соответствует модели.
    """
    from callqa.models.findings import DetectedIssue, Scenario

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ValueError(f"Не удалось прочитать {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Некорректный JSON в {path}: {exc}") from exc

    if not isinstance(raw, list):
        raise ValueError(f"Ожидался JSON-массив находок, получен {type(raw).__name__}")

    model = Scenario if kind == "scenarios" else DetectedIssue
    return [model.model_validate(item) for item in raw]


async def async_main(args: argparse.Namespace) -> int:
    """Загрузить находки, сгруппировать и вывести отчёт. Возвращает код выхода."""
    from pydantic import ValidationError

    from callqa.config import Settings
    from callqa.exceptions import CallQAError, ConfigurationError
    from callqa.logging_config import setup_logging
    from callqa.services.aggregation_service import (
        CUSTOM_AUDIT_PROFILE,
        ISSUE_PROFILE,
        SCENARIO_PROFILE,
        AggregationService,
        get_aggregation_summary,
    )
    from callqa.services.embedding_service import EmbeddingService, collect_embedding_keys

    # 1. Загрузка настроек
    try:
        overrides: dict[str, object] = {}
        if args.threshold is not None:
            overrides["similarity_threshold"] = args.threshold
        if args.embeddings:
            overrides["embeddings_enabled"] = True
        settings = Settings(**overrides)  # type: ignore[arg-type]
    except ValidationError as exc:
        print(f"Ошибка конфигурации: {exc}", file=sys.stderr)
        return 2

    # 2. Настройка логирования
    setup_logging(args.log_level or settings.log_level)

    # 3. Чтение находок
    try:
        findings = load_findings(args.file, args.kind)
    except (ValueError, ValidationError) as exc:
        logger.error("Ошибка входных данных: %s", exc)
        return 2

    profile = {
        "issues": ISSUE_PROFILE,
        "custom": CUSTOM_AUDIT_PROFILE,
        "scenarios": SCENARIO_PROFILE,
    }[args.kind]

    # 4. Эмбеддинги (опционально) и агрегация
    try:
        service = AggregationService.from_settings(settings)

        embeddings: dict[str, list[float]] = {}
        if settings.embeddings_enabled and findings and profile.embedding_key is not None:
            embedding_service = EmbeddingService.from_settings(settings)
            try:
                embeddings = await embedding_service.embed_keys(
                    collect_embedding_keys(findings, profile.embedding_key)
                )
            finally:
                await embedding_service.close()

        clusters = service.aggregate(findings, profile, embeddings)
    except ConfigurationError as exc:
        logger.error("Ошибка конфигурации: %s", exc)
        return 2
    except CallQAError as exc:
        logger.error("Ошибка: %s", exc)
        return 1

    summary = get_aggregation_summary(clusters)

    # 5. Вывод отчёта
    if args.output_format == "json":
        output = {
            "kind": args.kind,
            "summary": summary.model_dump(),
            "clusters": [c.model_dump(exclude={"instances", "scenarios"}) for c in clusters],
        }
        print(json.dumps(output, indent=2, ensure_ascii=False))
    else:
        _print_text_report(args.kind, clusters, summary)

    return 0


def _print_text_report(kind: str, clusters: list, summary: Any) -> None:
    """Вывод человекочитаемого отчёта агрегации в stdout."""

    print()
    print(f"=== Агрегация находок [{kind}] ===")
    print(
        f"Находок: {summary.total_findings}"
        f" | Групп: {summary.total_groups}"
        f" | В среднем на группу: {summary.avg_findings_per_group}"
        f" | Звонков: {summary.total_calls}"
    )
    print()

    if not clusters:
        print("Находки не найдены.")
        print()
        return

    for i, cluster in enumerate(clusters, 1):
        lines = [
            f"Группа #{i}: {_normalize_single_line(cluster.representative) or '—'}",
            f"Серьёзность: {cluster.severity}"
            f" | Уверенность: {cluster.avg_confidence}"
            f" | Вхождений: {cluster.occurrences}"
            f" | Звонков: {cluster.unique_calls}",
        ]
        dimension = getattr(cluster, "dimension", None)
        if dimension:
            root_cause = getattr(cluster, "root_cause_type", None) or "—"
            lines.append(f"Измерение: {dimension} | Причина: {root_cause}")
        source_checks = getattr(cluster, "source_checks", None)
        if source_checks:
            lines.append(f"Проверки: {', '.join(source_checks)}")
        if cluster.pattern:
            lines.append(f"Паттерн: {_truncate(_normalize_single_line(cluster.pattern))}")
        for snippet in cluster.evidence_snippets:
            lines.append(f"  > {_truncate(_normalize_single_line(snippet), 100)}")

        for line in _render_box(lines):
            print(line)
        print()


def _truncate(value: str, limit: int = 200) -> str:
    return value if len(value) <= limit else value[:limit] + "..."


def _normalize_single_line(value: str) -> str:
    """Схлопнуть переводы строк/табуляцию в одну строку для рамочного вывода."""
    return " ".join(value.replace("\t", " ").split())


def _render_box(lines: list[str]) -> list[str]:
    """Отрендерить список строк в Unicode-рамку."""
    if not lines:
        return []

    width = max(len(line) for line in lines)
    top = f"╔{'═' * (width + 2)}╗"
    bottom = f"╚{'═' * (width + 2)}╝"
    body = [f"║ {line.ljust(width)} ║" for line in lines]

    return [top, *body, bottom]


def main(argv: list[str] | None = None) -> None:
    """Синхронная точка входа для CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    exit_code = asyncio.run(async_main(args))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
