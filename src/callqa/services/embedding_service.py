"""Предварительный расчёт эмбеддингов для ключей находок.

Единственный контракт с движком кластеризации — словарь
``{ключ: вектор}``, возможно неполный или пустой. Ключи запрашиваются
батчами фиксированного размера с короткой паузой между батчами.
Упавший батч повторяется поштучно; ключ, для которого вектор получить
не удалось, просто отсутствует в результате. Отмена (``CancelledError``)
не перехватывается и прерывает проход.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING, Protocol, TypeVar

from callqa.exceptions import ConfigurationError

if TYPE_CHECKING:
    from callqa.config import Settings

logger = logging.getLogger(__name__)

F = TypeVar("F")


class EmbeddingProvider(Protocol):
    """Всё, что умеет превратить пачку текстов в векторы."""

    async def embed(self, texts: list[str]) -> list[list[float]]:
        ...


def collect_embedding_keys(findings: Iterable[F], key: Callable[[F], str]) -> list[str]:
    """Уникальные непустые ключи находок в порядке первого появления."""
    keys = (key(f) for f in findings)
    return [k for k in dict.fromkeys(keys) if k and k.strip()]


class EmbeddingService:
    """Батчевый расчёт эмбеддингов с терпимостью к частичным отказам."""

    def __init__(
        self,
        provider: EmbeddingProvider,
        *,
        batch_size: int = 50,
        batch_delay: float = 0.1,
    ) -> None:
        self._provider = provider
        self._batch_size = max(1, batch_size)
        self._batch_delay = max(0.0, batch_delay)

    @classmethod
    def from_settings(cls, settings: Settings) -> EmbeddingService:
        """Собрать сервис с HTTP-клиентом из ``Settings``.

        Raises:
            ConfigurationError: Если не задан ``embedding_base_url``.
        """
        from callqa.clients.embedding_client import EmbeddingClient

        if not settings.embedding_base_url:
            raise ConfigurationError(
                "Для эмбеддингов требуется CALLQA_EMBEDDING_BASE_URL"
            )
        client = EmbeddingClient(
            base_url=settings.embedding_base_url,
            model=settings.embedding_model,
            api_key=settings.embedding_api_key,
            timeout=settings.embedding_timeout,
            ssl_verify=settings.ssl_verify,
            max_retries=settings.embedding_max_retries,
        )
        return cls(
            client,
            batch_size=settings.embedding_batch_size,
            batch_delay=settings.embedding_batch_delay,
        )

    async def close(self) -> None:
        """Закрыть провайдера, если он держит ресурсы."""
        close = getattr(self._provider, "close", None)
        if close is not None:
            await close()

    async def embed_keys(self, keys: Iterable[str]) -> dict[str, list[float]]:
        """Получить векторы для ключей; неполученные ключи пропускаются.

        Returns:
            ``{ключ: вектор}`` — только для успешно обработанных ключей.
        """
        unique_keys = [k for k in dict.fromkeys(keys) if k and k.strip()]
        if not unique_keys:
            return {}

        batches = [
            unique_keys[i: i + self._batch_size]
            for i in range(0, len(unique_keys), self._batch_size)
        ]
        vectors: dict[str, list[float]] = {}

        for batch_no, batch in enumerate(batches):
            if batch_no > 0 and self._batch_delay > 0:
                await asyncio.sleep(self._batch_delay)
            vectors.update(await self._embed_batch(batch, batch_no))

        missing = len(unique_keys) - len(vectors)
        logger.info(
            "Эмбеддинги: получено %d из %d ключей (батчей: %d, пропущено: %d)",
            len(vectors),
            len(unique_keys),
            len(batches),
            missing,
        )
        return vectors

    async def _embed_batch(self, batch: Sequence[str], batch_no: int) -> dict[str, list[float]]:
        try:
            result = await self._provider.embed(list(batch))
            if len(result) != len(batch):
                msg = f"получено {len(result)} векторов на {len(batch)} ключей"
                raise ValueError(msg)
            return dict(zip(batch, result))
        except Exception as exc:
            logger.warning(
                "Эмбеддинги: батч #%d (%d ключей) не обработан: %s — повтор поштучно",
                batch_no,
                len(batch),
                exc,
            )

        vectors: dict[str, list[float]] = {}
        for key in batch:
            try:
                single = await self._provider.embed([key])
                if len(single) == 1:
                    vectors[key] = single[0]
                else:
                    logger.warning(
                        "Эмбеддинги: для ключа %r получено %d векторов, пропуск",
                        key,
                        len(single),
                    )
            except Exception as exc:
                logger.warning("Эмбеддинги: ключ %r пропущен: %s", key, exc)
        return vectors
