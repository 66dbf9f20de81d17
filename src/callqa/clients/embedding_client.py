"""HTTP-клиент для OpenAI-совместимого API эмбеддингов."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from callqa.exceptions import EmbeddingApiError

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})


class EmbeddingClient:
    """HTTP-клиент эндпоинта ``POST {base_url}/v1/embeddings``.

    Отправляет пачку текстов и возвращает векторы в том же порядке.
    Поддерживает retry с exponential backoff при 429 / 502-504 /
    сетевых ошибках.
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: str = "",
        *,
        timeout: int = 30,
        ssl_verify: bool = True,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._api_key = api_key
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._http = httpx.AsyncClient(timeout=timeout, verify=ssl_verify)

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Получить эмбеддинги для списка текстов.

        POST {base_url}/v1/embeddings
        Body: {"model": "...", "input": ["...", ...]}
        Auth: Bearer token (если задан)

        Returns:
            Векторы в порядке входных текстов.

        Raises:
            EmbeddingApiError: При HTTP-ошибках или неожиданном формате ответа.
        """
        url = f"{self._base_url}/v1/embeddings"
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        payload = {"model": self._model, "input": texts}

        last_error: EmbeddingApiError | None = None

        for attempt in range(1 + self._max_retries):
            logger.debug(
                "Embeddings запрос: POST %s texts=%d attempt=%d/%d",
                url,
                len(texts),
                attempt + 1,
                1 + self._max_retries,
            )

            retryable = False
            try:
                resp = await self._http.post(url, json=payload, headers=headers)
            except httpx.TimeoutException as exc:
                last_error = EmbeddingApiError(0, f"Таймаут запроса: {exc}", url)
                last_error.__cause__ = exc
                retryable = True
            except httpx.RequestError as exc:
                last_error = EmbeddingApiError(0, str(exc), url)
                last_error.__cause__ = exc
                retryable = True
            else:
                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    last_error = EmbeddingApiError(resp.status_code, resp.text[:500], url)
                    retryable = True
                elif resp.status_code >= 400:
                    raise EmbeddingApiError(resp.status_code, resp.text[:500], url)
                else:
                    try:
                        data = resp.json()
                    except Exception as exc:
                        raise EmbeddingApiError(
                            resp.status_code,
                            f"Ответ не является валидным JSON: {resp.text[:200]}",
                            url,
                        ) from exc
                    return self._extract_vectors(data, len(texts), url)

            if retryable and attempt < self._max_retries:
                delay = self._retry_base_delay * (2 ** attempt)
                logger.warning(
                    "Embeddings ошибка (попытка %d/%d): %s — повтор через %.1fs",
                    attempt + 1,
                    1 + self._max_retries,
                    last_error,
                    delay,
                )
                await asyncio.sleep(delay)
            elif last_error is not None:
                raise last_error

        # Unreachable, но для mypy
        raise last_error  # type: ignore[misc]

    @staticmethod
    def _extract_vectors(data: dict[str, Any], expected: int, url: str) -> list[list[float]]:
        """Извлечь векторы из ответа ``{"data": [{"index": i, "embedding": [...]}]}``.

        Элементы упорядочиваются по ``index``, если он есть.
        """
        try:
            items = data["data"]
            if not isinstance(items, list):
                msg = f"Ожидался list, получен {type(items).__name__}"
                raise TypeError(msg)
            ordered = sorted(
                enumerate(items),
                key=lambda pair: pair[1].get("index", pair[0]),
            )
            vectors = [[float(x) for x in item["embedding"]] for _, item in ordered]
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise EmbeddingApiError(
                0,
                f"Неожиданная структура ответа API эмбеддингов: {exc}. "
                f"Ответ: {str(data)[:300]}",
                url,
            ) from exc

        if len(vectors) != expected:
            raise EmbeddingApiError(
                0,
                f"Ожидалось {expected} векторов, получено {len(vectors)}",
                url,
            )
        return vectors

    async def close(self) -> None:
        """Освободить ресурсы HTTP-клиента."""
        await self._http.aclose()

    async def __aenter__(self) -> EmbeddingClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
