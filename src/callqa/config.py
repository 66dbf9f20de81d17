"""Конфигурация приложения, загружаемая из переменных окружения."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Конфигурация приложения callqa.

    Все значения задаются через переменные окружения с префиксом ``CALLQA_``
    или через файл ``.env`` в рабочей директории.
    """

    model_config = SettingsConfigDict(
        env_prefix="CALLQA_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    log_level: str = Field(default="INFO", description="Уровень логирования")

    similarity_threshold: float = Field(
        default=0.30, ge=0.0, le=1.0,
        description="Порог итоговой схожести для объединения находок в кластер (0.0-1.0)",
    )
    evidence_sample_size: int = Field(
        default=3, ge=1,
        description="Сколько уникальных фрагментов-доказательств хранить на кластер",
    )
    vocabulary_path: str = Field(
        default="",
        description="Путь к YAML-словарю (стоп-слова, синонимы, сущности). Пусто — встроенный словарь",
    )

    embeddings_enabled: bool = Field(default=False, description="Включить/выключить предварительный расчёт эмбеддингов")
    embedding_base_url: str = Field(default="", description="Базовый URL OpenAI-совместимого API эмбеддингов")
    embedding_api_key: str = Field(default="", description="API-ключ провайдера эмбеддингов (Bearer token)")
    embedding_model: str = Field(default="text-embedding-3-small", description="Модель эмбеддингов")
    embedding_batch_size: int = Field(default=50, ge=1, description="Ключей в одном запросе к API эмбеддингов")
    embedding_batch_delay: float = Field(
        default=0.1, ge=0.0,
        description="Пауза между батчами запросов эмбеддингов в секундах",
    )
    embedding_timeout: int = Field(default=30, ge=1, description="Таймаут одного запроса эмбеддингов в секундах")
    embedding_max_retries: int = Field(default=3, ge=0, description="Макс. повторов запроса эмбеддингов")

    ssl_verify: bool = Field(default=True, description="Проверка SSL-сертификатов (отключить для корпоративных прокси)")
