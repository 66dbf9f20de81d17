"""Custom exception hierarchy for the callqa package."""


class CallQAError(Exception):
    """Base exception for all callqa errors."""


class ConfigurationError(CallQAError):
    """Missing or invalid configuration."""


class VocabularyError(CallQAError):
    """Vocabulary file is unreadable or malformed."""


class EmbeddingApiError(CallQAError):
    """HTTP error from the embedding provider API."""

    def __init__(self, status_code: int, message: str, endpoint: str) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(f"HTTP {status_code} from {endpoint}: {message}")
