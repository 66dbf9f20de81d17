"""callqa — агрегация находок аудита звонков в кластеры похожих проблем."""

__version__ = "0.1.0"
