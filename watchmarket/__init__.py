"""Market data core: models, configuration, caches, storage and HTTP helpers."""

__version__ = "0.1.0"