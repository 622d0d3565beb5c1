from dataclasses import dataclass
from typing import Optional

from django.conf import settings

from .exceptions import ConfigurationError


@dataclass(frozen=True)
class RefreshConfig:
    """Everything the refresh pipeline needs, built once at the entry point."""

    countries_api: str
    exchange_api: str
    image_path: str
    chunk_size: int = 50
    write_workers: Optional[int] = None
    fetch_timeout: float = 12.0
    fetch_attempts: int = 3
    fetch_backoff: float = 0.5

    @classmethod
    def from_settings(cls):
        return cls(
            countries_api=settings.COUNTRIES_API,
            exchange_api=settings.EXCHANGE_API,
            image_path=str(settings.COUNTRIES_IMAGE_PATH),
            chunk_size=settings.COUNTRIES_CHUNK_SIZE,
            write_workers=settings.COUNTRIES_WRITE_WORKERS,
            fetch_timeout=settings.COUNTRIES_FETCH_TIMEOUT,
            fetch_attempts=settings.COUNTRIES_FETCH_ATTEMPTS,
            fetch_backoff=settings.COUNTRIES_FETCH_BACKOFF,
        )

    def validate(self):
        if not self.countries_api or not self.exchange_api:
            raise ConfigurationError("External API URLs not configured")
        if self.chunk_size < 1:
            raise ConfigurationError("Chunk size must be at least 1")
        if self.fetch_attempts < 1:
            raise ConfigurationError("Fetch attempts must be at least 1")
        return self
