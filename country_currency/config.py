"""
Environment configuration for the country_currency project.

Values come from the process environment, falling back to a ``.env`` file at
the project root. ``settings.py`` reads them once through ``get_env()``.
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent


class EnvSettings(BaseSettings):
    # Django
    secret_key: str = Field("django-insecure-dev-key-change-me", alias="DJANGO_SECRET_KEY")
    debug: bool = Field(True, alias="DJANGO_DEBUG")
    allowed_hosts: str = Field("*", alias="DJANGO_ALLOWED_HOSTS")
    database_path: str = Field(str(BASE_DIR / "db.sqlite3"), alias="DATABASE_PATH")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # External feeds
    countries_api: str = Field(
        "https://restcountries.com/v2/all?fields=name,capital,region,population,flag,currencies",
        alias="COUNTRIES_API",
    )
    exchange_api: str = Field("https://open.er-api.com/v6/latest/USD", alias="EXCHANGE_API")

    # Refresh tuning
    image_cache_path: str = Field(str(BASE_DIR / "cache" / "summary.png"), alias="IMAGE_CACHE_PATH")
    chunk_size: int = Field(50, ge=1, alias="COUNTRIES_CHUNK_SIZE")
    # None means one worker per record in a chunk
    write_workers: Optional[int] = Field(None, ge=1, alias="COUNTRIES_WRITE_WORKERS")
    fetch_timeout: float = Field(12.0, gt=0, alias="COUNTRIES_FETCH_TIMEOUT")
    fetch_attempts: int = Field(3, ge=1, alias="COUNTRIES_FETCH_ATTEMPTS")
    fetch_backoff: float = Field(0.5, ge=0, alias="COUNTRIES_FETCH_BACKOFF")

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    @property
    def allowed_hosts_list(self) -> List[str]:
        return [host.strip() for host in self.allowed_hosts.split(",") if host.strip()]


@lru_cache(maxsize=1)
def get_env() -> EnvSettings:
    return EnvSettings()
