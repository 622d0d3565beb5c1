"""
Chunked, best-effort persistence of enriched country records.

Records are written in fixed-size chunks. Chunks run one after another and the
records of a chunk are upserted concurrently, each on its own. A record that
fails to write is logged and skipped; only the final run-metadata write can
fail the whole run.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Protocol, Sequence

from django.db import connection, transaction

from . import utils
from .exceptions import MetaWriteFailure, RecordWriteFailure
from .models import Country, RunMeta
from .normalize import CountryRecord

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 50

UPDATE_FIELDS = (
    "capital", "region", "population", "currency_code",
    "exchange_rate", "estimated_gdp", "flag_url", "last_refreshed_at",
)


class CountryStore(Protocol):
    def update_by_name(self, record: CountryRecord) -> int: ...

    def create(self, record: CountryRecord) -> None: ...

    def save_meta(self, total, at) -> None: ...

    def release(self) -> None: ...


class OrmCountryStore:
    """CountryStore backed by the Django ORM."""

    def update_by_name(self, record):
        values = {f: getattr(record, f) for f in UPDATE_FIELDS}
        with transaction.atomic():
            return Country.objects.filter(name=record.name).update(**values)

    def create(self, record):
        with transaction.atomic():
            Country.objects.create(**record.as_fields())

    def save_meta(self, total, at):
        RunMeta.objects.update_or_create(
            pk=RunMeta.SINGLETON_PK,
            defaults={"total_countries": total, "last_refreshed_at": at},
        )

    def release(self):
        # worker threads each open their own connection
        connection.close()


@dataclass
class PersistResult:
    total: int = 0
    written: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)


def chunked(items: Sequence, size: int) -> Iterator[Sequence]:
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    for start in range(0, len(items), size):
        yield items[start:start + size]


def upsert_country(store: CountryStore, record: CountryRecord) -> None:
    """Update the stored row with the same name, or insert when none matched."""
    try:
        if not record.name or store.update_by_name(record) == 0:
            store.create(record)
    except Exception as exc:
        raise RecordWriteFailure(record.name, exc) from exc


def _write_one(store, record):
    try:
        upsert_country(store, record)
    except RecordWriteFailure as exc:
        logger.exception("%s", exc)
        return exc
    return None


def _write_one_in_worker(store, record):
    try:
        return _write_one(store, record)
    finally:
        store.release()


def _write_chunk(store, chunk, max_workers):
    if max_workers == 1:
        return [_write_one(store, record) for record in chunk]

    workers = min(max_workers or len(chunk), len(chunk))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="country-upsert") as pool:
        futures = [pool.submit(_write_one_in_worker, store, record) for record in chunk]
        return [f.result() for f in futures]


def write_run_meta(store: CountryStore, total: int, at=None) -> None:
    at = at or utils.get_now()
    try:
        store.save_meta(total, at)
    except Exception as exc:
        logger.exception("Failed to record refresh metadata")
        raise MetaWriteFailure(exc) from exc


def persist_countries(
    records: Sequence[CountryRecord],
    store: CountryStore,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_workers: Optional[int] = None,
    now=None,
) -> PersistResult:
    """
    Upsert ``records`` chunk by chunk and then write the run metadata.

    ``max_workers`` caps the threads used per chunk (default: one per record);
    ``1`` writes inline on the calling thread. Raises MetaWriteFailure only.
    """
    result = PersistResult(total=len(records))
    chunks = list(chunked(records, chunk_size))

    for index, chunk in enumerate(chunks, start=1):
        logger.info("Processing chunk %d/%d (%d items)", index, len(chunks), len(chunk))
        for failure in _write_chunk(store, chunk, max_workers):
            if failure is None:
                result.written += 1
            else:
                result.failed += 1
                result.errors.append(failure.name or "<unnamed>")

    write_run_meta(store, len(records), now)
    return result
