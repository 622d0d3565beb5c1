import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional

from django.db.models import F

from . import utils
from .models import Country, RunMeta
from .normalize import enrich_countries, normalize_countries, normalize_rates
from .persistence import OrmCountryStore, persist_countries

logger = logging.getLogger(__name__)

TOP_LIMIT = 5

SORT_ORDERINGS = {
    "gdp_desc": (F("estimated_gdp").desc(nulls_last=True), "id"),
    "gdp_asc": (F("estimated_gdp").asc(nulls_last=True), "id"),
}


@dataclass
class RefreshResult:
    total: int
    written: int
    failed: int
    last_refreshed_at: object
    image_path: Optional[str] = None


def _fetch_feeds(config, session=None):
    """
    Fetch both feeds on two threads. Without ``session`` each fetch opens and
    closes its own ``requests.Session``. An injected session is shared by both
    threads, so it must be safe for concurrent use.
    """
    fetch_opts = {
        "timeout": config.fetch_timeout,
        "attempts": config.fetch_attempts,
        "backoff": config.fetch_backoff,
        "session": session,
    }
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="feed-fetch") as pool:
        countries_future = pool.submit(utils.fetch_json, config.countries_api, label="Countries API", **fetch_opts)
        rates_future = pool.submit(utils.fetch_json, config.exchange_api, label="Exchange rates API", **fetch_opts)
        # both must finish before enrichment; the countries failure is reported first
        return countries_future.result(), rates_future.result()


def select_top(records, limit=TOP_LIMIT):
    ranked = sorted(
        (r for r in records if r.estimated_gdp is not None),
        key=lambda r: r.estimated_gdp,
        reverse=True,
    )
    return [{"name": r.name, "estimated_gdp": r.estimated_gdp} for r in ranked[:limit]]


def render_summary(config, records, at):
    """Best effort: a failed render is logged and yields None."""
    try:
        return utils.generate_summary_image(config.image_path, len(records), select_top(records), at.isoformat())
    except Exception:
        logger.exception("Image generation failed")
        return None


def refresh_all(config, store=None, session=None):
    """
    Fetch both feeds, enrich the countries with exchange rates, persist them
    and regenerate the summary image.

    Raises ConfigurationError, UpstreamUnavailable or MetaWriteFailure; any of
    these means the run failed. Individual record failures only show up in the
    ``failed`` count of the result.

    ``session`` is used by both concurrent feed fetches and must be thread-safe.
    """
    config.validate()
    store = store or OrmCountryStore()
    started = time.monotonic()

    countries_payload, rates_payload = _fetch_feeds(config, session)

    raws = normalize_countries(countries_payload)
    rates = normalize_rates(rates_payload)
    if not raws:
        logger.warning("Countries feed returned no usable records")
    if not rates:
        logger.warning("Exchange rates feed returned no usable rates")

    now = utils.get_now()
    records = enrich_countries(raws, rates, now=now)

    outcome = persist_countries(
        records,
        store,
        chunk_size=config.chunk_size,
        max_workers=config.write_workers,
        now=now,
    )

    image_path = render_summary(config, records, now)

    logger.info(
        "Refresh finished: %d countries, %d written, %d failed in %.2fs",
        outcome.total, outcome.written, outcome.failed, time.monotonic() - started,
    )
    return RefreshResult(
        total=outcome.total,
        written=outcome.written,
        failed=outcome.failed,
        last_refreshed_at=now,
        image_path=image_path,
    )


def list_countries(region=None, currency=None, sort=None) -> List[Country]:
    qs = Country.objects.all()
    if region:
        qs = qs.filter(region=region)
    if currency:
        qs = qs.filter(currency_code=currency)

    if sort:
        if sort not in SORT_ORDERINGS:
            raise ValueError(f"unsupported sort {sort!r}")
        qs = qs.order_by(*SORT_ORDERINGS[sort])
    else:
        qs = qs.order_by("id")
    return list(qs)


def get_by_name(name) -> Optional[Country]:
    if not name:
        return None
    return Country.objects.filter(name=name).first()


def delete_by_name(name) -> Optional[Country]:
    """Delete the named country and return it, or None when absent."""
    country = get_by_name(name)
    if country is None:
        return None
    pk = country.pk
    country.delete()
    # delete() clears the pk; keep it so the caller can still serialize the row
    country.pk = pk
    return country


def get_status():
    meta = RunMeta.objects.filter(pk=RunMeta.SINGLETON_PK).first()
    if meta is None:
        return {"total_countries": 0, "last_refreshed_at": None}
    return {
        "total_countries": meta.total_countries,
        "last_refreshed_at": meta.last_refreshed_at.isoformat() if meta.last_refreshed_at else None,
    }
