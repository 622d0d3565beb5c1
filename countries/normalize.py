"""
Turn raw feed payloads into ``CountryRecord`` objects ready for storage.

Upstream providers change response shapes between versions, so every shape
assumption lives here. Nothing in this module performs I/O or raises on bad
input: unknown shapes become empty results and malformed fields become
``None`` or ``0``.
"""
import math
from dataclasses import dataclass, asdict
from datetime import datetime
from decimal import Decimal, DecimalException
from typing import Any, Dict, List, Optional

from . import utils

# 10**19 and above cannot be stored in a BigIntegerField; also bounds the
# cost of int() on exponent-notation strings such as "1e999999999"
MAX_POPULATION_DIGITS = 18


@dataclass
class CountryRecord:
    name: Optional[str]
    capital: Optional[str]
    region: Optional[str]
    population: int
    currency_code: Optional[str]
    exchange_rate: Optional[float]
    estimated_gdp: Optional[float]
    flag_url: Optional[str]
    last_refreshed_at: datetime

    def as_fields(self) -> Dict[str, Any]:
        return asdict(self)


def normalize_countries(payload: Any) -> List[dict]:
    """Accept a bare list, ``{"data": [...]}`` or ``{"countries": [...]}``."""
    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict) and isinstance(payload.get("data"), list):
        items = payload["data"]
    elif isinstance(payload, dict) and isinstance(payload.get("countries"), list):
        items = payload["countries"]
    else:
        return []
    return [item for item in items if isinstance(item, dict)]


def normalize_rates(payload: Any) -> Dict[str, Any]:
    """
    Accept ``{"rates": {...}}`` (with or without ``result``) or a bare
    code->rate map, optionally wrapped in ``{"data": ...}``.
    """
    if not isinstance(payload, dict):
        return {}
    # some providers wrap the whole body in a data envelope
    if isinstance(payload.get("data"), dict):
        payload = payload["data"]
    rates = payload.get("rates")
    if isinstance(rates, dict):
        return dict(rates)
    return dict(payload)


def _text(value) -> Optional[str]:
    if isinstance(value, str):
        return value.strip() or None
    return None


def resolve_name(raw: dict) -> Optional[str]:
    name = raw.get("name")
    # restcountries v3 nests the display name
    if isinstance(name, dict):
        return _text(name.get("common")) or _text(name.get("official"))
    return _text(name)


def resolve_capital(raw: dict) -> Optional[str]:
    capital = raw.get("capital")
    if isinstance(capital, list):
        capital = capital[0] if capital else None
    return _text(capital)


def resolve_currency_code(raw: dict) -> Optional[str]:
    currencies = raw.get("currencies")

    if isinstance(currencies, list) and currencies:
        first = currencies[0]
        if isinstance(first, dict):
            code = _text(first.get("code"))
            if code:
                return code

    if isinstance(currencies, dict):
        for key in currencies:
            code = _text(key)
            if code:
                return code
            break

    return _text(raw.get("currency"))


def resolve_population(value: Any) -> int:
    # bool is an int subclass but never a population
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        number = int(value) if math.isfinite(value) else 0
    elif isinstance(value, str):
        try:
            parsed = Decimal(value.strip())
        except DecimalException:
            return 0
        if not parsed.is_finite() or parsed.adjusted() > MAX_POPULATION_DIGITS:
            return 0
        # below 1 in magnitude; int() would still have to walk the exponent
        if parsed.adjusted() < 0:
            return 0
        number = int(parsed)
    else:
        return 0
    return max(0, number)


def resolve_flag_url(raw: dict) -> Optional[str]:
    flag = _text(raw.get("flag"))
    if flag:
        return flag
    flags = raw.get("flags")
    if isinstance(flags, dict):
        return _text(flags.get("svg")) or _text(flags.get("png"))
    return None


def lookup_rate(rates: Dict[str, Any], code: Optional[str]) -> Optional[float]:
    """Exact code first, then the uppercased code. Unusable rates become None."""
    if not code:
        return None
    value = rates.get(code)
    if value is None:
        value = rates.get(code.upper())
    if value is None or isinstance(value, bool):
        return None
    try:
        rate = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(rate) or rate <= 0:
        return None
    return rate


def enrich_country(raw: dict, rates: Dict[str, Any], *, now: datetime, multiplier=None) -> CountryRecord:
    population = resolve_population(raw.get("population"))
    currency_code = resolve_currency_code(raw)
    exchange_rate = lookup_rate(rates, currency_code)

    estimated_gdp = None
    if exchange_rate is not None:
        m = multiplier if multiplier is not None else utils.make_multiplier()
        try:
            estimated_gdp = population * m / exchange_rate
        except OverflowError:
            estimated_gdp = None
        # keep rate and estimate null together when the estimate is unrepresentable
        if estimated_gdp is None or not math.isfinite(estimated_gdp):
            exchange_rate = estimated_gdp = None

    return CountryRecord(
        name=resolve_name(raw),
        capital=resolve_capital(raw),
        region=_text(raw.get("region")),
        population=population,
        currency_code=currency_code,
        exchange_rate=exchange_rate,
        estimated_gdp=estimated_gdp,
        flag_url=resolve_flag_url(raw),
        last_refreshed_at=now,
    )


def enrich_countries(raws: List[dict], rates: Dict[str, Any], now: Optional[datetime] = None) -> List[CountryRecord]:
    now = now or utils.get_now()
    return [enrich_country(raw, rates, now=now) for raw in raws]
