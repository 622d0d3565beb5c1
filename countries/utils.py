import logging
import os
import random
import time
from datetime import datetime, timezone

import requests
from PIL import Image, ImageDraw, ImageFont
from requests.exceptions import RequestException

from .exceptions import RenderFailure, UpstreamUnavailable

logger = logging.getLogger(__name__)

USER_AGENT = 'country-currency-api'


def fetch_json(url, *, timeout=12, attempts=3, backoff=0.5, session=None, label=None):
    """
    GET ``url`` and return the decoded JSON body, whatever its shape.

    Makes up to ``attempts`` tries, each bounded by ``timeout`` seconds, and
    sleeps ``backoff * attempt`` seconds between them. A transport error, a
    non-2xx status or a body that is not JSON all count as a failed attempt.
    Raises UpstreamUnavailable once every attempt has failed.
    """
    http = session or requests.Session()
    try:
        for attempt in range(1, attempts + 1):
            try:
                resp = http.get(url, timeout=timeout, headers={'User-Agent': USER_AGENT})
                resp.raise_for_status()
                return resp.json()
            except (RequestException, ValueError) as exc:
                logger.warning("Fetch %s failed (attempt %d/%d): %s", url, attempt, attempts, exc)
                if attempt < attempts and backoff:
                    time.sleep(backoff * attempt)
    finally:
        if session is None:
            http.close()

    logger.error("Giving up on %s after %d attempts", url, attempts)
    raise UpstreamUnavailable(url, label=label)


def make_multiplier():
    return random.randint(1000, 2000)


def get_now():
    """Return current UTC datetime (aware)."""
    return datetime.now(timezone.utc)


def _load_fonts():
    try:
        return ImageFont.truetype("arial.ttf", 28), ImageFont.truetype("arial.ttf", 20)
    except OSError:
        return ImageFont.load_default(), ImageFont.load_default()


def generate_summary_image(path, total_countries, top, timestamp):
    """
    Generate a summary PNG showing total countries, the top countries by
    estimated GDP (``[{"name", "estimated_gdp"}, ...]``) and the refresh
    timestamp. Creates the parent directory and returns ``path``.
    """
    try:
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)

        img = Image.new("RGB", (800, 500), color="white")
        draw = ImageDraw.Draw(img)
        font_title, font_body = _load_fonts()

        draw.text((20, 20), "Country Summary Report", fill="black", font=font_title)
        draw.text((20, 70), f"Total Countries: {total_countries}", fill="black", font=font_body)
        draw.text((20, 120), f"Top {len(top) or 5} Countries by Estimated GDP:", fill="black", font=font_body)

        y = 160
        if not top:
            draw.text((40, y), "No GDP data available.", fill="gray", font=font_body)
        else:
            for rank, entry in enumerate(top, start=1):
                gdp = entry.get("estimated_gdp")
                shown = f"{round(gdp, 2):,}" if gdp is not None else "N/A"
                draw.text((40, y), f"{rank}. {entry.get('name') or 'Unnamed'}: {shown}", fill="blue", font=font_body)
                y += 30

        draw.text((20, 440), f"Last Refresh: {timestamp}", fill="black", font=font_body)

        img.save(path, "PNG")
    except (OSError, ValueError) as exc:
        raise RenderFailure(f"Could not write summary image to {path}: {exc}") from exc
    return path
