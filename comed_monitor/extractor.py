"""Hourly price table fetching and extraction with httpx and Playwright fallback."""

import html as html_lib
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

import httpx

from .config import (
    HOUR_HEADER_TEXT,
    PRICE_HEADER_TEXTS,
    PRICING_PAGE_URL,
    REQUEST_TIMEOUT_SECONDS,
    USER_AGENT,
    now_central,
)
from .errors import FetchError
from .models import PriceReading

logger = logging.getLogger(__name__)

TABLE_PATTERN = re.compile(r"<table\b.*?</table>", re.IGNORECASE | re.DOTALL)
ROW_PATTERN = re.compile(r"<tr\b.*?>(.*?)</tr>", re.IGNORECASE | re.DOTALL)
CELL_PATTERN = re.compile(r"<(th|td)\b[^>]*>(.*?)</\1>", re.IGNORECASE | re.DOTALL)
TAG_PATTERN = re.compile(r"<[^>]+>")
NUMBER_PATTERN = re.compile(r"\s*(-?\d+(?:\.\d+)?)")


@dataclass
class FetchResult:
    """Readings taken from one page load, with the URL they came from."""
    url: str
    readings: list[PriceReading] = field(default_factory=list)
    table_found: bool = True


def get_today_url(now: Optional[datetime] = None) -> str:
    """URL of the pricing table for the current day in Central time."""
    day = now or now_central()
    return f"{PRICING_PAGE_URL}?date={day.month:02d}/{day.day:02d}/{day.year}"


def _cell_text(cell_html: str) -> str:
    text = TAG_PATTERN.sub(" ", cell_html)
    text = html_lib.unescape(text)
    return " ".join(text.split())


def extract_table_rows(html: str) -> list[list[tuple[str, str]]]:
    """
    Split every table in the page into rows of (tag, text) cells.

    Rows from all tables are returned in document order. Returns an empty
    list when the page has no table.
    """
    rows: list[list[tuple[str, str]]] = []
    for table in TABLE_PATTERN.findall(html):
        for row_html in ROW_PATTERN.findall(table):
            cells = [(tag.lower(), _cell_text(body)) for tag, body in CELL_PATTERN.findall(row_html)]
            if cells:
                rows.append(cells)
    return rows


def find_columns(headers: list[str]) -> Optional[tuple[int, int]]:
    """Locate the (hour, price) column indices by header text."""
    hour_index = next(
        (i for i, text in enumerate(headers) if HOUR_HEADER_TEXT in text), None
    )
    price_index = next(
        (i for i, text in enumerate(headers) if all(part in text for part in PRICE_HEADER_TEXTS)),
        None,
    )
    if hour_index is None or price_index is None:
        return None
    return hour_index, price_index


def parse_price(text: str) -> Optional[float]:
    """
    Parse a price cell like '5.0¢' into cents.

    Returns None for anything that is not a finite, non-negative number.
    """
    match = NUMBER_PATTERN.match(text.replace("¢", ""))
    if not match:
        return None
    try:
        value = float(match.group(1))
    except ValueError:
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


def parse_price_table(html: str) -> tuple[list[PriceReading], bool]:
    """
    Extract hourly readings from the pricing page HTML.

    Returns (readings, table_found). Rows with empty or unparsable cells
    are skipped.
    """
    rows = extract_table_rows(html)
    header_row = next((row for row in rows if any(tag == "th" for tag, _ in row)), None)
    if header_row is None:
        logger.warning("No price table found in page")
        return [], False

    headers = [text for _, text in header_row]
    columns = find_columns(headers)
    if columns is None:
        logger.warning(f"Price table headers not recognized: {headers}")
        return [], False
    hour_index, price_index = columns

    readings: list[PriceReading] = []
    for row in rows:
        if row is header_row or any(tag == "th" for tag, _ in row):
            continue
        if len(row) <= max(hour_index, price_index):
            continue
        hour = row[hour_index][1]
        price_text = row[price_index][1]
        if not hour or not price_text:
            continue
        price = parse_price(price_text)
        if price is None:
            logger.debug(f"Skipping unparsable price {price_text!r} for {hour}")
            continue
        readings.append(PriceReading(hour_label=hour, raw_display=price_text, numeric_price=price))

    return readings, True


class PriceTableFetcher:
    """Fetches today's hourly price table."""

    def __init__(
        self,
        timeout: int = REQUEST_TIMEOUT_SECONDS,
        use_playwright: bool = True,
        clock: Callable[[], datetime] = now_central,
    ):
        self.timeout = timeout
        self.use_playwright = use_playwright
        self._clock = clock

    async def _fetch_html(self, url: str) -> str:
        headers = {
            "User-Agent": USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        }
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            logger.debug(f"Fetching {url}")
            response = await client.get(url, headers=headers)
            response.raise_for_status()
            return response.text

    async def _render_with_playwright(self, url: str) -> str:
        """Render the page in headless Chromium and return its HTML."""
        try:
            from playwright.async_api import async_playwright
        except ImportError:
            raise FetchError(
                "Playwright not installed. Run: pip install playwright && playwright install chromium",
                url=url,
            ) from None

        try:
            async with async_playwright() as p:
                browser = await p.chromium.launch(headless=True)
                try:
                    context = await browser.new_context(
                        user_agent=USER_AGENT,
                        viewport={"width": 1920, "height": 1080},
                    )
                    page = await context.new_page()

                    logger.info(f"Playwright: Loading {url}")
                    await page.goto(url, wait_until="networkidle", timeout=self.timeout * 1000)
                    await page.wait_for_selector("table", timeout=self.timeout * 1000)
                    return await page.content()
                finally:
                    await browser.close()
        except Exception as e:
            raise FetchError(f"Playwright rendering failed: {e}", url=url) from e

    async def fetch(self) -> FetchResult:
        """
        Fetch and parse today's table.

        A page without a recognizable table yields an empty result. Raises
        FetchError when the page cannot be retrieved at all.
        """
        url = get_today_url(self._clock())
        html: Optional[str] = None

        try:
            html = await self._fetch_html(url)
        except httpx.HTTPError as e:
            if not self.use_playwright:
                raise FetchError(f"HTTP fetch failed: {e}", url=url) from e
            logger.warning(f"HTTP fetch failed ({e}), trying Playwright")

        readings, table_found = parse_price_table(html) if html is not None else ([], False)

        if not readings and self.use_playwright:
            if html is not None:
                logger.info("No prices in static HTML, trying Playwright fallback...")
            try:
                rendered = await self._render_with_playwright(url)
            except FetchError as e:
                if html is None:
                    raise
                logger.error(f"Playwright fallback failed: {e}")
            else:
                readings, table_found = parse_price_table(rendered)

        logger.info(f"Extracted {len(readings)} hourly prices from {url}")
        return FetchResult(url=url, readings=readings, table_found=table_found)
