# backend/companyintel/services/connectors/quotes.py

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Dict
from urllib.parse import quote

import httpx

from .base import BaseConnector, Ok, Outcome, Unavailable, bounded_get
from ...core.config import get_settings
from ...schemas.intel import QuoteSnapshot

logger = logging.getLogger(__name__)

settings = get_settings()

_TICKER_RE = re.compile(r"^[A-Z][A-Z0-9.\-]{0,9}$")


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def snapshot_from_chart_meta(ticker: str, meta: Dict[str, Any]) -> QuoteSnapshot | None:
    """
    Build a snapshot from a chart API `meta` block.

    Both a price and a non-zero previous close are required; anything
    less is no snapshot at all.
    """
    price = _as_float(meta.get("regularMarketPrice"))
    previous_close = _as_float(meta.get("chartPreviousClose"))
    if previous_close is None:
        previous_close = _as_float(meta.get("previousClose"))

    if price is None or not previous_close:
        return None

    change_percent = round((price - previous_close) / previous_close * 100, 2)
    return QuoteSnapshot(
        ticker=ticker,
        exchange=meta.get("fullExchangeName") or meta.get("exchangeName"),
        price=price,
        change_percent=change_percent,
        currency=meta.get("currency") or "USD",
    )


class QuoteConnector(BaseConnector):
    name = "quote"

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__(transport)
        self.base_url: str = settings.QUOTE_BASE_URL.rstrip("/")
        self.timeout: float = settings.QUOTE_TIMEOUT_SECONDS

    async def fetch(self, **kwargs: Any) -> Outcome[QuoteSnapshot]:
        """
        Expected kwargs:
          - ticker: str
        """
        ticker = (kwargs.get("ticker") or "").strip().upper()
        if not _TICKER_RE.match(ticker):
            return Unavailable("invalid ticker")

        async with self._client(
            self.timeout,
            headers={"User-Agent": settings.WEBSITE_USER_AGENT},
        ) as client:
            try:
                resp = await bounded_get(
                    client,
                    f"{self.base_url}/{quote(ticker, safe='')}",
                    self.timeout,
                    params={"interval": "1d", "range": "1d"},
                )
            except (httpx.HTTPError, asyncio.TimeoutError) as exc:
                logger.warning(
                    "Quote request for %s failed: %r",
                    ticker,
                    exc,
                    extra={"connector": self.name},
                )
                return Unavailable("request failed")

        if resp.status_code != 200:
            logger.warning(
                "Quote provider returned %s for %s",
                resp.status_code,
                ticker,
                extra={"connector": self.name},
            )
            return Unavailable(f"status {resp.status_code}")

        try:
            body = resp.json()
        except ValueError:
            return Unavailable("malformed payload")

        results = ((body or {}).get("chart") or {}).get("result") or []
        if not results or not isinstance(results[0], dict):
            return Unavailable("no quote")

        snapshot = snapshot_from_chart_meta(ticker, results[0].get("meta") or {})
        if snapshot is None:
            return Unavailable("incomplete quote")
        return Ok(snapshot)
