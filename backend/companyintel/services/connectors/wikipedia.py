# backend/companyintel/services/connectors/wikipedia.py

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Sequence
from urllib.parse import quote

import httpx

from .base import BaseConnector, Ok, Outcome, Unavailable, bounded_get
from ...core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# Exchange prefix is case-insensitive, the symbol itself must be upper-case
# so prose like "listed on the NYSE under ..." is not read as a ticker.
TICKER_RE = re.compile(r"\b(?i:NYSE|NASDAQ|TSX|LSE|ASX)[:\s]+([A-Z]{1,5})\b")


@dataclass(frozen=True)
class EncyclopediaSummary:
    extract: str
    page_url: str
    title: str
    ticker: str | None = None


def find_exchange_ticker(text: str | None) -> str | None:
    if not text:
        return None
    match = TICKER_RE.search(text)
    return match.group(1) if match else None


class TitleStrategy(Protocol):
    name: str

    async def resolve(
        self, client: httpx.AsyncClient, company_name: str, timeout: float, base_url: str
    ) -> Optional[str]:
        ...


class ExactTitle:
    """Use the company name verbatim as the page title."""

    name = "exact_title"

    async def resolve(self, client, company_name, timeout, base_url):
        return company_name.strip() or None


class OpenSearchTitle:
    """Ask the opensearch endpoint for the best-matching page title."""

    name = "opensearch"

    async def resolve(self, client, company_name, timeout, base_url):
        resp = await bounded_get(
            client,
            f"{base_url}/w/api.php",
            timeout,
            params={
                "action": "opensearch",
                "search": company_name,
                "limit": 1,
                "namespace": 0,
                "format": "json",
            },
        )
        if resp.status_code != 200:
            return None

        body = resp.json()
        # [query, [titles], [descriptions], [urls]]
        if not isinstance(body, list) or len(body) < 2 or not body[1]:
            return None
        top = body[1][0]
        return top if isinstance(top, str) and top.strip() else None


DEFAULT_STRATEGIES: tuple[TitleStrategy, ...] = (ExactTitle(), OpenSearchTitle())


class WikipediaConnector(BaseConnector):
    """
    Encyclopedia lookup: company name -> summary extract.

    Title strategies are tried in order and the first one whose summary
    lookup succeeds wins. Each step is bounded by its own timeout and any
    failure moves on to the next strategy.
    """

    name = "wikipedia"

    def __init__(
        self,
        strategies: Sequence[TitleStrategy] = DEFAULT_STRATEGIES,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(transport)
        self.strategies = tuple(strategies)
        self.base_url: str = settings.WIKIPEDIA_BASE_URL.rstrip("/")
        self.timeout: float = settings.WIKIPEDIA_TIMEOUT_SECONDS
        self.max_chars: int = settings.SNIPPET_MAX_CHARS

    async def _summary(self, client: httpx.AsyncClient, title: str) -> Optional[EncyclopediaSummary]:
        url = f"{self.base_url}/api/rest_v1/page/summary/{quote(title.replace(' ', '_'), safe='')}"
        resp = await bounded_get(client, url, self.timeout)
        if resp.status_code != 200:
            return None

        data: Dict[str, Any] = resp.json()
        extract = (data.get("extract") or "").strip()
        if not extract or data.get("type") == "disambiguation":
            return None

        # ticker from the full text; only the excerpt is bounded
        ticker = find_exchange_ticker(extract)
        page_url = ((data.get("content_urls") or {}).get("desktop") or {}).get("page")
        return EncyclopediaSummary(
            extract=extract[: self.max_chars].strip(),
            page_url=page_url or f"{self.base_url}/wiki/{quote(title.replace(' ', '_'), safe='')}",
            title=data.get("title") or title,
            ticker=ticker,
        )

    async def fetch(self, **kwargs: Any) -> Outcome[EncyclopediaSummary]:
        """
        Expected kwargs:
          - company_name: str
        """
        company_name = (kwargs.get("company_name") or "").strip()
        if not company_name:
            return Unavailable("no company name")

        tried: set[str] = set()
        async with self._client(self.timeout, follow_redirects=True) as client:
            for strategy in self.strategies:
                try:
                    title = await strategy.resolve(client, company_name, self.timeout, self.base_url)
                    if not title or title in tried:
                        continue
                    tried.add(title)

                    summary = await self._summary(client, title)
                except (httpx.HTTPError, asyncio.TimeoutError, ValueError) as exc:
                    logger.warning(
                        "Wikipedia strategy '%s' failed for '%s': %r",
                        strategy.name,
                        company_name,
                        exc,
                        extra={"connector": self.name, "step": strategy.name},
                    )
                    continue

                if summary is not None:
                    logger.info(
                        "Wikipedia summary resolved via '%s'",
                        strategy.name,
                        extra={"connector": self.name, "step": strategy.name},
                    )
                    return Ok(summary)

        return Unavailable("no summary found")
