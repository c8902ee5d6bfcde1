# backend/companyintel/services/sales_signals.py
"""
Default sales-signal generator backed by the GDELT document API.

The aggregation engine only depends on the `generate(...)` coroutine
signature; this implementation can be swapped for any other collaborator.
"""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlparse

import httpx

from .connectors.base import bounded_get
from .domain import normalize_domain
from ..core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

_LEGAL_SUFFIX_RE = re.compile(
    r"\b(ltd|limited|inc|inc\.|corp|corporation|plc|ag|sa|llc|gmbh|pty|pty\.|co|company|holdings)\b",
    re.I,
)

GENERIC_MARKET_TERMS = ("stocks", "market", "share price", "index", "earnings calendar")

# (signal type, pattern, why it matters), checked in order
SIGNAL_RULES: tuple[tuple[str, re.Pattern, str], ...] = (
    (
        "Hiring",
        re.compile(r"(hiring|recruit|career|job|vacan)"),
        "Hiring usually means growth or new initiatives, a clean opener for outreach.",
    ),
    (
        "Contracts & Projects",
        re.compile(r"(contract|awarded|selected|wins?|tender|procurement|project|ppa|agreement)"),
        "New wins or tenders signal budget and urgency. Sell into momentum.",
    ),
    (
        "Product/Tech",
        re.compile(r"(launch|released|introduc|technology|product|platform|ai|battery|software)"),
        "Launches expose priorities; tailor the pitch to what they just shipped.",
    ),
    (
        "Leadership",
        re.compile(r"(ceo|cfo|cto|appointed|resigns?|steps down|leadership|board)"),
        "Leadership changes reshape buying patterns. Strike early.",
    ),
    (
        "Partnerships",
        re.compile(r"(partner|partnership|collaborat|mou|joins forces)"),
        "Partners reveal ecosystem direction.",
    ),
    (
        "Regulatory/Finance",
        re.compile(r"(funding|acquisition|merger|ipo|financ|regulated|approval|licen)"),
        "Financial or regulatory events create deadlines and constraints you can solve against.",
    ),
)
GENERAL_WHY = "Potentially relevant context; use it as a hook if it matches your angle."

_POSITIVE_RE = re.compile(
    r"growth|profit|surge|soar|gain|boost|success|innovation|partnership|launch|record|expand|upgrade|milestone|award",
    re.I,
)
_NEGATIVE_RE = re.compile(
    r"loss|decline|drop|fall|layoff|lawsuit|scandal|fail|crisis|cut|concern|warning|delay|recall|downturn",
    re.I,
)
MAX_SENTIMENT_HEADLINES = 10


@dataclass
class ArticleCandidate:
    title: str
    url: str
    source: str = ""
    published_at: str = ""
    snippet: str = ""


@dataclass
class ScoredArticle:
    article: ArticleCandidate
    score: int
    evidence: List[str] = field(default_factory=list)


def _normalize_text(s: str | None) -> str:
    return re.sub(r"\s+", " ", (s or "").lower().strip())


def clean_company_name(name: str) -> str:
    return re.sub(r"\s+", " ", _LEGAL_SUFFIX_RE.sub("", name or "")).strip()


def _host(url: str) -> str:
    try:
        host = urlparse(url).netloc.lower()
    except ValueError:
        return ""
    return host[4:] if host.startswith("www.") else host


def build_queries(company_name: str, domain: str) -> List[str]:
    cleaned = clean_company_name(company_name) or company_name
    candidates = [
        " OR ".join(q for q in (f'"{company_name}"', domain) if q),
        " OR ".join(q for q in (f'"{cleaned}"', domain) if q),
        f'"{cleaned}"',
        domain,
    ]
    queries: List[str] = []
    for q in candidates:
        if q and len(q.strip()) >= 3 and q not in queries:
            queries.append(q)
    return queries


def score_article(
    article: ArticleCandidate,
    company_name: str,
    domain: str,
    location_hint: str | None = None,
) -> ScoredArticle:
    evidence: List[str] = []
    score = 0

    name = _normalize_text(company_name)
    cleaned = _normalize_text(clean_company_name(company_name))
    title = _normalize_text(article.title)
    snippet = _normalize_text(article.snippet)
    host = _host(article.url)

    if domain and (host == domain or host.endswith("." + domain)):
        score += 40
        evidence.append(f"Source host matches domain ({domain})")

    if domain and (domain in title or domain in snippet):
        score += 18
        evidence.append("Mentions company domain in text")

    if name and name in title:
        score += 30
        evidence.append("Title contains exact company name")
    elif cleaned and cleaned in title:
        score += 22
        evidence.append("Title contains cleaned company name")
    elif name and name in snippet:
        score += 16
        evidence.append("Snippet contains company name")
    elif cleaned and cleaned in snippet:
        score += 12
        evidence.append("Snippet contains cleaned company name")

    loc = _normalize_text(location_hint)
    if loc and (loc in title or loc in snippet):
        score += 8
        evidence.append(f"Matches location hint ({location_hint})")

    if score < 30 and any(term in title for term in GENERIC_MARKET_TERMS):
        score -= 18
        evidence.append("Generic market headline without clear company anchor")

    return ScoredArticle(article=article, score=score, evidence=evidence)


def classify_signal(title: str, snippet: str | None = None) -> tuple[str, str]:
    text = _normalize_text(f"{title} {snippet or ''}")
    for signal_type, pattern, why in SIGNAL_RULES:
        if pattern.search(text):
            return signal_type, why
    return "General", GENERAL_WHY


def confidence_for(score: int) -> str:
    if score >= 75:
        return "High"
    if score >= 60:
        return "Medium"
    return "Low"


def headline_sentiment(headlines: Sequence[str]) -> Dict[str, int]:
    """
    Count positive, neutral and negative headlines (first 10 only).

    A headline matching both word lists counts as positive.
    """
    counts = {"positive": 0, "neutral": 0, "negative": 0}
    for headline in list(headlines)[:MAX_SENTIMENT_HEADLINES]:
        if _POSITIVE_RE.search(headline or ""):
            counts["positive"] += 1
        elif _NEGATIVE_RE.search(headline or ""):
            counts["negative"] += 1
        else:
            counts["neutral"] += 1
    return counts


def _gdelt_datetime(d: datetime) -> str:
    return d.strftime("%Y%m%d%H%M%S")


class GdeltSignalGenerator:
    """Recent, company-anchored news turned into typed sales signals."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport
        self.base_url: str = settings.GDELT_BASE_URL
        self.timeout: float = settings.SIGNALS_TIMEOUT_SECONDS
        self.lookback_days: int = settings.GDELT_LOOKBACK_DAYS

    async def _fetch_articles(
        self, client: httpx.AsyncClient, query: str, max_records: int = 35
    ) -> List[ArticleCandidate]:
        now = datetime.now(timezone.utc)
        start = now - timedelta(days=self.lookback_days)
        resp = await bounded_get(
            client,
            self.base_url,
            self.timeout,
            params={
                "query": query,
                "mode": "ArtList",
                "format": "json",
                "maxrecords": min(max_records, 50),
                "sort": "HybridRel",
                "startdatetime": _gdelt_datetime(start),
                "enddatetime": _gdelt_datetime(now),
            },
        )
        if resp.status_code != 200:
            return []
        try:
            body = resp.json()
        except ValueError:
            return []

        articles = (body or {}).get("articles")
        if not isinstance(articles, list):
            return []

        out: List[ArticleCandidate] = []
        for a in articles:
            if not isinstance(a, dict) or not a.get("title") or not a.get("url"):
                continue
            out.append(
                ArticleCandidate(
                    title=a["title"],
                    url=a["url"],
                    source=a.get("domain") or a.get("sourcecountry") or "",
                    published_at=a.get("seendate") or "",
                    snippet=a.get("snippet") or "",
                )
            )
        return out

    async def generate(
        self,
        *,
        company_name: str,
        domain: Optional[str] = None,
        location_hint: Optional[str] = None,
        max_signals: int = 6,
    ) -> Dict[str, Any]:
        company_name = (company_name or "").strip()
        domain = normalize_domain(domain) or ""

        candidates: List[ArticleCandidate] = []
        used_query = ""
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for query in build_queries(company_name, domain):
                used_query = query
                try:
                    candidates = await self._fetch_articles(client, query)
                except (httpx.HTTPError, asyncio.TimeoutError) as exc:
                    logger.warning(
                        "GDELT query failed: %r",
                        exc,
                        extra={"connector": "signals", "step": "gdelt"},
                    )
                    candidates = []
                if candidates:
                    break

        scored = sorted(
            (score_article(a, company_name, domain, location_hint) for a in candidates),
            key=lambda s: s.score,
            reverse=True,
        )
        threshold = 45 if domain else 55
        top = [s for s in scored if s.score >= threshold][:max_signals]

        signals: List[Dict[str, Any]] = []
        for item in top:
            signal_type, why = classify_signal(item.article.title, item.article.snippet)
            signals.append(
                {
                    "type": signal_type,
                    "title": item.article.title,
                    "why_it_matters": why,
                    "source_title": _host(item.article.url) or item.article.source or "Source",
                    "source_url": item.article.url,
                    "published_at": item.article.published_at or None,
                    "confidence": confidence_for(item.score),
                    "evidence": item.evidence,
                }
            )

        return {
            "signals": signals,
            "debug": {"query_used": used_query, "candidates": len(candidates)},
        }
