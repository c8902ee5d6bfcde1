# backend/companyintel/services/extraction.py
"""
LLM fact extraction over gathered snippets.

The model is asked for one JSON object. Nothing it returns is trusted:
every field goes through its own validator and anything outside the
allowed domain is dropped. Failure of any kind yields an empty
ExtractedFacts, never an exception.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence
from urllib.parse import urlparse

from .llm import CompletionClient
from ..schemas.intel import (
    HEADCOUNT_BUCKETS,
    MAX_COMPETITORS,
    MAX_BUYERS,
    MAX_PRODUCTS,
    MAX_SERVICES,
    MAX_VERIFIED_FACTS,
    CitedStatement,
    Competitor,
    ExtractedFacts,
    Headquarters,
    Offerings,
    SourceSnippet,
    SocialUrls,
)

logger = logging.getLogger(__name__)

NULLISH_STRINGS = {"null", "none", "n/a", "na", "unknown"}

# Accepted hosts per platform (exact host or any subdomain of it).
SOCIAL_DOMAINS: Dict[str, tuple[str, ...]] = {
    "linkedin": ("linkedin.com",),
    "twitter": ("twitter.com", "x.com"),
    "facebook": ("facebook.com",),
    "instagram": ("instagram.com",),
}
SOCIAL_FIELDS = {
    "linkedin": "linkedinUrl",
    "twitter": "twitterUrl",
    "facebook": "facebookUrl",
    "instagram": "instagramUrl",
}

MAX_HEADLINES = 5
MAX_FIELD_CHARS = 600
MAX_DESCRIPTION_CHARS = 160

_TICKER_RE = re.compile(r"^[A-Z][A-Z0-9.\-]{0,9}$")
_HEADCOUNT_RE = re.compile(r"(\d[\d,]*)\s*(?:employees|staff|people|workers)", re.I)

SYSTEM_PROMPT = """You produce ONLY valid JSON. Extract company facts from the provided snippets.

Rules:
- Only fill a field when the snippets directly support it. Never guess. Use null when unsure.
- headcount: one of "1-10", "11-50", "51-200", "201-500", "501-1k", "1k-5k", "5k-10k", "10k+", or null.
- headquarters: city and country only if stated in the snippets; sourceUrl must be the URL of the snippet that states it.
- tickerSymbol: only if a stock ticker is stated in the snippets.
- linkedinUrl, twitterUrl, facebookUrl, instagramUrl: only URLs that literally appear in the snippets.
- verifiedFacts: at most 8 short statements about what the company does, funding or milestones. Each MUST
  carry the sourceUrl of the snippet that states it.
- offerings: products (max 6), services (max 6) and buyers or target customers (max 4), only if mentioned.
- competitors: the one exception to the no-guessing rule. You may suggest 2-4 plausible competitors
  from general industry knowledge even if the snippets do not name them. Keep each description short
  and non-specific (no figures, no claims about the competitor's customers or finances)."""

RESPONSE_SHAPE = """{
  "summary": "2-3 sentence description" or null,
  "industry": "..." or null,
  "founded": "year" or null,
  "founderOrLeader": "name and title" or null,
  "headquarters": { "city": "...", "country": "...", "sourceUrl": "..." } or null,
  "headcount": "bucket" or null,
  "headcountSourceUrl": "..." or null,
  "tickerSymbol": "..." or null,
  "linkedinUrl": "..." or null,
  "twitterUrl": "..." or null,
  "facebookUrl": "..." or null,
  "instagramUrl": "..." or null,
  "verifiedFacts": [{ "text": "...", "sourceUrl": "..." }],
  "offerings": { "products": ["..."], "services": ["..."], "buyers": ["..."] } or null,
  "competitors": [{ "name": "...", "description": "..." }]
}"""


def clean_text(value: Any, max_chars: int = MAX_FIELD_CHARS) -> Optional[str]:
    """
    Generic nullish normaliser: None, blanks and the usual "no value"
    placeholders all become None. Numbers are stringified.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        value = str(value)
    elif isinstance(value, float):
        value = str(int(value)) if value.is_integer() else str(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text or text.lower() in NULLISH_STRINGS:
        return None
    return text[:max_chars]


def validate_social_url(value: Any, platform: str) -> Optional[str]:
    url = clean_text(value)
    if not url:
        return None
    if "://" not in url:
        url = "https://" + url
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https"):
        return None

    host = (parsed.hostname or "").lower()
    for domain in SOCIAL_DOMAINS[platform]:
        if host == domain or host.endswith("." + domain):
            return url
    return None


def validate_bucket(value: Any) -> Optional[str]:
    bucket = clean_text(value)
    return bucket if bucket in HEADCOUNT_BUCKETS else None


def clean_ticker(value: Any) -> Optional[str]:
    ticker = clean_text(value)
    if not ticker:
        return None
    # "NASDAQ: ACME" -> "ACME"
    ticker = ticker.split(":")[-1].strip().upper()
    return ticker if _TICKER_RE.match(ticker) else None


def validate_competitors(value: Any) -> List[Competitor]:
    if not isinstance(value, list):
        return []
    competitors: List[Competitor] = []
    for item in value:
        if isinstance(item, str):
            item = {"name": item}
        if not isinstance(item, dict):
            continue
        name = clean_text(item.get("name"), max_chars=120)
        if not name:
            continue
        competitors.append(
            Competitor(
                name=name,
                description=clean_text(item.get("description"), max_chars=MAX_DESCRIPTION_CHARS),
            )
        )
        if len(competitors) >= MAX_COMPETITORS:
            break
    return competitors


def _string_list(value: Any, limit: int, max_chars: int = 120) -> List[str]:
    if not isinstance(value, list):
        return []
    out: List[str] = []
    for item in value:
        text = clean_text(item, max_chars=max_chars)
        if text and text not in out:
            out.append(text)
        if len(out) >= limit:
            break
    return out


def validate_offerings(value: Any) -> Optional[Offerings]:
    """Null unless at least one product or service survives validation."""
    if not isinstance(value, dict):
        return None
    offerings = Offerings(
        products=_string_list(value.get("products"), MAX_PRODUCTS),
        services=_string_list(value.get("services"), MAX_SERVICES),
        buyers=_string_list(value.get("buyers"), MAX_BUYERS),
    )
    if not offerings.products and not offerings.services:
        return None
    return offerings


def validate_verified_facts(value: Any, allowed_urls: set[str]) -> List[CitedStatement]:
    # uncited or mis-cited statements are dropped, not re-attributed
    if not isinstance(value, list):
        return []
    facts: List[CitedStatement] = []
    for item in value:
        if not isinstance(item, dict):
            continue
        text = clean_text(item.get("text"), max_chars=300)
        url = _cited_url(item.get("sourceUrl"), allowed_urls)
        if not text or not url:
            continue
        facts.append(CitedStatement(text=text, source_url=url))
        if len(facts) >= MAX_VERIFIED_FACTS:
            break
    return facts


def bucket_for_count(count: int) -> str:
    if count <= 10:
        return "1-10"
    if count <= 50:
        return "11-50"
    if count <= 200:
        return "51-200"
    if count <= 500:
        return "201-500"
    if count <= 1000:
        return "501-1k"
    if count <= 5000:
        return "1k-5k"
    if count <= 10000:
        return "5k-10k"
    return "10k+"


def parse_headcount(text: str) -> Optional[str]:
    """Heuristic bucket from the first "<n> employees" style mention."""
    match = _HEADCOUNT_RE.search(text or "")
    if not match:
        return None
    digits = match.group(1).replace(",", "")
    if not digits:
        return None
    count = int(digits)
    if count <= 0:
        return None
    return bucket_for_count(count)


def parse_json_object(raw: str) -> Optional[Dict[str, Any]]:
    """
    Robustly pull a JSON object out of a completion.

    Falls back to the outermost {...} span when the model wraps the
    object in prose or fences.
    """
    if not raw:
        return None

    data: Any = None
    try:
        data = json.loads(raw)
    except ValueError:
        # JSONDecodeError, or an integer literal past the int-string limit
        start = raw.find("{")
        end = raw.rfind("}")
        if start != -1 and end != -1 and end > start:
            try:
                data = json.loads(raw[start : end + 1])
            except ValueError:
                return None

    return data if isinstance(data, dict) else None


def _cited_url(value: Any, allowed: set[str]) -> Optional[str]:
    url = clean_text(value)
    return url if url in allowed else None


def validate_facts(data: Dict[str, Any], snippet_urls: Iterable[str] = ()) -> ExtractedFacts:
    allowed_urls = set(snippet_urls)

    headquarters = None
    hq_source = None
    raw_hq = data.get("headquarters")
    if isinstance(raw_hq, dict):
        city = clean_text(raw_hq.get("city"), max_chars=120)
        country = clean_text(raw_hq.get("country"), max_chars=120)
        if city or country:
            headquarters = Headquarters(city=city, country=country)
            hq_source = _cited_url(raw_hq.get("sourceUrl"), allowed_urls)

    bucket = validate_bucket(data.get("headcount"))

    return ExtractedFacts(
        headquarters=headquarters,
        headquarters_source_url=hq_source,
        headcount_bucket=bucket,
        headcount_source_url=_cited_url(data.get("headcountSourceUrl"), allowed_urls) if bucket else None,
        industry=clean_text(data.get("industry"), max_chars=120),
        summary=clean_text(data.get("summary")),
        founded=clean_text(data.get("founded"), max_chars=40),
        founder_or_leader=clean_text(data.get("founderOrLeader"), max_chars=160),
        ticker_symbol=clean_ticker(data.get("tickerSymbol")),
        social_urls=SocialUrls(
            **{
                platform: validate_social_url(data.get(field), platform)
                for platform, field in SOCIAL_FIELDS.items()
            }
        ),
        offerings=validate_offerings(data.get("offerings")),
        verified_facts=validate_verified_facts(data.get("verifiedFacts"), allowed_urls),
        competitors=validate_competitors(data.get("competitors")),
    )


def build_prompt(
    company_name: str,
    domain: Optional[str],
    snippets: Sequence[SourceSnippet],
    contact_role: Optional[str] = None,
    headlines: Sequence[str] = (),
) -> str:
    snippet_text = "\n\n".join(
        f"[Source {i + 1}: {s.source_title}]\nURL: {s.url}\n{s.text_excerpt}"
        for i, s in enumerate(snippets)
    )
    headline_text = "\n".join(f"- {h}" for h in list(headlines)[:MAX_HEADLINES])

    return (
        f"Company: {company_name}\n"
        f"Domain: {domain or 'unknown'}\n"
        f"Contact role: {contact_role or 'unknown'}\n\n"
        f"Snippets:\n{snippet_text or 'None available'}\n\n"
        f"Recent headlines (context only, not sources):\n{headline_text or 'None available'}\n\n"
        f"Return JSON with exactly these keys:\n{RESPONSE_SHAPE}\n"
    )


class FactExtractor:
    def __init__(self, client: CompletionClient | None) -> None:
        self.client = client

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def extract(
        self,
        company_name: str,
        domain: Optional[str],
        snippets: Sequence[SourceSnippet],
        *,
        contact_role: Optional[str] = None,
        headlines: Sequence[str] = (),
    ) -> ExtractedFacts:
        if self.client is None:
            return ExtractedFacts()

        prompt = build_prompt(company_name, domain, snippets, contact_role, headlines)
        try:
            raw = await self.client.complete(prompt, system=SYSTEM_PROMPT)
        except Exception as e:
            logger.warning(
                "LLM extraction call failed: %r",
                e,
                extra={"company": company_name, "step": "extract"},
            )
            return ExtractedFacts()

        try:
            data = parse_json_object(raw)
            if data is None:
                logger.warning(
                    "LLM extraction returned unparseable output",
                    extra={"company": company_name, "step": "extract"},
                )
                return ExtractedFacts()
            return validate_facts(data, (s.url for s in snippets))
        except Exception as e:
            logger.warning(
                "Discarding LLM extraction that failed validation: %r",
                e,
                extra={"company": company_name, "step": "validate"},
            )
            return ExtractedFacts()
