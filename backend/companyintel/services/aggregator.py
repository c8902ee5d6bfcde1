# backend/companyintel/services/aggregator.py
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import List, Optional, Sequence

from .connectors import ConnectorSet, Ok, Outcome, get_connectors, run_isolated
from .connectors.website import BOOST_PATHS, DEFAULT_PATHS
from .connectors.wikipedia import EncyclopediaSummary
from .domain import is_valid_domain, linkedin_search_url, normalize_domain
from .extraction import FactExtractor, parse_headcount
from .llm import build_completion_client
from .sales_signals import GdeltSignalGenerator, headline_sentiment
from ..core.config import get_settings
from ..schemas.intel import (
    ExtractedFacts,
    HeadcountInfo,
    HeadlineSentiment,
    HeadquartersInfo,
    IntelligenceRecord,
    QuoteSnapshot,
    SalesSignal,
    SocialUrls,
    SourceCitation,
    SourceSnippet,
    VerifiedFact,
)

logger = logging.getLogger(__name__)

NO_DATA_ERROR = "Limited public information available for this company"
WIKIPEDIA_TITLE = "Wikipedia"


class BoostPreconditionFailed(ValueError):
    """Boost needs an existing record and a usable domain."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def empty_record(company_name: str, website: Optional[str]) -> IntelligenceRecord:
    return IntelligenceRecord(
        company_name=company_name,
        website=website,
        generated_at=_now(),
        linkedin_url=linkedin_search_url(company_name),
        error=NO_DATA_ERROR,
    )


def _citation(snippet: SourceSnippet) -> SourceCitation:
    return SourceCitation(title=snippet.source_title, url=snippet.url)


def _cite(url: Optional[str], snippets: Sequence[SourceSnippet]) -> Optional[SourceCitation]:
    """Citation for a derived fact: the named snippet, else the first one gathered."""
    if not snippets:
        return None
    for s in snippets:
        if url and s.url == url:
            return _citation(s)
    return _citation(snippets[0])


def _heuristic_headcount(snippets: Sequence[SourceSnippet]) -> Optional[HeadcountInfo]:
    for s in snippets:
        bucket = parse_headcount(s.text_excerpt)
        if bucket:
            return HeadcountInfo(bucket=bucket, source_citation=_citation(s))
    return None


def resolve_ticker(facts: ExtractedFacts, summary: Optional[EncyclopediaSummary]) -> Optional[str]:
    if facts.ticker_symbol:
        return facts.ticker_symbol
    if summary is not None and summary.ticker:
        return summary.ticker
    return None


class IntelligenceAggregator:
    """
    Fan out to the sources, extract facts, merge into one record.

    Every source is isolated: a failure degrades that source to absent.
    The only outcomes are a populated record or the empty record with
    `error` set; `boost` is the one operation that raises, and only for
    a missing record or domain.
    """

    def __init__(self, connectors: ConnectorSet, extractor: FactExtractor) -> None:
        self.connectors = connectors
        self.extractor = extractor
        settings = get_settings()
        self.website_max_paths = settings.WEBSITE_MAX_PATHS
        self.boost_max_paths = settings.BOOST_MAX_PATHS

    async def _gather_sources(
        self,
        company_name: str,
        domain: Optional[str],
        location_hint: Optional[str],
        paths: Sequence[str],
        max_paths: int,
    ) -> tuple[Optional[EncyclopediaSummary], List[SourceSnippet], List[SalesSignal]]:
        wiki_outcome, signals_outcome = await asyncio.gather(
            run_isolated(
                "wikipedia",
                self.connectors.wikipedia.fetch(company_name=company_name),
            ),
            run_isolated(
                "signals",
                self.connectors.signals.fetch(
                    company_name=company_name,
                    domain=domain,
                    location_hint=location_hint,
                ),
            ),
        )

        summary: Optional[EncyclopediaSummary] = None
        snippets: List[SourceSnippet] = []
        if isinstance(wiki_outcome, Ok):
            summary = wiki_outcome.value
            snippets.append(
                SourceSnippet(
                    source_title=WIKIPEDIA_TITLE,
                    url=summary.page_url,
                    text_excerpt=summary.extract,
                )
            )

        signals: List[SalesSignal] = []
        if isinstance(signals_outcome, Ok):
            signals = list(signals_outcome.value)

        if domain and is_valid_domain(domain):
            website_outcome = await run_isolated(
                "website",
                self.connectors.website.fetch(domain=domain, paths=paths, max_paths=max_paths),
            )
            if isinstance(website_outcome, Ok):
                snippets.extend(website_outcome.value)
        elif domain:
            logger.info(
                "Domain failed validation; skipping website fetch",
                extra={"company": company_name, "step": "validate_domain"},
            )

        return summary, snippets, signals

    async def _quote(self, ticker: Optional[str]) -> Optional[QuoteSnapshot]:
        if not ticker:
            return None
        outcome: Outcome = await run_isolated("quote", self.connectors.quote.fetch(ticker=ticker))
        return outcome.value if isinstance(outcome, Ok) else None

    def _merge(
        self,
        company_name: str,
        website: Optional[str],
        facts: ExtractedFacts,
        snippets: Sequence[SourceSnippet],
        signals: Sequence[SalesSignal],
        quote: Optional[QuoteSnapshot],
    ) -> IntelligenceRecord:
        headcount: Optional[HeadcountInfo] = None
        if facts.headcount_bucket:
            citation = _cite(facts.headcount_source_url, snippets)
            if citation is not None:
                headcount = HeadcountInfo(bucket=facts.headcount_bucket, source_citation=citation)
        else:
            headcount = _heuristic_headcount(snippets)

        headquarters: Optional[HeadquartersInfo] = None
        if facts.headquarters is not None:
            citation = _cite(facts.headquarters_source_url, snippets)
            if citation is not None:
                headquarters = HeadquartersInfo(
                    city=facts.headquarters.city,
                    country=facts.headquarters.country,
                    source_citation=citation,
                )

        verified_facts: List[VerifiedFact] = []
        for statement in facts.verified_facts:
            citation = _cite(statement.source_url, snippets)
            if citation is not None:
                verified_facts.append(VerifiedFact(text=statement.text, source_citation=citation))

        sentiment = None
        if signals:
            sentiment = HeadlineSentiment(**headline_sentiment([s.title for s in signals]))

        return IntelligenceRecord(
            company_name=company_name,
            website=website,
            generated_at=_now(),
            summary=facts.summary,
            industry=facts.industry,
            founded=facts.founded,
            founder_or_leader=facts.founder_or_leader,
            linkedin_url=facts.social_urls.linkedin or linkedin_search_url(company_name),
            social_urls=facts.social_urls,
            headcount=headcount,
            headquarters=headquarters,
            quote=quote,
            offerings=facts.offerings,
            verified_facts=verified_facts,
            competitors=facts.competitors,
            signals=list(signals),
            sentiment=sentiment,
            sources=[_citation(s) for s in snippets],
        )

    async def _build(
        self,
        company_name: str,
        raw_domain: Optional[str],
        contact_role: Optional[str],
        contact_address: Optional[str],
        paths: Sequence[str],
        max_paths: int,
    ) -> tuple[IntelligenceRecord, bool]:
        """Returns the record and whether any source produced anything."""
        domain = normalize_domain(raw_domain)
        website = domain or raw_domain

        summary, snippets, signals = await self._gather_sources(
            company_name, domain, contact_address, paths, max_paths
        )

        if not snippets and not signals:
            logger.info(
                "No sources produced data",
                extra={"company": company_name, "step": "empty"},
            )
            return empty_record(company_name, website), False

        facts = await self.extractor.extract(
            company_name,
            domain,
            snippets,
            contact_role=contact_role,
            headlines=[s.title for s in signals],
        )
        quote = await self._quote(resolve_ticker(facts, summary))

        record = self._merge(company_name, website, facts, snippets, signals, quote)
        return record, True

    async def aggregate(
        self,
        company_name: str,
        domain: Optional[str] = None,
        contact_role: Optional[str] = None,
        contact_address: Optional[str] = None,
    ) -> IntelligenceRecord:
        logger.info(
            "Aggregating company intel",
            extra={"company": company_name, "step": "start"},
        )
        record, _ = await self._build(
            company_name,
            domain,
            contact_role,
            contact_address,
            DEFAULT_PATHS,
            self.website_max_paths,
        )
        logger.info(
            "Aggregation finished (sources=%d, signals=%d, error=%s)",
            len(record.sources),
            len(record.signals),
            bool(record.error),
            extra={"company": company_name, "step": "done"},
        )
        return record

    async def boost(
        self,
        existing: Optional[IntelligenceRecord],
        domain: Optional[str],
    ) -> IntelligenceRecord:
        """
        Deeper pass scoped to a now-known domain.

        Fresh values win; anything the fresh pass did not find is kept
        from the existing record.
        """
        if existing is None:
            raise BoostPreconditionFailed("boost requires an existing record")
        if not domain or not domain.strip():
            raise BoostPreconditionFailed("boost requires a domain")
        if not is_valid_domain(domain):
            raise BoostPreconditionFailed(f"boost domain is not a valid public hostname: {domain!r}")

        company_name = existing.company_name
        logger.info("Boosting company intel", extra={"company": company_name, "step": "boost"})

        fresh, found = await self._build(
            company_name,
            domain,
            None,
            None,
            BOOST_PATHS,
            self.boost_max_paths,
        )
        boosted_at = _now()

        if not found:
            return existing.model_copy(
                update={"boosted": True, "boosted_at": boosted_at, "generated_at": boosted_at}
            )

        fresh_socials = fresh.social_urls.model_dump()
        old_socials = existing.social_urls.model_dump()
        social_urls = SocialUrls(
            **{k: fresh_socials.get(k) or old_socials.get(k) for k in fresh_socials}
        )

        sources = list(fresh.sources)
        seen = {s.url for s in sources}
        sources.extend(s for s in existing.sources if s.url not in seen)

        return fresh.model_copy(
            update={
                "summary": fresh.summary or existing.summary,
                "industry": fresh.industry or existing.industry,
                "founded": fresh.founded or existing.founded,
                "founder_or_leader": fresh.founder_or_leader or existing.founder_or_leader,
                "social_urls": social_urls,
                "linkedin_url": social_urls.linkedin or fresh.linkedin_url,
                "headcount": fresh.headcount or existing.headcount,
                "headquarters": fresh.headquarters or existing.headquarters,
                "quote": fresh.quote or existing.quote,
                "offerings": fresh.offerings or existing.offerings,
                "verified_facts": fresh.verified_facts or existing.verified_facts,
                "competitors": fresh.competitors or existing.competitors,
                "signals": fresh.signals or existing.signals,
                "sentiment": fresh.sentiment or existing.sentiment,
                "sources": sources,
                "boosted": True,
                "boosted_at": boosted_at,
                "error": None,
            }
        )


@lru_cache(maxsize=1)
def get_aggregator() -> IntelligenceAggregator:
    """Process-wide aggregator; the LLM client is built exactly once here."""
    settings = get_settings()
    return IntelligenceAggregator(
        connectors=get_connectors(GdeltSignalGenerator()),
        extractor=FactExtractor(build_completion_client(settings)),
    )
