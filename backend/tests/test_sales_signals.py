"""
Tests for sales_signals.py - the default GDELT-backed signal generator.
"""
import httpx
import pytest

from companyintel.services.sales_signals import (
    ArticleCandidate,
    GdeltSignalGenerator,
    build_queries,
    classify_signal,
    clean_company_name,
    confidence_for,
    headline_sentiment,
    score_article,
)


class TestQueryPlanning:
    def test_clean_company_name_drops_legal_suffixes(self):
        assert clean_company_name("Acme Holdings Pty Ltd") == "Acme"

    def test_queries_are_ordered_and_deduped(self):
        assert build_queries("Acme Corp", "acme.com") == [
            '"Acme Corp" OR acme.com',
            '"Acme" OR acme.com',
            '"Acme"',
            "acme.com",
        ]

    def test_queries_without_domain(self):
        assert build_queries("Acme", "") == ['"Acme"']


class TestScoring:
    def test_domain_host_and_exact_title(self):
        article = ArticleCandidate(title="Acme Corp launches new platform", url="https://news.acme.com/post")
        scored = score_article(article, "Acme Corp", "acme.com")
        assert scored.score == 70
        assert "Title contains exact company name" in scored.evidence

    def test_generic_market_headline_is_penalised(self):
        article = ArticleCandidate(title="Stocks to watch this week", url="https://example.com/x", snippet="acme corp")
        scored = score_article(article, "Acme Corp", "")
        assert scored.score == 16 - 18

    def test_location_hint_bonus(self):
        article = ArticleCandidate(title="Acme opens Denver office", url="https://example.com/x")
        scored = score_article(article, "Acme Inc", "", location_hint="Denver")
        assert scored.score == 22 + 8


class TestClassification:
    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Acme is hiring 200 engineers", "Hiring"),
            ("Acme awarded state contract", "Contracts & Projects"),
            ("Acme appoints new CFO", "Leadership"),
            ("Acme and Globex sign MOU", "Partnerships"),
            ("Acme completes merger", "Regulatory/Finance"),
            ("Acme celebrates anniversary", "General"),
        ],
    )
    def test_signal_types(self, title, expected):
        assert classify_signal(title)[0] == expected

    def test_confidence_thresholds(self):
        assert confidence_for(75) == "High"
        assert confidence_for(60) == "Medium"
        assert confidence_for(59) == "Low"


class TestHeadlineSentiment:
    def test_counts_by_word_lists(self):
        counts = headline_sentiment(
            [
                "Acme posts record profit",
                "Acme announces layoffs at Denver plant",
                "Acme names new office manager",
                "Record growth despite lawsuit",
            ]
        )
        # positive wins when both lists match
        assert counts == {"positive": 2, "neutral": 1, "negative": 1}

    def test_only_first_ten_headlines_count(self):
        counts = headline_sentiment(["Acme update"] * 15)
        assert sum(counts.values()) == 10


class TestGdeltSignalGenerator:
    @pytest.mark.asyncio
    async def test_generate_filters_by_threshold(self):
        seen_queries = []

        def handler(request):
            seen_queries.append(request.url.params["query"])
            return httpx.Response(
                200,
                json={
                    "articles": [
                        {
                            "title": "Acme Corp wins state automation contract",
                            "url": "https://www.acme.com/news/contract",
                            "domain": "acme.com",
                            "seendate": "20261001T120000Z",
                        },
                        {"title": "Unrelated story", "url": "https://example.com/other"},
                    ]
                },
            )

        generator = GdeltSignalGenerator(transport=httpx.MockTransport(handler))
        result = await generator.generate(company_name="Acme Corp", domain="acme.com", max_signals=6)

        assert seen_queries == ['"Acme Corp" OR acme.com']
        assert [s["title"] for s in result["signals"]] == ["Acme Corp wins state automation contract"]
        signal = result["signals"][0]
        assert signal["type"] == "Contracts & Projects"
        assert signal["confidence"] == "Medium"
        assert signal["source_title"] == "acme.com"
        assert result["debug"] == {"query_used": '"Acme Corp" OR acme.com', "candidates": 2}

    @pytest.mark.asyncio
    async def test_tries_next_query_when_empty(self):
        seen_queries = []

        def handler(request):
            seen_queries.append(request.url.params["query"])
            return httpx.Response(200, json={"articles": []})

        generator = GdeltSignalGenerator(transport=httpx.MockTransport(handler))
        result = await generator.generate(company_name="Acme Corp", domain="acme.com")

        assert len(seen_queries) == 4
        assert result["signals"] == []
