"""
Shared fixtures for company-intel tests.

Sample upstream payloads plus in-memory fakes for the connectors, the
completion client and the signal collaborator. Nothing here touches the
network.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from companyintel.services.connectors.base import Ok, Unavailable
from companyintel.services.connectors.wikipedia import EncyclopediaSummary


# ---------------------------------------------------------------------------
# Upstream payloads
# ---------------------------------------------------------------------------

ABOUT_TEXT = (
    "Acme Corp builds industrial automation software for mid-sized manufacturers. "
    "Founded in 1998 and headquartered in Denver, Colorado, the company employs 1,200 "
    "employees across four continents and serves more than 3,000 customers worldwide."
)

ABOUT_PAGE_HTML = f"""
<html>
  <head><title>About Acme</title><script>var tracking = "secret-token";</script></head>
  <body>
    <style>.hero {{ color: red; }}</style>
    <nav><a href="/">Home</a></nav>
    <h1 class="hero" onclick="alert(1)">About us</h1>
    <p>{ABOUT_TEXT}</p>
    <footer>
      <a href="https://www.linkedin.com/company/acme-corp/">LinkedIn</a>
      <a href="https://twitter.com/acmecorp">Twitter</a>
      <a href="https://twitter.com/intent/tweet?text=hi">Share</a>
      <a href="https://www.facebook.com/acmecorp">Facebook</a>
      <a href="https://www.linkedin.com/company/acme-corp">LinkedIn again</a>
    </footer>
  </body>
</html>
"""

TINY_PAGE_HTML = "<html><body><p>Coming soon.</p></body></html>"

WIKI_EXTRACT = (
    "Acme Corporation is an American manufacturer of industrial equipment. "
    "The company is listed on the NASDAQ: ACME and is a component of several indices."
)

WIKI_SUMMARY_PAYLOAD = {
    "type": "standard",
    "title": "Acme Corporation",
    "extract": WIKI_EXTRACT,
    "content_urls": {"desktop": {"page": "https://en.wikipedia.org/wiki/Acme_Corporation"}},
}

WIKI_DISAMBIGUATION_PAYLOAD = {
    "type": "disambiguation",
    "title": "Acme",
    "extract": "Acme may refer to:",
}

CHART_PAYLOAD = {
    "chart": {
        "result": [
            {
                "meta": {
                    "currency": "USD",
                    "symbol": "ACME",
                    "exchangeName": "NMS",
                    "fullExchangeName": "NasdaqGS",
                    "regularMarketPrice": 105.5,
                    "chartPreviousClose": 100.0,
                }
            }
        ],
        "error": None,
    }
}


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeConnector:
    """Returns a fixed outcome (or raises) and records every call."""

    def __init__(self, name: str, outcome: Any = None, exc: Optional[Exception] = None) -> None:
        self.name = name
        self.outcome = outcome if outcome is not None else Unavailable("fake")
        self.exc = exc
        self.calls: List[Dict[str, Any]] = []

    async def fetch(self, **kwargs: Any):
        self.calls.append(kwargs)
        if self.exc is not None:
            raise self.exc
        return self.outcome


class FakeCompletionClient:
    def __init__(self, response: str = "{}", exc: Optional[Exception] = None) -> None:
        self.response = response
        self.exc = exc
        self.prompts: List[str] = []
        self.systems: List[Optional[str]] = []

    async def complete(self, prompt: str, *, system: Optional[str] = None) -> str:
        self.prompts.append(prompt)
        self.systems.append(system)
        if self.exc is not None:
            raise self.exc
        return self.response


@dataclass
class FakeSignalGenerator:
    payload: Dict[str, Any] = field(default_factory=lambda: {"signals": [], "debug": {}})
    calls: List[Dict[str, Any]] = field(default_factory=list)

    async def generate(self, **kwargs: Any) -> Dict[str, Any]:
        self.calls.append(kwargs)
        return self.payload


def acme_summary(ticker: Optional[str] = "ACME") -> EncyclopediaSummary:
    return EncyclopediaSummary(
        extract=WIKI_EXTRACT,
        page_url="https://en.wikipedia.org/wiki/Acme_Corporation",
        title="Acme Corporation",
        ticker=ticker,
    )


def sample_signal(title: str = "Acme Corp wins state automation contract") -> Dict[str, Any]:
    return {
        "type": "Contracts & Projects",
        "title": title,
        "why_it_matters": "New wins or tenders signal budget and urgency.",
        "source_title": "news.example.com",
        "source_url": "https://news.example.com/acme-contract",
        "published_at": "20261001T120000Z",
        "confidence": "High",
        "evidence": ["Title contains exact company name"],
    }


def ok(value: Any) -> Ok:
    return Ok(value)
