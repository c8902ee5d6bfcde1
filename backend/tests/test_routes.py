"""
HTTP surface tests. The aggregator dependency is swapped for one built
from in-memory fakes; with REDIS_URL unset the cache is a no-op.
"""
import json

from fastapi.testclient import TestClient

from companyintel.main import app
from companyintel.schemas.intel import SourceSnippet
from companyintel.services.aggregator import IntelligenceAggregator, empty_record, get_aggregator
from companyintel.services.connectors import ConnectorSet
from companyintel.services.connectors.base import Ok, Unavailable
from companyintel.services.extraction import FactExtractor

from tests.fixtures.intel_fixtures import (
    ABOUT_TEXT,
    FakeCompletionClient,
    FakeConnector,
    acme_summary,
)


def _aggregator(website_outcome=None) -> IntelligenceAggregator:
    return IntelligenceAggregator(
        ConnectorSet(
            wikipedia=FakeConnector("wikipedia", Ok(acme_summary(ticker=None))),
            website=FakeConnector("website", website_outcome or Unavailable("no pages")),
            quote=FakeConnector("quote"),
            signals=FakeConnector("signals", Ok([])),
        ),
        FactExtractor(FakeCompletionClient(json.dumps({"industry": "Industrial Equipment"}))),
    )


def _client(aggregator: IntelligenceAggregator) -> TestClient:
    app.dependency_overrides[get_aggregator] = lambda: aggregator
    return TestClient(app)


def teardown_function(_):
    app.dependency_overrides.clear()


def test_healthz():
    resp = TestClient(app).get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_intel_returns_record():
    client = _client(_aggregator())

    resp = client.post(
        "/api/intel",
        json={"company_name": "  Acme Corp ", "domain": "", "contact_role": "CFO"},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["company_name"] == "Acme Corp"
    assert body["industry"] == "Industrial Equipment"
    assert body["error"] is None
    assert body["linkedin_url"].startswith("https://www.linkedin.com/search/results/companies/")
    assert [s["title"] for s in body["sources"]] == ["Wikipedia"]


def test_intel_rejects_blank_company_name():
    client = _client(_aggregator())

    resp = client.post("/api/intel", json={"company_name": "   "})

    assert resp.status_code == 422


def test_boost_without_existing_record_is_400():
    client = _client(_aggregator())

    resp = client.post("/api/intel/boost", json={"domain": "acme.com"})

    assert resp.status_code == 400
    assert "existing record" in resp.json()["detail"]


def test_boost_without_domain_is_400():
    client = _client(_aggregator())
    existing = empty_record("Acme Corp", None).model_dump(mode="json")

    resp = client.post("/api/intel/boost", json={"existing_record": existing})

    assert resp.status_code == 400


def test_boost_returns_boosted_record():
    snippet = SourceSnippet(source_title="acme.com/team", url="https://acme.com/team", text_excerpt=ABOUT_TEXT)
    client = _client(_aggregator(Ok([snippet])))
    existing = empty_record("Acme Corp", None).model_dump(mode="json")

    resp = client.post(
        "/api/intel/boost",
        json={"domain": "acme.com", "existing_record": existing},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["boosted"] is True
    assert body["boosted_at"] is not None
    assert body["error"] is None
    assert body["headcount"]["bucket"] == "1k-5k"
    assert "https://acme.com/team" in [s["url"] for s in body["sources"]]
