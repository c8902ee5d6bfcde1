# backend/companyintel/schemas/intel.py
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_COMPANY_NAME_LEN = 200
MAX_DOMAIN_LEN = 2048
MAX_ROLE_LEN = 200
MAX_ADDRESS_LEN = 500
MAX_COMPETITORS = 4
MAX_VERIFIED_FACTS = 8
MAX_PRODUCTS = 6
MAX_SERVICES = 6
MAX_BUYERS = 4

HEADCOUNT_BUCKETS: tuple[str, ...] = (
    "1-10",
    "11-50",
    "51-200",
    "201-500",
    "501-1k",
    "1k-5k",
    "5k-10k",
    "10k+",
)

HeadcountBucket = Literal[
    "1-10", "11-50", "51-200", "201-500", "501-1k", "1k-5k", "5k-10k", "10k+"
]


class SourceSnippet(BaseModel):
    """
    Bounded, attributed excerpt gathered from one source.

    Only ever used as LLM input; never returned to callers.
    """

    source_title: str
    url: str
    text_excerpt: str

    model_config = ConfigDict(frozen=True)


class SourceCitation(BaseModel):
    title: str
    url: str


class Headquarters(BaseModel):
    city: str | None = None
    country: str | None = None


class Competitor(BaseModel):
    name: str
    description: str | None = None


class Offerings(BaseModel):
    products: list[str] = Field(default_factory=list, max_length=MAX_PRODUCTS)
    services: list[str] = Field(default_factory=list, max_length=MAX_SERVICES)
    buyers: list[str] = Field(default_factory=list, max_length=MAX_BUYERS)


class CitedStatement(BaseModel):
    """Model-proposed fact with the snippet URL it claims to come from."""

    text: str
    source_url: str


class SocialUrls(BaseModel):
    linkedin: str | None = None
    twitter: str | None = None
    facebook: str | None = None
    instagram: str | None = None


class ExtractedFacts(BaseModel):
    headquarters: Headquarters | None = None
    headquarters_source_url: str | None = None
    headcount_bucket: HeadcountBucket | None = None
    headcount_source_url: str | None = None
    industry: str | None = None
    summary: str | None = None
    founded: str | None = None
    founder_or_leader: str | None = None
    ticker_symbol: str | None = None
    social_urls: SocialUrls = Field(default_factory=SocialUrls)
    offerings: Offerings | None = None
    verified_facts: list[CitedStatement] = Field(default_factory=list, max_length=MAX_VERIFIED_FACTS)
    competitors: list[Competitor] = Field(default_factory=list, max_length=MAX_COMPETITORS)


class QuoteSnapshot(BaseModel):
    ticker: str
    exchange: str | None = None
    price: float | None = None
    change_percent: float | None = None
    currency: str = "USD"


class HeadcountInfo(BaseModel):
    bucket: HeadcountBucket
    source_citation: SourceCitation


class HeadquartersInfo(BaseModel):
    city: str | None = None
    country: str | None = None
    source_citation: SourceCitation


class VerifiedFact(BaseModel):
    text: str
    source_citation: SourceCitation


class HeadlineSentiment(BaseModel):
    positive: int = 0
    neutral: int = 0
    negative: int = 0


class SalesSignal(BaseModel):
    type: str = "General"
    title: str
    why_it_matters: str | None = None
    source_title: str | None = None
    source_url: str | None = None
    published_at: str | None = None
    confidence: Literal["High", "Medium", "Low"] = "Low"
    evidence: list[str] = Field(default_factory=list)


class IntelligenceRecord(BaseModel):
    company_name: str
    website: str | None = None
    generated_at: datetime
    summary: str | None = None
    industry: str | None = None
    founded: str | None = None
    founder_or_leader: str | None = None
    # Always set: a validated profile URL or a generated company-search link
    linkedin_url: str
    social_urls: SocialUrls = Field(default_factory=SocialUrls)
    headcount: HeadcountInfo | None = None
    headquarters: HeadquartersInfo | None = None
    quote: QuoteSnapshot | None = None
    offerings: Offerings | None = None
    verified_facts: list[VerifiedFact] = Field(default_factory=list, max_length=MAX_VERIFIED_FACTS)
    competitors: list[Competitor] = Field(default_factory=list, max_length=MAX_COMPETITORS)
    signals: list[SalesSignal] = Field(default_factory=list)
    sentiment: HeadlineSentiment | None = None
    sources: list[SourceCitation] = Field(default_factory=list)
    boosted: bool = False
    boosted_at: datetime | None = None
    error: str | None = None


def _blank_to_none(v: Any) -> Any:
    if v is None:
        return None
    if isinstance(v, str):
        stripped = v.strip()
        return stripped or None
    return v


class IntelRequest(BaseModel):
    company_name: str
    domain: str | None = None
    contact_role: str | None = None
    contact_address: str | None = None
    force_refresh: bool = False

    @field_validator("domain", "contact_role", "contact_address", mode="before")
    @classmethod
    def _optional_blank_to_none(cls, v):
        return _blank_to_none(v)

    @field_validator("company_name")
    @classmethod
    def validate_company_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("company_name must not be empty")
        if len(v) > MAX_COMPANY_NAME_LEN:
            raise ValueError(
                f"company_name must be at most {MAX_COMPANY_NAME_LEN} characters"
            )
        return v

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: str | None) -> str | None:
        if v is not None and len(v) > MAX_DOMAIN_LEN:
            raise ValueError("domain is too long")
        return v

    @field_validator("contact_role")
    @classmethod
    def validate_contact_role(cls, v: str | None) -> str | None:
        if v is not None and len(v) > MAX_ROLE_LEN:
            raise ValueError(f"contact_role must be at most {MAX_ROLE_LEN} characters")
        return v

    @field_validator("contact_address")
    @classmethod
    def validate_contact_address(cls, v: str | None) -> str | None:
        if v is not None and len(v) > MAX_ADDRESS_LEN:
            raise ValueError(
                f"contact_address must be at most {MAX_ADDRESS_LEN} characters"
            )
        return v


class BoostRequest(BaseModel):
    # Both optional at the schema level so the engine can report the
    # precondition failure itself.
    domain: str | None = None
    existing_record: IntelligenceRecord | None = None

    @field_validator("domain", mode="before")
    @classmethod
    def _domain_blank_to_none(cls, v):
        return _blank_to_none(v)
