from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # core
    ENV: str = "dev"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # auth / security
    API_AUTH_KEY: str | None = None
    FRONTEND_ORIGIN: str | None = None
    # Explicit debug-only switch for wide-open CORS in non-prod envs
    CORS_ALLOW_ALL_ORIGINS: bool = False

    # llm (extraction is disabled when no key is configured)
    OPENAI_API_KEY: str | None = None
    OPENROUTER_API_KEY: str | None = None
    OPENAI_BASE_URL: str | None = None
    LLM_MODEL: str = "gpt-4o"
    # Hard cap on concurrent LLM calls per client
    LLM_MAX_CONCURRENCY: int = 4
    LLM_TIMEOUT_SECONDS: float = 30.0
    LLM_MAX_TOKENS: int = 1200

    # encyclopedia
    WIKIPEDIA_BASE_URL: str = "https://en.wikipedia.org"
    WIKIPEDIA_TIMEOUT_SECONDS: float = 5.0

    # company websites
    WEBSITE_TIMEOUT_SECONDS: float = 5.5
    WEBSITE_MAX_PATHS: int = 3
    BOOST_MAX_PATHS: int = 6
    WEBSITE_USER_AGENT: str = "Mozilla/5.0 (compatible; CompanyIntelBot/1.0)"
    SNIPPET_MAX_CHARS: int = 2200
    SNIPPET_MIN_CHARS: int = 140

    # equity quotes
    QUOTE_BASE_URL: str = "https://query1.finance.yahoo.com/v8/finance/chart"
    QUOTE_TIMEOUT_SECONDS: float = 4.0

    # sales signals
    SIGNALS_TIMEOUT_SECONDS: float = 8.0
    SIGNALS_MAX: int = 6
    GDELT_BASE_URL: str = "https://api.gdeltproject.org/api/v2/doc/doc"
    GDELT_LOOKBACK_DAYS: int = 30

    # caller-side record cache (disabled when REDIS_URL is unset)
    REDIS_URL: str | None = None
    INTEL_CACHE_TTL_SECONDS: int = 60 * 60 * 24 * 7

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
