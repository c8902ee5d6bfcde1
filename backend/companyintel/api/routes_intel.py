from uuid import uuid4
import logging

from fastapi import APIRouter, Depends, HTTPException, Security
from fastapi.security.api_key import APIKeyHeader
from pydantic import ValidationError

from ..core.config import get_settings
from ..core.logging import bind
from ..schemas.intel import BoostRequest, IntelligenceRecord, IntelRequest
from ..services.aggregator import (
    BoostPreconditionFailed,
    IntelligenceAggregator,
    get_aggregator,
)
from ..services.caching import cached_get, record_cache_key

router = APIRouter(tags=["intel"])

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
logger = logging.getLogger(__name__)


def verify_api_key(api_key: str | None = Security(api_key_header)) -> None:
    """
    Simple header-based API key authentication.

    - In dev, if API_AUTH_KEY is not set, auth is skipped.
    - Otherwise, require X-API-Key == API_AUTH_KEY.
    """
    settings = get_settings()
    expected = settings.API_AUTH_KEY

    # In dev with no configured key, skip auth for convenience
    if settings.ENV == "dev" and not expected:
        return

    if not expected:
        # In non-dev environments, missing config is treated as misconfiguration
        raise HTTPException(status_code=401, detail="API key not configured")

    if api_key != expected:
        raise HTTPException(status_code=401, detail="Invalid API key")


@router.post("/intel", response_model=IntelligenceRecord)
async def get_company_intel(
    payload: IntelRequest,
    aggregator: IntelligenceAggregator = Depends(get_aggregator),
    _: None = Depends(verify_api_key),
):
    log = bind(logger, request_id=str(uuid4()), company=payload.company_name)
    cache_key = record_cache_key(payload.company_name, payload.domain)

    if not payload.force_refresh:
        cached = await cached_get(cache_key)
        if cached is not None:
            try:
                record = IntelligenceRecord.model_validate(cached)
            except ValidationError:
                log.warning("Discarding malformed cached record", extra={"step": "cache"})
            else:
                log.info("Serving cached company intel", extra={"step": "cache"})
                return record

    log.info("Generating company intel", extra={"step": "aggregate"})
    record = await aggregator.aggregate(
        payload.company_name,
        domain=payload.domain,
        contact_role=payload.contact_role,
        contact_address=payload.contact_address,
    )

    # Empty records are not cached so a retry can pick up new data.
    if not record.error:
        await cached_get(
            cache_key,
            set_value=record.model_dump(mode="json"),
            ttl=get_settings().INTEL_CACHE_TTL_SECONDS,
        )
    return record


@router.post("/intel/boost", response_model=IntelligenceRecord)
async def boost_company_intel(
    payload: BoostRequest,
    aggregator: IntelligenceAggregator = Depends(get_aggregator),
    _: None = Depends(verify_api_key),
):
    log = bind(logger, request_id=str(uuid4()), step="boost")
    try:
        record = await aggregator.boost(payload.existing_record, payload.domain)
    except BoostPreconditionFailed as e:
        log.info("Boost rejected: %s", e)
        raise HTTPException(status_code=400, detail=str(e))

    await cached_get(
        record_cache_key(record.company_name, payload.domain),
        set_value=record.model_dump(mode="json"),
        ttl=get_settings().INTEL_CACHE_TTL_SECONDS,
    )
    return record
