# backend/companyintel/services/connectors/signals.py

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError

from .base import BaseConnector, Ok, Outcome, Unavailable
from ...core.config import get_settings
from ...schemas.intel import SalesSignal

logger = logging.getLogger(__name__)

settings = get_settings()


class SignalGenerator(Protocol):
    async def generate(
        self,
        *,
        company_name: str,
        domain: Optional[str] = None,
        location_hint: Optional[str] = None,
        max_signals: int = 6,
    ) -> Dict[str, Any]:
        ...


class SignalsConnector(BaseConnector):
    """
    Thin, time-bounded adapter over an external signal generator.

    The generator returns {"signals": [...], "debug": {...}}; malformed
    entries are dropped one by one rather than failing the batch.
    """

    name = "signals"

    def __init__(self, generator: SignalGenerator) -> None:
        super().__init__()
        self.generator = generator
        self.timeout: float = settings.SIGNALS_TIMEOUT_SECONDS
        self.max_signals: int = settings.SIGNALS_MAX

    async def fetch(self, **kwargs: Any) -> Outcome[List[SalesSignal]]:
        """
        Expected kwargs:
          - company_name: str
          - domain: Optional[str]
          - location_hint: Optional[str]
        """
        try:
            payload = await asyncio.wait_for(
                self.generator.generate(
                    company_name=kwargs.get("company_name") or "",
                    domain=kwargs.get("domain"),
                    location_hint=kwargs.get("location_hint"),
                    max_signals=self.max_signals,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Signal generator timed out", extra={"connector": self.name})
            return Unavailable("timeout")

        raw_signals = (payload or {}).get("signals") if isinstance(payload, dict) else None
        if not isinstance(raw_signals, list):
            return Unavailable("malformed payload")

        signals: List[SalesSignal] = []
        for raw in raw_signals[: self.max_signals]:
            try:
                signals.append(SalesSignal.model_validate(raw))
            except ValidationError:
                logger.warning("Dropping malformed signal", extra={"connector": self.name})

        debug = payload.get("debug")
        if not isinstance(debug, dict):
            debug = {}
        logger.info(
            "Signals fetched: %d (query=%s)",
            len(signals),
            debug.get("query_used"),
            extra={"connector": self.name},
        )
        return Ok(signals)
