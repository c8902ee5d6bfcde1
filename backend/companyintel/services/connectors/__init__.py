from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable

from .base import BaseConnector, Ok, Outcome, Unavailable
from .wikipedia import WikipediaConnector
from .website import WebsiteConnector
from .quotes import QuoteConnector
from .signals import SignalGenerator, SignalsConnector

logger = logging.getLogger(__name__)


@dataclass
class ConnectorSet:
    """
    The sources one aggregator talks to.

    Built once per process by `get_connectors`; tests assemble their own
    with fakes or MockTransport-backed instances.
    """

    wikipedia: BaseConnector
    website: BaseConnector
    quote: BaseConnector
    signals: BaseConnector


async def run_isolated(name: str, call: Awaitable[Outcome]) -> Outcome:
    """
    Await a connector call, turning any unexpected exception into
    `Unavailable` so one broken source never aborts an aggregation.
    """
    try:
        result = await call
    except Exception as e:
        logger.exception(
            "Connector '%s' failed: %s",
            name,
            e,
            extra={"connector": name, "step": "fetch"},
        )
        return Unavailable(f"{type(e).__name__}")

    if not isinstance(result, (Ok, Unavailable)):
        logger.error(
            "Connector '%s' returned %s instead of an outcome",
            name,
            type(result).__name__,
            extra={"connector": name, "step": "fetch"},
        )
        return Unavailable("bad result type")
    return result


def get_connectors(generator: SignalGenerator) -> ConnectorSet:
    return ConnectorSet(
        wikipedia=WikipediaConnector(),
        website=WebsiteConnector(),
        quote=QuoteConnector(),
        signals=SignalsConnector(generator),
    )


__all__ = [
    "BaseConnector",
    "ConnectorSet",
    "Ok",
    "Outcome",
    "Unavailable",
    "get_connectors",
    "run_isolated",
]
