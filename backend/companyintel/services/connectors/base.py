from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

import httpx

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Unavailable:
    """A source that failed, timed out or had nothing to say."""

    reason: str = ""


Outcome = Union[Ok[T], Unavailable]


class BaseConnector(ABC):
    name: str

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        # Tests swap in httpx.MockTransport here.
        self._transport = transport

    def _client(self, timeout: float, **kwargs: Any) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport, **kwargs)

    @abstractmethod
    async def fetch(self, **kwargs) -> Outcome:
        ...


async def bounded_get(
    client: httpx.AsyncClient,
    url: str,
    timeout: float,
    **kwargs: Any,
) -> httpx.Response:
    """
    GET that is cancelled once `timeout` seconds have elapsed in total.

    httpx timeouts apply per network operation; this one bounds the whole
    request. Raises asyncio.TimeoutError on expiry.
    """
    return await asyncio.wait_for(client.get(url, **kwargs), timeout=timeout)
