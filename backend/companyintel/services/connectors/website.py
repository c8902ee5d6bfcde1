# backend/companyintel/services/connectors/website.py

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, List, Optional, Sequence
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from .base import BaseConnector, Ok, Outcome, Unavailable, bounded_get
from ..domain import is_valid_domain, normalize_domain
from ...core.config import get_settings
from ...schemas.intel import SourceSnippet

logger = logging.getLogger(__name__)

settings = get_settings()

DEFAULT_PATHS: tuple[str, ...] = ("/", "/about", "/about-us", "/company", "/products", "/services")
BOOST_PATHS: tuple[str, ...] = DEFAULT_PATHS + ("/team", "/leadership", "/investors", "/contact")

MAX_REDIRECTS = 3
MAX_SOCIAL_LINKS = 8

# Subtrees whose text is never page content.
_DROP_TAGS = ("script", "style", "noscript", "template", "svg", "iframe", "head")

_SOCIAL_PATTERNS = (
    re.compile(r"https?://(?:[a-z]{2,3}\.)?linkedin\.com/(?:company|in|school)/[A-Za-z0-9_%.\-]+", re.I),
    re.compile(r"https?://(?:www\.|mobile\.)?(?:twitter|x)\.com/[A-Za-z0-9_]{1,15}\b", re.I),
    re.compile(r"https?://(?:www\.|m\.)?facebook\.com/[A-Za-z0-9.\-]+", re.I),
    re.compile(r"https?://(?:www\.)?instagram\.com/[A-Za-z0-9_.]+", re.I),
)
# First path segments that belong to share widgets and posts, not profiles.
_SOCIAL_NOISE = {"intent", "share", "sharer", "sharer.php", "home", "plugins", "dialog", "tr", "p", "reel"}

_WS_RE = re.compile(r"\s+")


def sanitize_html(html: str) -> str:
    """
    Reduce an HTML document to its visible text.

    Nothing from the markup survives: tags and attributes are dropped,
    only text nodes are kept and whitespace is collapsed.
    """
    if not html:
        return ""
    soup = BeautifulSoup(html, "lxml")
    for element in soup(_DROP_TAGS):
        element.decompose()
    text = soup.get_text(separator=" ", strip=True)
    return _WS_RE.sub(" ", text).strip()


def extract_social_links(raw_html: str, limit: int = MAX_SOCIAL_LINKS) -> List[str]:
    """Profile URLs found anywhere in the raw page, deduped in order of appearance."""
    found: List[str] = []
    seen: set[str] = set()
    for pattern in _SOCIAL_PATTERNS:
        for match in pattern.finditer(raw_html or ""):
            url = match.group(0).rstrip("/.")
            first_segment = url.split("://", 1)[1].split("/")[1].lower()
            if first_segment in _SOCIAL_NOISE:
                continue
            key = url.lower()
            if key in seen:
                continue
            seen.add(key)
            found.append(url)
            if len(found) >= limit:
                return found
    return found


def build_excerpt(raw_html: str, max_chars: int, min_chars: int) -> Optional[str]:
    text = sanitize_html(raw_html)[:max_chars].strip()
    if len(text) < min_chars:
        return None

    socials = extract_social_links(raw_html)
    if socials:
        text = f"{text}\nSocial links found: {', '.join(socials)}"
    return text


class WebsiteConnector(BaseConnector):
    """
    Fetch a handful of well-known pages from a company's own website.

    Only the first `max_paths` candidates are tried, each with its own
    timeout. Failed paths are skipped; one snippet per useful page.
    """

    name = "website"

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__(transport)
        self.timeout: float = settings.WEBSITE_TIMEOUT_SECONDS
        self.max_paths: int = settings.WEBSITE_MAX_PATHS
        self.user_agent: str = settings.WEBSITE_USER_AGENT
        self.max_chars: int = settings.SNIPPET_MAX_CHARS
        self.min_chars: int = settings.SNIPPET_MIN_CHARS

    async def _get_page(self, client: httpx.AsyncClient, url: str) -> Optional[httpx.Response]:
        """
        GET with redirects followed by hand, so every hop goes through the
        domain validator before anything is requested from it.
        """
        for _ in range(MAX_REDIRECTS + 1):
            resp = await bounded_get(client, url, self.timeout)
            if not resp.is_redirect:
                return resp

            location = resp.headers.get("location")
            if not location:
                return None
            next_url = urljoin(str(resp.url), location)
            next_host = httpx.URL(next_url).host
            if not next_url.startswith(("http://", "https://")) or not is_valid_domain(next_host):
                logger.warning(
                    "Refusing redirect from %s to %s",
                    url,
                    next_url,
                    extra={"connector": self.name, "step": "redirect"},
                )
                return None
            url = next_url
        return None

    async def fetch(self, **kwargs: Any) -> Outcome[List[SourceSnippet]]:
        """
        Expected kwargs:
          - domain: str (already validated by the caller; re-checked here)
          - paths: Optional[Sequence[str]]
          - max_paths: Optional[int]
        """
        raw_domain = kwargs.get("domain")
        if not is_valid_domain(raw_domain):
            logger.info(
                "Skipping website fetch for invalid domain",
                extra={"connector": self.name, "step": "validate"},
            )
            return Unavailable("invalid domain")

        domain = normalize_domain(raw_domain)
        paths: Sequence[str] = kwargs.get("paths") or DEFAULT_PATHS
        max_paths = int(kwargs.get("max_paths") or self.max_paths)

        snippets: List[SourceSnippet] = []
        async with self._client(
            self.timeout,
            headers={"User-Agent": self.user_agent},
            follow_redirects=False,
        ) as client:
            for path in list(paths)[:max_paths]:
                if not path.startswith("/"):
                    path = "/" + path
                url = f"https://{domain}{path}"
                try:
                    # one budget per path, redirect hops included
                    resp = await asyncio.wait_for(self._get_page(client, url), timeout=self.timeout)
                except (httpx.HTTPError, asyncio.TimeoutError) as exc:
                    logger.warning(
                        "Website path %s failed: %r",
                        url,
                        exc,
                        extra={"connector": self.name, "step": path},
                    )
                    continue

                if resp is None or resp.status_code != 200:
                    continue

                excerpt = build_excerpt(resp.text, self.max_chars, self.min_chars)
                if excerpt is None:
                    continue

                snippets.append(
                    SourceSnippet(
                        source_title=f"{domain}{path}",
                        url=url,
                        text_excerpt=excerpt,
                    )
                )

        if not snippets:
            return Unavailable("no usable pages")
        return Ok(snippets)
