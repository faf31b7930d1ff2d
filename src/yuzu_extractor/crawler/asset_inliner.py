"""
Embeds remote images into rendered Markdown as ``data:`` URIs.

Every unique image URL is fetched once, concurrently. A fetch never fails
outward: it settles to a data URI or to ``None``. Only after every fetch has
settled is the URL map applied to the text, in a single substitution pass,
so a failed image simply keeps its original URL.

Session cookies belong to the reader origin: they are attached per request,
and only to images served from that origin.
"""

from __future__ import annotations

import asyncio
import base64
import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

import aiohttp
import structlog

from ..config.config import AssetConfig
from ..models import PartialAssetFailure

logger = structlog.get_logger(__name__)

IMAGE_REF_PATTERN = re.compile(r"!\[([^\]]*)\]\((https?://[^)]+)\)")
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class InlineOutcome:
    """Result of an inlining pass."""

    markdown: str
    embedded: Dict[str, str] = field(default_factory=dict)
    failed: List[str] = field(default_factory=list)


def find_image_urls(markdown: str) -> List[str]:
    """Unique remote image URLs in order of first appearance."""
    return list(dict.fromkeys(match.group(2) for match in IMAGE_REF_PATTERN.finditer(markdown)))


def to_data_uri(payload: bytes, content_type: Optional[str]) -> str:
    mime = (content_type or "").split(";", 1)[0].strip() or DEFAULT_CONTENT_TYPE
    return f"data:{mime};base64," + base64.b64encode(payload).decode("ascii")


def _origin(url: str) -> Tuple[str, str]:
    parsed = urlparse(url)
    return parsed.scheme.lower(), parsed.netloc.lower()


class AssetInliner:
    """Replaces remote image references with embedded payloads."""

    def __init__(
        self,
        config: Optional[AssetConfig] = None,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        cookies: Optional[Mapping[str, str]] = None,
        origin_url: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.config = config or AssetConfig()
        self._session = session
        self._cookies = dict(cookies or {})
        self._origin = _origin(origin_url) if origin_url else None
        self._headers = {"User-Agent": self.config.user_agent, **dict(headers or {})}

    async def inline(self, markdown: str) -> InlineOutcome:
        urls = find_image_urls(markdown)
        if not urls:
            return InlineOutcome(markdown=markdown)

        if self._session is not None:
            results = await self._fetch_all(self._session, urls)
        else:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            async with aiohttp.ClientSession(timeout=timeout, headers=self._headers) as session:
                results = await self._fetch_all(session, urls)

        embedded = {url: data_uri for url, data_uri in results if data_uri is not None}
        failed = [url for url, data_uri in results if data_uri is None]

        def substitute(match: re.Match) -> str:
            data_uri = embedded.get(match.group(2))
            if data_uri is None:
                return match.group(0)
            return "![" + match.group(1) + "](" + data_uri + ")"

        text = IMAGE_REF_PATTERN.sub(substitute, markdown)
        logger.info("Inlined images", total=len(urls), embedded=len(embedded), failed=len(failed))
        return InlineOutcome(markdown=text, embedded=embedded, failed=failed)

    async def _fetch_all(self, session: aiohttp.ClientSession, urls: List[str]) -> List[Tuple[str, Optional[str]]]:
        semaphore = asyncio.Semaphore(self.config.max_concurrency)

        async def settle(url: str) -> Tuple[str, Optional[str]]:
            async with semaphore:
                try:
                    return url, await self._fetch_data_uri(session, url)
                except PartialAssetFailure as e:
                    logger.warning("Image left as remote link", url=url, reason=e.reason)
                except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                    logger.warning("Image left as remote link", url=url, reason=str(e) or type(e).__name__)
                except Exception as e:
                    logger.warning("Image fetch failed unexpectedly", url=url, error=str(e), error_type=type(e).__name__)
                return url, None

        return list(await asyncio.gather(*(settle(url) for url in urls)))

    def _cookies_for(self, url: str) -> Optional[Dict[str, str]]:
        if not self._cookies or self._origin is None or _origin(url) != self._origin:
            return None
        return self._cookies

    async def _fetch_data_uri(self, session: aiohttp.ClientSession, url: str) -> str:
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
        async with session.get(url, timeout=timeout, cookies=self._cookies_for(url)) as response:
            if not 200 <= response.status < 300:
                raise PartialAssetFailure(url, f"HTTP {response.status}")
            payload = await response.read()
            limit = self.config.max_bytes
            if limit is not None and len(payload) > limit:
                raise PartialAssetFailure(url, f"{len(payload)} bytes exceeds limit of {limit}")
            return to_data_uri(payload, response.headers.get("Content-Type"))
