"""
Content frame discovery.

The reader nests its EPUB content a few levels deep: a wrapper page hosts a
``<mosaic-book>`` element whose shadow tree holds the content iframe. The
locator tries an ordered list of strategies and returns the first scope that
qualifies. An inaccessible candidate only ever moves the search on.
"""

from __future__ import annotations

from typing import Awaitable, Callable, List, Optional, Tuple

import structlog

from ..config.config import LocatorConfig
from ..models import NoContentFound
from ..protocols import ContentScope, ScopeHandle

logger = structlog.get_logger(__name__)


async def _markup_length(scope: ContentScope) -> int:
    try:
        return await scope.body_markup_length()
    except Exception as e:
        logger.debug("Scope became inaccessible while measuring", error=str(e))
        return 0


async def _enter(handle: ScopeHandle) -> Optional[ContentScope]:
    try:
        return await handle.get_root()
    except Exception as e:
        # get_root() is not supposed to raise; treat a misbehaving handle like a closed door
        logger.debug("Scope handle raised on entry", error=str(e))
        return None


class FrameLocator:
    """Finds the content scope to extract from."""

    def __init__(self, config: Optional[LocatorConfig] = None) -> None:
        self.config = config or LocatorConfig()
        self._strategies: List[Tuple[str, Callable[[ContentScope], Awaitable[Optional[ContentScope]]]]] = [
            ("host_frame", self._from_host_frame),
            ("embedded_frame", self._from_embedded_frames),
            ("self", self._from_self),
        ]

    async def locate(self, scope: ContentScope) -> ContentScope:
        """
        Run the strategies against ``scope``.

        Raises:
            NoContentFound: no strategy produced a qualifying scope
        """
        for name, strategy in self._strategies:
            try:
                found = await strategy(scope)
            except Exception as e:
                logger.debug("Locator strategy failed", strategy=name, error=str(e), error_type=type(e).__name__)
                continue
            if found is not None:
                logger.info("Content scope located", strategy=name, url=found.url)
                return found

        logger.warning("No content scope qualified", url=scope.url)
        raise NoContentFound("No extractable content found in wrapper frame.")

    async def _from_host_frame(self, scope: ContentScope) -> Optional[ContentScope]:
        handle = await scope.host_frame(self.config.host_selector, self.config.frame_selectors)
        if handle is None:
            return None
        inner = await _enter(handle)
        if inner is None:
            return None
        if await _markup_length(inner) > self.config.min_host_frame_length:
            return inner
        return None

    async def _from_embedded_frames(self, scope: ContentScope) -> Optional[ContentScope]:
        for handle in await scope.embedded_scopes():
            inner = await _enter(handle)
            if inner is None:
                continue
            if await _markup_length(inner) > self.config.min_frame_length:
                return inner
        return None

    async def _from_self(self, scope: ContentScope) -> Optional[ContentScope]:
        if await _markup_length(scope) <= self.config.min_self_length:
            return None
        if await scope.has_selector(self.config.content_marker):
            return scope
        return None
