"""
Playwright implementations of the content scope protocols.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit

import structlog
from playwright.async_api import ElementHandle, Frame, JSHandle
from playwright.async_api import Error as PlaywrightError

from ..protocols import DocumentSnapshot
from . import scripts

logger = structlog.get_logger(__name__)


def origin_of(url: str) -> Optional[Tuple[str, str]]:
    """(scheme, netloc) of ``url``; None for documents that inherit their origin (about:, blob:)."""
    parts = urlsplit(url or "")
    if parts.scheme in ("http", "https", "file"):
        return parts.scheme, parts.netloc.lower()
    return None


def same_origin(parent_url: str, child_url: str) -> bool:
    child = origin_of(child_url)
    if child is None:
        return True
    return child == origin_of(parent_url)


class PlaywrightScopeHandle:
    """A frame element whose document is entered on demand."""

    def __init__(self, element: ElementHandle, parent_url: str, *, same_origin_only: bool = True) -> None:
        self._element = element
        self._parent_url = parent_url
        self._same_origin_only = same_origin_only

    async def get_root(self) -> Optional[PlaywrightScope]:
        try:
            frame = await self._element.content_frame()
        except PlaywrightError as e:
            logger.debug("Frame element is detached", error=str(e))
            return None
        if frame is None or frame.is_detached():
            return None
        if self._same_origin_only and not same_origin(self._parent_url, frame.url):
            logger.debug("Skipping cross-origin frame", parent=self._parent_url, frame=frame.url)
            return None
        return PlaywrightScope(frame, same_origin_only=self._same_origin_only)


class PlaywrightScope:
    """``ContentScope`` over a Playwright ``Frame``."""

    def __init__(self, frame: Frame, *, same_origin_only: bool = True) -> None:
        self.frame = frame
        self.same_origin_only = same_origin_only

    @property
    def url(self) -> str:
        return self.frame.url

    async def snapshot(self) -> DocumentSnapshot:
        data = await self.frame.evaluate(scripts.SNAPSHOT_SCRIPT)
        return DocumentSnapshot.from_dict(data or {})

    async def body_markup_length(self) -> int:
        return int(await self.frame.evaluate(scripts.BODY_LENGTH_SCRIPT) or 0)

    async def has_selector(self, selector: str) -> bool:
        return bool(await self.frame.evaluate(scripts.HAS_SELECTOR_SCRIPT, selector))

    async def host_frame(self, host_selector: str, frame_selectors: Sequence[str]) -> Optional[PlaywrightScopeHandle]:
        handle = await self.frame.evaluate_handle(scripts.HOST_FRAME_SCRIPT, [host_selector, list(frame_selectors)])
        element = handle.as_element()
        if element is None:
            await handle.dispose()
            return None
        return self._handle_for(element)

    async def embedded_scopes(self) -> List[PlaywrightScopeHandle]:
        array = await self.frame.evaluate_handle(scripts.EMBEDDED_FRAMES_SCRIPT)
        try:
            properties = await array.get_properties()
        finally:
            await array.dispose()
        return [self._handle_for(element) for element in _elements_in_order(properties)]

    def _handle_for(self, element: ElementHandle) -> PlaywrightScopeHandle:
        return PlaywrightScopeHandle(element, self.frame.url, same_origin_only=self.same_origin_only)


def _elements_in_order(properties: Dict[str, JSHandle]) -> List[ElementHandle]:
    indexed = sorted((int(key), value) for key, value in properties.items() if key.isdigit())
    elements = []
    for _, value in indexed:
        element = value.as_element()
        if element is not None:
            elements.append(element)
    return elements


class PlaywrightScrollTarget:
    """``ScrollTarget`` over a Playwright ``Frame``."""

    def __init__(self, frame: Frame) -> None:
        self.frame = frame

    async def scroll_height(self) -> int:
        return int(await self.frame.evaluate(scripts.SCROLL_HEIGHT_SCRIPT) or 0)

    async def scroll_to(self, top: int) -> None:
        await self.frame.evaluate(scripts.SCROLL_TO_SCRIPT, top)

    async def count_lazy_placeholders(self, selector: str) -> int:
        return int(await self.frame.evaluate(scripts.COUNT_SCRIPT, selector) or 0)

    async def nudge_typesetter(self) -> bool:
        return bool(await self.frame.evaluate(scripts.NUDGE_TYPESETTER_SCRIPT))

    async def typesetter_settled(self) -> None:
        await self.frame.evaluate(scripts.TYPESETTER_SETTLED_SCRIPT)

    async def pending_images(self) -> List[int]:
        return [int(index) for index in await self.frame.evaluate(scripts.PENDING_IMAGES_SCRIPT) or []]

    async def wait_for_image(self, index: int) -> None:
        await self.frame.evaluate(scripts.WAIT_FOR_IMAGE_SCRIPT, index)
