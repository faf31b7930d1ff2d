"""
Protocols and snapshot dataclasses for yuzu-extractor.

The pipeline never talks to a browser directly. It works against three small
contracts:

- ``ContentScope``: a document-like tree (a frame) that can be measured,
  queried and snapshotted.
- ``ScopeHandle``: an opaque reference to a nested scope. Entering it is
  best-effort and yields ``None`` instead of raising when the scope is
  cross-origin, detached or otherwise unreachable.
- ``ScrollTarget``: the scrollable root the readiness sequence drives.

``yuzu_extractor.browser`` provides the Playwright implementations; tests use
in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

# ============================================================================
# Snapshot Dataclasses
# ============================================================================


@dataclass(frozen=True)
class StyleSource:
    """A style-defining node (``<style>`` or ``<link rel=stylesheet>``) as seen in the live document."""

    node: str  # "style" or "link"
    media: str = ""
    text: str = ""
    href: Optional[str] = None
    # cssText of each rule in the live rule list; None when unreadable (cross-origin)
    rules: Optional[List[str]] = None
    sheet_media: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> StyleSource:
        rules = data.get("rules")
        return cls(
            node=str(data.get("node") or "style"),
            media=str(data.get("media") or ""),
            text=str(data.get("text") or ""),
            href=data.get("href") or None,
            rules=[str(rule) for rule in rules] if rules is not None else None,
            sheet_media=str(data.get("sheetMedia") or data.get("sheet_media") or ""),
        )


@dataclass(frozen=True)
class DocumentSnapshot:
    """Serializable copy of a content scope taken in a single call."""

    body_html: str
    title: str
    base_uri: str
    url: str = ""
    stylesheets: List[StyleSource] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> DocumentSnapshot:
        return cls(
            body_html=str(data.get("bodyHTML") or data.get("body_html") or ""),
            title=str(data.get("title") or ""),
            base_uri=str(data.get("baseURI") or data.get("base_uri") or ""),
            url=str(data.get("url") or ""),
            stylesheets=[StyleSource.from_dict(item) for item in data.get("stylesheets") or []],
        )


# ============================================================================
# Protocols
# ============================================================================


@runtime_checkable
class ScopeHandle(Protocol):
    """Opaque, origin-checked reference to a nested content scope."""

    async def get_root(self) -> Optional[ContentScope]:
        """Enter the scope. Returns None if it is not accessible; never raises."""
        ...


@runtime_checkable
class ContentScope(Protocol):
    """A document-like tree the pipeline can inspect and snapshot."""

    @property
    def url(self) -> str:
        ...

    async def snapshot(self) -> DocumentSnapshot:
        """Copy body markup, title, base URI and style sources."""
        ...

    async def body_markup_length(self) -> int:
        """Length of the trimmed body markup, 0 when there is no body."""
        ...

    async def has_selector(self, selector: str) -> bool:
        ...

    async def host_frame(self, host_selector: str, frame_selectors: Sequence[str]) -> Optional[ScopeHandle]:
        """
        Find ``host_selector``, enter its encapsulated sub-tree and return a
        handle to the first frame matching one of ``frame_selectors`` (tried in
        order), or None.
        """
        ...

    async def embedded_scopes(self) -> List[ScopeHandle]:
        """Handles to every embedded frame of this scope, in document order."""
        ...


@runtime_checkable
class ScrollTarget(Protocol):
    """Scrollable document root driven by the readiness sequence."""

    async def scroll_height(self) -> int:
        ...

    async def scroll_to(self, top: int) -> None:
        ...

    async def count_lazy_placeholders(self, selector: str) -> int:
        ...

    async def nudge_typesetter(self) -> bool:
        """Run the typesetter's async typeset pass if present. Returns whether it exists."""
        ...

    async def typesetter_settled(self) -> None:
        """Resolve once the typesetter reports completion (either API shape)."""
        ...

    async def pending_images(self) -> List[int]:
        """Indices of images that are neither loaded nor errored."""
        ...

    async def wait_for_image(self, index: int) -> None:
        """Resolve once image ``index`` has loaded or errored."""
        ...
