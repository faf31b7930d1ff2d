"""
Result records and error taxonomy for yuzu-extractor.

Every entry operation returns one of the plain records defined here. Faults
raised inside the pipeline derive from ``ExtractorError`` and are converted
to an ``ErrorResult`` before they cross the public boundary.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from html import escape
from typing import Any, Dict, List, Optional, Union

# ============================================================================
# Errors
# ============================================================================


class ExtractorError(Exception):
    """Base exception for extraction errors."""

    pass


class NoContentFound(ExtractorError):
    """Raised when no content scope qualifies for extraction."""

    pass


class ExtractionFault(ExtractorError):
    """Raised on an unexpected fault during traversal or serialization."""

    pass


class PartialAssetFailure(ExtractorError):
    """Raised when a single image cannot be retrieved. Never fatal."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class TimeoutExceeded(ExtractorError):
    """Raised when a readiness wait hits its ceiling. Never fatal."""

    pass


# ============================================================================
# Records
# ============================================================================


class StyleKind(Enum):
    """Where the CSS of a ``StyleRecord`` came from."""

    INLINE = "inline"
    LINKED_INLINED = "linked-inlined"
    LINKED_EXTERNAL = "linked-external"


@dataclass(frozen=True)
class StyleRecord:
    """One collected stylesheet, in document order."""

    kind: StyleKind
    base_uri: str
    css_text: Optional[str] = None
    source_href: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "css_text": self.css_text,
            "source_href": self.source_href,
            "base_uri": self.base_uri,
        }

    def to_html(self) -> str:
        """Render the record as a ``<style>`` or ``<link>`` element."""
        if self.kind is StyleKind.LINKED_EXTERNAL:
            return f'<link rel="stylesheet" href="{escape(self.source_href or "", quote=True)}">'
        # CSS text is raw content; only the closing tag sequence must not leak out
        css = (self.css_text or "").replace("</style", "<\\/style")
        return f"<style>\n{css}\n</style>"


@dataclass(frozen=True)
class ExtractionResult:
    """Sanitized body markup plus the styles needed to print it."""

    body_markup: str
    styles: List[StyleRecord]
    title: str
    base_uri: str
    scrolled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "body_markup": self.body_markup,
            "styles": [style.to_dict() for style in self.styles],
            "title": self.title,
            "base_uri": self.base_uri,
            "scrolled": self.scrolled,
        }

    def to_html(self) -> str:
        """
        Build a standalone HTML document for printing.

        Styles whose rules could not be read (``linked-external``) are emitted
        as ``<link>`` elements, leaving the fetch to whoever renders the
        document. Relative URLs resolve against ``base_uri``.
        """
        head = ['<meta charset="utf-8">']
        if self.base_uri:
            head.append(f'<base href="{escape(self.base_uri, quote=True)}">')
        head.append(f"<title>{escape(self.title)}</title>")
        head.extend(style.to_html() for style in self.styles)
        return (
            "<!DOCTYPE html>\n<html>\n<head>\n"
            + "\n".join(head)
            + "\n</head>\n<body>\n"
            + self.body_markup
            + "\n</body>\n</html>\n"
        )


@dataclass(frozen=True)
class ImageRef:
    """An image referenced by the Markdown document."""

    url: str
    alt_text: str


@dataclass(frozen=True)
class MarkdownDocument:
    """Markdown rendering of a content scope."""

    markdown_text: str
    title: str
    images: List[ImageRef] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ErrorResult:
    """Returned in place of a result when an entry operation fails."""

    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error}


ExtractionOutcome = Union[ExtractionResult, ErrorResult]
MarkdownOutcome = Union[MarkdownDocument, ErrorResult]
