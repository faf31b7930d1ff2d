"""
ExtractionPipeline: the entry operations of yuzu-extractor.

Every operation returns a plain record. Faults never escape: they are
logged and converted into an ``ErrorResult`` whose message carries the
operation prefix (``NoContentFound`` messages are passed through as is).
"""

from __future__ import annotations

from typing import List, Mapping, Optional

import structlog
from bs4 import Tag
from structlog.contextvars import bound_contextvars

from .config.config import Config, ConversionOptions
from .crawler.asset_inliner import AssetInliner
from .extractor.locator import FrameLocator
from .extractor.markdown import MarkdownRenderer
from .extractor.mathml import MathConverter
from .extractor.sanitizer import TreeSanitizer
from .extractor.styles import StyleCollector
from .models import (
    ErrorResult,
    ExtractionOutcome,
    ExtractionResult,
    ImageRef,
    MarkdownDocument,
    MarkdownOutcome,
    NoContentFound,
)
from .protocols import ContentScope, DocumentSnapshot, ScrollTarget
from .readiness import ReadinessConductor

logger = structlog.get_logger(__name__)

NO_MEANINGFUL_CONTENT = "Frame has no meaningful content."


def as_error_result(prefix: str, exc: Exception) -> ErrorResult:
    if isinstance(exc, NoContentFound):
        return ErrorResult(error=str(exc))
    return ErrorResult(error=f"{prefix} {exc}")


class ExtractionPipeline:
    """Locates, sanitizes and converts reader content."""

    def __init__(self, config: Optional[Config] = None) -> None:
        self.config = config or Config()
        self.locator = FrameLocator(self.config.locator)
        self.conductor = ReadinessConductor(self.config.readiness)
        self.renderer = MarkdownRenderer(MathConverter())
        self.logger = logger.bind(component="ExtractionPipeline")

    # ------------------------------------------------------------------
    # Entry operations
    # ------------------------------------------------------------------

    async def extract_content(
        self, scope: ContentScope, options: Optional[ConversionOptions] = None, *, scrolled: bool = False
    ) -> ExtractionOutcome:
        """Sanitized HTML snapshot of ``scope`` for printing."""
        with bound_contextvars(scope_url=scope.url):
            try:
                return await self._extract(scope, options or ConversionOptions(), scrolled)
            except Exception as e:
                self.logger.warning("Extraction failed", error=str(e), error_type=type(e).__name__)
                return as_error_result("Extraction error:", e)

    async def extract_content_from_wrapper(
        self, scope: ContentScope, options: Optional[ConversionOptions] = None, *, scrolled: bool = False
    ) -> ExtractionOutcome:
        """Like ``extract_content`` but searches the wrapper scope for the content frame first."""
        with bound_contextvars(scope_url=scope.url):
            try:
                inner = await self.locator.locate(scope)
                return await self._extract(inner, options or ConversionOptions(), scrolled)
            except Exception as e:
                self.logger.warning("Wrapper extraction failed", error=str(e), error_type=type(e).__name__)
                return as_error_result("Wrapper extraction error:", e)

    async def extract_markdown(
        self,
        scope: ContentScope,
        options: Optional[ConversionOptions] = None,
        *,
        cookies: Optional[Mapping[str, str]] = None,
        inline_images: bool = True,
    ) -> MarkdownOutcome:
        """
        Markdown rendering of ``scope`` with LaTeX math.

        Args:
            scope: Content scope to convert
            options: Conversion switches (``fix_print`` has no effect here)
            cookies: Session cookies sent with image requests
            inline_images: Embed remote images as data URIs

        Returns:
            MarkdownDocument, or ErrorResult on failure
        """
        with bound_contextvars(scope_url=scope.url):
            try:
                return await self._markdown(scope, options or ConversionOptions(), cookies, inline_images)
            except Exception as e:
                self.logger.warning("Markdown extraction failed", error=str(e), error_type=type(e).__name__)
                return as_error_result("Markdown extraction error:", e)

    async def run_readiness_sequence(self, target: ScrollTarget, step_delay_ms: Optional[int] = None) -> None:
        """Scroll ``target`` through and wait for lazy content. Never raises."""
        try:
            await self.conductor.run(target, step_delay_ms)
        except Exception as e:
            self.logger.error("Readiness sequence aborted", error=str(e), error_type=type(e).__name__)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _snapshot(self, scope: ContentScope) -> DocumentSnapshot:
        snapshot = await scope.snapshot()
        if len(snapshot.body_html.strip()) < self.config.extraction.min_body_length:
            raise NoContentFound(NO_MEANINGFUL_CONTENT)
        return snapshot

    def _title(self, snapshot: DocumentSnapshot) -> str:
        return snapshot.title or self.config.extraction.default_title

    async def _extract(self, scope: ContentScope, options: ConversionOptions, scrolled: bool) -> ExtractionResult:
        snapshot = await self._snapshot(scope)
        styles = StyleCollector(options).collect(snapshot)
        root = TreeSanitizer(options, self.config.sanitizer).sanitize(snapshot.body_html, snapshot.base_uri)

        result = ExtractionResult(
            body_markup=root.decode_contents(),
            styles=styles,
            title=self._title(snapshot),
            base_uri=snapshot.base_uri,
            scrolled=scrolled,
        )
        self.logger.info(
            "Extracted content",
            body_length=len(result.body_markup),
            styles=len(styles),
        )
        return result

    async def _markdown(
        self,
        scope: ContentScope,
        options: ConversionOptions,
        cookies: Optional[Mapping[str, str]],
        inline_images: bool,
    ) -> MarkdownDocument:
        snapshot = await self._snapshot(scope)
        sanitizer = TreeSanitizer(options, self.config.sanitizer, drop_style_elements=True)
        root = sanitizer.sanitize(snapshot.body_html, snapshot.base_uri)

        markdown = self.renderer.render(root)
        if inline_images and self.config.assets.enabled:
            outcome = await AssetInliner(
                self.config.assets, cookies=cookies, origin_url=snapshot.url or scope.url
            ).inline(markdown)
            markdown = outcome.markdown

        document = MarkdownDocument(
            markdown_text=markdown,
            title=self._title(snapshot),
            images=self._collect_images(root),
        )
        self.logger.info("Rendered Markdown", length=len(markdown), images=len(document.images))
        return document

    def _collect_images(self, root: Tag) -> List[ImageRef]:
        images: List[ImageRef] = []
        for img in root.find_all("img"):
            src = img.get("src") or img.get(self.config.sanitizer.lazy_src_attribute) or ""
            if src:
                images.append(ImageRef(url=src, alt_text=img.get("alt") or ""))
        return images
