"""
Unit tests for ExtractionPipeline entry operations.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from tests.helpers import FakeHandle, FakeScope
from yuzu_extractor.config import Config, ConversionOptions
from yuzu_extractor.config.config import PRINT_WARNING_PHRASE
from yuzu_extractor.crawler.asset_inliner import InlineOutcome
from yuzu_extractor.models import ErrorResult, ExtractionResult, ImageRef, MarkdownDocument, StyleKind
from yuzu_extractor.pipeline import ExtractionPipeline

LONG_BODY = "<section><p class='para'>" + "Content sentence. " * 10 + "</p></section>"


@pytest.fixture
def pipeline(test_config):
    return ExtractionPipeline(test_config)


class TestExtractContent:
    """HTML snapshot extraction."""

    @pytest.mark.asyncio
    async def test_sample_content(self, pipeline, content_scope):
        result = await pipeline.extract_content(content_scope, ConversionOptions())

        assert isinstance(result, ExtractionResult)
        assert result.title == "Chapter 1"
        assert result.base_uri == "https://reader.example.com/book/chapter/"
        assert result.scrolled is False
        assert "<script" not in result.body_markup
        assert "<nav" not in result.body_markup
        assert PRINT_WARNING_PHRASE not in result.body_markup
        assert "1.2 Limits" in result.body_markup
        assert 'src="https://reader.example.com/book/chapter/figures/limit.png"' in result.body_markup
        assert [s.kind for s in result.styles] == [
            StyleKind.INLINE,
            StyleKind.LINKED_INLINED,
            StyleKind.LINKED_EXTERNAL,
        ]

    @pytest.mark.asyncio
    async def test_keep_ui_keeps_scripts(self, pipeline, content_scope):
        result = await pipeline.extract_content(content_scope, ConversionOptions(strip_ui=False))

        assert "<script>" in result.body_markup
        # The banner goes regardless
        assert PRINT_WARNING_PHRASE not in result.body_markup

    @pytest.mark.asyncio
    async def test_scrolled_flag_passed_through(self, pipeline, content_scope):
        result = await pipeline.extract_content(content_scope, scrolled=True)
        assert result.scrolled is True

    @pytest.mark.asyncio
    async def test_short_body_rejected(self, pipeline):
        result = await pipeline.extract_content(FakeScope("<p>Loading…</p>"))
        assert result == ErrorResult(error="Frame has no meaningful content.")

    @pytest.mark.asyncio
    async def test_body_length_measured_trimmed(self, pipeline):
        padded = "   \n" + "x" * 99 + "\n   "
        result = await pipeline.extract_content(FakeScope(padded))
        assert isinstance(result, ErrorResult)

        result = await pipeline.extract_content(FakeScope("x" * 100))
        assert isinstance(result, ExtractionResult)

    @pytest.mark.asyncio
    async def test_missing_title_defaults(self, pipeline):
        result = await pipeline.extract_content(FakeScope(LONG_BODY, title=""))
        assert result.title == "Yuzu Section"

    @pytest.mark.asyncio
    async def test_unexpected_fault_prefixed(self, pipeline):
        scope = FakeScope(LONG_BODY)
        scope.snapshot = AsyncMock(side_effect=RuntimeError("frame detached"))

        result = await pipeline.extract_content(scope)

        assert result == ErrorResult(error="Extraction error: frame detached")


class TestExtractFromWrapper:
    """Extraction after locating the content frame."""

    @pytest.mark.asyncio
    async def test_located_frame_extracted(self, pipeline, content_scope):
        wrapper = FakeScope("<mosaic-book></mosaic-book>", host=FakeHandle(content_scope))

        result = await pipeline.extract_content_from_wrapper(wrapper, ConversionOptions())

        assert isinstance(result, ExtractionResult)
        assert result.title == "Chapter 1"
        assert content_scope.snapshots_taken == 1
        assert wrapper.snapshots_taken == 0

    @pytest.mark.asyncio
    async def test_no_content_message_unprefixed(self, pipeline):
        result = await pipeline.extract_content_from_wrapper(FakeScope("<p>shell</p>"))
        assert result == ErrorResult(error="No extractable content found in wrapper frame.")

    @pytest.mark.asyncio
    async def test_fault_prefixed(self, pipeline):
        content = FakeScope(LONG_BODY)
        content.snapshot = AsyncMock(side_effect=RuntimeError("navigated away"))
        wrapper = FakeScope("", host=FakeHandle(content))

        result = await pipeline.extract_content_from_wrapper(wrapper)

        assert result == ErrorResult(error="Wrapper extraction error: navigated away")


class TestExtractMarkdown:
    """Markdown conversion."""

    @pytest.mark.asyncio
    async def test_sample_markdown(self, pipeline, content_scope):
        result = await pipeline.extract_markdown(content_scope, ConversionOptions())

        assert isinstance(result, MarkdownDocument)
        text = result.markdown_text
        assert result.title == "Chapter 1"
        assert "## 1.2 Limits" in text
        assert "*converges*" in text
        assert "$x^{2}$" in text
        assert "![Limit diagram](https://reader.example.com/book/chapter/figures/limit.png)" in text
        assert "*Figure 1.3 The limit*" in text
        assert "- First\n- Second" in text
        assert "| n | a_n |\n| --- | --- |\n| 1 | 0.5 |" in text
        assert PRINT_WARNING_PHRASE not in text
        assert "Hidden chrome" not in text
        assert "readerBoot" not in text
        assert "Contents" not in text

    @pytest.mark.asyncio
    async def test_images_listed_from_sanitized_tree(self, pipeline, content_scope):
        result = await pipeline.extract_markdown(content_scope)

        assert result.images == [
            ImageRef(url="https://reader.example.com/book/chapter/figures/pending.png", alt_text="Pending figure"),
            ImageRef(url="https://reader.example.com/book/chapter/figures/limit.png", alt_text="Limit diagram"),
        ]

    @pytest.mark.asyncio
    async def test_short_body_rejected(self, pipeline):
        result = await pipeline.extract_markdown(FakeScope(""))
        assert result == ErrorResult(error="Frame has no meaningful content.")

    @pytest.mark.asyncio
    async def test_fault_prefixed(self, pipeline):
        scope = FakeScope(LONG_BODY)
        scope.snapshot = AsyncMock(side_effect=ValueError("bad markup"))

        result = await pipeline.extract_markdown(scope)

        assert result == ErrorResult(error="Markdown extraction error: bad markup")

    @pytest.mark.asyncio
    async def test_images_inlined_with_cookies(self, content_scope):
        pipeline = ExtractionPipeline(Config())
        inliner = MagicMock()
        inliner.inline = AsyncMock(return_value=InlineOutcome(markdown="# inlined"))

        with patch("yuzu_extractor.pipeline.AssetInliner", return_value=inliner) as inliner_class:
            result = await pipeline.extract_markdown(content_scope, cookies={"session": "abc"})

        assert result.markdown_text == "# inlined"
        inliner_class.assert_called_once_with(
            pipeline.config.assets, cookies={"session": "abc"}, origin_url="https://reader.example.com/book/chapter/"
        )
        inliner.inline.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_inline_images_disabled(self, content_scope):
        pipeline = ExtractionPipeline(Config())

        with patch("yuzu_extractor.pipeline.AssetInliner") as inliner_class:
            result = await pipeline.extract_markdown(content_scope, inline_images=False)

        assert isinstance(result, MarkdownDocument)
        inliner_class.assert_not_called()


class TestReadiness:
    """Readiness entry operation."""

    @pytest.mark.asyncio
    async def test_never_raises(self, pipeline):
        with patch.object(pipeline.conductor, "run", AsyncMock(side_effect=RuntimeError("boom"))):
            assert await pipeline.run_readiness_sequence(MagicMock(), 10) is None

    @pytest.mark.asyncio
    async def test_step_delay_forwarded(self, pipeline):
        target = MagicMock()
        with patch.object(pipeline.conductor, "run", AsyncMock()) as run:
            await pipeline.run_readiness_sequence(target, 250)

        run.assert_awaited_once_with(target, 250)
