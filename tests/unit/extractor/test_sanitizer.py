"""
Unit tests for TreeSanitizer and the shared visibility predicates.
"""

import pytest
from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError
from yuzu_extractor.config import ConversionOptions, SanitizerConfig
from yuzu_extractor.config.config import DEFAULT_UI_SELECTORS, PRINT_WARNING_PHRASE
from yuzu_extractor.extractor.sanitizer import (
    TreeSanitizer,
    hidden_without_preserved_content,
    is_hidden,
    parse_inline_style,
)

BASE_URI = "https://reader.example.com/book/chapter/"


def tag(markup):
    return BeautifulSoup(markup, "html.parser").find()


class TestVisibilityPredicates:
    """Test inline-style visibility checks."""

    def test_parse_inline_style(self):
        assert parse_inline_style("Display: NONE !important; color:red; junk") == {
            "display": "none",
            "color": "red",
        }

    @pytest.mark.parametrize(
        "style,expected",
        [
            ("display:none", True),
            ("display: none !important", True),
            ("visibility: hidden", True),
            ("visibility: visible", False),
            ("display: block", False),
            ("", False),
        ],
    )
    def test_is_hidden(self, style, expected):
        assert is_hidden(tag(f'<div style="{style}">x</div>')) is expected

    def test_is_hidden_without_style(self):
        assert is_hidden(tag("<div>x</div>")) is False

    def test_hidden_without_preserved_content(self):
        selector = "img, table, figure, math, svg"
        assert hidden_without_preserved_content(tag('<div style="display:none"><p>chrome</p></div>'), selector)
        assert not hidden_without_preserved_content(
            tag('<div style="display:none"><p><img src="a.png"></p></div>'), selector
        )
        assert not hidden_without_preserved_content(tag("<div><p>visible</p></div>"), selector)


class TestTreeSanitizer:
    """Test cleaning of a content tree."""

    def test_strip_ui_removes_scripts_and_chrome(self, sample_body):
        root = TreeSanitizer().sanitize(sample_body, BASE_URI)

        assert root.find("script") is None
        for selector in DEFAULT_UI_SELECTORS:
            try:
                matches = root.select(selector)
            except SelectorSyntaxError:
                # The sanitizer skips selectors the CSS engine rejects
                continue
            assert matches == [], selector

    def test_strip_ui_hidden_elements(self, sample_body):
        root = TreeSanitizer().sanitize(sample_body, BASE_URI)
        text = root.get_text()

        assert "Hidden chrome" not in text
        # Hidden but holding an image: kept for rendering later
        pending = root.find("img", alt="Pending figure")
        assert pending is not None

    def test_keep_ui(self, sample_body):
        root = TreeSanitizer(ConversionOptions(strip_ui=False)).sanitize(sample_body, BASE_URI)

        assert root.find("script") is not None
        assert root.find("nav") is not None
        assert "Hidden chrome" in root.get_text()

    def test_style_elements_kept_by_default(self):
        markup = "<style>p { color: red }</style><p>Text</p><script>x()</script>"
        root = TreeSanitizer().sanitize(markup, BASE_URI)

        assert root.find("style") is not None
        assert root.find("script") is None

    def test_drop_style_elements(self):
        markup = "<style>p { color: red }</style><p>Text</p>"
        root = TreeSanitizer(drop_style_elements=True).sanitize(markup, BASE_URI)

        assert root.find("style") is None
        assert root.find("p").get_text() == "Text"

    def test_print_warning_removed_even_when_keeping_ui(self, sample_body):
        root = TreeSanitizer(ConversionOptions(strip_ui=False)).sanitize(sample_body, BASE_URI)

        assert PRINT_WARNING_PHRASE not in root.get_text()
        assert root.find(class_="print-banner") is None
        assert root.find("section") is not None

    def test_print_warning_removal_is_idempotent(self):
        markup = f"<div id='outer'><div id='banner'><span>{PRINT_WARNING_PHRASE}</span></div></div><p>Body</p>"
        sanitizer = TreeSanitizer()
        root = BeautifulSoup(markup, "html.parser")

        first = sanitizer.strip_print_warning(root)
        second = sanitizer.strip_print_warning(root)

        # span, #banner and #outer all carry the phrase; only #outer is removed directly
        assert first == 1
        assert second == 0
        assert root.find(id="outer") is None
        assert root.find("p").get_text() == "Body"

    def test_print_warning_ancestor_with_other_content_removed(self):
        markup = f"<section><h1>Title</h1><p>{PRINT_WARNING_PHRASE}</p></section>"
        root = BeautifulSoup(markup, "html.parser")

        TreeSanitizer().strip_print_warning(root)

        # Every ancestor whose text still contains the phrase goes, including the section
        assert root.find("section") is None

    def test_source_tree_is_not_mutated(self, sample_body):
        original = BeautifulSoup(sample_body, "html.parser")
        before = str(original)

        TreeSanitizer().sanitize(original, BASE_URI)

        assert str(original) == before

    def test_image_sources_made_absolute(self):
        markup = '<img src="figures/a.png"><img data-src="/static/b.png"><img src="data:image/png;base64,AA==">'
        root = TreeSanitizer().sanitize(markup, BASE_URI)
        sources = [img.get("src") for img in root.find_all("img")]

        assert sources == [
            "https://reader.example.com/book/chapter/figures/a.png",
            "https://reader.example.com/static/b.png",
            "data:image/png;base64,AA==",
        ]

    def test_style_urls_made_absolute(self):
        markup = (
            "<div style=\"background: url('img/bg.png')\">x</div>"
            "<div style='background: url(data:image/png;base64,AA==)'>y</div>"
        )
        root = TreeSanitizer().sanitize(markup, BASE_URI)
        first, second = root.find_all("div")

        assert first["style"] == "background: url('https://reader.example.com/book/chapter/img/bg.png')"
        assert second["style"] == "background: url(data:image/png;base64,AA==)"

    @pytest.mark.parametrize(
        "style",
        [
            'background: url("data:image/png;base64,AA==")',
            "background: url('data:image/png;base64,AA==')",
            "background: url( DATA:image/png;base64,AA== )",
        ],
    )
    def test_quoted_data_uris_left_alone(self, style):
        soup = BeautifulSoup("<div>y</div>", "html.parser")
        soup.div["style"] = style

        root = TreeSanitizer().sanitize(str(soup), BASE_URI)

        assert root.div["style"] == style

    def test_mixed_quoted_style_urls(self):
        markup = '<div style=\'background: url("img/a.png"), url("data:image/gif;base64,R0=")\'>z</div>'
        root = TreeSanitizer().sanitize(markup, BASE_URI)

        assert root.div["style"] == (
            "background: url('https://reader.example.com/book/chapter/img/a.png'), "
            'url("data:image/gif;base64,R0=")'
        )

    def test_invalid_ui_selector_skipped(self):
        config = SanitizerConfig(ui_selectors=["[[[", "nav"])
        root = TreeSanitizer(config=config).sanitize("<nav>menu</nav><p>Text</p>", BASE_URI)

        assert root.find("nav") is None
        assert root.find("p") is not None
