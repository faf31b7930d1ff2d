"""
Sanitization of reader content before serialization.

The live document is never touched here: ``TreeSanitizer`` parses the
snapshot markup into a fresh tree (or deep-copies a tree it is handed) and
only mutates that copy.
"""

from __future__ import annotations

import copy
import re
from typing import Dict, List, Optional, Union
from urllib.parse import urljoin

import structlog
from bs4 import BeautifulSoup, NavigableString, Tag
from soupsieve import SelectorSyntaxError

from ..config.config import ConversionOptions, SanitizerConfig

logger = structlog.get_logger(__name__)

PARSER = "html.parser"

CSS_URL_PATTERN = re.compile(r"url\(\s*(['\"]?)(.*?)\1\s*\)")


# ============================================================================
# Visibility predicates (shared with the Markdown renderer)
# ============================================================================


def parse_inline_style(style: str) -> Dict[str, str]:
    """Parse a ``style`` attribute into lower-cased property/value pairs."""
    declarations: Dict[str, str] = {}
    for declaration in style.split(";"):
        name, sep, value = declaration.partition(":")
        if not sep:
            continue
        value = value.replace("!important", "").strip().lower()
        declarations[name.strip().lower()] = value
    return declarations


def is_hidden(tag: Tag) -> bool:
    """True when the element's inline style hides it."""
    style = tag.get("style")
    if not style or not isinstance(style, str):
        return False
    declarations = parse_inline_style(style)
    return declarations.get("display") == "none" or declarations.get("visibility") == "hidden"


def hidden_without_preserved_content(tag: Tag, preserved_selector: str) -> bool:
    """
    True when the element is hidden and holds nothing worth keeping.

    The reader hides containers whose images, tables or math are still being
    rendered, so a hidden element with such a descendant is kept.
    """
    if not is_hidden(tag):
        return False
    return tag.select_one(preserved_selector) is None


# ============================================================================
# Sanitizer
# ============================================================================


class TreeSanitizer:
    """Clones and cleans a content tree."""

    def __init__(
        self,
        options: Optional[ConversionOptions] = None,
        config: Optional[SanitizerConfig] = None,
        *,
        drop_style_elements: bool = False,
    ) -> None:
        self.options = options or ConversionOptions()
        self.config = config or SanitizerConfig()
        self.drop_style_elements = drop_style_elements

    def sanitize(self, source: Union[str, Tag], base_uri: str = "") -> Tag:
        """
        Return a cleaned copy of ``source``.

        Args:
            source: Body markup, or a parsed tree which is deep-copied first
            base_uri: Base for resolving relative image and style URLs

        Returns:
            The cleaned root of the copy
        """
        if isinstance(source, Tag):
            root: Tag = copy.copy(source)
        else:
            root = BeautifulSoup(source, PARSER)

        if self.options.strip_ui:
            self._strip_ui(root)

        removed = self.strip_print_warning(root)
        if removed:
            logger.debug("Removed print warning banner", elements=removed)

        self._absolutize_images(root, base_uri)
        self._absolutize_style_urls(root, base_uri)
        return root

    def _strip_ui(self, root: Tag) -> None:
        for selector in self.config.ui_selectors:
            try:
                matches = root.select(selector)
            except SelectorSyntaxError:
                logger.debug("Skipping invalid UI selector", selector=selector)
                continue
            _decompose_all(matches)

        hidden = [
            el
            for el in root.find_all(style=True)
            if hidden_without_preserved_content(el, self.config.preserved_selector)
        ]
        _decompose_all(hidden)

        dropped = ["script", "style"] if self.drop_style_elements else ["script"]
        _decompose_all(root.find_all(dropped))

    def strip_print_warning(self, root: Tag) -> int:
        """
        Remove the reader's hard-coded print warning banner.

        Every ancestor (below ``root``) of a text node carrying the phrase is
        marked while its text still contains the phrase. Overlapping ancestor
        chains are deduplicated and only the outermost marked elements are
        removed, so running this twice is harmless.

        Returns:
            Number of outermost elements removed
        """
        phrase = self.config.print_warning
        marked: Dict[int, Tag] = {}
        for text in root.find_all(string=lambda s: phrase in s):
            parent = text.parent
            while parent is not None and parent is not root:
                if phrase in parent.get_text():
                    marked.setdefault(id(parent), parent)
                parent = parent.parent

        outermost = [el for el in marked.values() if not any(id(p) in marked for p in el.parents)]
        return _decompose_all(outermost)

    def _absolutize_images(self, root: Tag, base_uri: str) -> None:
        lazy_attr = self.config.lazy_src_attribute
        for img in root.find_all("img"):
            src = img.get("src")
            if src:
                img["src"] = _resolve(src, base_uri) or src
                continue
            lazy_src = img.get(lazy_attr)
            if lazy_src:
                resolved = _resolve(lazy_src, base_uri)
                if resolved:
                    img["src"] = resolved

    def _absolutize_style_urls(self, root: Tag, base_uri: str) -> None:
        def replace(match: re.Match) -> str:
            url = match.group(2)
            if url.strip().lower().startswith("data:"):
                return match.group(0)
            resolved = _resolve(url, base_uri)
            return f"url('{resolved}')" if resolved else match.group(0)

        for el in root.find_all(style=True):
            style = el["style"]
            if isinstance(style, str) and "url(" in style:
                el["style"] = CSS_URL_PATTERN.sub(replace, style)


def _resolve(url: str, base_uri: str) -> Optional[str]:
    try:
        return urljoin(base_uri, url.strip()) if base_uri else url
    except ValueError:
        return None


def _decompose_all(elements: List[Tag]) -> int:
    removed = 0
    for el in elements:
        if isinstance(el, NavigableString) or el.decomposed:
            continue
        el.decompose()
        removed += 1
    return removed
