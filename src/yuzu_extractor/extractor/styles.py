"""
Stylesheet collection for print snapshots.

The reader serves its content with a handful of print countermeasures baked
into the CSS. ``StyleCollector`` turns the style sources of a snapshot into
``StyleRecord`` values and, when asked, strips those countermeasures out.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional

import structlog

from ..config.config import ConversionOptions
from ..models import StyleKind, StyleRecord
from ..protocols import DocumentSnapshot, StyleSource

logger = structlog.get_logger(__name__)

# Tolerates exactly one level of nested braces inside the media block.
PRINT_MEDIA_PATTERN = re.compile(r"@media\s+(?:only\s+)?print\s*\{(?:[^{}]*|\{[^{}]*\})*\}", re.IGNORECASE)
HIDE_BODY_CHILDREN_PATTERN = re.compile(
    r"body\s*>\s*\*\s*\{[^}]*display\s*:\s*none\s*!important[^}]*\}", re.IGNORECASE
)
PRINT_WARNING_PSEUDO_PATTERN = re.compile(
    r"body\s*::?before\s*\{[^}]*content\s*:\s*[\"'][^\"']*print[^\"']*page[^\"']*range[^\"']*[\"'][^}]*\}",
    re.IGNORECASE,
)

# Rules beyond the literal text before the live rule list is trusted instead.
RULE_SURPLUS_THRESHOLD = 5


def sanitize_css(css: str) -> str:
    """Remove the reader's print-blocking rules from a CSS text."""
    css = PRINT_MEDIA_PATTERN.sub("/* [yuzu-extractor] print block removed */", css)
    css = HIDE_BODY_CHILDREN_PATTERN.sub("/* [yuzu-extractor] print-block body>* rule removed */", css)
    css = PRINT_WARNING_PSEUDO_PATTERN.sub("/* [yuzu-extractor] print-warning pseudo-element removed */", css)
    return css


def _is_print_only(media: str) -> bool:
    return media.strip().lower() == "print"


def _join_rules(rules: Iterable[str]) -> str:
    return "".join(f"{rule}\n" for rule in rules)


class StyleCollector:
    """Builds ``StyleRecord`` values from the style sources of a snapshot."""

    def __init__(self, options: Optional[ConversionOptions] = None) -> None:
        self.options = options or ConversionOptions()

    def collect(self, snapshot: DocumentSnapshot) -> List[StyleRecord]:
        records: List[StyleRecord] = []
        for source in snapshot.stylesheets:
            if _is_print_only(source.media):
                continue
            if source.node == "link":
                record = self._collect_link(source)
            else:
                record = self._collect_embedded(source, snapshot.base_uri)
            if record is not None:
                records.append(record)

        logger.debug(
            "Collected styles",
            total=len(records),
            external=sum(1 for r in records if r.kind is StyleKind.LINKED_EXTERNAL),
        )
        return records

    def _collect_embedded(self, source: StyleSource, base_uri: str) -> StyleRecord:
        css = source.text
        if source.rules:
            # Rules inserted at runtime (MathJax font-face and glyph rules) only
            # exist in the live rule list, never in the element text.
            text_rule_estimate = css.count("}")
            if len(source.rules) > text_rule_estimate + RULE_SURPLUS_THRESHOLD:
                css = _join_rules(source.rules)

        return StyleRecord(kind=StyleKind.INLINE, css_text=self._finish(css), base_uri=base_uri)

    def _collect_link(self, source: StyleSource) -> Optional[StyleRecord]:
        href = source.href
        if not href:
            return None
        if _is_print_only(source.sheet_media):
            return None

        if source.rules is None:
            return StyleRecord(kind=StyleKind.LINKED_EXTERNAL, source_href=href, base_uri=href)

        return StyleRecord(
            kind=StyleKind.LINKED_INLINED,
            css_text=self._finish(_join_rules(source.rules)),
            source_href=href,
            base_uri=href,
        )

    def _finish(self, css: str) -> str:
        return sanitize_css(css) if self.options.fix_print else css
