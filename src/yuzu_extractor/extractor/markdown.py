"""
Sanitized content tree to Markdown.

``MarkdownRenderer`` is a recursive descent keyed by tag name. The only
state threaded through the recursion is a frozen ``RenderContext`` carrying
the current list depth, so every node renders as a pure function of
``(node, context)``.

Block templates are fixed literals that downstream consumers rely on:

- heading level L: ``\\n\\n`` + ``#``*L + `` `` + text + ``\\n\\n``
- blockquote: every line prefixed ``> ``
- code block: triple-backtick fence with the language tag
- table: pipe-delimited rows, ``---`` per column after the header row
- inline math `` $...$ ``, display math ``\\n\\n$$\\n...\\n$$\\n\\n``
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional

import structlog
from bs4 import NavigableString, PageElement, Tag
from bs4.element import PreformattedString

from .mathml import MathConverter
from .sanitizer import hidden_without_preserved_content

logger = structlog.get_logger(__name__)

WHITESPACE_PATTERN = re.compile(r"\s+")
EXCESS_NEWLINES_PATTERN = re.compile(r"\n{3,}")

MATH_MARKUP_SELECTOR = "mjx-assistive-mml, math"
SILENT_TAGS = frozenset({"script", "style", "noscript", "template", "mjx-assistive-mml"})


@dataclass(frozen=True)
class RenderContext:
    """Recursion state for the renderer."""

    list_depth: int = 0

    def nested(self) -> RenderContext:
        return replace(self, list_depth=self.list_depth + 1)


def collapse_whitespace(text: str) -> str:
    """Collapse every whitespace run, newlines included, to a single space."""
    return WHITESPACE_PATTERN.sub(" ", text)


def normalize_document(markdown: str) -> str:
    """Final pass: at most one blank line in a row, no leading or trailing whitespace."""
    return EXCESS_NEWLINES_PATTERN.sub("\n\n", markdown).strip()


def _classes(tag: Tag) -> List[str]:
    value = tag.get("class") or []
    return value.split() if isinstance(value, str) else list(value)


class MarkdownRenderer:
    """Renders a sanitized tree as Markdown with LaTeX math."""

    def __init__(self, math_converter: Optional[MathConverter] = None) -> None:
        self.math_converter = math_converter or MathConverter()
        self._handlers: Dict[str, Callable[[Tag, RenderContext], str]] = {
            "p": self._paragraph,
            "div": self._division,
            "br": lambda node, ctx: "\n",
            "hr": lambda node, ctx: "\n\n---\n\n",
            "strong": self._strong,
            "b": self._strong,
            "em": self._emphasis,
            "i": self._emphasis,
            "sup": self._superscript,
            "sub": self._subscript,
            "code": self._code,
            "a": self._link,
            "img": self._image,
            "ul": self._list,
            "ol": self._list,
            "table": self._table,
            "figure": self._figure,
            "blockquote": self._blockquote,
            "pre": self._preformatted,
            "mjx-container": self._math_container,
        }
        for level in range(1, 7):
            self._handlers[f"h{level}"] = self._heading

    def render(self, root: Tag) -> str:
        """Render ``root`` and apply the final newline/trim pass."""
        return normalize_document(self.render_node(root, RenderContext()))

    def render_node(self, node: Optional[PageElement], ctx: RenderContext) -> str:
        if node is None:
            return ""
        if isinstance(node, NavigableString):
            # Comments, CDATA, doctypes and processing instructions are not text
            if isinstance(node, PreformattedString):
                return ""
            return collapse_whitespace(str(node))
        if not isinstance(node, Tag):
            return ""

        name = (node.name or "").lower()
        if name in SILENT_TAGS:
            return ""
        if hidden_without_preserved_content(node, MATH_MARKUP_SELECTOR):
            return ""

        handler = self._handlers.get(name)
        if handler is None:
            return self._children(node, ctx)
        return handler(node, ctx)

    def _children(self, node: Tag, ctx: RenderContext) -> str:
        return "".join(self.render_node(child, ctx) for child in node.children)

    # --- blocks ---

    def _heading(self, node: Tag, ctx: RenderContext) -> str:
        level = int(node.name[1])
        return "\n\n" + "#" * level + " " + self._children(node, ctx).strip() + "\n\n"

    def _paragraph(self, node: Tag, ctx: RenderContext) -> str:
        return "\n\n" + self._children(node, ctx).strip() + "\n\n"

    def _division(self, node: Tag, ctx: RenderContext) -> str:
        # The reader marks paragraph-like divs with a "para" class
        if any("para" in cls for cls in _classes(node)):
            return self._paragraph(node, ctx)
        return self._children(node, ctx)

    def _blockquote(self, node: Tag, ctx: RenderContext) -> str:
        lines = self._children(node, ctx).strip().split("\n")
        return "\n\n" + "\n".join("> " + line for line in lines) + "\n\n"

    def _preformatted(self, node: Tag, ctx: RenderContext) -> str:
        code = node.find("code")
        language = ""
        if isinstance(code, Tag):
            for cls in _classes(code):
                if cls.startswith("language-"):
                    language = cls[len("language-") :]
                    break
        text = (code if isinstance(code, Tag) else node).get_text()
        return "\n\n```" + language + "\n" + text.strip() + "\n```\n\n"

    def _list(self, node: Tag, ctx: RenderContext) -> str:
        ordered = node.name == "ol"
        indent = "  " * ctx.list_depth
        out = "\n"
        index = 1
        for child in node.children:
            if not isinstance(child, Tag) or child.name != "li":
                continue
            if ordered:
                prefix = f"{index}. "
                index += 1
            else:
                prefix = "- "
            content = self.render_node(child, ctx.nested()).strip()
            out += indent + prefix + content + "\n"
        return out + "\n"

    def _table(self, node: Tag, ctx: RenderContext) -> str:
        rows: List[List[str]] = []
        for tr in node.find_all("tr"):
            cells = [self._cell(cell, ctx) for cell in tr.find_all(["td", "th"], recursive=False)]
            rows.append(cells)
        if not rows:
            return self._children(node, ctx)

        column_count = max(len(row) for row in rows)
        for row in rows:
            row.extend([""] * (column_count - len(row)))

        header, body = rows[0], rows[1:]
        lines = ["| " + " | ".join(header) + " |", "| " + " | ".join("---" for _ in header) + " |"]
        lines.extend("| " + " | ".join(row) + " |" for row in body)
        return "\n\n" + "\n".join(lines) + "\n\n"

    def _cell(self, cell: Tag, ctx: RenderContext) -> str:
        text = self.render_node(cell, ctx).strip()
        return text.replace("|", "\\|").replace("\n", " ")

    def _figure(self, node: Tag, ctx: RenderContext) -> str:
        out = "\n\n"
        for child in node.children:
            if isinstance(child, Tag) and child.name == "figcaption":
                out += "*" + self._children(child, ctx).strip() + "*\n\n"
            else:
                out += self.render_node(child, ctx)
        return out

    # --- inline ---

    def _wrap(self, node: Tag, ctx: RenderContext, before: str, after: str) -> str:
        inner = self._children(node, ctx).strip()
        return before + inner + after if inner else ""

    def _strong(self, node: Tag, ctx: RenderContext) -> str:
        return self._wrap(node, ctx, "**", "**")

    def _emphasis(self, node: Tag, ctx: RenderContext) -> str:
        return self._wrap(node, ctx, "*", "*")

    def _superscript(self, node: Tag, ctx: RenderContext) -> str:
        return self._wrap(node, ctx, "^(", ")")

    def _subscript(self, node: Tag, ctx: RenderContext) -> str:
        return self._wrap(node, ctx, "_(", ")")

    def _code(self, node: Tag, ctx: RenderContext) -> str:
        return self._wrap(node, ctx, "`", "`")

    def _link(self, node: Tag, ctx: RenderContext) -> str:
        href = node.get("href") or ""
        text = self._children(node, ctx).strip()
        if not text:
            return ""
        if not href or href.startswith("#"):
            return text
        return "[" + text + "](" + href + ")"

    def _image(self, node: Tag, ctx: RenderContext) -> str:
        alt = node.get("alt") or "image"
        src = node.get("src") or node.get("data-src") or ""
        if not src:
            return "[Image: " + alt + "]"
        return "\n\n![" + alt + "](" + src + ")\n\n"

    # --- math ---

    def _math_container(self, node: Tag, ctx: RenderContext) -> str:
        math = node.select_one("mjx-assistive-mml math") or node.find("math")
        if isinstance(math, Tag):
            latex = self.math_converter.convert(math)
            if latex:
                if self._is_display(node):
                    return "\n\n$$\n" + latex + "\n$$\n\n"
                return " $" + latex + "$ "

        visual = node.find("mjx-math")
        text = (visual if isinstance(visual, Tag) else node).get_text().strip()
        return " $" + text + "$ " if text else ""

    @staticmethod
    def _is_display(node: Tag) -> bool:
        if node.has_attr("display"):
            return True
        return node.get("jax") == "CHTML" and node.find_parent("figure") is not None


def render_markdown(root: Tag) -> str:
    """Convenience wrapper around ``MarkdownRenderer().render``."""
    return MarkdownRenderer().render(root)
