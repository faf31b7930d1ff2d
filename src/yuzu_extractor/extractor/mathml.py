"""
MathML to LaTeX conversion.

MathJax keeps an assistive MathML copy of every typeset formula next to its
visual rendering. ``MathConverter`` walks that copy and emits LaTeX for the
practical subset of presentation MathML the reader produces. It never
raises: if anything goes wrong the formula degrades to its plain text.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

import structlog
from bs4 import NavigableString, PageElement, Tag
from bs4.element import PreformattedString

logger = structlog.get_logger(__name__)

IDENTIFIER_SYMBOLS: Dict[str, str] = {
    "α": r"\alpha",
    "β": r"\beta",
    "γ": r"\gamma",
    "δ": r"\delta",
    "ε": r"\epsilon",
    "ζ": r"\zeta",
    "η": r"\eta",
    "θ": r"\theta",
    "ι": r"\iota",
    "κ": r"\kappa",
    "λ": r"\lambda",
    "μ": r"\mu",
    "ν": r"\nu",
    "ξ": r"\xi",
    "π": r"\pi",
    "ρ": r"\rho",
    "σ": r"\sigma",
    "τ": r"\tau",
    "υ": r"\upsilon",
    "φ": r"\phi",
    "χ": r"\chi",
    "ψ": r"\psi",
    "ω": r"\omega",
    "Γ": r"\Gamma",
    "Δ": r"\Delta",
    "Θ": r"\Theta",
    "Λ": r"\Lambda",
    "Ξ": r"\Xi",
    "Π": r"\Pi",
    "Σ": r"\Sigma",
    "Υ": r"\Upsilon",
    "Φ": r"\Phi",
    "Ψ": r"\Psi",
    "Ω": r"\Omega",
    "∞": r"\infty",
    "∂": r"\partial",
}

OPERATOR_SYMBOLS: Dict[str, str] = {
    "·": r"\cdot",
    "×": r"\times",
    "÷": r"\div",
    "±": r"\pm",
    "∓": r"\mp",
    "≤": r"\leq",
    "≥": r"\geq",
    "≠": r"\neq",
    "≈": r"\approx",
    "∼": r"\sim",
    "≡": r"\equiv",
    "∝": r"\propto",
    "→": r"\to",
    "←": r"\leftarrow",
    "⇒": r"\Rightarrow",
    "⇐": r"\Leftarrow",
    "↔": r"\leftrightarrow",
    "∈": r"\in",
    "∉": r"\notin",
    "⊂": r"\subset",
    "⊃": r"\supset",
    "⊆": r"\subseteq",
    "⊇": r"\supseteq",
    "∪": r"\cup",
    "∩": r"\cap",
    "∧": r"\wedge",
    "∨": r"\vee",
    "¬": r"\neg",
    "∀": r"\forall",
    "∃": r"\exists",
    "∅": r"\emptyset",
    "∑": r"\sum",
    "∏": r"\prod",
    "∫": r"\int",
    "…": r"\ldots",
    "⋯": r"\cdots",
    "⋮": r"\vdots",
    "⋱": r"\ddots",
    "|": "|",
    "‖": r"\|",
    "{": r"\{",
    "}": r"\}",
    "⟨": r"\langle",
    "⟩": r"\rangle",
}

ACCENT_COMMANDS: Dict[str, str] = {
    "¯": r"\overline",
    "‾": r"\overline",
    "^": r"\hat",
    "\u0302": r"\hat",
    "~": r"\tilde",
    "\u0303": r"\tilde",
    "˙": r"\dot",
    "→": r"\vec",
}

TRANSPARENT_TAGS = frozenset(
    {"math", "mrow", "mstyle", "mpadded", "mphantom", "menclose", "merror", "semantics", "mtd"}
)
IGNORED_TAGS = frozenset({"annotation", "annotation-xml", "none", "mprescripts"})

THIN_SPACE = r"\;"


def _local_name(tag: Tag) -> str:
    name = (tag.name or "").lower()
    return name.split(":", 1)[1] if ":" in name else name


def _text(tag: Tag) -> str:
    return tag.get_text().strip()


def _element_children(tag: Tag) -> List[Tag]:
    return [child for child in tag.children if isinstance(child, Tag)]


class MathConverter:
    """Recursive presentation-MathML to LaTeX translator."""

    def __init__(self) -> None:
        self._handlers: Dict[str, Callable[[Tag], str]] = {
            "mi": self._identifier,
            "mn": self._number,
            "mo": self._operator,
            "msup": self._superscript,
            "msub": self._subscript,
            "msubsup": self._subsuperscript,
            "mfrac": self._fraction,
            "msqrt": self._square_root,
            "mroot": self._root,
            "mover": self._over,
            "munder": self._under,
            "munderover": self._underover,
            "mtable": self._table,
            "mtr": self._table_row,
            "mlabeledtr": self._table_row,
            "mspace": self._space,
            "mtext": self._text_leaf,
            "ms": self._string_leaf,
            "mfenced": self._fenced,
        }

    def convert(self, math: Tag) -> str:
        """
        Convert a ``<math>`` subtree (or any MathML element) to LaTeX.

        Returns:
            LaTeX source without surrounding delimiters; the flattened text of
            the subtree if conversion fails
        """
        try:
            return self.walk(math).strip()
        except Exception as e:
            logger.debug("MathML conversion failed, using plain text", error=str(e), error_type=type(e).__name__)
            return _text(math)

    def walk(self, node: Optional[PageElement]) -> str:
        if node is None:
            return ""
        if isinstance(node, NavigableString):
            if isinstance(node, PreformattedString):
                return ""
            return str(node).strip()
        if not isinstance(node, Tag):
            return ""

        name = _local_name(node)
        if name in IGNORED_TAGS:
            return ""
        if name in TRANSPARENT_TAGS:
            return self._children(node)
        handler = self._handlers.get(name)
        if handler is None:
            return self._children(node)
        return handler(node)

    # --- helpers ---

    def _children(self, tag: Tag) -> str:
        return "".join(self.walk(child) for child in tag.children)

    def _parts(self, tag: Tag) -> List[str]:
        return [self.walk(child) for child in _element_children(tag)]

    @staticmethod
    def _part(parts: List[str], index: int) -> str:
        return parts[index] if index < len(parts) else ""

    # --- leaves ---

    def _identifier(self, tag: Tag) -> str:
        text = _text(tag)
        if len(text) == 1 and text.isascii() and text.isalpha():
            return text
        if text in IDENTIFIER_SYMBOLS:
            return IDENTIFIER_SYMBOLS[text]
        if len(text) > 1:
            return r"\text{" + text + "}"
        return text

    def _number(self, tag: Tag) -> str:
        return _text(tag)

    def _operator(self, tag: Tag) -> str:
        text = _text(tag)
        return OPERATOR_SYMBOLS.get(text, text)

    def _space(self, tag: Tag) -> str:
        return THIN_SPACE

    def _text_leaf(self, tag: Tag) -> str:
        text = _text(tag)
        if not text:
            return ""
        return r"\text{" + text + "}"

    def _string_leaf(self, tag: Tag) -> str:
        return r'\text{"' + _text(tag) + '"}'

    # --- scripts and layout ---

    def _superscript(self, tag: Tag) -> str:
        parts = self._parts(tag)
        return self._part(parts, 0) + "^{" + self._part(parts, 1) + "}"

    def _subscript(self, tag: Tag) -> str:
        parts = self._parts(tag)
        return self._part(parts, 0) + "_{" + self._part(parts, 1) + "}"

    def _subsuperscript(self, tag: Tag) -> str:
        parts = self._parts(tag)
        return self._part(parts, 0) + "_{" + self._part(parts, 1) + "}^{" + self._part(parts, 2) + "}"

    def _fraction(self, tag: Tag) -> str:
        parts = self._parts(tag)
        return r"\frac{" + self._part(parts, 0) + "}{" + self._part(parts, 1) + "}"

    def _square_root(self, tag: Tag) -> str:
        return r"\sqrt{" + self._children(tag) + "}"

    def _root(self, tag: Tag) -> str:
        parts = self._parts(tag)
        return r"\sqrt[" + self._part(parts, 1) + "]{" + self._part(parts, 0) + "}"

    def _over(self, tag: Tag) -> str:
        children = _element_children(tag)
        base = self.walk(children[0]) if children else ""
        if len(children) < 2:
            return r"\overset{}{" + base + "}"
        # Accents are recognized by their raw glyph; the operator table would
        # otherwise turn an arrow accent into \to.
        glyph = _text(children[1])
        accent = ACCENT_COMMANDS.get(glyph)
        if accent:
            return accent + "{" + base + "}"
        return r"\overset{" + self.walk(children[1]).strip() + "}{" + base + "}"

    def _under(self, tag: Tag) -> str:
        parts = self._parts(tag)
        return r"\underset{" + self._part(parts, 1) + "}{" + self._part(parts, 0) + "}"

    def _underover(self, tag: Tag) -> str:
        parts = self._parts(tag)
        return self._part(parts, 0) + "_{" + self._part(parts, 1) + "}^{" + self._part(parts, 2) + "}"

    # --- tables ---

    def _table(self, tag: Tag) -> str:
        rows = " \\\\\n".join(self._parts(tag))
        return r"\begin{matrix}" + rows + r"\end{matrix}"

    def _table_row(self, tag: Tag) -> str:
        return " & ".join(self._parts(tag))

    # --- fences ---

    def _fenced(self, tag: Tag) -> str:
        open_glyph = tag.get("open") or "("
        close_glyph = tag.get("close") or ")"
        separator = (tag.get("separators") or ",").strip()
        inner = f" {separator} ".join(self._parts(tag))
        left = r"\{" if open_glyph == "{" else open_glyph
        right = r"\}" if close_glyph == "}" else close_glyph
        return r"\left" + left + " " + inner + r" \right" + right


def mathml_to_latex(math: Tag) -> str:
    """Convenience wrapper around ``MathConverter().convert``."""
    return MathConverter().convert(math)
