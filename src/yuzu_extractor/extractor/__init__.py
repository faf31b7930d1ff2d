"""
yuzu-extractor content transformation stages.

1. FrameLocator: find the content scope across nested frames and shadow trees
2. StyleCollector: collect stylesheets, stripping print countermeasures
3. TreeSanitizer: clone and clean the body tree
4. MarkdownRenderer + MathConverter: Markdown with LaTeX math
"""

from .locator import FrameLocator
from .markdown import MarkdownRenderer, RenderContext, render_markdown
from .mathml import MathConverter, mathml_to_latex
from .sanitizer import TreeSanitizer, hidden_without_preserved_content, is_hidden
from .styles import StyleCollector, sanitize_css

__all__ = [
    "FrameLocator",
    "StyleCollector",
    "sanitize_css",
    "TreeSanitizer",
    "is_hidden",
    "hidden_without_preserved_content",
    "MathConverter",
    "mathml_to_latex",
    "MarkdownRenderer",
    "RenderContext",
    "render_markdown",
]
