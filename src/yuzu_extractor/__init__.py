"""
yuzu-extractor - print-ready HTML and LLM-ready Markdown from the Yuzu reader.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Config, ConversionOptions
from .models import ErrorResult, ExtractionResult, ImageRef, MarkdownDocument
from .pipeline import ExtractionPipeline

__all__ = [
    "__version__",
    "Config",
    "ConversionOptions",
    "ErrorResult",
    "ExtractionPipeline",
    "ExtractionResult",
    "ImageRef",
    "MarkdownDocument",
]
