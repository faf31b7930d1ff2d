"""Network side of yuzu-extractor: image retrieval for Markdown inlining."""

from .asset_inliner import AssetInliner, InlineOutcome, find_image_urls

__all__ = ["AssetInliner", "InlineOutcome", "find_image_urls"]
