"""Playwright adapters for the content scope protocols."""

from .scope import PlaywrightScope, PlaywrightScopeHandle, PlaywrightScrollTarget, same_origin

__all__ = ["PlaywrightScope", "PlaywrightScopeHandle", "PlaywrightScrollTarget", "same_origin"]
