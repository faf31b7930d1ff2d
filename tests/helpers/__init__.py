"""Shared test doubles."""

from .fakes import FakeHandle, FakeScope, FakeScrollTarget

__all__ = ["FakeHandle", "FakeScope", "FakeScrollTarget"]
