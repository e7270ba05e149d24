"""Test fixtures: in-memory raster sources for comparator tests."""

from tests.fixtures.fake_sources import FakeSource, make_band, single_band

__all__ = ["FakeSource", "make_band", "single_band"]
