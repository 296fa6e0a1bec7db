"""Curated "For You" feed built from many seed queries."""

from .aggregator import CuratedAggregator

__all__ = ["CuratedAggregator"]
