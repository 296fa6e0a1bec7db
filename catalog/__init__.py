"""Catalog access: iTunes client and the observable browse state built on it."""

from .itunes import ITunesClient
from .browser import CatalogBrowser

__all__ = ["ITunesClient", "CatalogBrowser"]
