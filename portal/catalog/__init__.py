"""Portal Catalog Package."""

from portal.catalog.search import CatalogSearch, parse_user_input
from portal.catalog.store import CatalogStore, SearchPage
from portal.catalog.sync import CatalogSync

__all__ = ["CatalogSearch", "parse_user_input", "CatalogStore", "SearchPage", "CatalogSync"]
