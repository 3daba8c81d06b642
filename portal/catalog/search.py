"""
Portal Catalog Search

A CatalogSearch describes a filtered, ordered page of catalog records.
Searches come from two places:

- parse_user_input(): the free-text search box
      pac man               title/creator must contain "pac" and "man"
      "pac man"             ... must contain the phrase "pac man"
      -demo                 ... must not contain "demo"
      tag:Puzzle            tags must contain "Puzzle"
      platform=Flash        platforms must be exactly "Flash"
- the advanced search form, which fills the filter dicts directly

Field names are the public names used in URLs; FIELDS maps them to columns.
"""

import re
from dataclasses import dataclass, field
from enum import Enum


class FieldType(Enum):
    TEXT = "text"
    LIST = "list"
    DATE = "date"


@dataclass(frozen=True)
class SearchField:
    column: str
    type: FieldType = FieldType.TEXT


FIELDS: dict[str, SearchField] = {
    "id": SearchField("id"),
    "title": SearchField("title"),
    "alternateTitles": SearchField("alternate_titles"),
    "series": SearchField("series"),
    "developer": SearchField("developer"),
    "publisher": SearchField("publisher"),
    "library": SearchField("library"),
    "playMode": SearchField("play_mode"),
    "status": SearchField("status"),
    "language": SearchField("language"),
    "source": SearchField("source"),
    "version": SearchField("version"),
    "notes": SearchField("notes"),
    "originalDescription": SearchField("original_description"),
    "platforms": SearchField("platforms", FieldType.LIST),
    "tags": SearchField("tags", FieldType.LIST),
    "dateAdded": SearchField("date_added", FieldType.DATE),
    "dateModified": SearchField("date_modified", FieldType.DATE),
    "releaseDate": SearchField("release_date", FieldType.DATE),
}

# Columns matched by bare search terms
GENERIC_COLUMNS = ("title", "alternate_titles", "developer", "publisher", "series")

FIELD_ALIASES = {
    "tag": "tags",
    "platform": "platforms",
    "dev": "developer",
    "pub": "publisher",
    "alt": "alternateTitles",
    "lib": "library",
    "lang": "language",
}

SORTABLE = ("title", "developer", "publisher", "series", "dateAdded", "dateModified", "releaseDate")

GENERIC = "generic"

_TOKEN = re.compile(r'(-)?(?:([A-Za-z]+)([:=]))?(?:"([^"]*)"|(\S+))')


@dataclass
class CatalogSearch:
    """Filters, ordering and paging for a catalog query."""

    whitelist: dict[str, list[str]] = field(default_factory=dict)
    blacklist: dict[str, list[str]] = field(default_factory=dict)
    exact_whitelist: dict[str, list[str]] = field(default_factory=dict)
    exact_blacklist: dict[str, list[str]] = field(default_factory=dict)
    lower_than: dict[str, str] = field(default_factory=dict)
    higher_than: dict[str, str] = field(default_factory=dict)
    equal_to: dict[str, str] = field(default_factory=dict)
    # None = either, True = has GameZIP data, False = legacy only
    has_game_data: bool | None = None
    match_any: bool = False
    order_by: str = "title"
    descending: bool = False
    limit: int = 100
    offset: int = 0

    def add(self, target: dict[str, list[str]], name: str, value: str) -> None:
        target.setdefault(name, []).append(value)

    @property
    def is_empty(self) -> bool:
        """True if the search has no positive filter at all."""
        return not (
            self.whitelist or self.exact_whitelist or self.lower_than
            or self.higher_than or self.equal_to or self.has_game_data is not None
        )


def normalize_field(name: str) -> str | None:
    """Map a user-supplied field name to a known field, or None."""
    name = FIELD_ALIASES.get(name.lower(), name)
    if name in FIELDS:
        return name
    for known in FIELDS:
        if known.lower() == name.lower():
            return known
    return None


def parse_user_input(query: str) -> CatalogSearch:
    """Turn a search-box query into a CatalogSearch."""
    search = CatalogSearch()
    for match in _TOKEN.finditer(query):
        negate, name, operator, quoted, bare = match.groups()
        value = quoted if quoted is not None else bare
        if not value:
            continue

        field_name = normalize_field(name) if name else None
        if name and field_name is None:
            # Unknown field prefix: treat the whole token as text
            field_name, value = GENERIC, f"{name}{operator}{value}"
        elif field_name is None:
            field_name = GENERIC

        exact = operator == "=" and field_name != GENERIC
        if negate:
            target = search.exact_blacklist if exact else search.blacklist
        else:
            target = search.exact_whitelist if exact else search.whitelist
        search.add(target, field_name, value)

    return search
