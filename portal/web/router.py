"""
Portal Request Router

Resolves a request to what should answer it. The steps run in order and
the first one that decides the outcome wins:

1. Blocklists       - IP prefix / user-agent substring     -> BLOCKED
2. URL validation   - parseable, allowed host               -> BAD_REQUEST
3. Locale           - ?lang=, then lang cookie, then default
4. Path             - endpoints, then pages, then static    -> ENDPOINT / PAGE / STATIC / NOT_FOUND
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Mapping

from yarl import URL

from portal.site import EndpointDescriptor, PageDescriptor, SiteContext

if TYPE_CHECKING:
    from portal.config import AccessConfig
    from portal.site import SiteState

logger = logging.getLogger(__name__)


class Outcome(Enum):
    BLOCKED = "blocked"
    BAD_REQUEST = "bad_request"
    ENDPOINT = "endpoint"
    PAGE = "page"
    STATIC = "static"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Route:
    """Where a request goes, and the state it was resolved against."""

    outcome: Outcome
    site: SiteContext
    url: URL | None = None
    path: str = "/"
    lang: str = ""
    set_cookie: bool = False
    page: PageDescriptor | None = None
    endpoint: EndpointDescriptor | None = None
    file: Path | None = None


def normalize_path(path: str) -> str:
    """Strip leading and trailing slashes: '//search/' -> '/search'."""
    return "/" + path.strip("/")


def match_path(path: str, entries: Mapping[str, PageDescriptor | EndpointDescriptor]):
    """Find the entry for a path: exact match first, then lenient prefixes in order."""
    entry = entries.get(path)
    if entry is not None:
        return entry

    for key, entry in entries.items():
        if not entry.lenient:
            continue
        prefix = key.rstrip("/") + "/"
        if path.startswith(prefix):
            return entry
    return None


class Router:
    """Request routing against the live site snapshot."""

    def __init__(self, state: "SiteState", access: "AccessConfig"):
        self.state = state
        self.access = access

    def is_blocked(self, address: str, user_agent: str) -> bool:
        return (
            any(address.startswith(prefix) for prefix in self.access.blocked_ips)
            or any(agent in user_agent for agent in self.access.blocked_uas)
        )

    def parse_url(self, raw_url: str) -> URL | None:
        """Parse the request URL; None if malformed or for a disallowed host."""
        try:
            url = URL(raw_url)
        except (ValueError, TypeError):
            return None
        if not url.is_absolute() or not url.host:
            return None
        if self.access.access_hosts and url.host not in self.access.access_hosts:
            return None
        return url

    def resolve_lang(self, site: SiteContext, url: URL, cookie_lang: str | None) -> tuple[str, bool]:
        """Pick the request language. Returns (lang, whether to set the cookie)."""
        query_lang = url.query.get("lang")
        if query_lang is not None and query_lang in site.locales:
            return query_lang, True
        if cookie_lang is not None and cookie_lang in site.locales:
            return cookie_lang, False
        return site.default_lang, False

    def static_file(self, site: SiteContext, path: str) -> Path | None:
        """Map a path to a file under the static directory, if one exists."""
        root = site.static_dir.resolve()
        try:
            candidate = (root / path.lstrip("/")).resolve()
        except (OSError, ValueError):
            # NUL bytes and other names the filesystem refuses
            return None
        if candidate != root and root not in candidate.parents:
            return None
        return candidate if candidate.is_file() else None

    def resolve(
        self,
        raw_url: str,
        address: str = "",
        user_agent: str = "",
        cookie_lang: str | None = None,
    ) -> Route:
        """Resolve a request to a Route."""
        site = self.state.current

        if self.is_blocked(address, user_agent):
            return Route(Outcome.BLOCKED, site, lang=site.default_lang)

        url = self.parse_url(raw_url)
        if url is None:
            return Route(Outcome.BAD_REQUEST, site, lang=site.default_lang)

        lang, set_cookie = self.resolve_lang(site, url, cookie_lang)
        path = normalize_path(url.path)
        base = dict(site=site, url=url, path=path, lang=lang, set_cookie=set_cookie)

        endpoint = match_path(path, site.endpoints)
        if endpoint is not None:
            return Route(Outcome.ENDPOINT, endpoint=endpoint, **base)

        page = match_path(path, site.pages)
        if page is not None:
            return Route(Outcome.PAGE, page=page, **base)

        file = self.static_file(site, path)
        if file is not None:
            return Route(Outcome.STATIC, file=file, **base)

        return Route(Outcome.NOT_FOUND, **base)
