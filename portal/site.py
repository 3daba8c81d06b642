"""
Portal Site Context

Everything a request needs that isn't specific to the request: the page and
endpoint registries, templates, locales, resolved namespace handlers and the
catalog statistics shown on the site.

A SiteContext is built once at startup and never modified. Catalog syncs
publish a new snapshot through SiteState.update(), so a request that started
on the old snapshot keeps a consistent view until it finishes.
"""

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

from portal.errors import SiteConfigError
from portal.locales import Locale, load_locales

if TYPE_CHECKING:
    from portal.config import Config
    from portal.handlers.base import NamespaceHandler

logger = logging.getLogger(__name__)

SHELL_NAMESPACE = "shell"
ERROR_NAMESPACE = "error"


@dataclass(frozen=True)
class PageDescriptor:
    """A URL path served by rendering a namespace's template inside the shell."""

    path: str
    namespace: str
    styles: tuple[str, ...] = ()
    scripts: tuple[str, ...] = ()
    fragments: tuple[str, ...] = ()
    lenient: bool = False


@dataclass(frozen=True)
class EndpointDescriptor:
    """A URL path answered entirely by a namespace handler."""

    path: str
    namespace: str
    content_type: str = "text/plain; charset=UTF-8"
    lenient: bool = False


@dataclass(frozen=True)
class CatalogStats:
    """Catalog-wide numbers, recomputed after every sync."""

    total_games: int = 0
    total_animations: int = 0
    total_platforms: int = 0
    total_tags: int = 0
    last_updated: str | None = None


@dataclass(frozen=True)
class SiteContext:
    """Immutable snapshot of the site's process-wide state."""

    site_name: str
    default_lang: str
    static_dir: Path
    pages: Mapping[str, PageDescriptor]
    endpoints: Mapping[str, EndpointDescriptor]
    locales: Mapping[str, Locale]
    templates: Mapping[str, Mapping[str, str]]
    handlers: Mapping[str, "NamespaceHandler"] = field(default_factory=dict)
    filtered_tags: tuple[str, ...] = ()
    platforms: tuple[str, ...] = ()
    stats: CatalogStats = field(default_factory=CatalogStats)

    def template(self, namespace: str, name: str = "main") -> str:
        return self.templates[namespace][name]


class SiteState:
    """Holds the live SiteContext and swaps it as a whole."""

    def __init__(self, site: SiteContext):
        self._site = site

    @property
    def current(self) -> SiteContext:
        return self._site

    def swap(self, site: SiteContext) -> None:
        """Publish a new snapshot. In-flight requests keep the old one."""
        self._site = site

    def update(self, **changes) -> SiteContext:
        """Publish a copy of the current snapshot with some fields replaced."""
        site = dataclasses.replace(self._site, **changes)
        self.swap(site)
        return site


def _read_json(path: Path):
    if not path.is_file():
        raise SiteConfigError(f"missing site data file: {path}")
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _read_template(path: Path) -> str:
    if not path.is_file():
        raise SiteConfigError(f"missing template: {path}")
    return path.read_text(encoding="utf-8")


def load_pages(site_dir: Path) -> dict[str, PageDescriptor]:
    """Read data/pages.json, keeping declaration order."""
    pages = {}
    for path, entry in _read_json(site_dir / "data" / "pages.json").items():
        pages[path] = PageDescriptor(
            path=path,
            namespace=entry["namespace"],
            styles=tuple(entry.get("styles", [])),
            scripts=tuple(entry.get("scripts", [])),
            fragments=tuple(entry.get("fragments", [])),
            lenient=bool(entry.get("lenient", False)),
        )
    return pages


def load_endpoints(site_dir: Path) -> dict[str, EndpointDescriptor]:
    """Read data/endpoints.json, keeping declaration order."""
    path = site_dir / "data" / "endpoints.json"
    if not path.is_file():
        return {}

    endpoints = {}
    for url_path, entry in _read_json(path).items():
        endpoints[url_path] = EndpointDescriptor(
            path=url_path,
            namespace=entry["namespace"],
            content_type=entry.get("type", "text/plain; charset=UTF-8"),
            lenient=bool(entry.get("lenient", False)),
        )
    return endpoints


def load_templates(site_dir: Path, pages: Mapping[str, PageDescriptor]) -> dict[str, Mapping[str, str]]:
    """Read every page's main template and fragments, plus the shell and error templates."""
    template_dir = site_dir / "templates"
    templates: dict[str, Mapping[str, str]] = {}

    # Pages sharing a namespace share one template set
    by_namespace: dict[str, dict[str, str]] = {}
    for page in pages.values():
        template = by_namespace.setdefault(page.namespace, {})
        if "main" not in template:
            template["main"] = _read_template(template_dir / f"{page.namespace}.html")
        for fragment in page.fragments:
            if fragment not in template:
                template[fragment] = _read_template(template_dir / f"{page.namespace}_{fragment}.html")
    for namespace, template in by_namespace.items():
        templates[namespace] = MappingProxyType(template)

    templates[SHELL_NAMESPACE] = MappingProxyType({
        "main": _read_template(template_dir / f"{SHELL_NAMESPACE}.html"),
    })
    templates[ERROR_NAMESPACE] = MappingProxyType({
        "main": _read_template(template_dir / f"{ERROR_NAMESPACE}.html"),
        "fancy": _read_template(template_dir / f"{ERROR_NAMESPACE}_fancy.html"),
    })
    return templates


def load_site(config: "Config", handlers: Mapping[str, "NamespaceHandler"] | None = None) -> SiteContext:
    """Build the startup SiteContext from the site directory."""
    site_dir = config.site_path
    pages = load_pages(site_dir)
    endpoints = load_endpoints(site_dir)

    namespaces = list(dict.fromkeys(
        [page.namespace for page in pages.values()] + [SHELL_NAMESPACE, ERROR_NAMESPACE]
    ))
    locales = load_locales(site_dir, namespaces, config.default_lang)
    templates = load_templates(site_dir, pages)

    filter_path = site_dir / "data" / "filter.json"
    filtered_tags = tuple(_read_json(filter_path)) if filter_path.is_file() else ()

    logger.info(
        f"Site loaded: {len(pages)} pages, {len(endpoints)} endpoints, "
        f"{len(locales)} languages, {len(filtered_tags)} filtered tags"
    )

    return SiteContext(
        site_name=config.site_name,
        default_lang=config.default_lang,
        static_dir=site_dir / "static",
        pages=MappingProxyType(pages),
        endpoints=MappingProxyType(endpoints),
        locales=MappingProxyType(locales),
        templates=MappingProxyType(templates),
        handlers=handlers if handlers is not None else MappingProxyType({}),
        filtered_tags=filtered_tags,
    )
