"""
Portal Namespace Handler Base

Provides the NamespaceHandler base class and the HandlerContext every
handler receives. A handler adds dynamic content to one namespace:

- provide(): returns definitions merged over a page's translations
- respond(): produces the complete body of an endpoint response

Handlers are instantiated once at startup and shared by all requests, so
they must not keep per-request state on self.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from multidict import CIMultiDict
from yarl import URL

if TYPE_CHECKING:
    from portal.catalog.store import CatalogStore
    from portal.config import Config
    from portal.site import SiteContext

logger = logging.getLogger(__name__)


@dataclass
class HandlerContext:
    """Everything a handler needs to operate."""

    catalog: "CatalogStore"
    config: "Config"


class NamespaceHandler:
    """
    Base class for namespace handlers.

    Subclass this, set `namespace`, and override provide() for pages or
    respond() for endpoints (or both).
    """

    # Override in subclasses
    namespace: str = "unnamed"

    def __init__(self, ctx: HandlerContext | None = None):
        self.ctx = ctx
        self.logger = logging.getLogger(f"handler.{self.namespace}")

    @property
    def provides_content(self) -> bool:
        """True if this handler adds definitions to page content."""
        return type(self).provide is not NamespaceHandler.provide

    @property
    def responds(self) -> bool:
        """True if this handler can answer endpoint requests."""
        return type(self).respond is not NamespaceHandler.respond

    async def provide(self, site: "SiteContext", url: URL | None, lang: str, defs: dict) -> dict:
        """Return definitions to merge over the namespace's translations."""
        return {}

    async def respond(self, site: "SiteContext", url: URL, lang: str, headers: CIMultiDict) -> str | bytes:
        """Return the body of an endpoint response; may set headers."""
        raise NotImplementedError(f"{self.namespace} does not answer endpoint requests")


class StaticContent(NamespaceHandler):
    """Default for pages whose content comes from translations alone."""

    def __init__(self, namespace: str):
        self.namespace = namespace
        super().__init__(None)
