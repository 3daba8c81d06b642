"""
Portal Namespace Handler Discovery and Resolution

Uses a @register_handler decorator and pkgutil-based discovery to find all
handlers in this package. At startup, resolve_handlers() turns the registry
into a closed namespace -> handler mapping covering every page and endpoint
namespace, so a missing handler is caught before the first request.
"""

import importlib
import logging
import pkgutil
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from portal.errors import SiteConfigError
from portal.handlers.base import HandlerContext, NamespaceHandler, StaticContent

logger = logging.getLogger(__name__)

# Global handler registry: namespace -> class
_handler_registry: dict[str, type[NamespaceHandler]] = {}


def register_handler(cls: type[NamespaceHandler]) -> type[NamespaceHandler]:
    """Decorator to register a handler class."""
    _handler_registry[cls.namespace] = cls
    logger.debug(f"Registered handler: {cls.namespace}")
    return cls


def discover_handlers() -> None:
    """Import all modules in the handlers package to trigger @register_handler."""
    package_dir = Path(__file__).parent
    for _, modname, _ in pkgutil.iter_modules([str(package_dir)]):
        if modname == "base":
            continue
        importlib.import_module(f"portal.handlers.{modname}")


def resolve_handlers(
    ctx: HandlerContext,
    page_namespaces: list[str],
    endpoint_namespaces: list[str],
) -> Mapping[str, NamespaceHandler]:
    """
    Instantiate one handler per namespace in use.

    Pages without a registered handler are served from translations alone.
    Endpoints have no template to fall back on, so an endpoint namespace
    without a responding handler is a configuration error.
    """
    discover_handlers()

    handlers: dict[str, NamespaceHandler] = {}
    for namespace in dict.fromkeys(page_namespaces + endpoint_namespaces):
        handler_cls = _handler_registry.get(namespace)
        if handler_cls is None:
            handlers[namespace] = StaticContent(namespace)
            continue
        handlers[namespace] = handler_cls(ctx)
        logger.info(f"Loaded handler: {namespace} ({handler_cls.__name__})")

    for namespace in endpoint_namespaces:
        if not handlers[namespace].responds:
            raise SiteConfigError(f'endpoint namespace "{namespace}" has no handler')

    return MappingProxyType(handlers)
