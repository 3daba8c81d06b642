"""
Portal Web Server

aiohttp application serving the site over HTTP, and over HTTPS as well when
a certificate and key are configured.
"""

import logging
import ssl
from typing import TYPE_CHECKING

from aiohttp import web

from portal.web.assembler import ContentAssembler
from portal.web.middleware import error_middleware
from portal.web.router import Router

if TYPE_CHECKING:
    from portal.config import Config
    from portal.site import SiteState

logger = logging.getLogger(__name__)


def create_app(state: "SiteState", config: "Config") -> web.Application:
    """Build the aiohttp application for a site."""
    app = web.Application(middlewares=[error_middleware])
    app["state"] = state
    app["config"] = config
    app["router"] = Router(state, config.access)
    app["assembler"] = ContentAssembler(state)

    from portal.web.routes.site import routes as site_routes
    app.router.add_routes(site_routes)
    return app


class WebServer:
    """The public site."""

    def __init__(self, state: "SiteState", config: "Config"):
        self.state = state
        self.config = config
        self.app = create_app(state, config)
        self._runner: web.AppRunner | None = None

    def _ssl_context(self) -> ssl.SSLContext | None:
        http = self.config.http
        if not (http.https_port and http.https_cert and http.https_key):
            return None
        context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        context.load_cert_chain(http.https_cert, http.https_key)
        return context

    async def start(self) -> None:
        """Start the web server."""
        http = self.config.http
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()

        if http.port:
            site = web.TCPSite(self._runner, http.host, http.port)
            await site.start()
            logger.info(f"Site started at http://{http.host}:{http.port}")

        ssl_context = self._ssl_context()
        if ssl_context is not None:
            site = web.TCPSite(self._runner, http.host, http.https_port, ssl_context=ssl_context)
            await site.start()
            logger.info(f"Site started at https://{http.host}:{http.https_port}")

    async def stop(self) -> None:
        """Stop the web server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Site stopped")
