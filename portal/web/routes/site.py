"""
Site routes.

GET /{anything}: every request goes through the router, which decides
whether it's an endpoint, a page, a static file or an error.
"""

import logging

from aiohttp import web

from portal.access_log import access_log
from portal.errors import BadRequestError, NotFoundError
from portal.web.router import Outcome

logger = logging.getLogger(__name__)

routes = web.RouteTableDef()


@routes.get("/{tail:.*}")
async def site_request(request: web.Request) -> web.StreamResponse:
    """Route and answer a site request."""
    router = request.app["router"]
    assembler = request.app["assembler"]

    address = request.remote or ""
    user_agent = request.headers.get("User-Agent", "")
    try:
        raw_url = str(request.url)
    except ValueError:
        access_log.request(address, user_agent, request.path_qs)
        raise BadRequestError("unparseable request URL")

    route = router.resolve(raw_url, address, user_agent, request.cookies.get("lang"))
    request["route"] = route

    if route.outcome is Outcome.BLOCKED:
        access_log.blocked(address, user_agent, raw_url)
        raise NotFoundError("blocked", lang=route.lang)

    access_log.request(address, user_agent, raw_url)

    if route.outcome is Outcome.BAD_REQUEST:
        raise BadRequestError(f"rejected URL {raw_url}")
    if route.outcome is Outcome.ENDPOINT:
        return await assembler.render_endpoint(route)
    if route.outcome is Outcome.PAGE:
        return await assembler.render_page(route)
    if route.outcome is Outcome.STATIC:
        return web.FileResponse(route.file, headers={"Cache-Control": "max-age=14400"})

    raise NotFoundError(f"nothing at {route.path}", url=route.url, lang=route.lang)
