"""
Portal Error Middleware

The one place request errors are turned into responses. SiteErrors render
through the assembler with their own status; anything else is logged with
its traceback and answered with a generic 500 page.
"""

import logging
import traceback

from aiohttp import web

from portal.access_log import access_log
from portal.errors import InternalError, SiteError

logger = logging.getLogger(__name__)


@web.middleware
async def error_middleware(request: web.Request, handler):
    assembler = request.app["assembler"]
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except SiteError as e:
        return await assembler.render_error(e, request.get("route"))
    except Exception as e:
        logger.exception(f"Unhandled error for {request.path_qs}")
        access_log.error("".join(traceback.format_exception(e)).rstrip())
        return await assembler.render_error(InternalError(str(e)), request.get("route"))
