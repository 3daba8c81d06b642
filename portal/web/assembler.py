"""
Portal Content Assembler

Turns a resolved Route into an aiohttp response:

- pages: content template rendered with the namespace's definitions, then
  embedded in the shell template as CONTENT
- endpoints: body produced entirely by the namespace handler
- errors: fancy errors inside the localized shell, others as a bare page
"""

import logging

from aiohttp import web
from multidict import CIMultiDict

from portal.errors import ErrorKind, SiteError
from portal.locales import build_defs, sanitize_inject
from portal.site import ERROR_NAMESPACE, SHELL_NAMESPACE, SiteContext, SiteState
from portal.templating import render
from portal.web.router import Outcome, Route

logger = logging.getLogger(__name__)

CACHE_CONTROL = "max-age=14400"
LANG_COOKIE = "lang"


def _base_headers(lang: str) -> CIMultiDict:
    return CIMultiDict({
        "Cache-Control": CACHE_CONTROL,
        "Content-Language": lang,
    })


class ContentAssembler:
    """Renders pages, endpoint bodies and error pages."""

    def __init__(self, state: SiteState):
        self.state = state

    async def render_shell(self, site: SiteContext, route: Route, content: str, content_defs: dict, styles=(), scripts=()) -> str:
        """Embed rendered content in the shell template."""
        locale = site.locales[route.lang]
        title = content_defs.get("Title")
        description = content_defs.get("Description", "")

        shell_defs = {
            "TITLE": f"{title} - {site.site_name}" if title else site.site_name,
            "STYLES": "\n".join(f'<link rel="stylesheet" href="/styles/{style}">' for style in styles),
            "SCRIPTS": "\n".join(
                f'<script src="/scripts/{script}" type="text/javascript"></script>' for script in scripts
            ),
            "LANGUAGE_SELECT": "\n".join(
                f'<a class="fp-sidebar-button fp-button fp-alternating" href="?lang={code}">{other.name}</a>'
                for code, other in site.locales.items()
            ),
            "CURRENT_LANGUAGE": locale.name,
            "LANG": route.lang,
            "OG_TITLE": title or site.site_name,
            "OG_DESCRIPTION": description,
            "OG_URL": sanitize_inject(str(route.url)) if route.url is not None else "",
            "CONTENT": content,
        }
        shell_defs.update(await build_defs(site, SHELL_NAMESPACE, route.lang, route.url))
        return render(site.template(SHELL_NAMESPACE), shell_defs)

    def _html_response(self, route: Route, body: str, status: int = 200) -> web.Response:
        response = web.Response(
            text=body,
            status=status,
            headers=_base_headers(route.lang),
            content_type="text/html",
            charset="utf-8",
        )
        if route.set_cookie:
            response.set_cookie(LANG_COOKIE, route.lang)
        return response

    async def render_page(self, route: Route) -> web.Response:
        """Build a page inside the shell."""
        site = route.site
        page = route.page
        content_defs = await build_defs(site, page.namespace, route.lang, route.url)
        content = render(site.template(page.namespace), content_defs)
        body = await self.render_shell(site, route, content, content_defs, page.styles, page.scripts)
        return self._html_response(route, body)

    async def render_endpoint(self, route: Route) -> web.Response:
        """Let the endpoint's handler produce the whole response body."""
        site = route.site
        endpoint = route.endpoint
        headers = _base_headers(route.lang)
        headers["Content-Type"] = endpoint.content_type

        handler = site.handlers[endpoint.namespace]
        body = await handler.respond(site, route.url, route.lang, headers)

        response = web.Response(body=body.encode("utf-8") if isinstance(body, str) else body, headers=headers)
        if route.set_cookie:
            response.set_cookie(LANG_COOKIE, route.lang)
        return response

    def render_minimal(self, site: SiteContext, kind: ErrorKind) -> str:
        """The bare, untranslated error page."""
        return render(site.template(ERROR_NAMESPACE), {
            "error": kind.heading,
            "description": kind.description,
        })

    async def render_error(self, error: SiteError, route: Route | None = None) -> web.Response:
        """Render an error page with the error's status code."""
        site = route.site if route is not None else self.state.current
        kind = error.kind

        if kind.fancy:
            lang = error.lang if error.lang in site.locales else site.default_lang
            error_route = Route(
                Outcome.NOT_FOUND,
                site,
                url=error.url,
                lang=lang,
                set_cookie=route.set_cookie if route is not None else False,
            )
            try:
                error_defs = await build_defs(site, ERROR_NAMESPACE, lang, error.url)
                content = render(site.template(ERROR_NAMESPACE, "fancy"), error_defs)
                body = await self.render_shell(site, error_route, content, error_defs)
                return self._html_response(error_route, body, status=kind.status)
            except Exception:
                logger.exception(f"Failed to render {kind.heading} page, using minimal error page")

        return web.Response(
            text=self.render_minimal(site, kind),
            status=kind.status,
            content_type="text/html",
            charset="utf-8",
        )
