"""
Portal Search Handler

Builds the search page: the simple or advanced search form, and when a
search was submitted, one page of results with navigation.

Query parameters:
  query=...                     simple search text
  advanced=true                 use the field/compare/string triples instead
  field=..&compare=..&string=.. one advanced filter (repeatable)
  any=true                      advanced filters match any instead of all
  nsfw=true                     don't hide filtered tags
  sort=<field>&dir=asc|desc     ordering
  page=<n>                      result page (1-based)
"""

import logging

from portal.catalog.search import FIELDS, SORTABLE, CatalogSearch, FieldType, normalize_field, parse_user_input
from portal.handlers import register_handler
from portal.handlers.base import NamespaceHandler
from portal.locales import sanitize_inject
from portal.templating import build_string, render

logger = logging.getLogger(__name__)

COMPARES = {
    "contains": "whitelist",
    "notContains": "blacklist",
    "exactly": "exact_whitelist",
    "notExactly": "exact_blacklist",
}
DATE_COMPARES = {
    "lower": "lower_than",
    "higher": "higher_than",
    "equals": "equal_to",
}

# Largest OFFSET sqlite accepts as a 64-bit integer, with headroom
MAX_OFFSET = 2 ** 62


def apply_filter(search: CatalogSearch, field: str, compare: str, value: str) -> None:
    """Add one advanced-search row to the search. Unknown rows are ignored."""
    if field == "format":
        if compare == "exactly":
            if value == "GameZIP":
                search.has_game_data = True
            elif value == "Legacy":
                search.has_game_data = False
        return

    name = normalize_field(field)
    if name is None:
        return

    if FIELDS[name].type is FieldType.DATE:
        target = DATE_COMPARES.get(compare)
        if target:
            getattr(search, target)[name] = value
        return

    target = COMPARES.get(compare)
    if target:
        search.add(getattr(search, target), name, value)


def logo_url(image_url: str, game_id: str) -> str:
    return f"{image_url}/Logos/{game_id[:2]}/{game_id[2:4]}/{game_id}.png?type=jpg"


@register_handler
class SearchHandler(NamespaceHandler):
    """Catalog search form and results."""

    namespace = "search"

    async def provide(self, site, url, lang, defs):
        params = url.query
        nsfw = params.get("nsfw") == "true"
        advanced = params.get("advanced") == "true"
        search_defs = dict(defs)
        search_defs["nsfwChecked"] = " checked" if nsfw else ""
        search_defs["anyChecked"] = " checked" if params.get("any") == "true" else ""

        search = None
        if advanced:
            fields = params.getall("field", [])
            compares = params.getall("compare", [])
            strings = params.getall("string", [])
            if fields and len(fields) == len(compares) == len(strings):
                search = CatalogSearch()
                for field, compare, value in zip(fields, compares, strings):
                    apply_filter(search, field, compare, value)
                search.match_any = params.get("any") == "true"

            search_defs["searchRows"] = "\n".join(
                render(site.template(self.namespace, "row"), {
                    **search_defs,
                    "rowField": sanitize_inject(field),
                    "rowCompare": sanitize_inject(compare),
                    "rowString": sanitize_inject(value),
                })
                for field, compare, value in zip(fields, compares, strings)
            )
            search_defs["platformOptions"] = "\n".join(
                f'<option value="{sanitize_inject(name)}"></option>' for name in site.platforms
            )
            interface = render(site.template(self.namespace, "advanced"), search_defs)
        else:
            query = params.get("query")
            if query is not None:
                search = parse_user_input(query)
            search_defs["searchQuery"] = sanitize_inject(query or "")
            interface = render(site.template(self.namespace, "simple"), search_defs)

        navigation = ""
        if search is not None:
            navigation = await self._results(site, url, search, search_defs, nsfw)

        return {
            "searchInterface": interface,
            "searchNavigation": navigation,
        }

    async def _results(self, site, url, search: CatalogSearch, defs: dict, nsfw: bool) -> str:
        """Run the search and render the navigation + results fragment."""
        params = url.query
        if not nsfw and site.filtered_tags:
            search.exact_blacklist.setdefault("tags", []).extend(site.filtered_tags)

        sort = normalize_field(params.get("sort", ""))
        if sort in SORTABLE:
            search.order_by = sort
            search.descending = params.get("dir") == "desc"

        page_size = self.ctx.config.catalog.page_size
        try:
            page = max(1, int(params.get("page", "1")))
        except ValueError:
            page = 1
        page = min(page, MAX_OFFSET // page_size)
        search.limit = page_size
        search.offset = (page - 1) * page_size

        results = await self.ctx.catalog.search(search)
        if results.total == 0:
            return ""

        last_page = (results.total + page_size - 1) // page_size
        if page > last_page:
            page = last_page
            search.offset = (page - 1) * page_size
            results = await self.ctx.catalog.search(search)

        image_url = self.ctx.config.catalog.image_url
        rendered = []
        for game in results.results:
            creator = game["developer"] or game["publisher"]
            result_defs = {
                **defs,
                "resultId": game["id"],
                "resultLogo": logo_url(image_url, game["id"]),
                "resultTitle": sanitize_inject(game["title"]),
                "resultCreatorName": sanitize_inject(creator),
                "resultPlatform": sanitize_inject("/".join(game["platforms"])),
                "resultLibrary": defs.get("libraryGame" if game["library"] == "arcade" else "libraryAnimation", ""),
                "resultTags": sanitize_inject(" - ".join(game["tags"])),
            }
            result_defs["resultCreator"] = build_string("resultBy,resultCreatorName", result_defs) if creator else ""
            rendered.append(render(site.template(self.namespace, "result"), result_defs))

        return render(site.template(self.namespace, "navigation"), {
            **defs,
            "searchTotal": results.total,
            "searchPage": page,
            "searchLastPage": last_page,
            "searchPager": self._pager(url, page, last_page, defs),
            "searchResults": "\n".join(rendered),
        })

    def _pager(self, url, page: int, last_page: int, defs: dict) -> str:
        """Previous/next page links, or nothing if there's only one page."""
        if last_page <= 1:
            return ""

        links = []
        if page > 1:
            href = url.update_query(page=str(page - 1)).relative()
            links.append(f'<a class="fp-button" href="{href}">{defs.get("previousPage", "&lt;")}</a>')
        label = build_string("pageLabel,searchPage,searchLastPage", {**defs, "searchPage": page, "searchLastPage": last_page})
        links.append(f'<span class="fp-search-page">{label}</span>')
        if page < last_page:
            href = url.update_query(page=str(page + 1)).relative()
            links.append(f'<a class="fp-button" href="{href}">{defs.get("nextPage", "&gt;")}</a>')
        return "\n".join(links)
