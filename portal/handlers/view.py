"""
Portal View Handler

Detail page for a single catalog record, addressed as /view?id=<record id>.
An unknown id is a Not Found error for the whole page.
"""

from portal.errors import NotFoundError
from portal.handlers import register_handler
from portal.handlers.base import NamespaceHandler
from portal.handlers.search import logo_url
from portal.locales import sanitize_inject
from portal.templating import render

# (record key, translation key of its label), in display order
DETAIL_FIELDS = (
    ("alternate_titles", "alternateTitlesLabel"),
    ("developer", "developerLabel"),
    ("publisher", "publisherLabel"),
    ("series", "seriesLabel"),
    ("platforms", "platformsLabel"),
    ("play_mode", "playModeLabel"),
    ("status", "statusLabel"),
    ("version", "versionLabel"),
    ("release_date", "releaseDateLabel"),
    ("language", "languageLabel"),
    ("source", "sourceLabel"),
    ("date_added", "dateAddedLabel"),
    ("date_modified", "dateModifiedLabel"),
)

DESCRIPTION_LENGTH = 200


def screenshot_url(image_url: str, game_id: str) -> str:
    return f"{image_url}/Screenshots/{game_id[:2]}/{game_id[2:4]}/{game_id}.png?type=jpg"


@register_handler
class ViewHandler(NamespaceHandler):
    """Single catalog record."""

    namespace = "view"

    async def provide(self, site, url, lang, defs):
        game_id = url.query.get("id", "").strip()
        game = await self.ctx.catalog.find_game(game_id) if game_id else None
        if game is None:
            raise NotFoundError(f"no catalog record {game_id!r}", url=url, lang=lang)

        image_url = self.ctx.config.catalog.image_url
        title = sanitize_inject(game["title"])
        description = sanitize_inject(game["original_description"])

        rows = []
        for key, label_key in DETAIL_FIELDS:
            value = game[key]
            if isinstance(value, list):
                value = "; ".join(value)
            if not value:
                continue
            rows.append(render(site.template(self.namespace, "field"), {
                "fieldLabel": defs.get(label_key, label_key),
                "fieldValue": sanitize_inject(value),
            }))

        tags = [
            render(site.template(self.namespace, "tag"), {"tagName": sanitize_inject(tag)})
            for tag in game["tags"]
        ]

        library_key = "libraryGame" if game["library"] == "arcade" else "libraryAnimation"
        return {
            "Title": title,
            "Description": description[:DESCRIPTION_LENGTH],
            "viewId": game["id"],
            "viewTitle": title,
            "viewLogo": logo_url(image_url, game["id"]),
            "viewScreenshot": screenshot_url(image_url, game["id"]),
            "viewLibrary": defs.get(library_key, ""),
            "viewFields": "\n".join(rows),
            "viewTags": "\n".join(tags),
            "viewDescription": description,
            "viewNotes": sanitize_inject(game["notes"]),
            "viewFormat": defs.get("formatGameZip" if game["game_data"] else "formatLegacy", ""),
        }
