"""
Portal Random Handler

Endpoint returning the id of a random catalog record as JSON, skipping
records with filtered tags unless nsfw=true is given.
"""

import json

from portal.errors import NotFoundError
from portal.handlers import register_handler
from portal.handlers.base import NamespaceHandler


@register_handler
class RandomHandler(NamespaceHandler):
    """Random record picker."""

    namespace = "random"

    async def respond(self, site, url, lang, headers):
        excluded = () if url.query.get("nsfw") == "true" else site.filtered_tags
        game_id = await self.ctx.catalog.random_game_id(excluded)
        if game_id is None:
            raise NotFoundError("catalog is empty", url=url, lang=lang)

        headers["Cache-Control"] = "no-store"
        return json.dumps({"id": game_id})
