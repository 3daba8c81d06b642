"""
Portal Home Handler

Fills the home page's catalog counters from the live statistics snapshot.
"""

from portal.handlers import register_handler
from portal.handlers.base import NamespaceHandler


@register_handler
class HomeHandler(NamespaceHandler):
    """Catalog statistics for the landing page."""

    namespace = "home"

    async def provide(self, site, url, lang, defs):
        stats = site.stats
        return {
            "gameCount": stats.total_games,
            "animationCount": stats.total_animations,
            "platformCount": stats.total_platforms,
            "tagCount": stats.total_tags,
            "lastUpdated": (stats.last_updated or "")[:10],
        }
