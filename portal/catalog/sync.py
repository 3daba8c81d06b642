"""
Portal Catalog Sync

Pulls catalog changes from the upstream FPFSS API into the local store:
platforms, tags, games (paged by id), deletions and redirects, all limited
to changes since the last successful sync. After applying them, catalog
statistics are recomputed and published as a new site snapshot.
"""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiohttp

from portal.access_log import access_log
from portal.site import CatalogStats

if TYPE_CHECKING:
    from portal.catalog.store import CatalogStore
    from portal.site import SiteState

logger = logging.getLogger(__name__)

EPOCH = "1970-01-01"


class CatalogSync:
    """Incremental catalog synchronization against FPFSS."""

    def __init__(
        self,
        store: "CatalogStore",
        fpfss_url: str,
        marker_path: Path,
        state: "SiteState | None" = None,
        interval: float = 0.0,
    ):
        """
        Initialize catalog sync.

        Args:
            store: Catalog store to write into
            fpfss_url: Base URL of the FPFSS instance (without /api)
            marker_path: File holding the time of the last successful sync
            state: Site state to publish fresh statistics into
            interval: Seconds between periodic syncs (0 disables the loop)
        """
        self.store = store
        self.fpfss_url = fpfss_url.rstrip("/")
        self.marker_path = marker_path
        self.state = state
        self.interval = interval
        self._session: aiohttp.ClientSession | None = None
        self._task: asyncio.Task | None = None
        self._lock = asyncio.Lock()

    # =====================================================================
    # LIFECYCLE
    # =====================================================================

    async def start(self) -> None:
        """Open the HTTP session and start the periodic sync loop."""
        if self._session is None:
            self._session = aiohttp.ClientSession()
        if self.interval > 0 and self._task is None:
            self._task = asyncio.create_task(self._sync_loop())
            logger.info(f"Catalog sync scheduled every {self.interval:.0f}s")

    async def stop(self) -> None:
        """Cancel the loop and close the HTTP session."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._session:
            await self._session.close()
            self._session = None

    async def _sync_loop(self) -> None:
        """Periodically sync the catalog."""
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Catalog sync failed")

    # =====================================================================
    # SYNC
    # =====================================================================

    async def fetch(self, endpoint: str) -> Any:
        """GET an FPFSS API endpoint and decode its JSON body."""
        if self._session is None:
            self._session = aiohttp.ClientSession()

        url = f"{self.fpfss_url}/api/{endpoint}"
        async with self._session.get(url, timeout=aiohttp.ClientTimeout(total=300)) as response:
            if response.status != 200:
                raise RuntimeError(f"FPFSS request failed ({response.status}): {url}")
            return await response.json()

    def read_marker(self) -> str:
        """Time of the last successful sync, or the epoch."""
        if self.marker_path.is_file():
            return self.marker_path.read_text().strip() or EPOCH
        return EPOCH

    async def run_once(self) -> CatalogStats:
        """Apply all upstream changes since the last sync."""
        async with self._lock:
            started = datetime.now(timezone.utc).isoformat()
            after = self.read_marker()
            fresh = after == EPOCH
            access_log.sync("building new catalog..." if fresh else f"updating catalog (changes after {after})...")

            platforms = await self.fetch(f"platforms?after={after}")
            access_log.sync(f"applying {len(platforms)} platforms...")
            await self.store.apply_platforms(platforms)

            tags = await self.fetch(f"tags?after={after}")
            access_log.sync(f"applying {len(tags['tags'])} tags...")
            await self.store.apply_tags(tags["tags"])

            total = 0
            page = 1
            after_id = None
            while True:
                endpoint = f"games?broad=true&after={after}"
                if after_id:
                    endpoint += f"&afterId={after_id}"
                batch = await self.fetch(endpoint)
                games = batch.get("games", [])
                if not games:
                    break
                total += len(games)
                access_log.sync(f"applying page {page} of games... (total: {total})")
                await self.store.apply_games(
                    games,
                    game_data=batch.get("game_data", []),
                    tag_relations=batch.get("tag_relations", []),
                    platform_relations=batch.get("platform_relations", []),
                )
                after_id = games[-1]["id"]
                page += 1

            if not fresh:
                deletions = await self.fetch(f"games/deleted?after={after}")
                deleted = [game["id"] for game in deletions.get("games", [])]
                access_log.sync(f"applying {len(deleted)} game deletions...")
                await self.store.delete_games(deleted)

                redirects = await self.fetch("game-redirects")
                access_log.sync(f"applying {len(redirects)} game redirects...")
                await self.store.apply_redirects([
                    {"source_id": r["source_id"], "dest_id": r["id"]} for r in redirects
                ])

            access_log.sync("optimizing catalog...")
            await self.store.optimize()

            self.marker_path.parent.mkdir(parents=True, exist_ok=True)
            self.marker_path.write_text(started)

            stats = await self.publish(started)
            access_log.sync(f"catalog {'created' if fresh else 'updated'} successfully!")
            return stats

    async def publish(self, last_updated: str | None = None) -> CatalogStats:
        """Recompute statistics and swap them into the live site snapshot."""
        counts = await self.store.get_stats()
        stats = CatalogStats(last_updated=last_updated or self.read_marker(), **counts)
        if self.state is not None:
            platforms = tuple(await self.store.find_all_platforms())
            self.state.update(stats=stats, platforms=platforms)
            logger.info(f"Published catalog stats: {stats.total_games} games, {stats.total_animations} animations")
        return stats
