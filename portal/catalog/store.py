"""
Portal Catalog Store

SQLite-backed storage for the game catalog. The web side only reads from it
(search, single records, statistics); the sync job writes to it.

Tables:
- game: One row per catalog record; platforms and tags stored as
  ';'-joined names for filtering
- game_data: Packaged data for a record (a record with any is "GameZIP")
- tag, platform: Names known to the catalog
- game_redirect: Old record ids that now point at another record
"""

import logging
import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import aiosqlite

from portal.catalog.search import FIELDS, GENERIC, GENERIC_COLUMNS, SORTABLE, CatalogSearch, FieldType

logger = logging.getLogger(__name__)

LIST_SEPARATOR = ";"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS game (
    id                   TEXT PRIMARY KEY,
    title                TEXT NOT NULL DEFAULT '',
    alternate_titles     TEXT NOT NULL DEFAULT '',
    series               TEXT NOT NULL DEFAULT '',
    developer            TEXT NOT NULL DEFAULT '',
    publisher            TEXT NOT NULL DEFAULT '',
    platform_name        TEXT NOT NULL DEFAULT '',
    platforms            TEXT NOT NULL DEFAULT '',
    tags                 TEXT NOT NULL DEFAULT '',
    library              TEXT NOT NULL DEFAULT 'arcade',
    play_mode            TEXT NOT NULL DEFAULT '',
    status               TEXT NOT NULL DEFAULT '',
    language             TEXT NOT NULL DEFAULT '',
    source               TEXT NOT NULL DEFAULT '',
    version              TEXT NOT NULL DEFAULT '',
    notes                TEXT NOT NULL DEFAULT '',
    original_description TEXT NOT NULL DEFAULT '',
    release_date         TEXT NOT NULL DEFAULT '',
    date_added           TEXT NOT NULL DEFAULT '',
    date_modified        TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS game_data (
    id               INTEGER PRIMARY KEY,
    game_id          TEXT NOT NULL,
    title            TEXT NOT NULL DEFAULT '',
    date_added       TEXT NOT NULL DEFAULT '',
    sha256           TEXT NOT NULL DEFAULT '',
    size             INTEGER NOT NULL DEFAULT 0,
    application_path TEXT NOT NULL DEFAULT '',
    launch_command   TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS tag (
    id       INTEGER PRIMARY KEY,
    name     TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS platform (
    id   INTEGER PRIMARY KEY,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS game_redirect (
    source_id TEXT PRIMARY KEY,
    dest_id   TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_game_title ON game(title);
CREATE INDEX IF NOT EXISTS idx_game_data_game ON game_data(game_id);
"""

GAME_COLUMNS = (
    "id", "title", "alternate_titles", "series", "developer", "publisher",
    "platform_name", "platforms", "tags", "library", "play_mode", "status",
    "language", "source", "version", "notes", "original_description",
    "release_date", "date_added", "date_modified",
)


@dataclass
class SearchPage:
    """One page of search results plus the total number of matches."""

    total: int
    results: list[dict] = field(default_factory=list)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _split(value: str) -> list[str]:
    return [part for part in value.split(LIST_SEPARATOR) if part]


class CatalogStore:
    """
    Async SQLite catalog store.

    Usage:
        store = CatalogStore(Path("data/catalog.sqlite"))
        await store.open()

        page = await store.search(parse_user_input("tag:Puzzle"))
        game = await store.find_game(page.results[0]["id"])

        await store.close()
    """

    def __init__(self, db_path: Path):
        self._db: aiosqlite.Connection | None = None
        self._db_path = db_path

    async def open(self) -> None:
        """Open the SQLite database and ensure schema exists."""
        if str(self._db_path) != ":memory:":
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(str(self._db_path))
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA_SQL)
        await self._db.commit()
        logger.info(f"Catalog store opened: {self._db_path}")

    async def close(self) -> None:
        """Close the database connection."""
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("Catalog store closed")

    # =========================================================================
    # QUERIES
    # =========================================================================

    def _build_where(self, search: CatalogSearch) -> tuple[str, list[Any]]:
        """Translate a CatalogSearch into a WHERE clause and parameters."""
        positive: list[str] = []
        negative: list[str] = []
        params: list[Any] = []

        def contains(name: str, value: str, negate: bool) -> None:
            columns = GENERIC_COLUMNS if name == GENERIC else (FIELDS[name].column,)
            clause = " OR ".join(f"{col} LIKE ? ESCAPE '\\'" for col in columns)
            params.extend([f"%{_escape_like(value)}%"] * len(columns))
            (negative if negate else positive).append(f"{'NOT ' if negate else ''}({clause})")

        def exact(name: str, value: str, negate: bool) -> None:
            column_field = FIELDS[name]
            if column_field.type is FieldType.LIST:
                clause = f"('{LIST_SEPARATOR}' || {column_field.column} || '{LIST_SEPARATOR}') LIKE ? ESCAPE '\\'"
                params.append(f"%{LIST_SEPARATOR}{_escape_like(value)}{LIST_SEPARATOR}%")
            else:
                clause = f"{column_field.column} = ? COLLATE NOCASE"
                params.append(value)
            (negative if negate else positive).append(f"{'NOT ' if negate else ''}({clause})")

        for filters, handler, negate in (
            (search.whitelist, contains, False),
            (search.exact_whitelist, exact, False),
            (search.blacklist, contains, True),
            (search.exact_blacklist, exact, True),
        ):
            for name, values in filters.items():
                if name != GENERIC and name not in FIELDS:
                    continue
                if handler is exact and name == GENERIC:
                    continue
                for value in values:
                    handler(name, value, negate)

        for filters, operator in ((search.lower_than, "<"), (search.higher_than, ">")):
            for name, value in filters.items():
                if name in FIELDS:
                    positive.append(f"{FIELDS[name].column} {operator} ?")
                    params.append(value)
        for name, value in search.equal_to.items():
            if name in FIELDS:
                positive.append(f"{FIELDS[name].column} LIKE ? ESCAPE '\\'")
                params.append(f"{_escape_like(value)}%")

        if search.has_game_data is not None:
            exists = "EXISTS (SELECT 1 FROM game_data d WHERE d.game_id = game.id)"
            positive.append(exists if search.has_game_data else f"NOT {exists}")

        clauses = []
        if positive:
            joiner = " OR " if search.match_any else " AND "
            clauses.append("(" + joiner.join(positive) + ")")
        clauses.extend(negative)
        where = " WHERE " + " AND ".join(clauses) if clauses else ""
        return where, params

    async def search(self, search: CatalogSearch) -> SearchPage:
        """Return one page of records matching the search."""
        where, params = self._build_where(search)

        async with self._db.execute(f"SELECT COUNT(*) AS n FROM game{where}", params) as cursor:
            row = await cursor.fetchone()
            total = row["n"]

        order = FIELDS[search.order_by].column if search.order_by in SORTABLE else "title"
        direction = "DESC" if search.descending else "ASC"
        results = []
        async with self._db.execute(
            f"SELECT * FROM game{where} ORDER BY {order} COLLATE NOCASE {direction}, id LIMIT ? OFFSET ?",
            params + [search.limit, search.offset],
        ) as cursor:
            async for row in cursor:
                results.append(self._row_to_game(row))

        return SearchPage(total=total, results=results)

    async def find_game(self, game_id: str) -> dict | None:
        """Get a single record by id, following redirects. None if absent."""
        async with self._db.execute(
            "SELECT dest_id FROM game_redirect WHERE source_id = ?", (game_id,),
        ) as cursor:
            row = await cursor.fetchone()
            if row is not None:
                game_id = row["dest_id"]

        async with self._db.execute("SELECT * FROM game WHERE id = ?", (game_id,)) as cursor:
            row = await cursor.fetchone()
            if row is None:
                return None
            game = self._row_to_game(row)

        game["game_data"] = []
        async with self._db.execute(
            "SELECT * FROM game_data WHERE game_id = ? ORDER BY date_added DESC", (game_id,),
        ) as cursor:
            async for row in cursor:
                game["game_data"].append(dict(row))
        return game

    async def random_game_id(self, excluded_tags: tuple[str, ...] = ()) -> str | None:
        """Pick a random record id whose tags include none of excluded_tags."""
        search = CatalogSearch(exact_blacklist={"tags": list(excluded_tags)} if excluded_tags else {})
        where, params = self._build_where(search)
        async with self._db.execute(f"SELECT id FROM game{where}", params) as cursor:
            ids = [row["id"] async for row in cursor]
        return random.choice(ids) if ids else None

    async def find_all_platforms(self) -> list[str]:
        """All platform names, sorted."""
        async with self._db.execute("SELECT name FROM platform ORDER BY name COLLATE NOCASE") as cursor:
            return [row["name"] async for row in cursor]

    async def get_stats(self) -> dict:
        """Counts shown on the home page."""
        stats = {}
        for key, sql in (
            ("total_games", "SELECT COUNT(*) AS n FROM game WHERE library = 'arcade'"),
            ("total_animations", "SELECT COUNT(*) AS n FROM game WHERE library = 'theatre'"),
            ("total_platforms", "SELECT COUNT(*) AS n FROM platform"),
            ("total_tags", "SELECT COUNT(*) AS n FROM tag"),
        ):
            async with self._db.execute(sql) as cursor:
                row = await cursor.fetchone()
                stats[key] = row["n"]
        return stats

    # =========================================================================
    # SYNC APPLIERS
    # =========================================================================

    async def apply_platforms(self, platforms: list[dict]) -> None:
        """Insert or update platforms ({id, name})."""
        await self._db.executemany(
            "INSERT OR REPLACE INTO platform (id, name) VALUES (?, ?)",
            [(p["id"], p["name"]) for p in platforms],
        )
        await self._db.commit()

    async def apply_tags(self, tags: list[dict]) -> None:
        """Insert or update tags ({id, name, category})."""
        await self._db.executemany(
            "INSERT OR REPLACE INTO tag (id, name, category) VALUES (?, ?, ?)",
            [(t["id"], t["name"], t.get("category", "")) for t in tags],
        )
        await self._db.commit()

    async def _names_by_id(self, table: str) -> dict[int, str]:
        async with self._db.execute(f"SELECT id, name FROM {table}") as cursor:
            return {row["id"]: row["name"] async for row in cursor}

    async def apply_games(
        self,
        games: list[dict],
        game_data: list[dict] | None = None,
        tag_relations: list[list] | None = None,
        platform_relations: list[list] | None = None,
    ) -> None:
        """Insert or update records along with their data and relations.

        Relations are [game_id, tag_id] / [game_id, platform_id] pairs and
        replace whatever the records had before.
        """
        tag_names = await self._names_by_id("tag")
        platform_names = await self._names_by_id("platform")

        tags: dict[str, list[str]] = {}
        for game_id, tag_id in tag_relations or []:
            if tag_id in tag_names:
                tags.setdefault(game_id, []).append(tag_names[tag_id])
        platforms: dict[str, list[str]] = {}
        for game_id, platform_id in platform_relations or []:
            if platform_id in platform_names:
                platforms.setdefault(game_id, []).append(platform_names[platform_id])

        rows = []
        for game in games:
            record = {col: game.get(col) or "" for col in GAME_COLUMNS}
            record["tags"] = LIST_SEPARATOR.join(tags.get(game["id"], []))
            record["platforms"] = LIST_SEPARATOR.join(platforms.get(game["id"], []))
            record["library"] = game.get("library") or "arcade"
            rows.append(tuple(record[col] for col in GAME_COLUMNS))

        placeholders = ", ".join("?" for _ in GAME_COLUMNS)
        await self._db.executemany(
            f"INSERT OR REPLACE INTO game ({', '.join(GAME_COLUMNS)}) VALUES ({placeholders})",
            rows,
        )

        if game_data:
            game_ids = {d["game_id"] for d in game_data}
            await self._db.executemany(
                "DELETE FROM game_data WHERE game_id = ?", [(gid,) for gid in game_ids],
            )
            await self._db.executemany(
                "INSERT INTO game_data (game_id, title, date_added, sha256, size, application_path, launch_command) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        d["game_id"], d.get("title", ""), d.get("date_added", ""), d.get("sha256", ""),
                        d.get("size", 0), d.get("application_path", ""), d.get("launch_command", ""),
                    )
                    for d in game_data
                ],
            )
        await self._db.commit()

    async def delete_games(self, game_ids: list[str]) -> None:
        """Remove records and their data."""
        params = [(gid,) for gid in game_ids]
        await self._db.executemany("DELETE FROM game WHERE id = ?", params)
        await self._db.executemany("DELETE FROM game_data WHERE game_id = ?", params)
        await self._db.commit()

    async def apply_redirects(self, redirects: list[dict]) -> None:
        """Insert or update redirects ({source_id, dest_id})."""
        await self._db.executemany(
            "INSERT OR REPLACE INTO game_redirect (source_id, dest_id) VALUES (?, ?)",
            [(r["source_id"], r["dest_id"]) for r in redirects],
        )
        await self._db.commit()

    async def optimize(self) -> None:
        """Refresh query planner statistics and compact the file."""
        await self._db.execute("ANALYZE")
        await self._db.commit()
        await self._db.execute("VACUUM")

    def _row_to_game(self, row: aiosqlite.Row) -> dict:
        """Convert a database row to a record dict."""
        game = dict(row)
        game["platforms"] = _split(row["platforms"])
        game["tags"] = _split(row["tags"])
        return game
