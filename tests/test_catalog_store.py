"""Tests for CatalogStore queries, filters and sync appliers."""

import pytest

from portal.catalog.search import GENERIC, CatalogSearch
from tests.conftest import ALPHA, BETA, CARTOON, DANGER, OLD_ALPHA


def titles(page):
    return [game["title"] for game in page.results]


# =========================================================================
# Search
# =========================================================================


async def test_empty_search_returns_everything(catalog):
    page = await catalog.search(CatalogSearch())
    assert page.total == 4
    assert titles(page) == ["Alpha Puzzle", "Beta Blaster", "Cartoon Clip", "Danger Zone"]


async def test_generic_search_spans_creator_columns(catalog):
    page = await catalog.search(CatalogSearch(whitelist={GENERIC: ["studio"]}))
    assert titles(page) == ["Cartoon Clip"]


async def test_contains_is_case_insensitive(catalog):
    page = await catalog.search(CatalogSearch(whitelist={"title": ["BLASTER"]}))
    assert titles(page) == ["Beta Blaster"]


async def test_blacklist(catalog):
    page = await catalog.search(CatalogSearch(blacklist={"developer": ["Two"]}))
    assert titles(page) == ["Alpha Puzzle", "Cartoon Clip"]


async def test_exact_list_match(catalog):
    page = await catalog.search(CatalogSearch(exact_whitelist={"tags": ["Action"]}))
    assert titles(page) == ["Beta Blaster", "Danger Zone"]


async def test_exact_list_match_is_whole_name(catalog):
    page = await catalog.search(CatalogSearch(exact_whitelist={"tags": ["Act"]}))
    assert page.total == 0


async def test_exact_blacklist_on_list(catalog):
    page = await catalog.search(CatalogSearch(exact_blacklist={"tags": ["Extreme"]}))
    assert "Danger Zone" not in titles(page)
    assert page.total == 3


async def test_exact_text_match(catalog):
    page = await catalog.search(CatalogSearch(exact_whitelist={"developer": ["dev two"]}))
    assert titles(page) == ["Beta Blaster", "Danger Zone"]


async def test_filters_combine_with_and(catalog):
    search = CatalogSearch(whitelist={"title": ["a"], "developer": ["One"]})
    assert titles(await catalog.search(search)) == ["Alpha Puzzle"]


async def test_match_any_combines_with_or(catalog):
    search = CatalogSearch(whitelist={"title": ["Alpha"], "developer": ["Two"]}, match_any=True)
    assert titles(await catalog.search(search)) == ["Alpha Puzzle", "Beta Blaster", "Danger Zone"]


async def test_match_any_still_applies_negatives(catalog):
    search = CatalogSearch(
        whitelist={"title": ["Alpha"], "developer": ["Two"]},
        exact_blacklist={"tags": ["Extreme"]},
        match_any=True,
    )
    assert titles(await catalog.search(search)) == ["Alpha Puzzle", "Beta Blaster"]


async def test_date_comparisons(catalog):
    assert titles(await catalog.search(CatalogSearch(lower_than={"releaseDate": "2006"}))) == [
        "Alpha Puzzle", "Cartoon Clip",
    ]
    assert titles(await catalog.search(CatalogSearch(higher_than={"releaseDate": "2011"}))) == ["Danger Zone"]
    assert titles(await catalog.search(CatalogSearch(equal_to={"dateAdded": "2020"}))) == ["Beta Blaster"]


async def test_has_game_data(catalog):
    assert titles(await catalog.search(CatalogSearch(has_game_data=True))) == ["Alpha Puzzle"]
    assert (await catalog.search(CatalogSearch(has_game_data=False))).total == 3


async def test_like_wildcards_are_literal(catalog):
    assert (await catalog.search(CatalogSearch(whitelist={"title": ["%"]}))).total == 0
    assert (await catalog.search(CatalogSearch(whitelist={"title": ["_"]}))).total == 0


async def test_unknown_fields_are_ignored(catalog):
    page = await catalog.search(CatalogSearch(whitelist={"password": ["x"]}))
    assert page.total == 4


async def test_order_and_paging(catalog):
    search = CatalogSearch(order_by="releaseDate", descending=True, limit=2, offset=1)
    page = await catalog.search(search)
    assert page.total == 4
    assert titles(page) == ["Beta Blaster", "Alpha Puzzle"]


async def test_unsortable_order_falls_back_to_title(catalog):
    page = await catalog.search(CatalogSearch(order_by="notes; DROP TABLE game"))
    assert titles(page)[0] == "Alpha Puzzle"


# =========================================================================
# Records
# =========================================================================


async def test_find_game(catalog):
    game = await catalog.find_game(ALPHA)
    assert game["title"] == "Alpha Puzzle"
    assert game["platforms"] == ["Flash"]
    assert game["tags"] == ["Puzzle"]
    assert [d["sha256"] for d in game["game_data"]] == ["ab12"]


async def test_find_game_follows_redirect(catalog):
    game = await catalog.find_game(OLD_ALPHA)
    assert game["id"] == ALPHA


async def test_find_game_missing(catalog):
    assert await catalog.find_game("missing") is None


async def test_random_game_id_excludes_tags(catalog):
    for _ in range(20):
        assert await catalog.random_game_id(("Extreme",)) in {ALPHA, BETA, CARTOON}


async def test_random_game_id_empty(catalog):
    assert await catalog.random_game_id(("Puzzle", "Action", "Extreme")) == CARTOON
    await catalog.delete_games([CARTOON])
    assert await catalog.random_game_id(("Puzzle", "Action")) is None


async def test_platforms_sorted(catalog):
    assert await catalog.find_all_platforms() == ["Flash", "HTML5", "Shockwave"]


async def test_stats(catalog):
    assert await catalog.get_stats() == {
        "total_games": 3,
        "total_animations": 1,
        "total_platforms": 3,
        "total_tags": 3,
    }


# =========================================================================
# Sync appliers
# =========================================================================


async def test_apply_games_replaces_records(catalog):
    await catalog.apply_games(
        [{"id": BETA, "title": "Beta Blaster Deluxe", "library": "arcade"}],
        tag_relations=[[BETA, 1]],
        platform_relations=[[BETA, 2]],
    )
    game = await catalog.find_game(BETA)
    assert game["title"] == "Beta Blaster Deluxe"
    assert game["tags"] == ["Puzzle"]
    assert game["platforms"] == ["HTML5"]


async def test_apply_games_ignores_unknown_relations(catalog):
    await catalog.apply_games([{"id": "new", "title": "New"}], tag_relations=[["new", 99]])
    game = await catalog.find_game("new")
    assert game["tags"] == []
    assert game["library"] == "arcade"


async def test_delete_games(catalog):
    await catalog.delete_games([ALPHA])
    assert await catalog.find_game(ALPHA) is None
    assert (await catalog.search(CatalogSearch(has_game_data=True))).total == 0


async def test_apply_tags_updates_names(catalog):
    await catalog.apply_tags([{"id": 1, "name": "Logic"}])
    async with catalog._db.execute("SELECT name, category FROM tag WHERE id = 1") as cursor:
        row = await cursor.fetchone()
    assert row["name"] == "Logic"
    assert row["category"] == ""


async def test_optimize_runs(catalog):
    await catalog.optimize()
    assert (await catalog.search(CatalogSearch())).total == 4


async def test_store_on_disk(tmp_path):
    from portal.catalog.store import CatalogStore

    path = tmp_path / "nested" / "catalog.sqlite"
    store = CatalogStore(path)
    await store.open()
    await store.apply_platforms([{"id": 1, "name": "Flash"}])
    await store.close()

    assert path.is_file()
    store = CatalogStore(path)
    await store.open()
    assert await store.find_all_platforms() == ["Flash"]
    await store.close()
