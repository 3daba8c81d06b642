"""Shared fixtures for portal tests."""

import dataclasses
import shutil
from pathlib import Path

import pytest

from portal.catalog.store import CatalogStore
from portal.config import CatalogConfig, Config
from portal.handlers import resolve_handlers
from portal.handlers.base import HandlerContext
from portal.site import CatalogStats, SiteState, load_site
from portal.web.server import create_app

SITE_SOURCE = Path(__file__).parent.parent / "site"

ALPHA = "0a1b2c3d-0000-4000-8000-000000000001"
BETA = "1b2c3d4e-0000-4000-8000-000000000002"
CARTOON = "2c3d4e5f-0000-4000-8000-000000000003"
DANGER = "3d4e5f60-0000-4000-8000-000000000004"
OLD_ALPHA = "9f9f9f9f-0000-4000-8000-000000000009"

PLATFORMS = [
    {"id": 1, "name": "Flash"},
    {"id": 2, "name": "HTML5"},
    {"id": 3, "name": "Shockwave"},
]

TAGS = [
    {"id": 1, "name": "Puzzle", "category": "genre"},
    {"id": 2, "name": "Action", "category": "genre"},
    {"id": 3, "name": "Extreme", "category": "content"},
]

GAMES = [
    {
        "id": ALPHA, "title": "Alpha Puzzle", "developer": "Dev One", "library": "arcade",
        "original_description": "Slide the tiles into place.", "release_date": "2005-03-01",
        "date_added": "2019-01-10", "notes": "Needs <b>sound</b>",
    },
    {
        "id": BETA, "title": "Beta Blaster", "developer": "Dev Two", "library": "arcade",
        "release_date": "2010-07-15", "date_added": "2020-02-20",
    },
    {
        "id": CARTOON, "title": "Cartoon Clip", "publisher": "Studio C", "library": "theatre",
        "release_date": "2003-11-30", "date_added": "2018-05-05",
    },
    {
        "id": DANGER, "title": "Danger Zone", "developer": "Dev Two", "library": "arcade",
        "release_date": "2012-01-01", "date_added": "2021-03-03",
    },
]

GAME_DATA = [
    {"game_id": ALPHA, "title": "Alpha Puzzle", "date_added": "2019-01-10", "sha256": "ab12", "size": 2048},
]

TAG_RELATIONS = [[ALPHA, 1], [BETA, 2], [DANGER, 2], [DANGER, 3]]
PLATFORM_RELATIONS = [[ALPHA, 1], [BETA, 2], [CARTOON, 1], [DANGER, 3]]


async def seed_catalog(store: CatalogStore) -> None:
    """Fill a store with the sample records above."""
    await store.apply_platforms(PLATFORMS)
    await store.apply_tags(TAGS)
    await store.apply_games(
        GAMES,
        game_data=GAME_DATA,
        tag_relations=TAG_RELATIONS,
        platform_relations=PLATFORM_RELATIONS,
    )
    await store.apply_redirects([{"source_id": OLD_ALPHA, "dest_id": ALPHA}])


@pytest.fixture
def site_dir(tmp_path):
    """Writable copy of the bundled sample site."""
    target = tmp_path / "site"
    shutil.copytree(SITE_SOURCE, target)
    return target


@pytest.fixture
def config(site_dir, tmp_path):
    """Config pointing at the temporary site, with small result pages."""
    return Config(
        site_dir=str(site_dir),
        catalog=CatalogConfig(
            database_file=str(tmp_path / "catalog.sqlite"),
            image_url="https://images.test",
            page_size=2,
        ),
    )


@pytest.fixture
async def catalog():
    """In-memory CatalogStore with the sample records, opened and closed per test."""
    store = CatalogStore(Path(":memory:"))
    await store.open()
    await seed_catalog(store)
    yield store
    await store.close()


@pytest.fixture
async def site_state(config, catalog):
    """Live site state with resolved handlers and catalog statistics."""
    site = load_site(config)
    handlers = resolve_handlers(
        HandlerContext(catalog=catalog, config=config),
        page_namespaces=[page.namespace for page in site.pages.values()],
        endpoint_namespaces=[endpoint.namespace for endpoint in site.endpoints.values()],
    )
    stats = CatalogStats(last_updated="2024-05-01T12:00:00+00:00", **await catalog.get_stats())
    return SiteState(dataclasses.replace(
        site,
        handlers=handlers,
        stats=stats,
        platforms=tuple(await catalog.find_all_platforms()),
    ))


@pytest.fixture
def portal_app(site_state, config):
    """The full aiohttp site application."""
    return create_app(site_state, config)


@pytest.fixture
def client(aiohttp_client, portal_app):
    """aiohttp test client wired to the site app."""
    return aiohttp_client(portal_app)
