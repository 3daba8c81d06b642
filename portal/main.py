#!/usr/bin/env python3
"""
Catalog Portal

Main entry point. Loads the site, opens the catalog, and serves the site
until interrupted, syncing the catalog from FPFSS in the background.

    python -m portal.main [--config PATH] [--build]
"""

import argparse
import asyncio
import dataclasses
import logging
import signal
import sys
from pathlib import Path

from portal.access_log import access_log
from portal.catalog import CatalogStore, CatalogSync
from portal.config import Config, resolve_path
from portal.errors import SiteConfigError
from portal.handlers import resolve_handlers
from portal.handlers.base import HandlerContext
from portal.site import SiteState, load_site
from portal.web.server import WebServer

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("portal")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve the catalog portal.")
    parser.add_argument("--config", type=Path, default=None, help="path to the YAML config file")
    parser.add_argument("--build", action="store_true", help="sync the catalog database and exit")
    return parser.parse_args(argv)


def marker_path(config: Config) -> Path:
    """File holding the time of the last successful catalog sync."""
    return config.database_path.with_suffix(".updated")


async def build(config: Config) -> None:
    """Sync the catalog database once."""
    store = CatalogStore(config.database_path)
    await store.open()
    sync = CatalogSync(store, config.catalog.fpfss_url, marker_path(config))
    try:
        await sync.run_once()
    finally:
        await sync.stop()
        await store.close()


async def serve(config: Config) -> None:
    """Run the site until SIGINT/SIGTERM."""
    site_name = config.site_name
    access_log.start(site_name)

    first_start = not config.database_path.exists()
    store = CatalogStore(config.database_path)
    await store.open()
    logger.info(f"Catalog store opened: {config.database_path}")

    try:
        # Load the site and resolve its namespace handlers once
        site = load_site(config)
        handlers = resolve_handlers(
            HandlerContext(catalog=store, config=config),
            page_namespaces=[page.namespace for page in site.pages.values()],
            endpoint_namespaces=[endpoint.namespace for endpoint in site.endpoints.values()],
        )
        state = SiteState(dataclasses.replace(site, handlers=handlers))
    except SiteConfigError:
        await store.close()
        raise

    sync = CatalogSync(
        store,
        config.catalog.fpfss_url,
        marker_path(config),
        state=state,
        interval=config.catalog.sync_interval,
    )
    web_server = WebServer(state, config)

    # Set up graceful shutdown
    shutdown_event = asyncio.Event()

    def handle_shutdown(sig: signal.Signals) -> None:
        logger.info(f"Received {sig.name}, initiating shutdown...")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_shutdown, sig)

    try:
        if first_start:
            logger.info("No catalog database yet, building it before serving")
            await sync.run_once()
        else:
            await sync.publish()

        await sync.start()
        await web_server.start()

        logger.info("")
        logger.info(f"{site_name} is running!")
        logger.info(f"   Languages: {', '.join(state.current.locales)}")
        logger.info(f"   Pages:     {', '.join(state.current.pages)}")
        logger.info("")
        logger.info("Press Ctrl+C to stop")

        await shutdown_event.wait()

    except Exception as e:
        logger.exception(f"Error running {site_name}: {e}")
    finally:
        async def _cleanup() -> None:
            """Shut down in reverse order."""
            await web_server.stop()
            await sync.stop()
            await store.close()

        try:
            await asyncio.wait_for(_cleanup(), timeout=8.0)
        except asyncio.TimeoutError:
            logger.warning("Cleanup timed out after 8s, exiting anyway")
        except Exception:
            logger.exception("Error during cleanup")

        access_log.stop(site_name)
        logger.info(f"{site_name} stopped.")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    config = Config.load(args.config)

    access_log.configure(
        log_file=resolve_path(config.logging.file) if config.logging.file else None,
        console=config.logging.console,
        log_blocked=config.logging.log_blocked_requests,
    )

    try:
        if args.build:
            asyncio.run(build(config))
        else:
            asyncio.run(serve(config))
    except SiteConfigError as e:
        logger.error(f"Site configuration error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
