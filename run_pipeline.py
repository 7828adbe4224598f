#!/usr/bin/env python
"""
Restaurant Directory Import Pipeline
Command line entry point for the import batch jobs and the HTTP server
"""
import sys
import json
import logging
import argparse
import time
from datetime import datetime
from typing import Dict, Any, Callable

from config import get_config, load_config, ConfigurationError
from utils.places_client import PlacesAPIError

# Logging configuration
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler('data_pipeline.log'),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)


def _database():
    from db import DirectoryDatabase
    return DirectoryDatabase()


def _print_result(result: Dict[str, Any]) -> None:
    print(json.dumps(result, indent=2, ensure_ascii=False))


def _run_pages(run_page: Callable[[int], Dict[str, Any]], start: int, cursor_key: str,
               run_all: bool) -> Dict[str, Any]:
    """Run one page, or keep following the cursor until the job reports no more work"""
    result = run_page(start)
    _print_result(result)
    while run_all and result.get('hasMore') and result.get(cursor_key) is not None:
        result = run_page(result[cursor_key])
        _print_result(result)
    return result


def cmd_seed_areas(args) -> int:
    from scripts.area_seeder import AreaSeeder
    seeder = AreaSeeder(_database())
    _run_pages(lambda start: seeder.run(start_index=start, batch_size=args.batch_size),
               args.start_index, 'nextIndex', args.all)
    return 0


def cmd_import_radius(args) -> int:
    from scripts.radius_importer import RadiusImporter
    importer = RadiusImporter(_database())
    _print_result(importer.run(args.lat, args.lng, args.radius))
    return 0


def cmd_refresh_photos(args) -> int:
    from scripts.photo_refresher import PhotoRefresher
    refresher = PhotoRefresher(_database())
    if args.restaurant_id:
        _print_result(refresher.run(restaurant_id=args.restaurant_id))
        return 0
    _run_pages(lambda offset: refresher.run(batch_size=args.batch_size, offset=offset),
               args.offset, 'nextOffset', args.all)
    return 0


def cmd_link_cuisines(args) -> int:
    from scripts.link_cuisines import CuisineLinker
    linker = CuisineLinker(_database())
    _run_pages(lambda offset: linker.run(batch_size=args.batch_size, offset=offset),
               args.offset, 'nextOffset', args.all)
    return 0


def cmd_serve(args) -> int:
    import uvicorn
    uvicorn.run("api.app:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Restaurant directory import pipeline')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--config', help='Path to config.json (defaults to DIRECTORY_CONFIG_PATH)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    seed = subparsers.add_parser('seed-areas', help='Import top restaurants for a slice of seed areas')
    seed.add_argument('--start-index', type=int, default=0, help='First seed area to process')
    seed.add_argument('--batch-size', type=int, default=5, help='Seed areas per invocation')
    seed.add_argument('--all', action='store_true', help='Continue until every seed area is processed')
    seed.set_defaults(func=cmd_seed_areas)

    radius = subparsers.add_parser('import-radius', help='Import restaurants around a coordinate')
    radius.add_argument('--lat', type=float, required=True, help='Latitude')
    radius.add_argument('--lng', type=float, required=True, help='Longitude')
    radius.add_argument('--radius', type=int, help='Search radius in meters (default from config.json)')
    radius.set_defaults(func=cmd_import_radius)

    photos = subparsers.add_parser('refresh-photos', help='Replace stored photos with fresh Google photos')
    photos.add_argument('--restaurant-id', help='Refresh a single restaurant')
    photos.add_argument('--batch-size', type=int, default=5, help='Restaurants per page')
    photos.add_argument('--offset', type=int, default=0, help='Page offset')
    photos.add_argument('--all', action='store_true', help='Continue until every restaurant is processed')
    photos.set_defaults(func=cmd_refresh_photos)

    cuisines = subparsers.add_parser('link-cuisines', help='Backfill cuisine links from Google place types')
    cuisines.add_argument('--batch-size', type=int, default=50, help='Restaurants per page')
    cuisines.add_argument('--offset', type=int, default=0, help='Page offset')
    cuisines.add_argument('--all', action='store_true', help='Continue until every restaurant is processed')
    cuisines.set_defaults(func=cmd_link_cuisines)

    serve = subparsers.add_parser('serve', help='Run the HTTP API')
    serve.add_argument('--host', default='0.0.0.0')
    serve.add_argument('--port', type=int, default=8000)
    serve.add_argument('--reload', action='store_true', help='Reload on code changes')
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    started = time.time()
    logger.info(f"🚀 STARTING {args.command.upper()} ({datetime.now().isoformat(timespec='seconds')})")

    try:
        if args.config:
            load_config(args.config)
        get_config()
        exit_code = args.func(args)
    except ConfigurationError as e:
        logger.error(f"❌ Configuration error: {e}")
        return 2
    except ValueError as e:
        logger.error(f"❌ {e}")
        return 2
    except PlacesAPIError as e:
        logger.error(f"❌ {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("⏹️ Interrupted by user")
        return 130

    logger.info(f"✅ {args.command} finished in {time.time() - started:.1f}s")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
