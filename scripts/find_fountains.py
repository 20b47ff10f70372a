"""
CLI entry point: find drinking fountains near a point.

Usage:
    python scripts/find_fountains.py --lat 40.7128 --lon -74.0060
    python scripts/find_fountains.py --lat 40.7128 --lon -74.0060 --radius-m 2000 --sort Name
    python scripts/find_fountains.py --lat 40.7128 --lon -74.0060 --search park --refresh
"""

import argparse
import json
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.data.schema import Coordinate, FountainCategory, SortOption
from src.fountains.config import FinderConfig
from src.fountains.repository import build_repository
from src.fountains.view import CollectionView


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Find nearby drinking-water fountains from OpenStreetMap",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/find_fountains.py --lat 40.7128 --lon -74.0060
  python scripts/find_fountains.py --lat 51.5074 --lon -0.1278 --category "Water Station"
  python scripts/find_fountains.py --lat 48.8566 --lon 2.3522 --limit 5 --refresh
        """,
    )
    parser.add_argument("--lat", type=float, required=True, help="Latitude of the search center")
    parser.add_argument("--lon", type=float, required=True, help="Longitude of the search center")
    parser.add_argument(
        "--radius-m", type=float, default=None,
        help="Search radius in meters (default: AQUAFINDER_RADIUS_M or 5000)",
    )
    parser.add_argument("--search", default="", help="Case-insensitive text filter")
    parser.add_argument(
        "--category", default=FountainCategory.ALL.value,
        choices=[c.value for c in FountainCategory],
        help="Category filter (default: All)",
    )
    parser.add_argument(
        "--sort", default=SortOption.DISTANCE.value,
        choices=[s.value for s in SortOption],
        help="Sort order (default: Distance)",
    )
    parser.add_argument("--limit", type=int, default=None, help="Print at most N fountains")
    parser.add_argument("--refresh", action="store_true", help="Ignore the cache and refetch")
    parser.add_argument("--cache-path", default=None, help="Override the cache file location")
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable verbose logging",
    )

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.radius_m is not None and args.radius_m <= 0:
        parser.error("--radius-m must be greater than 0")

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        center = Coordinate(latitude=args.lat, longitude=args.lon)
    except ValueError as e:
        print(f"ERROR: Invalid coordinate: {e}", file=sys.stderr)
        sys.exit(1)

    config = FinderConfig.from_env()
    if args.cache_path:
        config.cache_path = Path(args.cache_path).expanduser()
    radius_m = config.default_radius_m if args.radius_m is None else args.radius_m

    repository = build_repository(config)
    view = CollectionView(sort_option=SortOption(args.sort), user_location=center)
    view.search_text = args.search
    view.category = FountainCategory(args.category)
    visible = view.load_fountains(repository, center, radius_m, refresh=args.refresh)

    if view.error_message:
        print(f"ERROR: {view.error_message}", file=sys.stderr)
        sys.exit(2)

    if args.limit is not None:
        visible = visible[:args.limit]

    output = {
        "center": {"latitude": center.latitude, "longitude": center.longitude},
        "radius_m": radius_m,
        "total": len(view.visible),
        "fountains": [
            {
                "id": v.fountain.id,
                "name": v.fountain.name,
                "latitude": v.fountain.latitude,
                "longitude": v.fountain.longitude,
                "description": v.fountain.description,
                "is_operational": v.fountain.is_operational,
                "distance": v.formatted_distance,
            }
            for v in visible
        ],
    }
    print(json.dumps(output, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
