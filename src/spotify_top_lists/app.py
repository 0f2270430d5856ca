from __future__ import annotations

import argparse
import json
import os
import sys

from spotify_top_lists.config import env_int, load_local_env_file
from spotify_top_lists.errors import SpotifyTopListsError
from spotify_top_lists.models import TimeWindow
from spotify_top_lists.reports import LIMITED_VIEWS, VIEWS


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Spotify listening-history report")
    parser.add_argument(
        "--view",
        required=True,
        choices=sorted(VIEWS),
        help="Which derived view to print",
    )
    parser.add_argument(
        "--time-range",
        default=TimeWindow.MEDIUM.value,
        choices=[w.value for w in TimeWindow],
        help="Lookback window (defaults to medium_term)",
    )
    parser.add_argument(
        "--access-token",
        default=os.getenv("SPOTIFY_ACCESS_TOKEN"),
        help="User access token (defaults to SPOTIFY_ACCESS_TOKEN env)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=env_int("TOP_LIMIT", 10),
        help="Number of entries for list views; ignored by feature-correlation (defaults to TOP_LIMIT env or 10)",
    )
    return parser.parse_args(argv)


def run_view(args: argparse.Namespace, service: object) -> object:
    view = VIEWS[args.view]
    window = TimeWindow.parse(args.time_range)
    if args.view in LIMITED_VIEWS:
        return view(service, window, limit=args.limit)
    return view(service, window)


def main(argv: list[str] | None = None) -> int:
    load_local_env_file()
    args = parse_args(argv)
    if not args.access_token:
        print("No access token. Pass --access-token or set SPOTIFY_ACCESS_TOKEN.", file=sys.stderr)
        return 2

    from spotify_top_lists.spotify_service import SpotifyService

    service = SpotifyService(args.access_token)
    try:
        result = run_view(args, service)
    except SpotifyTopListsError as exc:
        print(f"Error ({exc.status_code}): {exc.message}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
