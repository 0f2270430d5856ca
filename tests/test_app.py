import argparse
import io
import json
import os
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import patch

from spotify_top_lists.app import main, parse_args, run_view
from spotify_top_lists.errors import UpstreamError
from spotify_top_lists.models import TimeWindow


class _FakeService:
    def __init__(self, artists: list[dict] | None = None, error: Exception | None = None) -> None:
        self._artists = artists or []
        self._error = error
        self.windows: list[TimeWindow] = []

    def top_artists(self, window: TimeWindow, limit: int = 10) -> list[dict]:
        self.windows.append(window)
        if self._error:
            raise self._error
        return self._artists[:limit]

    def top_tracks(self, window: TimeWindow, limit: int = 10) -> list[dict]:
        self.windows.append(window)
        self.track_limit = limit
        return [{"id": "t1"}, {"id": "t2"}]

    def audio_features(self, track_ids: list[str]) -> list[dict]:
        return [{"energy": 0.2, "valence": 0.1}, {"energy": 0.8, "valence": 0.9}]


class AppTests(unittest.TestCase):
    def test_parse_args_defaults(self) -> None:
        with patch.dict(os.environ, {"SPOTIFY_ACCESS_TOKEN": "env-token"}):
            os.environ.pop("TOP_LIMIT", None)
            args = parse_args(["--view", "top-genres"])
        self.assertEqual(args.time_range, "medium_term")
        self.assertEqual(args.access_token, "env-token")
        self.assertEqual(args.limit, 10)

    def test_parse_args_rejects_unknown_view(self) -> None:
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit):
            parse_args(["--view", "playlists"])

    def test_run_view_uses_time_range_and_limit(self) -> None:
        artists = [{"id": f"a{i}", "name": "A", "genres": []} for i in range(5)]
        service = _FakeService(artists=artists)
        args = argparse.Namespace(view="top-artists", time_range="short_term", limit=3)

        result = run_view(args, service)

        self.assertEqual(len(result), 3)
        self.assertEqual(service.windows, [TimeWindow.SHORT])

    def test_run_view_correlation_ignores_limit(self) -> None:
        service = _FakeService()
        args = argparse.Namespace(view="feature-correlation", time_range="long_term", limit=3)

        result = run_view(args, service)

        self.assertEqual(service.track_limit, 50)
        self.assertEqual(service.windows, [TimeWindow.LONG])
        self.assertEqual(result["matrix"][1][2], 1.0)

    def test_main_without_token_exits_2(self) -> None:
        with patch.dict(os.environ, {}):
            os.environ.pop("SPOTIFY_ACCESS_TOKEN", None)
            stderr = io.StringIO()
            with redirect_stderr(stderr):
                code = main(["--view", "top-tracks"])
        self.assertEqual(code, 2)
        self.assertIn("access token", stderr.getvalue())

    def test_main_prints_json(self) -> None:
        service = _FakeService(artists=[{"id": "a1", "name": "A", "genres": ["pop"]}])
        stdout = io.StringIO()
        with patch("spotify_top_lists.spotify_service.SpotifyService", return_value=service), redirect_stdout(stdout):
            code = main(["--view", "top-genres", "--access-token", "tok"])
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(stdout.getvalue()), [{"genre": "pop", "imageUrl": None}])

    def test_main_reports_upstream_errors(self) -> None:
        service = _FakeService(error=UpstreamError(401, "The access token expired"))
        stderr = io.StringIO()
        with patch("spotify_top_lists.spotify_service.SpotifyService", return_value=service), redirect_stderr(stderr):
            code = main(["--view", "top-artists", "--access-token", "tok"])
        self.assertEqual(code, 1)
        self.assertIn("401", stderr.getvalue())


if __name__ == "__main__":
    unittest.main()
