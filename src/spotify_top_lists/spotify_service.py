from __future__ import annotations

import logging
from typing import Iterable

import requests
from requests.exceptions import RequestException

from spotify_top_lists.errors import UpstreamError
from spotify_top_lists.models import TimeWindow

logger = logging.getLogger(__name__)

API_BASE = "https://api.spotify.com/v1"


def _chunks(ids: list[str], size: int) -> Iterable[list[str]]:
    for start in range(0, len(ids), size):
        yield ids[start:start + size]


def _error_message(body: object, fallback: str) -> str:
    if not isinstance(body, dict):
        return fallback
    error = body.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    # The accounts service uses the OAuth shape instead.
    if isinstance(error, str) and error:
        return str(body.get("error_description") or error)
    return fallback


class SpotifyService:
    """Thin bearer-token client for the Spotify Web API.

    Every method issues plain GETs and hands back the decoded JSON. There is
    no retry: a failed call raises :class:`UpstreamError` and the request that
    needed it is over.
    """

    TOP_LIMIT = 10
    FETCH_LIMIT = 50

    # Upstream caps for the batch lookup endpoints.
    _ARTISTS_PAGE_LIMIT = 50
    _FEATURES_PAGE_LIMIT = 100

    def __init__(self, access_token: str, session: requests.Session | None = None) -> None:
        if not access_token:
            raise ValueError("An access token is required")
        self.session = session or requests.Session()
        self._headers = {"Authorization": f"Bearer {access_token}"}

    def get_json(self, path: str, params: dict | None = None, fallback: str = "Spotify fetch failed") -> dict:
        url = path if path.startswith("http") else f"{API_BASE}{path}"
        try:
            response = self.session.get(url, headers=self._headers, params=params)
        except RequestException as exc:
            logger.warning("Spotify request to %s failed: %s", url, exc)
            raise UpstreamError(0, str(exc) or fallback) from exc

        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = None
            message = _error_message(body, fallback)
            logger.warning("Spotify returned %s for %s: %s", response.status_code, url, message)
            raise UpstreamError(response.status_code, message)

        try:
            body = response.json()
        except ValueError as exc:
            logger.warning("Spotify returned an undecodable body for %s", url)
            raise UpstreamError(0, f"Invalid JSON from Spotify: {exc}") from exc
        if not isinstance(body, dict):
            logger.warning("Spotify returned a non-object body for %s", url)
            raise UpstreamError(0, "Unexpected response from Spotify")
        return body

    def top_tracks(self, window: TimeWindow, limit: int = TOP_LIMIT) -> list[dict]:
        page = self.get_json(
            "/me/top/tracks",
            params={"limit": limit, "time_range": window.value},
            fallback="Failed to fetch top tracks",
        )
        return page.get("items") or []

    def top_artists(self, window: TimeWindow, limit: int = TOP_LIMIT) -> list[dict]:
        page = self.get_json(
            "/me/top/artists",
            params={"limit": limit, "time_range": window.value},
            fallback="Failed to fetch top artists",
        )
        return page.get("items") or []

    def artists(self, artist_ids: Iterable[str]) -> list[dict]:
        ids = list(artist_ids)
        artists: list[dict] = []
        for chunk in _chunks(ids, self._ARTISTS_PAGE_LIMIT):
            page = self.get_json(
                "/artists",
                params={"ids": ",".join(chunk)},
                fallback="Failed to fetch artists",
            )
            artists.extend(a for a in page.get("artists") or [] if a)
        return artists

    def audio_features(self, track_ids: Iterable[str]) -> list[dict | None]:
        """Return one entry per id, in order; unknown tracks come back as None."""
        ids = list(track_ids)
        features: list[dict | None] = []
        for chunk in _chunks(ids, self._FEATURES_PAGE_LIMIT):
            page = self.get_json(
                "/audio-features",
                params={"ids": ",".join(chunk)},
                fallback="Failed to fetch audio features",
            )
            features.extend(page.get("audio_features") or [])
        return features
