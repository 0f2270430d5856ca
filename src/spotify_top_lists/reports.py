"""Retrieval-and-aggregation routines, one per derived view.

Each routine takes an authenticated :class:`SpotifyService` and a
:class:`TimeWindow`, makes one or two upstream calls and returns plain
JSON-ready data. Upstream failures propagate as ``UpstreamError`` before any
aggregation happens.
"""
from __future__ import annotations

from typing import Any, Callable

from spotify_top_lists.analysis import (
    FEATURE_KEYS,
    correlation_matrix,
    genre_durations,
    minutes_of,
    tally_genres,
    top_n,
)
from spotify_top_lists.errors import InsufficientData
from spotify_top_lists.models import Artist, TimeWindow, Track
from spotify_top_lists.spotify_service import SpotifyService


def top_tracks(service: SpotifyService, window: TimeWindow, limit: int = SpotifyService.TOP_LIMIT) -> list[dict]:
    return top_n(service.top_tracks(window, limit=limit), limit)


def top_artists(service: SpotifyService, window: TimeWindow, limit: int = SpotifyService.TOP_LIMIT) -> list[dict]:
    return top_n(service.top_artists(window, limit=limit), limit)


def top_genres(service: SpotifyService, window: TimeWindow, limit: int = SpotifyService.TOP_LIMIT) -> list[dict]:
    items = service.top_artists(window, limit=SpotifyService.FETCH_LIMIT)
    artists = [Artist.from_item(item) for item in items if item and item.get("id")]
    return [
        {"genre": agg.genre, "imageUrl": agg.image_url}
        for agg in tally_genres(artists, limit=limit)
    ]


def genre_duration(service: SpotifyService, window: TimeWindow, limit: int = SpotifyService.TOP_LIMIT) -> list[dict]:
    items = service.top_tracks(window, limit=SpotifyService.FETCH_LIMIT)
    tracks = [Track.from_item(item) for item in items if item and item.get("id")]
    if not tracks:
        return []

    artist_ids = list(dict.fromkeys(aid for track in tracks for aid in track.artist_ids))
    artists = [Artist.from_item(item) for item in service.artists(artist_ids) if item.get("id")]
    return [
        {"genre": agg.genre, "minutes": minutes_of(agg.total)}
        for agg in genre_durations(tracks, artists, limit=limit)
    ]


def feature_correlation(service: SpotifyService, window: TimeWindow) -> dict[str, Any]:
    items = service.top_tracks(window, limit=SpotifyService.FETCH_LIMIT)
    track_ids = [item["id"] for item in items if item and item.get("id")]
    if not track_ids:
        raise InsufficientData("No top tracks found for this time range")

    features = service.audio_features(track_ids)
    return correlation_matrix(features, FEATURE_KEYS).to_dict()


VIEWS: dict[str, Callable[..., Any]] = {
    "top-tracks": top_tracks,
    "top-artists": top_artists,
    "top-genres": top_genres,
    "genre-duration": genre_duration,
    "feature-correlation": feature_correlation,
}

# Views that rank a list and accept a limit; the correlation matrix always spans every top track.
LIMITED_VIEWS = frozenset({"top-tracks", "top-artists", "top-genres", "genre-duration"})
