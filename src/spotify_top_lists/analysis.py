from __future__ import annotations

import math
from typing import Iterable, Sequence

from spotify_top_lists.errors import InsufficientData
from spotify_top_lists.models import Artist, CorrelationMatrix, GenreAggregate, Track

FEATURE_KEYS: tuple[str, ...] = (
    "danceability",
    "energy",
    "valence",
    "tempo",
    "acousticness",
    "speechiness",
    "liveness",
)

GENRE_LIMIT = 10
_MS_PER_MINUTE = 60_000


def top_n(items: Sequence[dict], n: int) -> list[dict]:
    return list(items[:max(n, 0)])


def _ranked(aggregates: dict[str, GenreAggregate], limit: int) -> list[GenreAggregate]:
    # sorted() is stable, so ties keep first-seen (insertion) order.
    ranked = sorted(aggregates.values(), key=lambda agg: agg.total, reverse=True)
    return ranked[:limit]


def tally_genres(artists: Iterable[Artist], limit: int = GENRE_LIMIT) -> list[GenreAggregate]:
    """Count how many of the given artists carry each genre tag."""
    aggregates: dict[str, GenreAggregate] = {}
    for artist in artists:
        for genre in artist.genres:
            agg = aggregates.setdefault(genre, GenreAggregate(genre=genre, total=0))
            agg.total += 1
            if agg.image_url is None and artist.image_url:
                agg.image_url = artist.image_url
    return _ranked(aggregates, limit)


def genre_durations(
    tracks: Iterable[Track],
    artists: Iterable[Artist],
    limit: int = GENRE_LIMIT,
) -> list[GenreAggregate]:
    """Sum track durations (ms) per genre of each track's primary artist."""
    by_id = {artist.id: artist for artist in artists}
    aggregates: dict[str, GenreAggregate] = {}
    for track in tracks:
        if not track.artist_ids:
            continue
        primary = by_id.get(track.artist_ids[0])
        if primary is None:
            continue
        for genre in primary.genres:
            agg = aggregates.setdefault(genre, GenreAggregate(genre=genre, total=0))
            agg.total += track.duration_ms
            if agg.image_url is None and primary.image_url:
                agg.image_url = primary.image_url
    return _ranked(aggregates, limit)


def minutes_of(duration_ms: int) -> int:
    return duration_ms // _MS_PER_MINUTE


def _value(vector: dict, key: str) -> float:
    # Missing or null descriptors count as 0.0 rather than being excluded.
    raw = vector.get(key)
    return float(raw) if raw is not None else 0.0


def correlation_matrix(
    features: Iterable[dict | None],
    keys: Sequence[str] = FEATURE_KEYS,
) -> CorrelationMatrix:
    """Pearson correlation between every pair of audio descriptors.

    Tracks without feature data are dropped first. A descriptor whose values
    are all equal has zero variance and correlates 0.0 with everything,
    itself included. Entries are rounded to two decimals.
    """
    vectors = [f for f in features if f]
    if not vectors:
        raise InsufficientData("No audio features available for these tracks")

    columns = {key: [_value(v, key) for v in vectors] for key in keys}
    count = len(vectors)
    deviations = {}
    for key, column in columns.items():
        mean = math.fsum(column) / count
        deviations[key] = [x - mean for x in column]

    squares = {key: math.fsum(d * d for d in devs) for key, devs in deviations.items()}

    matrix: list[list[float]] = []
    for xi in keys:
        row = []
        for xj in keys:
            var_x = squares[xi]
            var_y = squares[xj]
            if var_x == 0 or var_y == 0:
                row.append(0.0)
                continue
            cov = math.fsum(dx * dy for dx, dy in zip(deviations[xi], deviations[xj]))
            corr = max(-1.0, min(1.0, cov / (math.sqrt(var_x) * math.sqrt(var_y))))
            # + 0.0 turns a rounded -0.0 into 0.0.
            row.append(round(corr, 2) + 0.0)
        matrix.append(row)

    return CorrelationMatrix(keys=list(keys), matrix=matrix)
