from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Spotify returns album/artist images largest first; index 2 is the 64px one.
_THUMBNAIL_INDEX = 2

REFRESH_ERROR = "RefreshAccessTokenError"


class TimeWindow(str, Enum):
    SHORT = "short_term"
    MEDIUM = "medium_term"
    LONG = "long_term"

    @classmethod
    def parse(cls, value: str | None) -> "TimeWindow":
        if value is None or value == "":
            return cls.MEDIUM
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(w.value for w in cls)
            raise ValueError(f"Invalid time_range '{value}'. Expected one of: {allowed}") from None


def _thumbnail(images: list[dict] | None) -> str | None:
    images = images or []
    if len(images) > _THUMBNAIL_INDEX:
        return images[_THUMBNAIL_INDEX].get("url") or None
    return None


@dataclass(slots=True)
class Credential:
    access_token: str
    expires_at: float
    refresh_token: str | None = None
    error: str | None = None

    def is_expired(self, now: float | None = None) -> bool:
        now = time.time() if now is None else now
        return now >= self.expires_at

    def to_session(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "expires_at": self.expires_at,
            "refresh_token": self.refresh_token,
            "error": self.error,
        }

    @classmethod
    def from_session(cls, data: dict[str, Any] | None) -> "Credential | None":
        if not data or not data.get("access_token"):
            return None
        return cls(
            access_token=data["access_token"],
            expires_at=float(data.get("expires_at") or 0.0),
            refresh_token=data.get("refresh_token"),
            error=data.get("error"),
        )


@dataclass(slots=True)
class Track:
    id: str
    name: str
    artist_names: list[str]
    artist_ids: list[str]
    image_url: str | None = None
    duration_ms: int = 0

    @classmethod
    def from_item(cls, item: dict) -> "Track":
        artists = item.get("artists") or []
        return cls(
            id=item["id"],
            name=item.get("name", ""),
            artist_names=[a.get("name", "") for a in artists],
            artist_ids=[a["id"] for a in artists if a.get("id")],
            image_url=_thumbnail((item.get("album") or {}).get("images")),
            duration_ms=int(item.get("duration_ms") or 0),
        )


@dataclass(slots=True)
class Artist:
    id: str
    name: str
    image_url: str | None = None
    genres: list[str] = field(default_factory=list)

    @classmethod
    def from_item(cls, item: dict) -> "Artist":
        return cls(
            id=item["id"],
            name=item.get("name", ""),
            image_url=_thumbnail(item.get("images")),
            genres=list(item.get("genres") or []),
        )


@dataclass(slots=True)
class GenreAggregate:
    genre: str
    total: int
    image_url: str | None = None


@dataclass(slots=True)
class CorrelationMatrix:
    keys: list[str]
    matrix: list[list[float]]

    def to_dict(self) -> dict[str, Any]:
        return {"keys": list(self.keys), "matrix": [list(row) for row in self.matrix]}
