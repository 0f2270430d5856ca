from __future__ import annotations


class SpotifyTopListsError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthenticated(SpotifyTopListsError):
    status_code = 401

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class UpstreamError(SpotifyTopListsError):
    """A Spotify call failed.

    ``status`` is the upstream HTTP status, or 0 when the request never got a
    usable response (network failure, body that is not JSON).
    """

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        # 0 is not a valid HTTP status; report it as a bad gateway.
        self.status_code = status if status else 502

    def __repr__(self) -> str:
        return f"UpstreamError(status={self.status}, message={self.message!r})"


class InsufficientData(SpotifyTopListsError):
    status_code = 400
