from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable, MutableMapping

from requests.exceptions import RequestException
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from spotify_top_lists.config import Settings
from spotify_top_lists.errors import Unauthenticated
from spotify_top_lists.models import REFRESH_ERROR, Credential

logger = logging.getLogger(__name__)

SCOPE = "user-top-read user-read-recently-played"
SESSION_KEY = "credential"
STATE_KEY = "oauth_state"

# Spotify access tokens live for an hour when the exchange omits expires_in.
_DEFAULT_LIFETIME_S = 3600


def build_oauth(settings: Settings) -> SpotifyOAuth:
    settings.require_client()
    return SpotifyOAuth(
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        redirect_uri=settings.redirect_uri,
        scope=SCOPE,
        show_dialog=True,
        cache_handler=MemoryCacheHandler(),
    )


def credential_from_token_info(token_info: dict, now: float | None = None) -> Credential:
    now = time.time() if now is None else now
    expires_at = token_info.get("expires_at")
    if not expires_at:
        expires_at = now + int(token_info.get("expires_in") or _DEFAULT_LIFETIME_S)
    return Credential(
        access_token=token_info["access_token"],
        expires_at=float(expires_at),
        refresh_token=token_info.get("refresh_token"),
    )


def refresh_credential(credential: Credential, oauth: SpotifyOAuth, now: float | None = None) -> Credential:
    """Exchange the refresh token for a new access token.

    Never raises: on failure the old credential comes back flagged with
    ``REFRESH_ERROR`` so the page can offer to sign in again.
    """
    now = time.time() if now is None else now
    logger.info("Access token expired, refreshing")
    try:
        token_info = oauth.refresh_access_token(credential.refresh_token)
    except (SpotifyOauthError, RequestException) as exc:
        logger.error("Error refreshing access token: %s", exc)
        return replace(credential, error=REFRESH_ERROR)

    return Credential(
        access_token=token_info["access_token"],
        expires_at=now + int(token_info.get("expires_in") or _DEFAULT_LIFETIME_S),
        refresh_token=token_info.get("refresh_token") or credential.refresh_token,
        error=None,
    )


def resolve_credential(
    session: MutableMapping,
    oauth_factory: Callable[[], SpotifyOAuth],
    now: float | None = None,
) -> Credential:
    credential = Credential.from_session(session.get(SESSION_KEY))
    if credential is None:
        raise Unauthenticated()

    if not credential.is_expired(now):
        return credential

    if credential.refresh_token:
        credential = refresh_credential(credential, oauth_factory(), now=now)
    else:
        # Nothing to refresh with; flag it so the page asks for a new sign-in.
        logger.info("Access token expired and no refresh token is held")
        credential = replace(credential, error=REFRESH_ERROR)
    session[SESSION_KEY] = credential.to_session()
    return credential
