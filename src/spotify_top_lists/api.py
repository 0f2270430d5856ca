"""FastAPI web server for Spotify Top Lists."""
import logging
import os
import pathlib
import secrets

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse
from pydantic import BaseModel
from requests.exceptions import RequestException
from spotipy.oauth2 import SpotifyOauthError
from starlette.middleware.sessions import SessionMiddleware

from spotify_top_lists import reports
from spotify_top_lists.auth import SESSION_KEY, STATE_KEY, build_oauth, credential_from_token_info, resolve_credential
from spotify_top_lists.config import load_settings
from spotify_top_lists.errors import SpotifyTopListsError
from spotify_top_lists.models import Credential, TimeWindow
from spotify_top_lists.spotify_service import SpotifyService

logger = logging.getLogger(__name__)

_INDEX_HTML_PATH = pathlib.Path(__file__).parent.parent.parent / "index.html"


def _session_secret() -> str:
    secret = os.getenv("SESSION_SECRET")
    if secret:
        return secret
    logger.warning("SESSION_SECRET is not set; sessions will not survive a restart")
    return secrets.token_urlsafe(32)


app = FastAPI(title="Spotify Top Lists")
app.add_middleware(SessionMiddleware, secret_key=_session_secret(), same_site="lax")


# Response models
class GenreImage(BaseModel):
    genre: str
    imageUrl: str | None = None


class GenreMinutes(BaseModel):
    genre: str
    minutes: int


class CorrelationResponse(BaseModel):
    """Pearson correlations between audio descriptors, row/column order = keys."""
    keys: list[str]
    matrix: list[list[float]]


class SessionStatus(BaseModel):
    signedIn: bool
    error: str | None = None


@app.exception_handler(SpotifyTopListsError)
async def handle_domain_error(request: Request, exc: SpotifyTopListsError) -> JSONResponse:
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


def get_oauth():
    """Build the Spotify OAuth manager from the environment."""
    return build_oauth(load_settings())


def current_credential(request: Request) -> Credential:
    return resolve_credential(request.session, get_oauth)


def get_service(credential: Credential = Depends(current_credential)) -> SpotifyService:
    return SpotifyService(credential.access_token)


def time_window(
    time_range: TimeWindow = Query(default=TimeWindow.MEDIUM),
) -> TimeWindow:
    return time_range


@app.get("/")
def serve_index():
    """Serve the frontend HTML."""
    if _INDEX_HTML_PATH.exists():
        return FileResponse(str(_INDEX_HTML_PATH), media_type="text/html")
    return {"message": "Spotify Top Lists API is running. Sign in at /auth/login."}


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/auth/login")
def auth_login(request: Request):
    try:
        oauth = get_oauth()
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))

    state = secrets.token_urlsafe(16)
    request.session[STATE_KEY] = state
    return RedirectResponse(oauth.get_authorize_url(state=state))


@app.get("/auth/callback")
def auth_callback(request: Request, code: str = "", state: str = "", error: str = ""):
    saved_state = request.session.pop(STATE_KEY, None)
    if error:
        logger.info("Sign-in was not completed: %s", error)
        return RedirectResponse("/")
    if not code or not saved_state or state != saved_state:
        raise HTTPException(status_code=400, detail="Invalid OAuth state")

    try:
        oauth = get_oauth()
        token_info = oauth.get_access_token(code, check_cache=False)
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except (SpotifyOauthError, RequestException) as e:
        logger.warning("Token exchange failed: %s", e)
        raise HTTPException(status_code=502, detail="Token exchange failed")

    request.session[SESSION_KEY] = credential_from_token_info(token_info).to_session()
    return RedirectResponse("/")


@app.get("/auth/logout")
def auth_logout(request: Request):
    request.session.clear()
    return RedirectResponse("/")


@app.get("/api/session", response_model=SessionStatus)
def session_status(request: Request):
    credential = Credential.from_session(request.session.get(SESSION_KEY))
    if credential is None:
        return SessionStatus(signedIn=False)
    return SessionStatus(signedIn=True, error=credential.error)


@app.get("/api/spotify/top-tracks")
def get_top_tracks(
    window: TimeWindow = Depends(time_window),
    service: SpotifyService = Depends(get_service),
):
    return reports.top_tracks(service, window)


@app.get("/api/spotify/top-artists")
def get_top_artists(
    window: TimeWindow = Depends(time_window),
    service: SpotifyService = Depends(get_service),
):
    return reports.top_artists(service, window)


@app.get("/api/spotify/top-genres", response_model=list[GenreImage])
def get_top_genres(
    window: TimeWindow = Depends(time_window),
    service: SpotifyService = Depends(get_service),
):
    return reports.top_genres(service, window)


@app.get("/api/spotify/genre-duration", response_model=list[GenreMinutes])
def get_genre_duration(
    window: TimeWindow = Depends(time_window),
    service: SpotifyService = Depends(get_service),
):
    return reports.genre_duration(service, window)


@app.get("/api/spotify/feature-correlation", response_model=CorrelationResponse)
def get_feature_correlation(
    window: TimeWindow = Depends(time_window),
    service: SpotifyService = Depends(get_service),
):
    return reports.feature_correlation(service, window)
