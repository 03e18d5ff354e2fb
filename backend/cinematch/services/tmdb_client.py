"""
TMDB client for CineMatch.
- Async httpx client, one short-lived connection per call.
- API key and base URLs come from settings.
- No retries or backoff: any transport error or non-2xx response raises TMDBError
  and the caller decides what to do with it.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from cinematch.core.config import settings

logger = logging.getLogger(__name__)

POSTER_SIZES = ("w200", "w300", "w400", "w500", "w780", "original")
BACKDROP_SIZES = ("w300", "w780", "w1280", "original")


class TMDBError(Exception):
    """Raised when a TMDB request fails or TMDB is not configured."""
    pass


async def _get(endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict:
    api_key = settings.tmdb_api_key
    if not api_key:
        logger.warning("TMDB API key not configured")
        raise TMDBError("TMDB API key is required")

    query: Dict[str, Any] = {"api_key": api_key}
    for key, value in (params or {}).items():
        if value is not None and value != "":
            query[key] = value

    url = f"{settings.tmdb_base_url}{endpoint}"
    try:
        async with httpx.AsyncClient(timeout=settings.tmdb_timeout_seconds) as client:
            resp = await client.get(url, params=query)
            resp.raise_for_status()
            return resp.json()
    except httpx.HTTPStatusError as e:
        raise TMDBError(f"TMDB API error: {e.response.status_code} {e.response.reason_phrase}") from e
    except httpx.HTTPError as e:
        raise TMDBError(f"TMDB request to {endpoint} failed: {e}") from e


async def fetch_popular_movies(page: int = 1) -> Dict:
    return await _get("/movie/popular", {"page": page})


async def fetch_trending_movies(time_window: str = "week", page: int = 1) -> Dict:
    if time_window not in ("day", "week"):
        raise ValueError("time_window must be 'day' or 'week'")
    return await _get(f"/trending/movie/{time_window}", {"page": page})


async def fetch_top_rated_movies(page: int = 1) -> Dict:
    return await _get("/movie/top_rated", {"page": page})


async def fetch_now_playing_movies(page: int = 1) -> Dict:
    return await _get("/movie/now_playing", {"page": page})


async def fetch_upcoming_movies(page: int = 1) -> Dict:
    return await _get("/movie/upcoming", {"page": page})


async def discover_movies(
    page: int = 1,
    sort_by: str = "popularity.desc",
    original_language: Optional[str] = None,
    with_genres: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> Dict:
    """Discover movies with optional language and genre filters. Returns raw TMDB payload for the page."""
    params: Dict[str, Any] = {"page": page, "sort_by": sort_by}
    if original_language:
        params["with_original_language"] = original_language
    if with_genres:
        params["with_genres"] = with_genres
    if extra:
        params.update(extra)
    return await _get("/discover/movie", params)


async def fetch_movie_details(tmdb_id: int) -> Dict:
    return await _get(f"/movie/{tmdb_id}")


async def fetch_movie_videos(tmdb_id: int) -> List[Dict]:
    data = await _get(f"/movie/{tmdb_id}/videos")
    return data.get("results") or []


async def fetch_genres() -> Dict:
    return await _get("/genre/movie/list")


def pick_trailer(videos: List[Dict]) -> Optional[Dict]:
    """First official YouTube trailer, else the first YouTube trailer."""
    trailers = [v for v in videos if v.get("site") == "YouTube" and v.get("type") == "Trailer"]
    for video in trailers:
        if video.get("official"):
            return video
    return trailers[0] if trailers else None


async def get_youtube_trailer_url(tmdb_id: int, embed: bool = True) -> Optional[str]:
    """
    Fetch trailer URL from TMDB videos endpoint.
    Returns a YouTube embed (or watch) URL, or None when no trailer exists
    or the lookup fails.
    """
    try:
        videos = await fetch_movie_videos(tmdb_id)
    except TMDBError as e:
        logger.error(f"Error fetching trailer for movie {tmdb_id}: {e}")
        return None

    trailer = pick_trailer(videos)
    if not trailer or not trailer.get("key"):
        return None
    if embed:
        return f"https://www.youtube.com/embed/{trailer['key']}"
    return f"https://www.youtube.com/watch?v={trailer['key']}"


def get_image_url(path: Optional[str], size: str = "w500") -> Optional[str]:
    if not path:
        return None
    return f"{settings.tmdb_image_base_url}/{size}{path}"


def get_poster_url(path: Optional[str], size: str = "w500") -> Optional[str]:
    if size not in POSTER_SIZES:
        raise ValueError(f"Unsupported poster size: {size}")
    return get_image_url(path, size)


def get_backdrop_url(path: Optional[str], size: str = "w1280") -> Optional[str]:
    if size not in BACKDROP_SIZES:
        raise ValueError(f"Unsupported backdrop size: {size}")
    return get_image_url(path, size)
