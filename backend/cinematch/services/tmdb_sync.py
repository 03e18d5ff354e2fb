"""TMDB listing sync.

Pulls one TMDB listing (popular, trending, a regional discover query, ...) and
makes sure every listed movie is resident in the local catalog.

Design notes:
 - Insert-only: a movie already present locally is returned as-is and never
   refreshed by a sync. Refreshing a resident row is the separate, explicit
   `refresh_movie` operation.
 - Full details are fetched only for movies not yet resident.
 - No retries and no partial results: the first TMDB failure aborts the call.
 - The unique tmdb_id constraint is the only guard against concurrent syncs; a
   lost insert race is resolved by re-reading the winner's row.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Tuple
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cinematch import crud
from cinematch.core.config import settings
from cinematch.models import Movie
from cinematch.services import tmdb_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncCategory:
    name: str
    label: str
    fetch_page: Callable[[int], Awaitable[Dict]]


def _discover_language(language: str) -> Callable[[int], Awaitable[Dict]]:
    async def fetch(page: int) -> Dict:
        return await tmdb_client.discover_movies(page=page, original_language=language, sort_by="popularity.desc")
    return fetch


# Listing lookups go through the module attribute so tests can patch tmdb_client
SYNC_CATEGORIES: Dict[str, SyncCategory] = {
    "popular": SyncCategory("popular", "popular", lambda page: tmdb_client.fetch_popular_movies(page)),
    "top_rated": SyncCategory("top_rated", "top rated", lambda page: tmdb_client.fetch_top_rated_movies(page)),
    "now_playing": SyncCategory("now_playing", "now playing", lambda page: tmdb_client.fetch_now_playing_movies(page)),
    "upcoming": SyncCategory("upcoming", "upcoming", lambda page: tmdb_client.fetch_upcoming_movies(page)),
    "trending": SyncCategory("trending", "trending", lambda page: tmdb_client.fetch_trending_movies("week", page)),
    "bollywood": SyncCategory("bollywood", "Bollywood", _discover_language("hi")),
    "korean": SyncCategory("korean", "Korean", _discover_language("ko")),
    "anime": SyncCategory("anime", "anime", _discover_language("ja")),
}


def movie_values_from_tmdb(details: Dict) -> Dict:
    """Map a TMDB movie-details payload onto Movie columns."""
    genres = [
        {"id": int(g["id"]), "name": g.get("name") or ""}
        for g in (details.get("genres") or [])
        if isinstance(g, dict) and g.get("id") is not None
    ]
    return {
        "tmdb_id": details["id"],
        "title": details.get("title") or details.get("original_title") or "",
        "overview": details.get("overview"),
        "poster_path": details.get("poster_path"),
        "backdrop_path": details.get("backdrop_path"),
        # TMDB uses "" for unknown release dates
        "release_date": details.get("release_date") or None,
        "runtime": details.get("runtime"),
        "vote_average": details.get("vote_average"),
        "vote_count": details.get("vote_count"),
        "genres": genres,
        "original_language": details.get("original_language"),
        "adult": bool(details.get("adult", False)),
        "popularity": details.get("popularity"),
    }


async def ensure_movie(db: Session, tmdb_id: int) -> Tuple[Movie, bool]:
    """Return the local row for tmdb_id, inserting it from TMDB details if absent.

    The boolean is True when a row was inserted by this call.
    """
    movie = crud.get_movie_by_tmdb_id(db, tmdb_id)
    if movie is not None:
        return movie, False

    details = await tmdb_client.fetch_movie_details(tmdb_id)
    try:
        return crud.create_movie(db, movie_values_from_tmdb(details)), True
    except IntegrityError:
        db.rollback()
        movie = crud.get_movie_by_tmdb_id(db, tmdb_id)
        if movie is None:
            raise
        logger.info(f"Movie tmdb_id={tmdb_id} was inserted concurrently, using existing row")
        return movie, False


async def sync_category(db: Session, category: str, page: int = 1, pages: int = 1) -> Tuple[List[Movie], int]:
    """Sync `pages` listing pages starting at `page`.

    Returns the resident rows in listing order (each movie once) and TMDB's
    reported total_results for the listing.
    """
    if category not in SYNC_CATEGORIES:
        raise ValueError(f"Unknown sync category: {category}")
    listing = SYNC_CATEGORIES[category]
    pages = max(1, min(pages, settings.sync_max_pages))

    synced: List[Movie] = []
    seen = set()
    inserted = 0
    total: Optional[int] = None

    for current in range(page, page + pages):
        data = await listing.fetch_page(current)
        if total is None:
            total = int(data.get("total_results") or 0)

        for item in data.get("results") or []:
            tmdb_id = item.get("id")
            if tmdb_id is None or tmdb_id in seen:
                continue
            seen.add(tmdb_id)
            movie, created = await ensure_movie(db, tmdb_id)
            inserted += int(created)
            synced.append(movie)

        total_pages = data.get("total_pages")
        if total_pages is not None and current >= int(total_pages):
            break

    logger.info(f"Synced {listing.label} movies: {len(synced)} resident, {inserted} inserted (pages {page}-{current})")
    return synced, total or 0


async def refresh_movie(db: Session, movie: Movie) -> Movie:
    """Re-fetch TMDB details for a resident movie and overwrite its row."""
    details = await tmdb_client.fetch_movie_details(movie.tmdb_id)
    values = movie_values_from_tmdb(details)
    values.pop("tmdb_id", None)
    return crud.update_movie(db, movie.id, values)
