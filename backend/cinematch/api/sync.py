"""
sync.py - On-demand TMDB sync endpoints
"""
from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
import logging

from cinematch import crud
from cinematch.core.database import get_db
from cinematch.schemas import MovieSchema, SyncRequest, SyncResult
from cinematch.services.tmdb_sync import SYNC_CATEGORIES, refresh_movie, sync_category

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/sync/{category}", response_model=SyncResult)
async def sync_listing(
    category: str,
    payload: Optional[SyncRequest] = Body(None),
    db: Session = Depends(get_db),
):
    """
    Make every movie of a TMDB listing resident locally.

    Movies already cached are returned untouched; only missing ones are
    fetched and inserted.
    """
    listing = SYNC_CATEGORIES.get(category)
    if listing is None:
        raise HTTPException(status_code=404, detail=f"Unknown sync category: {category}")
    payload = payload or SyncRequest()

    try:
        movies, total = await sync_category(db, category, page=payload.page, pages=payload.pages)
        return {"synced_movies": movies, "total": total}
    except Exception as e:
        db.rollback()
        logger.error(f"Error syncing {listing.label} movies: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to sync {listing.label} movies")


@router.post("/refresh/{movie_id}", response_model=MovieSchema)
async def refresh_cached_movie(movie_id: int, db: Session = Depends(get_db)):
    """Overwrite a cached movie with fresh TMDB details."""
    movie = crud.get_movie(db, movie_id)
    if not movie:
        raise HTTPException(status_code=404, detail="Movie not found")
    try:
        return await refresh_movie(db, movie)
    except Exception as e:
        db.rollback()
        logger.error(f"Error refreshing movie {movie_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to refresh movie")
