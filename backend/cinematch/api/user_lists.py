"""
user_lists.py

Watchlist and favorites endpoints. Both are (user, movie) relation tables with
the same contract, so one router builder serves both.
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
import logging

from cinematch import crud
from cinematch.core.auth import get_current_user
from cinematch.core.config import settings
from cinematch.core.database import get_db
from cinematch.models import User
from cinematch.schemas import ListEntrySchema, MoviePage, MovieRef, StatusResponse

logger = logging.getLogger(__name__)


def build_list_router(label: str, status_key: str, add, remove, list_movies, contains) -> APIRouter:
    router = APIRouter()

    @router.get("", response_model=MoviePage)
    def get_entries(
        page: int = Query(1, ge=1),
        limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ):
        try:
            movies, total = list_movies(db, user.id, page, limit)
            return {"movies": movies, "total": total}
        except Exception as e:
            logger.error(f"Error fetching {label}: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to fetch {label}")

    @router.post("", response_model=ListEntrySchema)
    def add_entry(
        payload: MovieRef,
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ):
        if not crud.get_movie(db, payload.movie_id):
            raise HTTPException(status_code=404, detail="Movie not found")
        try:
            return add(db, user.id, payload.movie_id)
        except Exception as e:
            db.rollback()
            logger.error(f"Error adding to {label}: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to add to {label}")

    @router.delete("/{movie_id}", response_model=StatusResponse)
    def remove_entry(
        movie_id: int,
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ):
        try:
            remove(db, user.id, movie_id)
            return {"success": True}
        except Exception as e:
            db.rollback()
            logger.error(f"Error removing from {label}: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to remove from {label}")

    @router.get("/{movie_id}/status")
    def entry_status(
        movie_id: int,
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ):
        try:
            return {status_key: contains(db, user.id, movie_id)}
        except Exception as e:
            logger.error(f"Error checking {label} status: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to check {label} status")

    return router


watchlist_router = build_list_router(
    "watchlist",
    "inWatchlist",
    add=crud.add_to_watchlist,
    remove=crud.remove_from_watchlist,
    list_movies=crud.get_user_watchlist,
    contains=crud.is_in_watchlist,
)

favorites_router = build_list_router(
    "favorites",
    "inFavorites",
    add=crud.add_to_favorites,
    remove=crud.remove_from_favorites,
    list_movies=crud.get_user_favorites,
    contains=crud.is_in_favorites,
)
