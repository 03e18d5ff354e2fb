"""
ratings.py

API endpoints for user movie ratings (0.5 - 5.0 stars, one per user and movie).
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from cinematch import crud
from cinematch.core.auth import get_current_user
from cinematch.core.database import get_db
from cinematch.models import User
from cinematch.schemas import RatingCreate, RatingSchema, StatusResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=RatingSchema)
def rate_movie(
    payload: RatingCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Rate a movie; rating it again overwrites the previous value."""
    if not crud.get_movie(db, payload.movie_id):
        raise HTTPException(status_code=404, detail="Movie not found")
    try:
        return crud.rate_movie(db, user.id, payload.movie_id, payload.rating)
    except Exception as e:
        db.rollback()
        logger.error(f"Error rating movie: {e}")
        raise HTTPException(status_code=500, detail="Failed to rate movie")


@router.get("", response_model=List[RatingSchema])
def list_ratings(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """All of the user's ratings, most recently updated first."""
    try:
        return crud.get_user_ratings(db, user.id)
    except Exception as e:
        logger.error(f"Error getting user ratings: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch ratings")


@router.get("/{movie_id}", response_model=Optional[RatingSchema])
def get_rating(
    movie_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The user's rating for a movie, null if unrated."""
    try:
        return crud.get_user_rating(db, user.id, movie_id)
    except Exception as e:
        logger.error(f"Error fetching rating: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch rating")


@router.delete("/{movie_id}", response_model=StatusResponse)
def delete_rating(
    movie_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        crud.delete_rating(db, user.id, movie_id)
        return {"success": True}
    except Exception as e:
        db.rollback()
        logger.error(f"Error removing rating: {e}")
        raise HTTPException(status_code=500, detail="Failed to remove rating")
