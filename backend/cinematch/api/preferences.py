"""
preferences.py - Per-user discovery preferences (genres, languages, age rating)
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
import logging

from cinematch import crud
from cinematch.core.auth import get_current_user
from cinematch.core.database import get_db
from cinematch.models import User
from cinematch.schemas import PreferencesSchema, PreferencesUpdate

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=Optional[PreferencesSchema])
def get_preferences(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return crud.get_user_preferences(db, user.id)
    except Exception as e:
        logger.error(f"Error fetching preferences: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch preferences")


@router.post("", response_model=PreferencesSchema)
def update_preferences(
    payload: PreferencesUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return crud.update_user_preferences(
            db,
            user.id,
            preferred_genres=payload.preferred_genres,
            preferred_languages=payload.preferred_languages,
            age_rating=payload.age_rating.value if payload.age_rating else None,
        )
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating preferences: {e}")
        raise HTTPException(status_code=500, detail="Failed to update preferences")
