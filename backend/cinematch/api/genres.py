"""
genres.py - TMDB movie genre list
"""
from fastapi import APIRouter, HTTPException
import logging

from cinematch.services import tmdb_client

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/genres")
async def list_genres():
    try:
        return await tmdb_client.fetch_genres()
    except Exception as e:
        logger.error(f"Error fetching genres: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch genres")
