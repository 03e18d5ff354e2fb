"""
movies.py - Catalog browsing endpoints (filter, search, trending, details, trailer)
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from cinematch import crud
from cinematch.core.config import settings
from cinematch.core.database import get_db
from cinematch.schemas import MovieFilter, MoviePage, MovieSchema, TrailerSchema
from cinematch.services import tmdb_client

logger = logging.getLogger(__name__)
router = APIRouter()


def split_list_param(values: Optional[List[str]]) -> Optional[List[str]]:
    """Accept both ?genres=28&genres=12 and ?genres=28,12."""
    if not values:
        return None
    items = [part.strip() for value in values for part in value.split(",") if part.strip()]
    return items or None


@router.get("", response_model=MoviePage)
def list_movies(
    genres: Optional[List[str]] = Query(None, description="TMDB genre ids"),
    regions: Optional[List[str]] = Query(None, description="Original language codes"),
    release_year_from: Optional[int] = Query(None, alias="releaseYearFrom"),
    release_year_to: Optional[int] = Query(None, alias="releaseYearTo"),
    rating_min: Optional[float] = Query(None, alias="ratingMin"),
    rating_max: Optional[float] = Query(None, alias="ratingMax"),
    runtime: Optional[str] = Query(None),
    age_rating: Optional[List[str]] = Query(None, alias="ageRating"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    page: int = Query(1),
    limit: int = Query(settings.default_page_size),
    db: Session = Depends(get_db),
):
    """Filtered, sorted, paginated catalog listing with the unpaginated total."""
    try:
        filters = MovieFilter(
            genres=split_list_param(genres),
            regions=split_list_param(regions),
            release_year_from=release_year_from,
            release_year_to=release_year_to,
            rating_min=rating_min,
            rating_max=rating_max,
            runtime=runtime,
            age_rating=split_list_param(age_rating),
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            limit=limit,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid movie filter: {e.errors(include_url=False)}")

    try:
        movies, total = crud.get_movies(db, filters)
        return {"movies": movies, "total": total}
    except Exception as e:
        logger.error(f"Error fetching movies: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch movies")


@router.get("/search", response_model=MoviePage)
def search_movies(
    q: Optional[str] = Query(None, description="Search query"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
):
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Search query is required")
    try:
        movies, total = crud.search_movies(db, q.strip(), page, limit)
        return {"movies": movies, "total": total}
    except Exception as e:
        logger.error(f"Error searching movies: {e}")
        raise HTTPException(status_code=500, detail="Failed to search movies")


@router.get("/trending", response_model=List[MovieSchema])
def trending_movies(
    limit: int = Query(10, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
):
    try:
        return crud.get_trending_movies(db, limit)
    except Exception as e:
        logger.error(f"Error fetching trending movies: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch trending movies")


@router.get("/{movie_id}", response_model=MovieSchema)
def get_movie(movie_id: int, db: Session = Depends(get_db)):
    try:
        movie = crud.get_movie(db, movie_id)
    except Exception as e:
        logger.error(f"Error fetching movie {movie_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch movie")
    if not movie:
        raise HTTPException(status_code=404, detail="Movie not found")
    return movie


@router.get("/{movie_id}/trailer", response_model=TrailerSchema)
async def get_movie_trailer(movie_id: int, db: Session = Depends(get_db)):
    """YouTube embed URL for the movie's trailer, null when TMDB has none."""
    try:
        movie = crud.get_movie(db, movie_id)
        if not movie:
            raise HTTPException(status_code=404, detail="Movie not found")
        trailer_url = await tmdb_client.get_youtube_trailer_url(movie.tmdb_id)
        return {"trailer_url": trailer_url}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching movie trailer: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch movie trailer")
