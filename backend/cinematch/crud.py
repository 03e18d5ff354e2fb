"""
crud.py

Storage operations on the local catalog and the per-user tables.
Every function takes the request's Session; callers own commit/rollback on failure.
"""
from typing import Dict, List, Optional, Tuple
import json
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models
from .schemas import MovieFilter
from .services import movie_query
from .utils.timezone import utc_now

logger = logging.getLogger(__name__)

MOVIE_FIELDS = (
    "tmdb_id", "title", "overview", "poster_path", "backdrop_path", "release_date",
    "runtime", "vote_average", "vote_count", "genres", "original_language", "adult", "popularity",
)
USER_FIELDS = ("email", "first_name", "last_name", "profile_image_url")


# ------------------------- Users -------------------------
def _write_user(db: Session, user_id: str, values: Dict) -> models.User:
    user = db.get(models.User, user_id)
    if user is None:
        user = models.User(id=user_id, **values)
        db.add(user)
        db.commit()
        return user
    changed = False
    for key, value in values.items():
        if getattr(user, key) != value:
            setattr(user, key, value)
            changed = True
    if changed:
        user.updated_at = utc_now()
        db.commit()
    return user


def upsert_user(db: Session, user_id: str, **fields) -> models.User:
    """Insert the user or overwrite its profile fields, keyed by identity id.

    An email already owned by another identity is not reassigned; the rest of
    the profile is still saved.
    """
    values = {k: v for k, v in fields.items() if k in USER_FIELDS}
    try:
        user = _write_user(db, user_id, values)
    except IntegrityError:
        db.rollback()
        email = values.get("email")
        owner = None
        if email:
            owner = db.scalars(
                select(models.User).where(models.User.email == email, models.User.id != user_id)
            ).first()
        if owner is not None:
            logger.warning(f"Email {email} already belongs to user {owner.id}, not assigning it to {user_id}")
            values.pop("email")
            user = _write_user(db, user_id, values)
        else:
            # Concurrent first request for the same identity
            user = db.get(models.User, user_id)
            if user is None:
                raise
    db.refresh(user)
    return user


# ------------------------- Movies ------------------------
def get_movie(db: Session, movie_id: int) -> Optional[models.Movie]:
    return db.get(models.Movie, movie_id)


def get_movie_by_tmdb_id(db: Session, tmdb_id: int) -> Optional[models.Movie]:
    return db.scalars(select(models.Movie).where(models.Movie.tmdb_id == tmdb_id)).first()


def _movie_values(data: Dict) -> Dict:
    values = {k: v for k, v in data.items() if k in MOVIE_FIELDS}
    if isinstance(values.get("genres"), list):
        values["genres"] = json.dumps(values["genres"])
    return values


def create_movie(db: Session, data: Dict) -> models.Movie:
    movie = models.Movie(**_movie_values(data))
    db.add(movie)
    db.commit()
    db.refresh(movie)
    return movie


def update_movie(db: Session, movie_id: int, data: Dict) -> Optional[models.Movie]:
    """Overwrite the given fields of a cached movie. The sync routine never calls this."""
    movie = db.get(models.Movie, movie_id)
    if movie is None:
        return None
    for key, value in _movie_values(data).items():
        setattr(movie, key, value)
    movie.updated_at = utc_now()
    db.commit()
    db.refresh(movie)
    return movie


def get_movies(db: Session, filters: MovieFilter) -> Tuple[List[models.Movie], int]:
    return movie_query.query_movies(db, filters)


def search_movies(db: Session, query: str, page: int = 1, limit: int = 20) -> Tuple[List[models.Movie], int]:
    page_stmt, count_stmt = movie_query.build_search_queries(query, page, limit)
    return movie_query.execute_page(db, page_stmt, count_stmt)


def get_trending_movies(db: Session, limit: int = 10) -> List[models.Movie]:
    stmt = select(models.Movie).order_by(models.Movie.popularity.desc().nulls_last(), models.Movie.id.asc()).limit(limit)
    return list(db.scalars(stmt).all())


# ------------------- Watchlist / Favorites -------------------
def _add_entry(db: Session, model, user_id: str, movie_id: int):
    existing = _get_entry(db, model, user_id, movie_id)
    if existing:
        return existing
    entry = model(user_id=user_id, movie_id=movie_id)
    db.add(entry)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against an identical insert; the row exists either way
        db.rollback()
        existing = _get_entry(db, model, user_id, movie_id)
        if existing is None:
            raise
        return existing
    db.refresh(entry)
    return entry


def _get_entry(db: Session, model, user_id: str, movie_id: int):
    return db.scalars(
        select(model).where(model.user_id == user_id, model.movie_id == movie_id)
    ).first()


def _remove_entry(db: Session, model, user_id: str, movie_id: int) -> None:
    db.query(model).filter(model.user_id == user_id, model.movie_id == movie_id).delete()
    db.commit()


def _list_entries(db: Session, model, user_id: str, page: int, limit: int) -> Tuple[List[models.Movie], int]:
    page_stmt = movie_query.paginate(
        select(models.Movie)
        .join(model, model.movie_id == models.Movie.id)
        .where(model.user_id == user_id)
        .order_by(model.created_at.desc(), model.id.desc()),
        page,
        limit,
    )
    count_stmt = select(func.count()).select_from(model).where(model.user_id == user_id)
    return movie_query.execute_page(db, page_stmt, count_stmt)


def add_to_watchlist(db: Session, user_id: str, movie_id: int) -> models.WatchlistEntry:
    return _add_entry(db, models.WatchlistEntry, user_id, movie_id)


def remove_from_watchlist(db: Session, user_id: str, movie_id: int) -> None:
    _remove_entry(db, models.WatchlistEntry, user_id, movie_id)


def get_user_watchlist(db: Session, user_id: str, page: int = 1, limit: int = 20):
    return _list_entries(db, models.WatchlistEntry, user_id, page, limit)


def is_in_watchlist(db: Session, user_id: str, movie_id: int) -> bool:
    return _get_entry(db, models.WatchlistEntry, user_id, movie_id) is not None


def add_to_favorites(db: Session, user_id: str, movie_id: int) -> models.Favorite:
    return _add_entry(db, models.Favorite, user_id, movie_id)


def remove_from_favorites(db: Session, user_id: str, movie_id: int) -> None:
    _remove_entry(db, models.Favorite, user_id, movie_id)


def get_user_favorites(db: Session, user_id: str, page: int = 1, limit: int = 20):
    return _list_entries(db, models.Favorite, user_id, page, limit)


def is_in_favorites(db: Session, user_id: str, movie_id: int) -> bool:
    return _get_entry(db, models.Favorite, user_id, movie_id) is not None


# ------------------------- Ratings -------------------------
def rate_movie(db: Session, user_id: str, movie_id: int, rating: float) -> models.Rating:
    """Create the rating or overwrite the existing one for (user, movie)."""
    existing = get_user_rating(db, user_id, movie_id)
    if existing:
        existing.rating = rating
        existing.updated_at = utc_now()
        db.commit()
        db.refresh(existing)
        return existing

    new_rating = models.Rating(user_id=user_id, movie_id=movie_id, rating=rating)
    db.add(new_rating)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = get_user_rating(db, user_id, movie_id)
        if existing is None:
            raise
        existing.rating = rating
        existing.updated_at = utc_now()
        db.commit()
        db.refresh(existing)
        return existing
    db.refresh(new_rating)
    return new_rating


def get_user_rating(db: Session, user_id: str, movie_id: int) -> Optional[models.Rating]:
    return db.scalars(
        select(models.Rating).where(models.Rating.user_id == user_id, models.Rating.movie_id == movie_id)
    ).first()


def get_user_ratings(db: Session, user_id: str) -> List[models.Rating]:
    stmt = (
        select(models.Rating)
        .where(models.Rating.user_id == user_id)
        .order_by(models.Rating.updated_at.desc(), models.Rating.id.desc())
    )
    return list(db.scalars(stmt).all())


def delete_rating(db: Session, user_id: str, movie_id: int) -> None:
    db.query(models.Rating).filter(
        models.Rating.user_id == user_id, models.Rating.movie_id == movie_id
    ).delete()
    db.commit()


# ---------------------- Preferences ----------------------
def get_user_preferences(db: Session, user_id: str) -> Optional[models.UserPreferences]:
    return db.scalars(
        select(models.UserPreferences).where(models.UserPreferences.user_id == user_id)
    ).first()


def update_user_preferences(
    db: Session,
    user_id: str,
    preferred_genres: Optional[List[int]] = None,
    preferred_languages: Optional[List[str]] = None,
    age_rating: Optional[str] = None,
) -> models.UserPreferences:
    """Upsert the user's single preferences row. None leaves a field unchanged."""
    prefs = get_user_preferences(db, user_id)
    if prefs is None:
        prefs = models.UserPreferences(user_id=user_id)
        db.add(prefs)
    if preferred_genres is not None:
        prefs.preferred_genres = json.dumps(preferred_genres)
    if preferred_languages is not None:
        prefs.preferred_languages = json.dumps(preferred_languages)
    if age_rating is not None:
        prefs.age_rating = age_rating
    prefs.updated_at = utc_now()
    db.commit()
    db.refresh(prefs)
    return prefs
