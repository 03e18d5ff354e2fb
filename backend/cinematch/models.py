"""
models.py

SQLAlchemy models for the local movie catalog and per-user lists:
User, Movie, WatchlistEntry, Favorite, Rating and UserPreferences.
"""
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, Numeric, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship

from cinematch.utils.timezone import utc_now

Base = declarative_base()


class User(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True)  # identity provider subject
    email = Column(String, unique=True, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    profile_image_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)


class Movie(Base):
    """Locally cached TMDB movie.

    Rows are inserted by the sync routine the first time a TMDB id is seen and
    are never deleted by the application.
    """
    __tablename__ = "movies"

    id = Column(Integer, primary_key=True)
    tmdb_id = Column(Integer, unique=True, nullable=False, index=True)
    title = Column(String, nullable=False, index=True)
    overview = Column(Text)
    poster_path = Column(String)
    backdrop_path = Column(String)
    release_date = Column(String, index=True)  # YYYY-MM-DD
    runtime = Column(Integer)
    vote_average = Column(Numeric(3, 1, asdecimal=False), index=True)
    vote_count = Column(Integer)
    genres = Column(Text)  # JSON array of {"id": int, "name": str}
    original_language = Column(String, index=True)
    adult = Column(Boolean, default=False)
    popularity = Column(Numeric(10, 3, asdecimal=False), index=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)


class WatchlistEntry(Base):
    __tablename__ = "watchlist"
    id = Column(Integer, primary_key=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    movie_id = Column(Integer, ForeignKey("movies.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, index=True)

    movie = relationship("Movie")

    __table_args__ = (UniqueConstraint('user_id', 'movie_id', name='uq_watchlist_user_movie'),)


class Favorite(Base):
    __tablename__ = "favorites"
    id = Column(Integer, primary_key=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    movie_id = Column(Integer, ForeignKey("movies.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, index=True)

    movie = relationship("Movie")

    __table_args__ = (UniqueConstraint('user_id', 'movie_id', name='uq_favorites_user_movie'),)


class Rating(Base):
    __tablename__ = "ratings"
    id = Column(Integer, primary_key=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    movie_id = Column(Integer, ForeignKey("movies.id"), nullable=False)
    rating = Column(Numeric(2, 1, asdecimal=False), nullable=False)  # 0.5 - 5.0
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    # Ensure one rating per user per movie
    __table_args__ = (UniqueConstraint('user_id', 'movie_id', name='uq_ratings_user_movie'),)


class UserPreferences(Base):
    __tablename__ = "user_preferences"
    id = Column(Integer, primary_key=True)
    user_id = Column(String, ForeignKey("users.id"), unique=True, nullable=False)
    preferred_genres = Column(Text)  # JSON array of TMDB genre ids
    preferred_languages = Column(Text)  # JSON array of ISO 639-1 codes
    age_rating = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)
