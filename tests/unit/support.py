"""Shared setup for unit tests: in-memory SQLite catalog and row factories."""
import json
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "backend")))

# Must be set before cinematch.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TMDB_API_KEY"] = "test-key"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from cinematch.core.database import SessionLocal, engine  # noqa: E402
from cinematch.models import Base, Movie  # noqa: E402

GENRES = {
    28: "Action",
    12: "Adventure",
    35: "Comedy",
    18: "Drama",
    878: "Science Fiction",
}


def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def make_movie(db, tmdb_id, title, genre_ids=(), **fields):
    values = {
        "overview": f"{title} overview",
        "release_date": "2020-01-01",
        "runtime": 100,
        "vote_average": 6.0,
        "vote_count": 100,
        "original_language": "en",
        "adult": False,
        "popularity": 10.0,
    }
    values.update(fields)
    movie = Movie(
        tmdb_id=tmdb_id,
        title=title,
        genres=json.dumps([{"id": g, "name": GENRES.get(g, "Other")} for g in genre_ids]),
        **values,
    )
    db.add(movie)
    db.commit()
    db.refresh(movie)
    return movie


def tmdb_details(tmdb_id, title=None, **fields):
    """A TMDB /movie/{id} payload."""
    payload = {
        "id": tmdb_id,
        "title": title or f"Movie {tmdb_id}",
        "overview": "An overview",
        "poster_path": f"/poster{tmdb_id}.jpg",
        "backdrop_path": f"/backdrop{tmdb_id}.jpg",
        "release_date": "2023-05-17",
        "runtime": 118,
        "vote_average": 7.4,
        "vote_count": 1532,
        "genres": [{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}],
        "original_language": "en",
        "adult": False,
        "popularity": 85.123,
    }
    payload.update(fields)
    return payload


def tmdb_listing(ids, page=1, total_pages=1, total_results=None):
    """A TMDB paginated listing payload."""
    return {
        "page": page,
        "results": [{"id": i, "title": f"Movie {i}"} for i in ids],
        "total_pages": total_pages,
        "total_results": total_results if total_results is not None else len(ids),
    }
