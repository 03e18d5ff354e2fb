"""
movie_query.py

Translates a MovieFilter into SQL for the local catalog.

Every filter field that is present adds exactly one predicate; the predicates
are AND-ed together. The page query and the count query are built from the
same predicate list so `total` always matches the unpaginated result.
"""
import logging
from typing import List, Tuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from cinematch.models import Movie
from cinematch.schemas import AgeRating, MovieFilter, RuntimeBucket, SortKey, SortOrder

logger = logging.getLogger(__name__)

DEFAULT_SORT = SortKey.POPULARITY
DEFAULT_ORDER = SortOrder.DESC

SORT_COLUMNS = {
    SortKey.POPULARITY: Movie.popularity,
    SortKey.RATING: Movie.vote_average,
    SortKey.RELEASE_DATE: Movie.release_date,
    SortKey.TITLE: Movie.title,
}

# Only the adult flag is stored locally, so age ratings collapse onto it
ADULT_BY_AGE_RATING = {
    AgeRating.G: False,
    AgeRating.PG: False,
    AgeRating.PG_13: False,
    AgeRating.R: False,
    AgeRating.NC_17: True,
}


def genre_pattern(genre_id: int) -> str:
    """LIKE pattern matching one genre id inside the stored JSON genre list.

    The sync routine writes genres as json.dumps([{"id": .., "name": ..}]),
    so every id is followed by a comma.
    """
    return f'%"id": {int(genre_id)},%'


def _release_year():
    return func.substr(Movie.release_date, 1, 4)


def build_conditions(filters: MovieFilter) -> list:
    conditions = []

    if filters.genres:
        conditions.append(or_(*[Movie.genres.like(genre_pattern(g)) for g in filters.genres]))

    if filters.regions:
        conditions.append(Movie.original_language.in_([r.lower() for r in filters.regions]))

    if filters.release_year_from is not None:
        conditions.append(_release_year() >= f"{filters.release_year_from:04d}")

    if filters.release_year_to is not None:
        conditions.append(_release_year() <= f"{filters.release_year_to:04d}")

    if filters.rating_min is not None:
        conditions.append(Movie.vote_average >= filters.rating_min)

    if filters.rating_max is not None:
        conditions.append(Movie.vote_average <= filters.rating_max)

    if filters.runtime is not None and filters.runtime != RuntimeBucket.ANY:
        if filters.runtime == RuntimeBucket.UNDER_90:
            conditions.append(Movie.runtime < 90)
        elif filters.runtime == RuntimeBucket.FROM_90_TO_120:
            conditions.append(and_(Movie.runtime >= 90, Movie.runtime <= 120))
        elif filters.runtime == RuntimeBucket.OVER_120:
            conditions.append(Movie.runtime > 120)

    if filters.age_rating:
        allowed = sorted({ADULT_BY_AGE_RATING[AgeRating(r)] for r in filters.age_rating})
        conditions.append(func.coalesce(Movie.adult, False).in_(allowed))

    return conditions


def build_order_by(filters: MovieFilter) -> list:
    column = SORT_COLUMNS[filters.sort_by or DEFAULT_SORT]
    order = filters.sort_order or DEFAULT_ORDER
    primary = column.desc() if order == SortOrder.DESC else column.asc()
    # Undated or unscored movies go last in either direction; id keeps pages stable
    return [primary.nulls_last(), Movie.id.asc()]


def paginate(stmt, page: int, limit: int):
    return stmt.limit(limit).offset((page - 1) * limit)


def build_movie_queries(filters: MovieFilter):
    """Return (page_stmt, count_stmt) sharing one predicate set."""
    conditions = build_conditions(filters)

    page_stmt = select(Movie)
    count_stmt = select(func.count()).select_from(Movie)
    if conditions:
        where = and_(*conditions)
        page_stmt = page_stmt.where(where)
        count_stmt = count_stmt.where(where)

    page_stmt = paginate(page_stmt.order_by(*build_order_by(filters)), filters.page, filters.limit)
    return page_stmt, count_stmt


def build_search_queries(query: str, page: int = 1, limit: int = 20):
    """Case-insensitive substring search over title and overview, most popular first."""
    condition = or_(
        Movie.title.icontains(query, autoescape=True),
        Movie.overview.icontains(query, autoescape=True),
    )
    page_stmt = paginate(
        select(Movie).where(condition).order_by(Movie.popularity.desc().nulls_last(), Movie.id.asc()),
        page,
        limit,
    )
    count_stmt = select(func.count()).select_from(Movie).where(condition)
    return page_stmt, count_stmt


def execute_page(db: Session, page_stmt, count_stmt) -> Tuple[List[Movie], int]:
    # Both statements run in the session's transaction so they see one snapshot
    movies = list(db.scalars(page_stmt).all())
    total = db.scalar(count_stmt) or 0
    return movies, int(total)


def query_movies(db: Session, filters: MovieFilter) -> Tuple[List[Movie], int]:
    page_stmt, count_stmt = build_movie_queries(filters)
    movies, total = execute_page(db, page_stmt, count_stmt)
    logger.debug(f"Movie filter {filters.model_dump(exclude_none=True)} matched {total} rows")
    return movies, total
